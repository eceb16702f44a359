"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Backend settings and explicit environment loading.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from .errors import ConfigurationError

_API_KEY_ENV = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
}


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None


@dataclass(frozen=True, slots=True)
class BackendSettings:
    """Constructor inputs shared by every backend."""

    api_key: str | None = None
    model: str | None = None
    base_url: str | None = None
    timeout_s: float = 60.0
    connect_timeout_s: float = 10.0
    extra_headers: dict[str, str] = field(default_factory=dict)

    @staticmethod
    def from_env(provider: str) -> "BackendSettings":
        """
        Load settings for `provider` from environment variables.

        The API key comes from the provider's conventional variable
        (`ANTHROPIC_API_KEY`, `OPENAI_API_KEY`, `OPENROUTER_API_KEY`); model,
        base URL and timeouts from `PROMPTSTREAM_*` overrides.
        """
        key = provider.strip().lower()
        prefix = f"PROMPTSTREAM_{key.upper()}"
        return BackendSettings(
            api_key=os.getenv(_API_KEY_ENV.get(key, f"{key.upper()}_API_KEY")),
            model=os.getenv(f"{prefix}_MODEL"),
            base_url=os.getenv(f"{prefix}_BASE_URL"),
            timeout_s=_float_env("PROMPTSTREAM_TIMEOUT_S", 60.0),
            connect_timeout_s=_float_env("PROMPTSTREAM_CONNECT_TIMEOUT_S", 10.0),
        )

    def require_api_key(self, provider: str) -> str:
        if not self.api_key:
            env = _API_KEY_ENV.get(provider, f"{provider.upper()}_API_KEY")
            raise ConfigurationError(
                f"No API key configured for {provider}; set {env} or pass api_key"
            )
        return self.api_key
