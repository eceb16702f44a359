"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Thread-safe registry for backend factories.
"""

from __future__ import annotations

from collections.abc import Callable
from threading import Lock
from typing import Any

from ..settings import BackendSettings
from .base import Backend

BackendFactory = Callable[..., Backend]

_REGISTRY: dict[str, BackendFactory] = {}
_LOCK = Lock()


class BackendRegistryError(RuntimeError):
    """Raised when backend registration/resolution fails."""


def register_backend(
    provider_id: str, factory: BackendFactory, *, overwrite: bool = False
) -> None:
    """
    Register one backend factory under its stable id.

    `factory(settings, **kwargs)` must return a `Backend`; backend classes
    qualify through their `from_settings` classmethod.
    """
    key = provider_id.strip().lower()
    if not key:
        raise BackendRegistryError("Provider id must be non-empty")

    with _LOCK:
        if key in _REGISTRY and not overwrite:
            raise BackendRegistryError(f"Backend already registered: {key}")
        _REGISTRY[key] = factory


def get_backend_factory(provider_id: str) -> BackendFactory:
    """Resolve one registered backend factory by id."""
    key = provider_id.strip().lower()
    with _LOCK:
        factory = _REGISTRY.get(key)
    if factory is None:
        raise BackendRegistryError(f"Unknown backend '{provider_id}'")
    return factory


def list_backends() -> list[str]:
    """List registered provider ids in deterministic order."""
    with _LOCK:
        return sorted(_REGISTRY.keys())


def create_backend(
    provider_id: str,
    *,
    settings: BackendSettings | None = None,
    **kwargs: Any,
) -> Backend:
    """Create a backend; settings default to the provider's environment."""
    factory = get_backend_factory(provider_id)
    return factory(settings or BackendSettings.from_env(provider_id), **kwargs)
