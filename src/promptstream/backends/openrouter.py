"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

OpenRouter backend (OpenAI-compatible chat completions with extensions).
"""

from __future__ import annotations

from typing import Any

from ..adapters.openrouter import OpenRouterStreamAdapter
from ..types import DEFAULT_TEMPERATURE, PromptOptions
from .openai import OpenAIBackend


class OpenRouterBackend(OpenAIBackend):
    """
    Streams `POST /api/v1/chat/completions` on openrouter.ai.

    Any routed model may be addressed by its OpenRouter id
    (`vendor/model`); reasoning is requested with the unified `reasoning`
    object rather than per-family parameters.
    """

    provider_id = "openrouter"
    default_base_url = "https://openrouter.ai/api/v1"
    default_model = "openai/gpt-4o-mini"

    @property
    def is_reasoning_model(self) -> bool:
        return False

    def create_adapter(self) -> OpenRouterStreamAdapter:
        return OpenRouterStreamAdapter()

    def _validate_reasoning(self, options: PromptOptions) -> None:
        """OpenRouter maps `reasoning` onto whichever model it routes to."""

    def _generation_params(self, options: PromptOptions) -> dict[str, Any]:
        params: dict[str, Any] = {"max_tokens": options.max_tokens}
        if options.temperature != DEFAULT_TEMPERATURE:
            params["temperature"] = options.temperature
        if options.reasoning is not None:
            params["reasoning"] = {"effort": options.reasoning}
        return params
