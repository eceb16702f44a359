"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Stream adapter for OpenRouter's OpenAI-compatible chunks.
"""

from __future__ import annotations

from typing import Any

from ..chunks import Chunk
from ..transport.contracts import SSEEvent
from .openai import OpenAIStreamAdapter


class OpenRouterStreamAdapter(OpenAIStreamAdapter):
    """
    OpenAI chunk grammar plus OpenRouter extensions.

    Reasoning models stream `delta.reasoning`; upstream failures arrive as an
    in-band `error` object on a chunk whose finish reason is `"error"`.
    """

    provider_id = "openrouter"

    def _reasoning_text(self, delta: dict[str, Any]) -> str | None:
        reasoning = delta.get("reasoning")
        return reasoning if isinstance(reasoning, str) else None

    def _handle(self, frame: SSEEvent) -> list[Chunk]:
        chunks = super()._handle(frame)
        if self._stop_reason == "error":
            raise self._provider_error(
                {"message": "upstream provider aborted the generation"}, frame
            )
        return chunks
