"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Per-provider stream adapters.
"""

from .anthropic import AnthropicStreamAdapter
from .base import AdapterState, StreamAdapter
from .openai import OpenAIStreamAdapter
from .openrouter import OpenRouterStreamAdapter

__all__ = [
    "AdapterState",
    "StreamAdapter",
    "AnthropicStreamAdapter",
    "OpenAIStreamAdapter",
    "OpenRouterStreamAdapter",
]
