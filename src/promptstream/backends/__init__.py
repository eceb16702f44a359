"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: backends/__init__.py.
"""

from .anthropic import AnthropicBackend
from .base import Backend
from .openai import OpenAIBackend
from .openrouter import OpenRouterBackend
from .registry import (
    BackendFactory,
    BackendRegistryError,
    create_backend,
    get_backend_factory,
    list_backends,
    register_backend,
)

# Built-in backend bootstrap.
register_backend(AnthropicBackend.provider_id, AnthropicBackend.from_settings, overwrite=True)
register_backend(OpenAIBackend.provider_id, OpenAIBackend.from_settings, overwrite=True)
register_backend(OpenRouterBackend.provider_id, OpenRouterBackend.from_settings, overwrite=True)

__all__ = [
    "Backend",
    "AnthropicBackend",
    "OpenAIBackend",
    "OpenRouterBackend",
    "BackendFactory",
    "BackendRegistryError",
    "register_backend",
    "get_backend_factory",
    "list_backends",
    "create_backend",
]
