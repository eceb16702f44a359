"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: __init__.py.
"""

from __future__ import annotations

from .adapters import (
    AdapterState,
    AnthropicStreamAdapter,
    OpenAIStreamAdapter,
    OpenRouterStreamAdapter,
    StreamAdapter,
)
from .aggregation import (
    ToolCallAssembler,
    all_chunks,
    all_text,
    assistant_message,
    merge_chunks,
)
from .backends import (
    AnthropicBackend,
    Backend,
    BackendRegistryError,
    OpenAIBackend,
    OpenRouterBackend,
    create_backend,
    get_backend_factory,
    list_backends,
    register_backend,
)
from .chunks import (
    Chunk,
    ChunkEmitter,
    End,
    Thinking,
    Token,
    ToolCallArgument,
    ToolCallEnd,
    ToolCallStart,
)
from .errors import (
    ChunkSequenceError,
    ConfigurationError,
    InvalidRequestError,
    InvalidToolArgumentsError,
    PromptStreamError,
    RequestError,
    StreamCancelledError,
    StreamError,
    StreamMalformedPayloadError,
    StreamProviderError,
    StreamTransportError,
    ToolAlreadyRegisteredError,
    ToolError,
    ToolExecutionError,
    ToolTimeoutError,
    UnknownToolError,
)
from .settings import BackendSettings
from .streaming import TokenStream
from .tool_export import export_tools_for_provider, normalize_json_schema
from .tools import Tool, ToolRegistry, tool
from .types import (
    AssembledToolCall,
    Message,
    PromptOptions,
    ReasoningEffort,
    ToolSpec,
)

__all__ = [
    "Backend",
    "AnthropicBackend",
    "OpenAIBackend",
    "OpenRouterBackend",
    "BackendSettings",
    "BackendRegistryError",
    "register_backend",
    "get_backend_factory",
    "list_backends",
    "create_backend",
    "Message",
    "PromptOptions",
    "ReasoningEffort",
    "ToolSpec",
    "AssembledToolCall",
    "Chunk",
    "ChunkEmitter",
    "Token",
    "Thinking",
    "ToolCallStart",
    "ToolCallArgument",
    "ToolCallEnd",
    "End",
    "TokenStream",
    "StreamAdapter",
    "AdapterState",
    "AnthropicStreamAdapter",
    "OpenAIStreamAdapter",
    "OpenRouterStreamAdapter",
    "all_chunks",
    "all_text",
    "merge_chunks",
    "assistant_message",
    "ToolCallAssembler",
    "Tool",
    "ToolRegistry",
    "tool",
    "export_tools_for_provider",
    "normalize_json_schema",
    "PromptStreamError",
    "ConfigurationError",
    "RequestError",
    "InvalidRequestError",
    "StreamError",
    "StreamTransportError",
    "StreamMalformedPayloadError",
    "StreamProviderError",
    "StreamCancelledError",
    "ChunkSequenceError",
    "ToolError",
    "ToolAlreadyRegisteredError",
    "UnknownToolError",
    "InvalidToolArgumentsError",
    "ToolExecutionError",
    "ToolTimeoutError",
]
