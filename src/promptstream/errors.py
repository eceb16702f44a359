"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Exception taxonomy for prompt construction, streaming and tool dispatch.
"""

from __future__ import annotations


class PromptStreamError(Exception):
    """Base class for every error raised by promptstream."""


class ConfigurationError(PromptStreamError):
    """Raised when backend settings are missing or inconsistent."""


class RequestError(PromptStreamError):
    """Raised before any network I/O when a prompt cannot be issued."""


class InvalidRequestError(RequestError):
    """Messages or options were rejected by request validation."""


class StreamError(PromptStreamError):
    """
    Terminal error delivered by a token stream.

    Each stream delivers at most one `StreamError`; afterwards it is exhausted.
    """

    def __init__(self, message: str, *, provider: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.provider = provider

    def __str__(self) -> str:
        if self.provider:
            return f"[{self.provider}] {self.message}"
        return self.message


class StreamTransportError(StreamError):
    """The connection failed or closed before the stream ended."""


class StreamMalformedPayloadError(StreamError):
    """A frame could not be parsed or was not valid in the current state."""

    def __init__(
        self, message: str, *, raw: str, provider: str | None = None
    ) -> None:
        super().__init__(message, provider=provider)
        self.raw = raw

    def __str__(self) -> str:
        return f"{super().__str__()} (raw frame: {self.raw!r})"


class StreamProviderError(StreamError):
    """The provider reported an error, in-band or through an HTTP status."""

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status: int | None = None,
        provider: str | None = None,
    ) -> None:
        super().__init__(message, provider=provider)
        self.code = code
        self.status = status

    def __str__(self) -> str:
        details = ", ".join(
            part
            for part in (
                f"status={self.status}" if self.status is not None else "",
                f"code={self.code}" if self.code else "",
            )
            if part
        )
        base = super().__str__()
        return f"{base} ({details})" if details else base


class StreamCancelledError(StreamError):
    """The stream was cancelled by its consumer before it ended."""


class ChunkSequenceError(RuntimeError):
    """An adapter tried to emit a chunk after its terminal marker."""


class ToolError(PromptStreamError):
    """Base class for tool registration and dispatch failures."""


class ToolAlreadyRegisteredError(ToolError):
    """A tool with the same name is already registered."""


class UnknownToolError(ToolError):
    """The model asked for a tool that is not registered."""

    def __init__(self, tool_name: str, *, call_id: str | None = None) -> None:
        super().__init__(f"Unknown tool: {tool_name}")
        self.tool_name = tool_name
        self.call_id = call_id


class InvalidToolArgumentsError(ToolError):
    """Tool arguments were not valid JSON or did not match the tool schema."""

    def __init__(
        self,
        message: str,
        *,
        call_id: str,
        tool_name: str,
        raw_arguments: str,
    ) -> None:
        super().__init__(message)
        self.call_id = call_id
        self.tool_name = tool_name
        self.raw_arguments = raw_arguments


class ToolExecutionError(ToolError):
    """The tool handler raised while running."""

    def __init__(self, message: str, *, call_id: str | None = None) -> None:
        super().__init__(message)
        self.call_id = call_id


class ToolTimeoutError(ToolExecutionError):
    """The tool handler did not finish within its timeout."""
