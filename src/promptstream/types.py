"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

This module defines the provider-agnostic request types used by every backend.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Literal, TypeAlias

from .errors import InvalidRequestError


JSONPrimitive: TypeAlias = str | int | float | bool | None
JSONValue: TypeAlias = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]
JSONObject: TypeAlias = dict[str, JSONValue]
JSONSchema: TypeAlias = dict[str, JSONValue]

Role = Literal["user", "assistant", "system", "tool"]
ReasoningEffort = Literal["low", "medium", "high"]
ToolChoice: TypeAlias = Literal["auto", "none", "required"] | str

DEFAULT_MAX_TOKENS = 4096
DEFAULT_TEMPERATURE = 1.0

_REASONING_EFFORTS = ("low", "medium", "high")


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """Tool declaration sent to the provider alongside a prompt."""

    name: str
    description: str = ""
    parameters_schema: JSONSchema = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )


@dataclass(frozen=True, slots=True)
class AssembledToolCall:
    """
    A completed tool invocation rebuilt from streamed chunks.

    `arguments` is the raw argument document, i.e. every argument fragment for
    `call_id` concatenated in arrival order.
    """

    call_id: str
    tool_name: str
    arguments: str = ""

    def parsed_arguments(self) -> JSONValue:
        """Decode the argument document; an empty document means `{}`."""
        if not self.arguments.strip():
            return {}
        return json.loads(self.arguments)


@dataclass(frozen=True, slots=True)
class Message:
    """One immutable conversation turn."""

    role: Role
    content: str = ""
    call_id: str | None = None
    name: str | None = None
    is_error: bool = False
    tool_calls: tuple[AssembledToolCall, ...] = ()

    @classmethod
    def user(cls, text: str) -> "Message":
        return cls(role="user", content=text)

    @classmethod
    def system(cls, text: str) -> "Message":
        return cls(role="system", content=text)

    @classmethod
    def assistant(
        cls, text: str = "", tool_calls: tuple[AssembledToolCall, ...] | list[AssembledToolCall] = ()
    ) -> "Message":
        return cls(role="assistant", content=text, tool_calls=tuple(tool_calls))

    @classmethod
    def tool_result(
        cls,
        call_id: str,
        content: str,
        *,
        name: str | None = None,
        is_error: bool = False,
    ) -> "Message":
        """Build the result of one tool call, addressed by `call_id`."""
        if not call_id:
            raise InvalidRequestError("Tool result messages require a call_id")
        return cls(
            role="tool",
            content=content,
            call_id=call_id,
            name=name,
            is_error=is_error,
        )


@dataclass(frozen=True, slots=True)
class PromptOptions:
    """
    Model parameters for one prompt call.

    Backends only read these values; use `dataclasses.replace` to derive
    variants.
    """

    max_tokens: int = DEFAULT_MAX_TOKENS
    temperature: float = DEFAULT_TEMPERATURE
    system_prompt: str | None = None
    stop_sequences: tuple[str, ...] = ()
    tools: tuple[ToolSpec, ...] = ()
    tool_choice: ToolChoice | None = None
    reasoning: ReasoningEffort | None = None

    def validate(self) -> None:
        """Raise `InvalidRequestError` when option values are out of range."""
        if self.max_tokens < 1:
            raise InvalidRequestError("max_tokens must be >= 1")
        if not 0.0 <= self.temperature <= 2.0:
            raise InvalidRequestError("temperature must be within [0, 2]")
        if self.reasoning is not None and self.reasoning not in _REASONING_EFFORTS:
            raise InvalidRequestError(
                f"Unsupported reasoning effort '{self.reasoning}'"
            )
        names = [spec.name for spec in self.tools]
        if any(not name for name in names):
            raise InvalidRequestError("Tool names must be non-empty")
        if len(set(names)) != len(names):
            raise InvalidRequestError("Tool names must be unique")
        if (
            self.tool_choice is not None
            and self.tool_choice not in ("auto", "none", "required")
            and self.tool_choice not in names
        ):
            raise InvalidRequestError(
                f"tool_choice names an undeclared tool: {self.tool_choice}"
            )
        if self.tool_choice == "required" and not self.tools:
            raise InvalidRequestError("tool_choice='required' needs at least one tool")
