"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Type-safe tool declarations: a name, a pydantic argument model and a handler.
"""

from __future__ import annotations

import inspect
import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from ..errors import InvalidToolArgumentsError
from ..tool_export import normalize_json_schema
from ..types import AssembledToolCall, ToolSpec

ArgsT = TypeVar("ArgsT", bound=BaseModel)
ReturnT = TypeVar("ReturnT")

ToolFn = Callable[..., Any]


def as_async(fn: Callable[..., Any]) -> Callable[..., Awaitable[Any]]:
    """Wrap a sync or async callable so it can always be awaited."""

    async def _call(*args: Any, **kwargs: Any) -> Any:
        result = fn(*args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result

    return _call


def serialize_result(value: Any) -> str:
    """Render a handler return value as tool-result text."""
    if isinstance(value, str):
        return value
    if isinstance(value, BaseModel):
        return value.model_dump_json()
    return json.dumps(value, ensure_ascii=False, default=str)


@dataclass(frozen=True, slots=True)
class ToolInvocation:
    """A tool call whose arguments passed schema validation."""

    call_id: str
    tool_name: str
    args: BaseModel


class Tool(Generic[ArgsT, ReturnT]):
    """
    One callable tool.

    Arguments are validated against `args_model` before the handler runs;
    the handler receives the validated model instance.
    """

    def __init__(
        self,
        *,
        name: str,
        args_model: type[ArgsT],
        fn: ToolFn,
        description: str = "",
        default_timeout: float | None = None,
    ) -> None:
        if not name:
            raise ValueError("Tool name must be non-empty")
        if not (isinstance(args_model, type) and issubclass(args_model, BaseModel)):
            raise TypeError("args_model must be a pydantic BaseModel subclass")
        self.args_model = args_model
        self.fn = fn
        self.default_timeout = default_timeout
        self.spec = ToolSpec(
            name=name,
            description=description,
            parameters_schema=normalize_json_schema(args_model.model_json_schema()),
        )

    @property
    def name(self) -> str:
        return self.spec.name

    def __call__(self, args: ArgsT) -> Any:
        return self.fn(args)

    def __repr__(self) -> str:
        return f"Tool(name={self.name!r}, args_model={self.args_model.__name__})"

    def validate(self, call: AssembledToolCall) -> ToolInvocation:
        """Parse and validate the raw argument document of `call`."""
        try:
            value = call.parsed_arguments()
        except ValueError as e:
            raise self._invalid(call, f"arguments are not valid JSON: {e}") from e
        if not isinstance(value, dict):
            raise self._invalid(call, "arguments must be a JSON object")
        try:
            args = self.args_model.model_validate(value)
        except ValidationError as e:
            raise self._invalid(call, str(e)) from e
        return ToolInvocation(call_id=call.call_id, tool_name=self.name, args=args)

    def _invalid(self, call: AssembledToolCall, reason: str) -> InvalidToolArgumentsError:
        return InvalidToolArgumentsError(
            f"Invalid arguments for tool '{self.name}' (call {call.call_id}): {reason}",
            call_id=call.call_id,
            tool_name=self.name,
            raw_arguments=call.arguments,
        )

    async def invoke(self, invocation: ToolInvocation) -> ReturnT:
        return await as_async(self.fn)(invocation.args)


def tool(
    *,
    args_model: type[ArgsT],
    name: str | None = None,
    description: str | None = None,
    timeout: float | None = None,
) -> Callable[[ToolFn], Tool[ArgsT, Any]]:
    """
    Decorate a function as a tool.

    The tool name defaults to the function name and the description to its
    docstring.
    """

    def _wrap(fn: ToolFn) -> Tool[ArgsT, Any]:
        return Tool(
            name=name or fn.__name__,
            args_model=args_model,
            fn=fn,
            description=description if description is not None else inspect.getdoc(fn) or "",
            default_timeout=timeout,
        )

    return _wrap
