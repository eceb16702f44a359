"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

This module implements the ToolRegistry.
It validates assembled tool calls against each tool's declared argument model
before running the handler, bounds concurrent execution, applies timeouts,
and turns handler output into tool-result messages for the next prompt turn.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from pydantic import BaseModel

from ..errors import (
    ToolAlreadyRegisteredError,
    ToolError,
    ToolExecutionError,
    ToolTimeoutError,
    UnknownToolError,
)
from ..types import AssembledToolCall, Message, ToolSpec
from .base import Tool, ToolFn, ToolInvocation, serialize_result

logger = logging.getLogger("promptstream.tools")


@dataclass(frozen=True, slots=True)
class ToolCallRecord:
    tool_name: str
    call_id: str
    started_at_s: float
    ended_at_s: float
    ok: bool
    error: str | None = None


class ToolRegistry:
    """
    Stores tools by name and dispatches assembled tool calls with:
      - validate-then-dispatch (unknown tools and bad arguments never run)
      - concurrency limiting
      - registry-level default timeout
      - tool spec export for prompt options
    """

    def __init__(
        self,
        *,
        max_concurrency: int = 32,
        default_timeout: float | None = None,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")

        self._tools: dict[str, Tool[Any, Any]] = {}
        self._max_concurrency = max_concurrency
        self._sem: asyncio.Semaphore | None = None
        self._default_timeout = default_timeout
        self._records: list[ToolCallRecord] = []

    # ''''''''''''
    # Registration
    # ''''''''''''

    def register(self, tool: Tool[Any, Any], *, overwrite: bool = False) -> None:
        name = tool.spec.name
        if not overwrite and name in self._tools:
            raise ToolAlreadyRegisteredError(f"Tool already registered: {name}")
        self._tools[name] = tool

    def register_function(
        self,
        name: str,
        args_model: type[BaseModel],
        handler: ToolFn,
        *,
        description: str = "",
        timeout: float | None = None,
        overwrite: bool = False,
    ) -> Tool[Any, Any]:
        """Register `handler` under `name` with `args_model` as its schema."""
        registered = Tool(
            name=name,
            args_model=args_model,
            fn=handler,
            description=description,
            default_timeout=timeout,
        )
        self.register(registered, overwrite=overwrite)
        return registered

    def register_many(self, tools: Iterable[Tool[Any, Any]], *, overwrite: bool = False) -> None:
        for t in tools:
            self.register(t, overwrite=overwrite)

    def unregister(self, name: str) -> None:
        self._tools.pop(name, None)

    def get(self, name: str) -> Tool[Any, Any]:
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownToolError(name) from None

    def list(self) -> list[Tool[Any, Any]]:
        return list(self._tools.values())

    def names(self) -> list[str]:
        return list(self._tools.keys())

    def has(self, name: str) -> bool:
        return name in self._tools

    def specs(self) -> tuple[ToolSpec, ...]:
        """Declarations to pass as `PromptOptions.tools`."""
        return tuple(t.spec for t in self._tools.values())

    # '''''''''
    # Dispatch
    # '''''''''

    def validate(self, call: AssembledToolCall) -> ToolInvocation:
        """Resolve the tool and validate arguments without running anything."""
        if call.tool_name not in self._tools:
            raise UnknownToolError(call.tool_name, call_id=call.call_id)
        return self._tools[call.tool_name].validate(call)

    async def try_dispatch(
        self, call: AssembledToolCall, *, timeout: float | None = None
    ) -> Message:
        """
        Validate `call`, run its handler and return the tool-result message.

        Timeout precedence:
          1) try_dispatch(timeout=...)
          2) tool.default_timeout
          3) registry default_timeout
        """
        invocation = self.validate(call)
        tool = self._tools[call.tool_name]
        effective_timeout = (
            timeout
            if timeout is not None
            else (tool.default_timeout if tool.default_timeout is not None else self._default_timeout)
        )

        if self._sem is None:
            self._sem = asyncio.Semaphore(self._max_concurrency)

        started = time.time()
        async with self._sem:
            try:
                run = self._invoke(tool, invocation, call, started)
                if effective_timeout is not None:
                    result = await asyncio.wait_for(run, timeout=effective_timeout)
                else:
                    result = await run
            except asyncio.TimeoutError as e:
                self._record(call, started, error="timeout")
                raise ToolTimeoutError(
                    f"Tool '{call.tool_name}' timed out after {effective_timeout} seconds.",
                    call_id=call.call_id,
                ) from e

        self._record(call, started)
        return Message.tool_result(
            call.call_id, serialize_result(result), name=call.tool_name
        )

    async def _invoke(
        self,
        tool: Tool[Any, Any],
        invocation: ToolInvocation,
        call: AssembledToolCall,
        started: float,
    ) -> Any:
        """
        Run the handler. Anything it raises, `TimeoutError` included, is a
        `ToolExecutionError`; only the dispatch deadline yields a timeout.
        """
        try:
            return await tool.invoke(invocation)
        except Exception as e:
            self._record(call, started, error=str(e))
            logger.warning("tool %s (call %s) failed: %s", call.tool_name, call.call_id, e)
            raise ToolExecutionError(
                f"Tool '{call.tool_name}' failed: {e}", call_id=call.call_id
            ) from e

    async def dispatch_many(
        self,
        calls: Sequence[AssembledToolCall],
        *,
        timeout: float | None = None,
        return_exceptions: bool = False,
    ) -> list[Message | ToolError]:
        """
        Dispatch several calls concurrently (bounded by the registry semaphore).

        Results keep the order of `calls`.
        return_exceptions:
          - False: will raise on first tool error
          - True: returns ToolError objects in the result list
        """
        tasks = [asyncio.ensure_future(self.try_dispatch(c, timeout=timeout)) for c in calls]
        try:
            results = await asyncio.gather(*tasks, return_exceptions=return_exceptions)
        finally:
            for task in tasks:
                task.cancel()
        return list(results)

    def error_message(self, call: AssembledToolCall, error: Exception) -> Message:
        """Tool-result message reporting `error` back to the model."""
        return Message.tool_result(
            call.call_id, str(error), name=call.tool_name, is_error=True
        )

    # '''''''''''''
    # Observability
    # '''''''''''''

    def _record(self, call: AssembledToolCall, started: float, *, error: str | None = None) -> None:
        self._records.append(
            ToolCallRecord(
                tool_name=call.tool_name,
                call_id=call.call_id,
                started_at_s=started,
                ended_at_s=time.time(),
                ok=error is None,
                error=error,
            )
        )

    def recent_calls(self, limit: int = 100) -> list[ToolCallRecord]:
        return self._records[-limit:]
