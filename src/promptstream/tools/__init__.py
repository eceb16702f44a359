"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Tool declarations and the validating tool registry.
"""

from .base import Tool, ToolFn, ToolInvocation, as_async, serialize_result, tool
from .registry import ToolCallRecord, ToolRegistry

__all__ = [
    "Tool",
    "ToolFn",
    "ToolInvocation",
    "ToolRegistry",
    "ToolCallRecord",
    "as_async",
    "serialize_result",
    "tool",
]
