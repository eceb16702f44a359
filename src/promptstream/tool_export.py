"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Provider-facing tool export utilities.

This module converts tool specs (or tools carrying a `.spec`) into the
tool declarations each backend sends: Anthropic `input_schema` tools and
OpenAI-compatible function tools (OpenAI, OpenRouter).
"""

from __future__ import annotations

from typing import Any, Iterable

from .types import ToolSpec


def normalize_json_schema(schema: Any) -> dict[str, Any]:
    """
    Ensure schema is a safe object-parameter schema.

    Coerces invalid/malformed fields to predictable defaults so providers
    always receive a well-formed parameters schema.
    """
    if not isinstance(schema, dict):
        return {
            "type": "object",
            "properties": {},
            "required": [],
            "additionalProperties": False,
        }

    out = dict(schema)

    # Tool parameters should always be object-shaped.
    out["type"] = "object"
    out.pop("title", None)

    properties_raw = out.get("properties")
    if not isinstance(properties_raw, dict):
        properties: dict[str, Any] = {}
    else:
        properties = {
            str(key): (value if isinstance(value, dict) else {})
            for key, value in properties_raw.items()
        }
    out["properties"] = properties

    required_raw = out.get("required")
    if isinstance(required_raw, list):
        required = [
            str(name)
            for name in required_raw
            if isinstance(name, str) and name in properties
        ]
    else:
        required = []
    out["required"] = required

    additional_properties = out.get("additionalProperties")
    if not isinstance(additional_properties, (bool, dict)):
        out["additionalProperties"] = False

    return out


def _spec(item: Any) -> ToolSpec:
    return item if isinstance(item, ToolSpec) else item.spec


def toolspec_to_openai_tool(spec: ToolSpec) -> dict[str, Any]:
    """Convert a tool spec into an OpenAI-compatible function tool."""
    return {
        "type": "function",
        "function": {
            "name": spec.name,
            "description": spec.description,
            "parameters": normalize_json_schema(spec.parameters_schema),
        },
    }


def toolspec_to_anthropic_tool(spec: ToolSpec) -> dict[str, Any]:
    """Convert a tool spec into an Anthropic Messages API tool."""
    return {
        "name": spec.name,
        "description": spec.description,
        "input_schema": normalize_json_schema(spec.parameters_schema),
    }


def export_tools_for_provider(
    tools: Iterable[Any],
    *,
    format: str = "openai",
) -> list[dict[str, Any]]:
    """
    Export tool specs (or tools with `.spec`) for one provider family.

    Supported formats:
      - "openai" (default)
      - "openrouter" (same schema as openai)
      - "anthropic"
    """
    fmt = format.lower().strip()
    if fmt in ("openai", "openrouter"):
        return [toolspec_to_openai_tool(_spec(item)) for item in tools]
    if fmt == "anthropic":
        return [toolspec_to_anthropic_tool(_spec(item)) for item in tools]
    raise ValueError(f"Unknown export format: {format}")
