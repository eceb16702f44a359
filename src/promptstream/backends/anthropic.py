"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Anthropic Messages API backend.
"""

from __future__ import annotations

from typing import Any

from ..adapters.anthropic import AnthropicStreamAdapter
from ..errors import InvalidRequestError
from ..tool_export import export_tools_for_provider
from ..types import DEFAULT_TEMPERATURE, JSONObject, Message, PromptOptions
from .base import Backend, tool_input

ANTHROPIC_VERSION = "2023-06-01"

# Thinking budget per reasoning effort; max_tokens must exceed it.
THINKING_BUDGETS = {"low": 1024, "medium": 4096, "high": 16384}


class AnthropicBackend(Backend):
    """Streams `POST /v1/messages` with `stream: true`."""

    provider_id = "anthropic"
    default_base_url = "https://api.anthropic.com"
    default_model = "claude-3-5-haiku-latest"
    path = "/v1/messages"

    def headers(self) -> dict[str, str]:
        return {
            **self.extra_headers,
            "x-api-key": self._api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }

    def create_adapter(self) -> AnthropicStreamAdapter:
        return AnthropicStreamAdapter()

    def _validate_roles(
        self, messages: tuple[Message, ...], options: PromptOptions
    ) -> None:
        seen_turn = False
        for message in messages:
            if message.role == "system":
                if seen_turn:
                    raise InvalidRequestError(
                        "anthropic only accepts system messages before the conversation"
                    )
                continue
            if not seen_turn and message.role != "user":
                raise InvalidRequestError("anthropic conversations must start with a user turn")
            seen_turn = True

        if options.reasoning is not None:
            budget = THINKING_BUDGETS[options.reasoning]
            if options.max_tokens <= budget:
                raise InvalidRequestError(
                    f"max_tokens must exceed the {options.reasoning} thinking budget ({budget})"
                )
            if options.temperature != DEFAULT_TEMPERATURE:
                raise InvalidRequestError("extended thinking requires temperature=1.0")

    def build_body(
        self, messages: tuple[Message, ...], options: PromptOptions
    ) -> JSONObject:
        system_parts = [options.system_prompt] if options.system_prompt else []
        system_parts.extend(m.content for m in messages if m.role == "system")

        body: dict[str, Any] = {
            "model": self.model,
            "max_tokens": options.max_tokens,
            "stream": True,
            "messages": self._messages(messages),
        }
        if options.temperature != DEFAULT_TEMPERATURE:
            body["temperature"] = options.temperature
        if system_parts:
            body["system"] = "\n\n".join(system_parts)
        if options.stop_sequences:
            body["stop_sequences"] = list(options.stop_sequences)
        if options.tools:
            body["tools"] = export_tools_for_provider(options.tools, format="anthropic")
        if options.tool_choice is not None:
            body["tool_choice"] = self._tool_choice(options.tool_choice)
        if options.reasoning is not None:
            body["thinking"] = {
                "type": "enabled",
                "budget_tokens": THINKING_BUDGETS[options.reasoning],
            }
        return body

    def _tool_choice(self, choice: str) -> dict[str, str]:
        if choice == "auto":
            return {"type": "auto"}
        if choice == "required":
            return {"type": "any"}
        if choice == "none":
            return {"type": "none"}
        return {"type": "tool", "name": choice}

    def _messages(self, messages: tuple[Message, ...]) -> list[dict[str, Any]]:
        """Wire messages; adjacent turns with the same wire role are merged."""
        out: list[dict[str, Any]] = []
        for message in messages:
            if message.role == "system":
                continue
            role, blocks = self._blocks(message)
            if out and out[-1]["role"] == role:
                out[-1]["content"].extend(blocks)
            else:
                out.append({"role": role, "content": blocks})

        for row in out:
            blocks = row["content"]
            if len(blocks) == 1 and blocks[0]["type"] == "text":
                row["content"] = blocks[0]["text"]
        return out

    def _blocks(self, message: Message) -> tuple[str, list[dict[str, Any]]]:
        if message.role == "tool":
            block: dict[str, Any] = {
                "type": "tool_result",
                "tool_use_id": message.call_id,
                "content": message.content,
            }
            if message.is_error:
                block["is_error"] = True
            return "user", [block]

        blocks: list[dict[str, Any]] = []
        if message.content:
            blocks.append({"type": "text", "text": message.content})
        for call in message.tool_calls:
            blocks.append(
                {
                    "type": "tool_use",
                    "id": call.call_id,
                    "name": call.tool_name,
                    "input": tool_input(call.arguments, call.call_id),
                }
            )
        if not blocks:
            blocks.append({"type": "text", "text": ""})
        return message.role, blocks
