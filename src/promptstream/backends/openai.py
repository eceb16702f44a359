"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

OpenAI chat-completions backend.
"""

from __future__ import annotations

from typing import Any

from ..adapters.openai import OpenAIStreamAdapter
from ..errors import InvalidRequestError
from ..tool_export import export_tools_for_provider
from ..transport.contracts import HTTPRequest, Transport
from ..transport.openai_sdk import OpenAISDKTransport
from ..types import DEFAULT_TEMPERATURE, JSONObject, Message, PromptOptions
from .base import Backend

# Reasoning model families take `developer` instructions, `max_completion_tokens`
# and `reasoning_effort`, and only run at the default temperature.
REASONING_MODEL_PREFIXES = ("o1", "o3", "o4")


class OpenAIBackend(Backend):
    """
    Streams `POST /v1/chat/completions`.

    Pass `use_openai_sdk=True` to carry requests through the `openai` package
    instead of the default `httpx` transport.
    """

    provider_id = "openai"
    default_base_url = "https://api.openai.com/v1"
    default_model = "gpt-4o-mini"
    path = "/chat/completions"

    def __init__(self, *args: Any, use_openai_sdk: bool = False, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        if use_openai_sdk and kwargs.get("transport_factory") is None:
            self._transport_factory = self._sdk_transport

    def _sdk_transport(self, request: HTTPRequest) -> Transport:
        return OpenAISDKTransport(request, api_key=self._api_key, timeout=self.timeout_s)

    @property
    def is_reasoning_model(self) -> bool:
        return self.model.startswith(REASONING_MODEL_PREFIXES)

    @property
    def system_role(self) -> str:
        return "developer" if self.is_reasoning_model else "system"

    def headers(self) -> dict[str, str]:
        return {**self.extra_headers, "Authorization": f"Bearer {self._api_key}"}

    def create_adapter(self) -> OpenAIStreamAdapter:
        return OpenAIStreamAdapter()

    def _validate_roles(
        self, messages: tuple[Message, ...], options: PromptOptions
    ) -> None:
        previous: Message | None = None
        for message in messages:
            if message.role == "tool":
                if previous is None or not (
                    previous.role == "tool"
                    or (previous.role == "assistant" and previous.tool_calls)
                ):
                    raise InvalidRequestError(
                        "tool results must directly follow the assistant turn that requested them"
                    )
            previous = message
        self._validate_reasoning(options)

    def _validate_reasoning(self, options: PromptOptions) -> None:
        if self.is_reasoning_model:
            if options.temperature != DEFAULT_TEMPERATURE:
                raise InvalidRequestError(f"{self.model} only supports temperature=1.0")
        elif options.reasoning is not None:
            raise InvalidRequestError(f"{self.model} does not accept a reasoning effort")

    def build_body(
        self, messages: tuple[Message, ...], options: PromptOptions
    ) -> JSONObject:
        wire: list[dict[str, Any]] = []
        if options.system_prompt:
            wire.append({"role": self.system_role, "content": options.system_prompt})
        wire.extend(self._message(message) for message in messages)

        body: dict[str, Any] = {
            "model": self.model,
            "messages": wire,
            "stream": True,
        }
        body.update(self._generation_params(options))
        if options.stop_sequences:
            body["stop"] = list(options.stop_sequences)
        if options.tools:
            body["tools"] = export_tools_for_provider(options.tools, format="openai")
        if options.tool_choice is not None:
            body["tool_choice"] = (
                options.tool_choice
                if options.tool_choice in ("auto", "none", "required")
                else {"type": "function", "function": {"name": options.tool_choice}}
            )
        return body

    def _generation_params(self, options: PromptOptions) -> dict[str, Any]:
        if self.is_reasoning_model:
            params: dict[str, Any] = {"max_completion_tokens": options.max_tokens}
            if options.reasoning is not None:
                params["reasoning_effort"] = options.reasoning
            return params
        params = {"max_tokens": options.max_tokens}
        if options.temperature != DEFAULT_TEMPERATURE:
            params["temperature"] = options.temperature
        return params

    def _message(self, message: Message) -> dict[str, Any]:
        if message.role == "system":
            return {"role": self.system_role, "content": message.content}
        if message.role == "tool":
            return {
                "role": "tool",
                "tool_call_id": message.call_id,
                "content": message.content,
            }
        if message.role == "assistant" and message.tool_calls:
            return {
                "role": "assistant",
                "content": message.content or None,
                "tool_calls": [
                    {
                        "id": call.call_id,
                        "type": "function",
                        "function": {
                            "name": call.tool_name,
                            "arguments": call.arguments or "{}",
                        },
                    }
                    for call in message.tool_calls
                ],
            }
        return {"role": message.role, "content": message.content}
