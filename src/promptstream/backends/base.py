"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Backend capability shared by every provider.

A backend is a read-only descriptor (credentials, endpoint, model). `prompt`
validates the conversation, serializes it into the provider's request and
returns a `TokenStream` without waiting for the response; the connection is
opened when the stream is first pulled. Only request serialization and the
stream adapter differ per provider.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import replace
from typing import Any

import httpx

from ..adapters.base import StreamAdapter
from ..errors import ConfigurationError, InvalidRequestError
from ..settings import BackendSettings
from ..streaming import TokenStream
from ..transport.contracts import HTTPRequest, Transport, TransportFactory
from ..transport.http import HttpxSSETransport
from ..types import JSONObject, Message, PromptOptions

logger = logging.getLogger("promptstream.backends")


class Backend(ABC):
    """Base class for provider backends."""

    provider_id: str = ""
    default_base_url: str = ""
    default_model: str = ""
    path: str = ""

    def __init__(
        self,
        model: str | None = None,
        api_key: str | None = None,
        *,
        base_url: str | None = None,
        timeout_s: float = 60.0,
        connect_timeout_s: float = 10.0,
        extra_headers: Mapping[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
        transport_factory: TransportFactory | None = None,
    ) -> None:
        self.model = model or self.default_model
        if not self.model:
            raise ConfigurationError(f"{self.provider_id} backend needs a model id")
        if not api_key:
            raise ConfigurationError(f"{self.provider_id} backend needs an API key")
        self._api_key = api_key
        self.base_url = (base_url or self.default_base_url).rstrip("/")
        self.timeout_s = timeout_s
        self.connect_timeout_s = connect_timeout_s
        self.extra_headers = dict(extra_headers or {})
        self._client = client
        self._transport_factory = transport_factory or self._default_transport

    @classmethod
    def from_settings(cls, settings: BackendSettings, **kwargs: Any) -> "Backend":
        return cls(
            settings.model,
            settings.require_api_key(cls.provider_id),
            base_url=settings.base_url,
            timeout_s=settings.timeout_s,
            connect_timeout_s=settings.connect_timeout_s,
            extra_headers=settings.extra_headers,
            **kwargs,
        )

    @classmethod
    def from_env(cls, model: str | None = None, **kwargs: Any) -> "Backend":
        """Sugar for `from_settings` reading the provider's environment."""
        settings = BackendSettings.from_env(cls.provider_id)
        if model is not None:
            settings = replace(settings, model=model)
        return cls.from_settings(settings, **kwargs)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model={self.model!r}, base_url={self.base_url!r})"

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}{self.path}"

    def _default_transport(self, request: HTTPRequest) -> Transport:
        return HttpxSSETransport(
            request,
            client=self._client,
            timeout=httpx.Timeout(self.timeout_s, connect=self.connect_timeout_s),
        )

    # '''''''''''''
    # Prompt entry
    # '''''''''''''

    def prompt(
        self,
        messages: Sequence[Message],
        options: PromptOptions | None = None,
    ) -> TokenStream:
        """
        Issue a streamed prompt.

        Raises `InvalidRequestError` before any I/O when the messages or
        options are rejected.
        """
        options = options or PromptOptions()
        messages = tuple(messages)
        self.validate_request(messages, options)

        body = json.dumps(self.build_body(messages, options), ensure_ascii=False)
        logger.debug("%s request body: %s", self.provider_id, body)
        request = HTTPRequest(url=self.endpoint, body=body, headers=self.headers())
        transport = self._transport_factory(request)
        return TokenStream(transport=transport, adapter=self.create_adapter())

    def validate_request(
        self, messages: tuple[Message, ...], options: PromptOptions
    ) -> None:
        """Shared request checks, then provider-specific role rules."""
        options.validate()
        if not messages:
            raise InvalidRequestError("messages must be non-empty")
        if not all(isinstance(message, Message) for message in messages):
            raise InvalidRequestError("messages must be Message instances")
        if all(message.role == "system" for message in messages):
            raise InvalidRequestError("messages must contain at least one non-system turn")

        offered: set[str] = set()
        answered: set[str] = set()
        for message in messages:
            if message.tool_calls and message.role != "assistant":
                raise InvalidRequestError("only assistant messages may carry tool calls")
            for call in message.tool_calls:
                offered.add(call.call_id)
            if message.role == "tool":
                if message.call_id not in offered:
                    raise InvalidRequestError(
                        f"tool result {message.call_id} does not answer an earlier tool call"
                    )
                if message.call_id in answered:
                    raise InvalidRequestError(
                        f"tool call {message.call_id} is answered more than once"
                    )
                answered.add(message.call_id)
        self._validate_roles(messages, options)

    # ''''''''''''''''''''''''''''
    # Provider-specific pieces
    # ''''''''''''''''''''''''''''

    def _validate_roles(
        self, messages: tuple[Message, ...], options: PromptOptions
    ) -> None:
        """Hook for provider role-ordering constraints."""

    @abstractmethod
    def headers(self) -> dict[str, str]:
        """Authentication and versioning headers."""

    @abstractmethod
    def build_body(
        self, messages: tuple[Message, ...], options: PromptOptions
    ) -> JSONObject:
        """Serialize messages and options into the provider request."""

    @abstractmethod
    def create_adapter(self) -> StreamAdapter:
        """A fresh stream adapter for one response."""


def tool_input(call_arguments: str, call_id: str) -> Any:
    """Decode replayed tool-call arguments, rejecting invalid JSON."""
    if not call_arguments.strip():
        return {}
    try:
        return json.loads(call_arguments)
    except ValueError as e:
        raise InvalidRequestError(
            f"tool call {call_id} has arguments that are not valid JSON"
        ) from e
