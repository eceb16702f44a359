"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Transport that drives chat-completions streaming through the `openai` package.

Chunks produced by the SDK are re-encoded as SSE data frames so the
OpenAI-compatible stream adapters parse them exactly like raw HTTP frames.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from typing import Any

from ..errors import ConfigurationError
from .contracts import HTTPRequest, SSEEvent, TransportError, TransportHTTPStatusError

_CHAT_COMPLETIONS_SUFFIX = "/chat/completions"


class OpenAISDKTransport:
    """Streams one chat-completions request with `openai.AsyncOpenAI`."""

    def __init__(
        self,
        request: HTTPRequest,
        *,
        api_key: str | None = None,
        client: Any = None,
        timeout: float | None = None,
    ) -> None:
        self._request = request
        self._api_key = api_key
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout
        self._stream: Any = None
        self._closed = False

    def _build_client(self) -> Any:
        """Construct or return the cached AsyncOpenAI client."""
        if self._client is not None:
            return self._client

        try:
            from openai import AsyncOpenAI
        except Exception as e:  # pragma: no cover - environment dependent
            raise ConfigurationError(
                "openai package is not installed. Install it with: pip install openai"
            ) from e

        kwargs: dict[str, Any] = {"max_retries": 0}
        if self._api_key:
            kwargs["api_key"] = self._api_key
        url = self._request.url
        if url.endswith(_CHAT_COMPLETIONS_SUFFIX):
            kwargs["base_url"] = url[: -len(_CHAT_COMPLETIONS_SUFFIX)]
        if self._timeout is not None:
            kwargs["timeout"] = self._timeout

        self._client = AsyncOpenAI(**kwargs)
        return self._client

    def _call_payload(self) -> dict[str, Any]:
        body = json.loads(self._request.body)
        headers = {
            key: value
            for key, value in self._request.headers.items()
            if key.lower() != "authorization"
        }
        payload: dict[str, Any] = {
            "model": body.pop("model"),
            "messages": body.pop("messages"),
            "stream": True,
        }
        body.pop("stream", None)
        if body:
            payload["extra_body"] = body
        if headers:
            payload["extra_headers"] = headers
        return payload

    async def frames(self) -> AsyncIterator[SSEEvent]:
        if self._closed:
            return

        import openai

        client = self._build_client()
        try:
            self._stream = await client.chat.completions.create(**self._call_payload())
        except openai.APIStatusError as e:
            raise TransportHTTPStatusError(e.status_code, e.response.text) from e
        except openai.APIError as e:
            raise TransportError(str(e)) from e

        try:
            async for chunk in self._stream:
                yield SSEEvent(data=chunk.model_dump_json(exclude_none=True))
        except openai.APIStatusError as e:
            raise TransportHTTPStatusError(e.status_code, e.response.text) from e
        except openai.APIConnectionError as e:
            if self._closed:
                return
            raise TransportError(str(e)) from e
        except openai.APIError as e:
            # The SDK raises on in-band `error` payloads; hand them back as data.
            yield SSEEvent(data=json.dumps({"error": e.body or {"message": e.message}}))
            return
        yield SSEEvent(data="[DONE]")

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        stream, self._stream = self._stream, None
        if stream is not None:
            await stream.close()
        if self._owns_client and self._client is not None:
            client, self._client = self._client, None
            await client.close()
