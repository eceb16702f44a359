"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Default transport: streamed HTTP POST over `httpx`, decoded as server-sent events.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

import httpx

from .contracts import HTTPRequest, SSEEvent, TransportError, TransportHTTPStatusError
from .sse import SSEDecoder

logger = logging.getLogger("promptstream.transport")


class HttpxSSETransport:
    """
    One streamed request over `httpx.AsyncClient`.

    When no client is supplied the transport creates one and closes it along
    with the response.
    """

    def __init__(
        self,
        request: HTTPRequest,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: httpx.Timeout | float | None = 60.0,
    ) -> None:
        self._request = request
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout
        self._response: httpx.Response | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def frames(self) -> AsyncIterator[SSEEvent]:
        if self._closed:
            return
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)

        request = self._client.build_request(
            "POST",
            self._request.url,
            headers={
                "content-type": "application/json",
                "accept": "text/event-stream",
                **self._request.headers,
            },
            content=self._request.body.encode("utf-8"),
        )
        try:
            self._response = await self._client.send(request, stream=True)
            logger.debug(
                "POST %s -> %s", self._request.url, self._response.status_code
            )
            if self._response.status_code >= 400:
                body = await self._response.aread()
                raise TransportHTTPStatusError(
                    self._response.status_code, body.decode("utf-8", errors="replace")
                )

            decoder = SSEDecoder()
            async for data in self._response.aiter_bytes():
                for event in decoder.feed(data):
                    yield event
            for event in decoder.flush():
                yield event
        except httpx.HTTPError as e:
            if self._closed:
                return
            raise TransportError(f"{type(e).__name__}: {e}") from e

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        response, self._response = self._response, None
        if response is not None:
            await response.aclose()
        if self._owns_client and self._client is not None:
            client, self._client = self._client, None
            await client.aclose()
        logger.debug("transport closed for %s", self._request.url)
