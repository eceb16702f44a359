from __future__ import annotations

import json

import httpx
import pytest

from fakes import run_async

from promptstream.transport import (
    HTTPRequest,
    HttpxSSETransport,
    OpenAISDKTransport,
    TransportError,
    TransportHTTPStatusError,
)

OPENAI_URL = "https://api.openai.com/v1/chat/completions"


def sse_body(*payloads) -> bytes:
    lines = []
    for payload in payloads:
        data = payload if isinstance(payload, str) else json.dumps(payload)
        lines.append(f"data: {data}\n\n")
    return "".join(lines).encode("utf-8")


def chat_chunk(content=None, finish_reason=None) -> dict:
    delta = {} if content is None else {"content": content}
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion.chunk",
        "created": 1700000000,
        "model": "gpt-4o-mini",
        "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
    }


def make_request(body=None, headers=None) -> HTTPRequest:
    body = body or {"model": "gpt-4o-mini", "messages": [{"role": "user", "content": "hi"}], "stream": True}
    return HTTPRequest(url=OPENAI_URL, body=json.dumps(body), headers=headers or {})


async def collect(transport):
    try:
        return [frame async for frame in transport.frames()]
    finally:
        await transport.close()


def test_httpx_transport_posts_and_decodes_frames():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            headers={"content-type": "text/event-stream"},
            content=sse_body(chat_chunk("Hi"), "[DONE]"),
        )

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            transport = HttpxSSETransport(
                make_request(headers={"authorization": "Bearer sk-test"}), client=client
            )
            return await collect(transport), transport

    frames, transport = run_async(scenario())

    assert [f.data for f in frames][-1] == "[DONE]"
    assert json.loads(frames[0].data)["choices"][0]["delta"] == {"content": "Hi"}
    assert seen["method"] == "POST"
    assert seen["headers"]["accept"] == "text/event-stream"
    assert seen["headers"]["authorization"] == "Bearer sk-test"
    assert seen["body"]["stream"] is True
    assert transport.closed


def test_httpx_transport_raises_status_error_with_body():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": {"message": "bad key", "code": "invalid_api_key"}})

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await collect(HttpxSSETransport(make_request(), client=client))

    with pytest.raises(TransportHTTPStatusError) as info:
        run_async(scenario())

    assert info.value.status == 401
    assert json.loads(info.value.body)["error"]["code"] == "invalid_api_key"


def test_httpx_transport_wraps_connection_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await collect(HttpxSSETransport(make_request(), client=client))

    with pytest.raises(TransportError, match="ConnectError"):
        run_async(scenario())


def test_httpx_transport_close_is_idempotent_and_keeps_shared_client():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=sse_body("[DONE]"))

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            transport = HttpxSSETransport(make_request(), client=client)
            await collect(transport)
            await transport.close()
            return client.is_closed, [f async for f in transport.frames()]

    client_closed, frames_after_close = run_async(scenario())

    assert client_closed is False
    assert frames_after_close == []


def test_openai_sdk_transport_reencodes_chunks():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        seen["headers"] = request.headers
        return httpx.Response(
            200,
            headers={"content-type": "text/event-stream"},
            content=sse_body(chat_chunk("Hel"), chat_chunk("lo", finish_reason="stop"), "[DONE]"),
        )

    async def scenario():
        from openai import AsyncOpenAI

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = AsyncOpenAI(
            api_key="sk-test",
            base_url="https://api.openai.com/v1",
            http_client=http_client,
            max_retries=0,
        )
        request = make_request(
            body={
                "model": "gpt-4o-mini",
                "messages": [{"role": "user", "content": "hi"}],
                "stream": True,
                "max_tokens": 64,
            },
            headers={"authorization": "Bearer ignored", "x-trace": "abc"},
        )
        try:
            return await collect(OpenAISDKTransport(request, client=client))
        finally:
            await http_client.aclose()

    pytest.importorskip("openai")
    frames = run_async(scenario())

    assert frames[-1].data == "[DONE]"
    deltas = [json.loads(f.data)["choices"][0]["delta"].get("content") for f in frames[:-1]]
    assert deltas == ["Hel", "lo"]
    assert json.loads(frames[1].data)["choices"][0]["finish_reason"] == "stop"
    assert seen["url"] == OPENAI_URL
    assert seen["body"]["max_tokens"] == 64
    assert seen["body"]["stream"] is True
    assert seen["headers"]["x-trace"] == "abc"
    assert seen["headers"]["authorization"] == "Bearer sk-test"


def test_openai_sdk_transport_closes_the_client_it_builds():
    async def scenario():
        transport = OpenAISDKTransport(make_request(), api_key="sk-test")
        client = transport._build_client()
        await transport.close()
        await transport.close()
        return client

    pytest.importorskip("openai")
    client = run_async(scenario())

    assert client.is_closed()


def test_openai_sdk_transport_leaves_a_supplied_client_open():
    async def scenario():
        from openai import AsyncOpenAI

        client = AsyncOpenAI(api_key="sk-test", max_retries=0)
        try:
            await OpenAISDKTransport(make_request(), client=client).close()
            return client.is_closed()
        finally:
            await client.close()

    pytest.importorskip("openai")

    assert run_async(scenario()) is False


def test_openai_sdk_transport_maps_status_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"error": {"message": "slow down", "code": "rate_limit_exceeded"}})

    async def scenario():
        from openai import AsyncOpenAI

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = AsyncOpenAI(api_key="sk-test", http_client=http_client, max_retries=0)
        try:
            await collect(OpenAISDKTransport(make_request(), client=client))
        finally:
            await http_client.aclose()

    pytest.importorskip("openai")
    with pytest.raises(TransportHTTPStatusError) as info:
        run_async(scenario())

    assert info.value.status == 429
    assert "rate_limit_exceeded" in info.value.body
