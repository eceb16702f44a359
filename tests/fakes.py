from __future__ import annotations

import asyncio
import json

from promptstream.transport import HTTPRequest, SSEEvent, SSEDecoder


def anthropic_event(event: str, **payload) -> SSEEvent:
    return SSEEvent(data=json.dumps({"type": event, **payload}), event=event)


def data_frame(payload) -> SSEEvent:
    if isinstance(payload, str):
        return SSEEvent(data=payload)
    return SSEEvent(data=json.dumps(payload))


def openai_delta(finish_reason=None, **delta) -> SSEEvent:
    return data_frame(
        {
            "id": "chatcmpl-1",
            "object": "chat.completion.chunk",
            "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
        }
    )


def anthropic_text_frames(*texts: str, stop_reason: str = "end_turn") -> list[SSEEvent]:
    frames = [
        anthropic_event("message_start", message={"id": "msg_1", "role": "assistant"}),
        anthropic_event(
            "content_block_start", index=0, content_block={"type": "text", "text": ""}
        ),
    ]
    frames.extend(
        anthropic_event(
            "content_block_delta", index=0, delta={"type": "text_delta", "text": text}
        )
        for text in texts
    )
    frames.extend(
        [
            anthropic_event("content_block_stop", index=0),
            anthropic_event("message_delta", delta={"stop_reason": stop_reason}),
            anthropic_event("message_stop"),
        ]
    )
    return frames


class FakeTransport:
    """Replays frames (or raw SSE bytes) and records how it is closed."""

    def __init__(
        self,
        frames=(),
        *,
        raw: list[bytes] | None = None,
        error: Exception | None = None,
        hang: bool = False,
    ) -> None:
        self._frames = list(frames)
        self._raw = raw
        self._error = error
        self._hang = hang
        self.opened = False
        self.close_calls = 0

    async def frames(self):
        self.opened = True
        if self._raw is not None:
            decoder = SSEDecoder()
            for part in self._raw:
                for frame in decoder.feed(part):
                    yield frame
            for frame in decoder.flush():
                yield frame
        for frame in self._frames:
            await asyncio.sleep(0)
            yield frame
        if self._error is not None:
            raise self._error
        if self._hang:
            await asyncio.Event().wait()

    async def close(self) -> None:
        self.close_calls += 1


class RecordingFactory:
    """Transport factory handing out one prepared transport."""

    def __init__(self, transport: FakeTransport) -> None:
        self.transport = transport
        self.requests: list[HTTPRequest] = []

    def __call__(self, request: HTTPRequest) -> FakeTransport:
        self.requests.append(request)
        return self.transport

    @property
    def body(self) -> dict:
        return json.loads(self.requests[-1].body)


def run_async(coro):
    return asyncio.run(coro)
