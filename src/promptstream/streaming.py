"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Cancellable, single-consumer token stream bound to one live transport.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from typing import Literal

from .adapters.base import StreamAdapter
from .chunks import Chunk, End
from .errors import (
    StreamCancelledError,
    StreamError,
    StreamMalformedPayloadError,
    StreamTransportError,
)
from .transport.contracts import (
    Transport,
    TransportError,
    TransportHTTPStatusError,
    TransportPayloadError,
)

logger = logging.getLogger("promptstream.streaming")

StreamOutcome = Literal["end", "error", "cancelled"]

_STREAM_END = object()

# Reader tasks still releasing their transport after `End` was delivered.
_RELEASING: set[asyncio.Task[None]] = set()


class _TransportLease:
    """Sole owner of a transport; releases it at most once."""

    def __init__(self, transport: Transport) -> None:
        self.transport = transport
        self.released = False

    async def release(self) -> None:
        if self.released:
            return
        self.released = True
        try:
            await self.transport.close()
        except Exception:
            logger.exception("transport close failed")


async def _pump(
    lease: _TransportLease,
    adapter: StreamAdapter,
    queue: asyncio.Queue[object],
) -> None:
    """Read frames into `queue` until the adapter terminates or fails."""
    error: StreamError | None = None
    try:
        frames = lease.transport.frames()
        try:
            async for frame in frames:
                for chunk in adapter.feed(frame):
                    queue.put_nowait(chunk)
                if adapter.terminated:
                    break
            else:
                adapter.finish()
        finally:
            aclose = getattr(frames, "aclose", None)
            if aclose is not None:
                await aclose()
    except StreamError as e:
        error = e
    except TransportPayloadError as e:
        error = StreamMalformedPayloadError(
            str(e),
            raw=e.raw.decode("utf-8", errors="backslashreplace"),
            provider=adapter.provider_id,
        )
        error.__cause__ = e
    except TransportHTTPStatusError as e:
        error = adapter.error_from_status(e.status, e.body)
        error.__cause__ = e
    except TransportError as e:
        error = StreamTransportError(str(e), provider=adapter.provider_id)
        error.__cause__ = e
    except Exception as e:
        logger.exception("%s stream failed unexpectedly", adapter.provider_id)
        error = StreamTransportError(
            f"{type(e).__name__}: {e}", provider=adapter.provider_id
        )
        error.__cause__ = e
    finally:
        await lease.release()
        if error is not None:
            queue.put_nowait(error)
        queue.put_nowait(_STREAM_END)


def _abandon(task: asyncio.Task[None], provider_id: str) -> None:
    if task.done() or task.get_loop().is_closed():
        return
    logger.warning("%s stream discarded before it ended; cancelling", provider_id)
    task.cancel()


class TokenStream:
    """
    Async iterator over the chunks of one prompt response.

    - Iteration yields chunks up to and including `End`. A stream failure is
      raised once as a `StreamError`; afterwards iteration stops.
    - `End` is delivered without waiting for the transport to close; the
      reader task finishes releasing it in the background. `all_chunks()`
      returns only once the transport is released.
    - `cancel()` (also `aclose()` and leaving `async with`) stops delivery
      immediately, even if chunks are already buffered, and closes the
      transport exactly once.
    - Dropping an unfinished stream cancels its reader task, which closes the
      transport.
    - Cancelling the task that is pulling from the stream cancels the stream.

    Pulls must be serialized by the caller; the stream is single-pass.
    """

    def __init__(self, *, transport: Transport, adapter: StreamAdapter) -> None:
        self._lease = _TransportLease(transport)
        self._adapter = adapter
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None
        self._finalizer: weakref.finalize | None = None
        self._outcome: StreamOutcome | None = None

    @property
    def provider_id(self) -> str:
        return self._adapter.provider_id

    @property
    def outcome(self) -> StreamOutcome | None:
        """How the stream terminated, or `None` while it is still live."""
        return self._outcome

    @property
    def transport_released(self) -> bool:
        return self._lease.released

    def _ensure_started(self) -> None:
        if self._task is not None or self._outcome is not None:
            return
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(_pump(self._lease, self._adapter, self._queue))
        self._finalizer = weakref.finalize(self, _abandon, self._task, self.provider_id)
        self._finalizer.atexit = False

    async def _settle(self, outcome: StreamOutcome) -> None:
        self._outcome = outcome
        if self._finalizer is not None:
            self._finalizer.detach()
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)
        logger.debug("%s stream finished: %s", self.provider_id, outcome)

    def _release_in_background(self) -> None:
        self._outcome = "end"
        if self._finalizer is not None:
            self._finalizer.detach()
        task = self._task
        if task is not None and not task.done():
            _RELEASING.add(task)
            task.add_done_callback(_RELEASING.discard)
        logger.debug("%s stream finished: end", self.provider_id)

    def __aiter__(self) -> "TokenStream":
        return self

    async def __anext__(self) -> Chunk:
        if self._outcome is not None:
            raise StopAsyncIteration
        self._ensure_started()
        try:
            item = await self._queue.get()
        except asyncio.CancelledError:
            await self.cancel()
            raise

        if self._outcome is not None:
            raise StopAsyncIteration
        if item is _STREAM_END:
            await self._settle("cancelled")
            raise StopAsyncIteration
        if isinstance(item, StreamError):
            await self._settle("error")
            raise item
        if isinstance(item, End):
            self._release_in_background()
        return item  # type: ignore[return-value]

    async def cancel(self) -> None:
        """Stop the stream; no chunk is delivered after this returns."""
        if self._outcome is not None:
            return
        self._outcome = "cancelled"
        if self._task is not None and not self._task.done():
            self._task.cancel()
        await self._settle("cancelled")
        # A reader task cancelled before its first step never reaches its
        # cleanup, so release here too and wake any pending pull.
        await self._lease.release()
        self._queue.put_nowait(_STREAM_END)

    async def aclose(self) -> None:
        await self.cancel()

    async def __aenter__(self) -> "TokenStream":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.cancel()

    async def all_chunks(self) -> list[Chunk]:
        """
        Drain the stream into a list ending with `End`.

        Raises the stream's error instead of returning partial output, and
        `StreamCancelledError` when the stream is cancelled mid-drain. A stream
        that already terminated drains to an empty list.
        """
        if self._outcome is not None:
            return []
        chunks = [chunk async for chunk in self]
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)
        if self._outcome == "cancelled":
            raise StreamCancelledError(
                "stream was cancelled before it ended", provider=self.provider_id
            )
        return chunks
