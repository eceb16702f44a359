"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Incremental server-sent events decoder.
"""

from __future__ import annotations

import codecs

from .contracts import SSEEvent, TransportPayloadError


class SSEDecoder:
    """
    Turns arbitrarily split byte chunks into `SSEEvent` frames.

    Lines may end in LF, CRLF or CR; an empty line dispatches the pending
    event. Comment lines (leading `:`) are dropped.
    """

    def __init__(self) -> None:
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="strict")
        self._buffer = ""
        self._event: str | None = None
        self._data: list[str] = []
        self._last_id: str | None = None

    def feed(self, chunk: bytes) -> list[SSEEvent]:
        """Decode `chunk`; raises `TransportPayloadError` on invalid UTF-8."""
        self._buffer += self._decode(chunk)
        return self._drain(final=False)

    def flush(self) -> list[SSEEvent]:
        """Decode whatever is left once the byte stream has ended."""
        self._buffer += self._decode(b"", final=True)
        events = self._drain(final=True)
        if self._buffer:
            events.extend(self._line(self._buffer))
            self._buffer = ""
        # Servers occasionally omit the trailing blank line on the last event.
        event = self._dispatch()
        if event is not None:
            events.append(event)
        return events

    def _decode(self, chunk: bytes, *, final: bool = False) -> str:
        try:
            return self._utf8.decode(chunk, final)
        except UnicodeDecodeError as e:
            raise TransportPayloadError(
                f"response is not valid UTF-8: {e.reason} at byte {e.start}", e.object
            ) from e

    def _drain(self, *, final: bool) -> list[SSEEvent]:
        events: list[SSEEvent] = []
        while True:
            cr = self._buffer.find("\r")
            lf = self._buffer.find("\n")
            if cr == -1 and lf == -1:
                return events
            if cr != -1 and (lf == -1 or cr < lf):
                # A trailing CR may be the first half of a CRLF split across chunks.
                if cr == len(self._buffer) - 1 and not final:
                    return events
                end = cr
                skip = 2 if self._buffer.startswith("\r\n", cr) else 1
            else:
                end = lf
                skip = 1
            line = self._buffer[:end]
            self._buffer = self._buffer[end + skip :]
            events.extend(self._line(line))

    def _line(self, line: str) -> list[SSEEvent]:
        if not line:
            event = self._dispatch()
            return [event] if event is not None else []
        if line.startswith(":"):
            return []
        name, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]
        if name == "data":
            self._data.append(value)
        elif name == "event":
            self._event = value
        elif name == "id" and "\0" not in value:
            self._last_id = value
        return []

    def _dispatch(self) -> SSEEvent | None:
        data, event = self._data, self._event
        self._data = []
        self._event = None
        if not data:
            return None
        return SSEEvent(data="\n".join(data), event=event or None, id=self._last_id)
