from __future__ import annotations

import pytest

from promptstream.transport import SSEDecoder, SSEEvent, TransportPayloadError


def decode(*parts: bytes) -> list[SSEEvent]:
    decoder = SSEDecoder()
    events = []
    for part in parts:
        events.extend(decoder.feed(part))
    events.extend(decoder.flush())
    return events


def test_lf_separated_events():
    events = decode(b"data: one\n\ndata: two\n\n")

    assert [e.data for e in events] == ["one", "two"]


def test_crlf_and_cr_line_endings():
    assert [e.data for e in decode(b"data: a\r\n\r\ndata: b\r\rdata: c\n\n")] == ["a", "b", "c"]


def test_crlf_split_across_chunks():
    events = decode(b"data: a\r", b"\n\r", b"\ndata: b\r\n\r\n")

    assert [e.data for e in events] == ["a", "b"]


def test_event_name_and_multi_line_data():
    events = decode(b"event: message_start\ndata: {\"a\":\ndata: 1}\n\n")

    assert events == [SSEEvent(data='{"a":\n1}', event="message_start")]


def test_comments_and_empty_events_are_dropped():
    events = decode(b": keep-alive\n\n: OPENROUTER PROCESSING\n\ndata: x\n\n")

    assert [e.data for e in events] == ["x"]


def test_byte_by_byte_feed_including_multibyte_utf8():
    payload = "data: héllo ☃\n\n".encode("utf-8")

    events = decode(*(payload[i : i + 1] for i in range(len(payload))))

    assert [e.data for e in events] == ["héllo ☃"]


def test_field_without_space_and_unknown_fields():
    events = decode(b"data:raw\nretry: 1000\nfoo: bar\n\n")

    assert [e.data for e in events] == ["raw"]


def test_last_event_id_is_carried():
    events = decode(b"id: 7\ndata: a\n\ndata: b\n\n")

    assert [e.id for e in events] == ["7", "7"]


def test_flush_dispatches_unterminated_final_event():
    decoder = SSEDecoder()

    assert decoder.feed(b"data: [DONE]") == []
    assert [e.data for e in decoder.flush()] == ["[DONE]"]


def test_event_name_resets_between_events():
    events = decode(b"event: ping\ndata: {}\n\ndata: plain\n\n")

    assert [e.event for e in events] == ["ping", None]


def test_invalid_utf8_is_rejected():
    decoder = SSEDecoder()

    with pytest.raises(TransportPayloadError) as info:
        decoder.feed(b'data: {"city":"Par\xffis"}\n\n')

    assert b"\xff" in info.value.raw


def test_truncated_utf8_at_end_of_stream_is_rejected():
    decoder = SSEDecoder()

    assert decoder.feed(b"data: caf\xc3") == []
    with pytest.raises(TransportPayloadError):
        decoder.flush()
