"""Unit tests for the streaming transport reader."""
import asyncio
import json

import httpx
import pytest
from conftest import delta_record, sse_body, streaming_response
from hypothesis import given, settings
from hypothesis import strategies as st

from synapse_chat.errors import ParseError
from synapse_chat.llm.sse import iter_content_deltas, parse_record


async def collect(chunks: list[bytes], error: Exception | None = None) -> tuple[list[str], bool]:
    response, stream = streaming_response(chunks, error)
    deltas = [delta async for delta in iter_content_deltas(response)]
    return deltas, stream.closed


class TestParseRecord:
    """Tests for decoding a single record body."""

    def test_content_and_finish_reason(self):
        """Test extracting the first choice's delta and finish reason."""
        payload = json.dumps(delta_record("Hi", finish_reason="stop"))
        assert parse_record(payload) == ("Hi", "stop")

    def test_record_without_content(self):
        """Test that a role-only delta has no content."""
        payload = json.dumps({"choices": [{"delta": {"role": "assistant"}}]})
        assert parse_record(payload) == (None, None)

    def test_empty_choices(self):
        """Test that an empty choices list yields nothing."""
        assert parse_record('{"choices": []}') == (None, None)

    def test_invalid_json_raises(self):
        """Test that a non-JSON payload is a parse error."""
        with pytest.raises(ParseError):
            parse_record("{not json")

    def test_missing_choices_raises(self):
        """Test that a JSON object without choices is a parse error."""
        with pytest.raises(ParseError):
            parse_record('{"id": "x"}')


class TestIterContentDeltas:
    """Tests for turning a framed body into content deltas."""

    async def test_stops_at_done_marker(self):
        """Test that records after the end marker are never read."""
        body = sse_body("A", "B") + b'data: {"choices":[{"delta":{"content":"C"}}]}\n'
        deltas, closed = await collect([body])

        assert deltas == ["A", "B"]
        assert closed

    async def test_malformed_record_is_skipped(self):
        """Test that a bad record is dropped and the stream continues."""
        body = (
            b'data: {"choices":[{"delta":{"content":"A"}}]}\n'
            b"data: {broken\n"
            b'data: {"choices":[{"delta":{"content":"B"}}]}\n'
        )
        deltas, _ = await collect([body])

        assert deltas == ["A", "B"]

    async def test_trailing_fragment_is_discarded(self):
        """Test that an unterminated final line is not parsed."""
        body = (
            b'data: {"choices":[{"delta":{"content":"A"}}]}\n'
            b'data: {"choices":[{"delta":{"content":"B"}}]}'
        )
        deltas, closed = await collect([body])

        assert deltas == ["A"]
        assert closed

    async def test_lines_without_prefix_are_ignored(self):
        """Test that comments, events and blank lines are skipped."""
        body = (
            b": keep-alive\n"
            b"event: message\n"
            b"\n"
            b'data: {"choices":[{"delta":{"content":"A"}}]}\n'
            b"id: 7\n"
        )
        deltas, _ = await collect([body])

        assert deltas == ["A"]

    async def test_empty_deltas_are_not_yielded(self):
        """Test that records with empty content produce no fragment."""
        body = sse_body("", "A", "")
        deltas, _ = await collect([body])

        assert deltas == ["A"]

    async def test_end_of_stream_without_marker(self):
        """Test that the sequence also ends when the body ends."""
        deltas, closed = await collect([sse_body("A", "B", done=False)])

        assert deltas == ["A", "B"]
        assert closed

    async def test_response_closed_on_transport_error(self):
        """Test that the response is released when the read fails."""
        response, stream = streaming_response(
            [sse_body("A", done=False)],
            httpx.ReadError("connection reset"),
        )
        received = []
        with pytest.raises(httpx.ReadError):
            async for delta in iter_content_deltas(response):
                received.append(delta)

        assert received == ["A"]
        assert stream.closed

    async def test_response_closed_when_consumer_stops(self):
        """Test that closing the iterator early releases the response."""
        response, stream = streaming_response([sse_body("A", "B", "C")])
        deltas = iter_content_deltas(response)

        assert await deltas.__anext__() == "A"
        await deltas.aclose()

        assert stream.closed

    async def test_finish_reason_callback(self):
        """Test that the reported finish reason is forwarded."""
        body = (
            f"data: {json.dumps(delta_record('A'))}\n"
            f"data: {json.dumps(delta_record(None, finish_reason='length'))}\n"
        ).encode()
        reasons = []
        response, _ = streaming_response([body])

        deltas = [d async for d in iter_content_deltas(response, on_finish=reasons.append)]

        assert deltas == ["A"]
        assert reasons == ["length"]

    async def test_multibyte_character_split_across_reads(self):
        """Test that UTF-8 sequences split between reads are reassembled."""
        record = json.dumps(delta_record("héllo ✓"), ensure_ascii=False)
        body = f"data: {record}\n".encode()
        split = body.index("✓".encode()) + 1
        deltas, _ = await collect([body[:split], body[split:]])

        assert deltas == ["héllo ✓"]

    @settings(max_examples=50, deadline=None)
    @given(
        contents=st.lists(st.text(min_size=1, max_size=12), min_size=1, max_size=6),
        cuts=st.lists(st.integers(min_value=0, max_value=10_000), max_size=8),
    )
    def test_chunk_boundaries_do_not_matter(self, contents: list[str], cuts: list[int]):
        """Property test: any split of the same bytes yields the same deltas."""
        body = sse_body(*contents)
        points = sorted({c % (len(body) + 1) for c in cuts})
        pieces = [body[a:b] for a, b in zip([0, *points], [*points, len(body)], strict=True)]

        deltas, _ = asyncio.run(collect(pieces))

        assert deltas == [c for c in contents if c]
