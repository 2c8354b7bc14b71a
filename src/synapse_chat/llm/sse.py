"""Transport reader for line-delimited ``data:`` event streams.

This module hides how a chunked completion response is framed on the wire:
- Records are newline-delimited and prefixed with ``data: ``
- ``data: [DONE]`` ends the stream early
- Each record is a JSON object whose first choice carries a content delta

The reader turns a response body into a lazy, finite async sequence of text
fragments. It is not restartable: the response is released as soon as the
sequence ends, fails, or is closed by the consumer.
"""

import codecs
import json
import logging
from collections.abc import AsyncIterator, Callable
from typing import Any

import httpx

from ..errors import ParseError

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


def parse_record(payload: str) -> tuple[str | None, str | None]:
    """Extract the content delta and finish reason from one record body.

    Args:
        payload: Record text with the ``data: `` prefix already removed

    Returns:
        Tuple of (content delta, finish reason); either may be None

    Raises:
        ParseError: If the payload is not JSON or lacks a choices list
    """
    try:
        data: Any = json.loads(payload)
    except json.JSONDecodeError as e:
        raise ParseError(payload, "invalid JSON") from e

    if not isinstance(data, dict) or not isinstance(data.get("choices"), list):
        raise ParseError(payload, "missing choices")

    choices = data["choices"]
    if not choices or not isinstance(choices[0], dict):
        return None, None

    choice = choices[0]
    delta = choice.get("delta") or {}
    content = delta.get("content") if isinstance(delta, dict) else None
    finish_reason = choice.get("finish_reason")

    return (
        content if isinstance(content, str) else None,
        finish_reason if isinstance(finish_reason, str) else None,
    )


async def iter_content_deltas(
    response: httpx.Response,
    on_finish: Callable[[str], None] | None = None,
) -> AsyncIterator[str]:
    """Yield decoded content fragments from a streaming response.

    Bytes are decoded incrementally, so multi-byte characters split across
    network reads are reassembled. A trailing fragment without a newline at
    end of stream is discarded rather than parsed. Malformed records are
    logged and skipped; they never abort the stream.

    Args:
        response: An httpx response opened in streaming mode
        on_finish: Optional callback receiving the reported finish reason

    Yields:
        Non-empty content deltas in arrival order
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""

    try:
        async for raw in response.aiter_bytes():
            buffer += decoder.decode(raw)
            lines = buffer.split("\n")
            buffer = lines.pop()

            for line in lines:
                record = line.strip()
                if not record.startswith(DATA_PREFIX):
                    continue

                payload = record[len(DATA_PREFIX):]
                if payload == DONE_SENTINEL:
                    return

                try:
                    content, finish_reason = parse_record(payload)
                except ParseError as e:
                    logger.warning("Skipping stream record: %s", e.message)
                    continue

                if finish_reason and on_finish is not None:
                    on_finish(finish_reason)
                if content:
                    yield content

        decoder.decode(b"", final=True)
        if buffer.strip():
            logger.debug("Discarding incomplete trailing record (%d chars)", len(buffer))
    finally:
        await response.aclose()
