"""Parser for OpenAI-style `data: <json>` streaming completion bodies."""

import json
import logging
from typing import AsyncIterable, AsyncIterator

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE_MARKER = "[DONE]"


def extract_delta(record: object) -> str | None:
    """Pull choices[0].delta.content out of one decoded record."""
    if not isinstance(record, dict):
        return None
    choices = record.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    delta = first.get("delta")
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    if isinstance(content, str) and content:
        return content
    return None


async def iter_stream_deltas(lines: AsyncIterable[str]) -> AsyncIterator[str]:
    """Yield text fragments from an event-stream body, one line at a time.

    Stops at the [DONE] marker or when the line source is exhausted. Lines
    without the data prefix and payloads that are not valid JSON are skipped.
    Errors raised by the line source propagate to the caller.
    """
    async for raw in lines:
        line = raw.rstrip("\r")
        if not line.startswith(DATA_PREFIX):
            continue

        payload = line[len(DATA_PREFIX):]
        if payload.startswith(" "):
            payload = payload[1:]
        if payload.strip() == DONE_MARKER:
            return

        try:
            record = json.loads(payload)
        except json.JSONDecodeError:
            logger.debug(f"Skipping malformed stream record: {payload[:80]!r}")
            continue

        text = extract_delta(record)
        if text:
            yield text
