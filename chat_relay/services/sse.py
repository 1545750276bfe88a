"""Server-Sent Events encoding for the chat push channel."""

import re
from dataclasses import dataclass
from enum import Enum

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class EventType(str, Enum):
    """SSE event names sent to chat clients."""

    MESSAGE = "message"
    ERROR = "error"
    END = "end"


SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@dataclass(frozen=True)
class SSEEvent:
    """One named event on the push channel."""

    event: str
    data: str

    def encode(self) -> str:
        """Encode as SSE format. Each line of data gets its own data field."""
        lines = [f"event: {self.event}"]
        lines.extend(f"data: {line}" for line in _LINE_BREAK.split(self.data))
        lines.append("")  # Empty line to end the event
        return "\n".join(lines) + "\n"

    @classmethod
    def message(cls, text: str) -> "SSEEvent":
        return cls(EventType.MESSAGE.value, text)

    @classmethod
    def error(cls, description: str) -> "SSEEvent":
        return cls(EventType.ERROR.value, description)

    @classmethod
    def end(cls) -> "SSEEvent":
        return cls(EventType.END.value, "done")


def normalize_newlines(text: str, after_cr: bool = False) -> str:
    """Rewrite CRLF and lone CR as LF, which is all an event stream can carry.

    `after_cr` marks that the previous fragment ended in CR, so a leading LF
    here completes that CRLF instead of adding a line.
    """
    if after_cr and text.startswith("\n"):
        text = text[1:]
    return text.replace("\r\n", "\n").replace("\r", "\n")
