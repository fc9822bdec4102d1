"""Incremental Server-Sent-Events parser."""

import logging
import re
import threading
from typing import IO

import httpx

from .protocols import ErrorHandler, SseConsumer, SseEvent

logger = logging.getLogger(__name__)

SSE_FIELD = re.compile(r"^(?P<field>\w+):(?P<value>.*)$")


class SseParser:
    """Line-at-a-time state machine that assembles SseEvent records.

    Between events the parser holds nothing. Field lines fill in the
    pending record; a blank line closes it, and it is emitted only if it
    carried a data field.
    """

    def __init__(self):
        self.reset()

    def reset(self):
        self.id: str | None = None
        self.event: str | None = None
        self.data: str | None = None

    @property
    def pending(self) -> bool:
        """True while a record is being accumulated."""
        return any(v is not None for v in (self.id, self.event, self.data))

    def feed_line(self, line: str) -> SseEvent | None:
        """Consume one line (without its terminator) and return a finished event, if any."""
        if not line.strip():
            event = None
            if self.data is not None:
                event = SseEvent(id=self.id, event=self.event, data=self.data)
            self.reset()
            return event

        if line.lstrip().startswith(":"):
            return None

        match = SSE_FIELD.match(line.lstrip())
        if match is None:
            return None

        value = match.group("value")
        if value.startswith(" "):
            value = value[1:]

        name = match.group("field")
        if name == "id":
            self.id = value
        elif name == "event":
            self.event = value
        elif name == "data":
            self.data = value
        return None


def read_events(
    stream: IO[bytes],
    consumer: SseConsumer,
    interrupt: threading.Event | None = None,
    on_error: ErrorHandler | None = None,
) -> None:
    """Read stream line by line, handing each complete event to consumer.

    Blocks until the stream ends or interrupt is set. The interrupt is
    polled once per line, so a silent stream delays cancellation until the
    next line arrives.
    """
    parser = SseParser()
    try:
        while interrupt is None or not interrupt.is_set():
            raw = stream.readline()
            if not raw:
                if parser.pending:
                    logger.debug("SSE stream ended mid-event, discarding partial record")
                return
            try:
                line = raw.decode("utf-8").rstrip("\r\n")
            except UnicodeDecodeError as e:
                if on_error is not None:
                    on_error(e)
                continue
            event = parser.feed_line(line)
            if event is not None:
                consumer(event)
    except (OSError, httpx.HTTPError) as e:
        logger.debug("SSE stream failed: %s", e)
        if on_error is not None:
            on_error(e)
