"""Completed HTTP exchange with lazily decoded body text."""

import gzip
import os
import re
import threading
import zlib
from dataclasses import dataclass, field
from typing import IO, Callable, TypeVar

import httpx

from .protocols import ErrorHandler

T = TypeVar("T")

LINE_BREAK = re.compile(r"\r\n|\r|\n")
NO_DATA = "No data"
DECODE_ERRORS = (OSError, EOFError, zlib.error, UnicodeDecodeError)


def _ignore_error(error: Exception) -> None:
    pass


def decode_text(payload: bytes) -> str:
    """Decode UTF-8 bytes, joining lines with the platform line separator."""
    lines = LINE_BREAK.split(payload.decode("utf-8"))
    if lines[-1] == "":
        lines.pop()
    return os.linesep.join(lines) if lines else NO_DATA


@dataclass(eq=False)
class HttpResponse:
    """HTTP response container.

    Streams are single-pass: each one is read at most once, the first time
    its text is asked for, and the decoded text is cached from then on.
    """

    src_url: httpx.URL
    status_code: int
    headers: dict[str, list[str]] = field(default_factory=dict)
    response_stream: IO[bytes] | None = None
    error_stream: IO[bytes] | None = None

    _response_text: str | None = field(default=None, init=False, repr=False)
    _error_text: str | None = field(default=None, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def header_values(self, name: str) -> list[str]:
        """All values of a header, matching the name case-insensitively."""
        wanted = name.lower()
        values: list[str] = []
        for key, found in self.headers.items():
            if key.lower() == wanted:
                values.extend(found)
        return values

    def is_gzipped(self) -> bool:
        """True when gzip is one of the Content-Encoding values.

        The value match is exact: "GZIP" or "gzip, br" do not count.
        """
        return "gzip" in self.header_values("Content-Encoding")

    def is_valid_response(self) -> bool:
        """True for status codes 200 through 299."""
        return 200 <= self.status_code < 300

    def get_response_text(self, on_error: ErrorHandler | None = None) -> str:
        """Body as text, or an empty string when there is no body."""
        return self._read_and_cache("response_stream", "_response_text", on_error)

    def get_error_text(self, on_error: ErrorHandler | None = None) -> str:
        """Error body as text, or an empty string when there is none."""
        return self._read_and_cache("error_stream", "_error_text", on_error)

    def _read_and_cache(self, stream_attr: str, cache_attr: str, on_error: ErrorHandler | None) -> str:
        stream = getattr(self, stream_attr)
        if stream is None:
            return ""

        with self._lock:
            cached = getattr(self, cache_attr)
            if cached is not None:
                return cached

            try:
                payload = stream.read()
                if self.is_gzipped():
                    payload = gzip.decompress(payload)
                text = decode_text(payload)
            except DECODE_ERRORS as e:
                (on_error or _ignore_error)(e)
                text = ""

            setattr(self, cache_attr, text)
            return text

    def process(
        self,
        on_valid: Callable[["HttpResponse"], T | None],
        on_invalid: Callable[["HttpResponse"], T | None],
    ) -> T | None:
        """Hand the response to on_valid or on_invalid and return its result.

        A side-effecting on_invalid that returns nothing yields None.
        """
        if self.is_valid_response():
            return on_valid(self)
        return on_invalid(self)


def process_response(
    on_valid: Callable[[HttpResponse], T | None],
    on_invalid: Callable[[HttpResponse], T | None],
) -> Callable[[HttpResponse], T | None]:
    """HttpResponse.process as a standalone function, handy with map()."""
    return lambda response: response.process(on_valid, on_invalid)
