"""Shared types and callback signatures."""

from dataclasses import dataclass
from enum import Enum
from typing import IO, Callable, Protocol

import httpx

ErrorHandler = Callable[[Exception], None]
RequestHook = Callable[[httpx.Request], None]
ResponseHook = Callable[[httpx.Response], None]
SimpleHeaderMutator = Callable[[dict[str, str]], None]
HeaderMutator = Callable[[dict[str, list[str]]], None]
DataHandler = Callable[[IO[bytes]], None]
StreamConsumer = Callable[[IO[bytes]], None]
Debugger = Callable[[str], None]


class HttpVerb(str, Enum):
    """HTTP methods the client can send."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


@dataclass(frozen=True)
class SseEvent:
    """A single Server-Sent-Event record."""

    id: str | None = None
    event: str | None = None
    data: str | None = None


SseConsumer = Callable[[SseEvent], None]


@dataclass(frozen=True)
class ResolvedRequest:
    """Outcome of a successful validation."""

    url: httpx.URL
    verb: HttpVerb
    headers: dict[str, list[str]]


class Client(Protocol):
    """What the spider needs from a request builder."""

    def clone(self) -> "Client":
        ...

    def against_url(self, url: str | httpx.URL) -> "Client":
        ...

    def with_verb(self, verb: HttpVerb) -> "Client":
        ...

    def execute(self, on_error: ErrorHandler):
        ...
