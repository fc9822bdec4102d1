"""Core client components."""

from .fetcher import HttpClient
from .protocols import HttpVerb, ResolvedRequest, SseEvent
from .request import RequestBuilder
from .response import HttpResponse, process_response

__all__ = [
    "HttpClient",
    "HttpResponse",
    "HttpVerb",
    "RequestBuilder",
    "ResolvedRequest",
    "SseEvent",
    "process_response",
]
