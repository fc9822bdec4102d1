"""Fluent HTTP client with SSE and streaming support."""

from .core import HttpClient, HttpResponse, HttpVerb, SseEvent
from .crawl import Spider

__version__ = "0.1.0"

__all__ = ["HttpClient", "HttpResponse", "HttpVerb", "SseEvent", "Spider", "__version__"]
