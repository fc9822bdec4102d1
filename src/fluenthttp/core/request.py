"""Fluent request configuration and validation."""

import base64
import copy
import logging
import threading
import uuid
from pathlib import Path
from urllib.parse import quote_plus

import httpx

from ..errors import ConfigurationError
from ..urls import combine_path, parse_url
from .protocols import (
    DataHandler,
    Debugger,
    HeaderMutator,
    HttpVerb,
    RequestHook,
    ResolvedRequest,
    ResponseHook,
    SimpleHeaderMutator,
    SseConsumer,
    StreamConsumer,
)

logger = logging.getLogger(__name__)

ACCEPT_HEADER = "Accept"
CONTENT_TYPE_HEADER = "Content-Type"
MULTIPART_FORM_DATA = "multipart/form-data"


class RequestBuilder:
    """Mutable request configuration with a chainable API.

    Every setter returns the builder. A builder is not thread-safe; use
    clone() to get an independent copy before handing it to another thread.
    """

    def __init__(self):
        self._url: str | None = None
        self._path: str | None = None
        self._verb: HttpVerb | None = None
        self._query_params: dict[str, str] = {}
        self._headers: dict[str, list[str]] = {}
        self._simple_header_mutator: SimpleHeaderMutator | None = None
        self._header_mutator: HeaderMutator | None = None
        self._interrupt: threading.Event | None = None
        self._before_connect: RequestHook | None = None
        self._before_finish: ResponseHook | None = None
        self._sse_consumer: SseConsumer | None = None
        self._stream_consumer: StreamConsumer | None = None
        self._data: str | None = None
        self._data_handler: DataHandler | None = None
        self._file_form_data: dict[str, Path] = {}
        self._boundary = uuid.uuid4().hex
        self._ignore_self_signed_cert = False
        self._debugger: Debugger | None = None
        self._transport: httpx.BaseTransport | None = None

        self.resolved: ResolvedRequest | None = None

    def clone(self):
        """Copy of this builder that shares no mutable state with it.

        Callbacks, the interrupt event and the transport are shared by
        reference.
        """
        other = copy.copy(self)
        other._query_params = dict(self._query_params)
        other._headers = {name: list(values) for name, values in self._headers.items()}
        other._file_form_data = dict(self._file_form_data)
        other.resolved = None
        return other

    def against_url(self, url: str | httpx.URL):
        self._url = str(url)
        return self

    def with_url_path(self, path: str):
        self._path = path
        return self

    def with_query_parameter(self, key: str, value: str):
        self._query_params[key] = value
        return self

    def with_verb(self, verb: HttpVerb | str):
        self._verb = HttpVerb(verb.upper() if isinstance(verb, str) else verb)
        return self

    def add_header(self, name: str, value: str):
        self._headers.setdefault(name, []).append(value)
        return self

    def with_content_type(self, content_type: str):
        if content_type == MULTIPART_FORM_DATA:
            content_type = f"{content_type};boundary={self._boundary}"
        return self.add_header(CONTENT_TYPE_HEADER, content_type)

    def with_accept_types(self, *accept_types: str):
        for accept_type in accept_types:
            self.add_header(ACCEPT_HEADER, accept_type)
        return self

    def with_basic_auth(self, username: str, password: str):
        # Same encoding as httpx.BasicAuth, kept in the header map so mutators
        # and clone() see it.
        credentials = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
        return self.add_header("Authorization", f"Basic {credentials}")

    def using_gzip(self):
        """Ask the server for a gzip body; HttpResponse inflates it on read."""
        return self.add_header("Accept-Encoding", "gzip")

    def with_headers(self, mutator: HeaderMutator):
        """Callback that may edit the full multi-value header map before sending."""
        self._header_mutator = mutator
        return self

    def with_simple_headers(self, mutator: SimpleHeaderMutator):
        """Callback that fills a name -> value map; each entry is appended."""
        self._simple_header_mutator = mutator
        return self

    def with_interrupt(self, interrupt: threading.Event):
        """Event that stops an SSE read loop once set."""
        self._interrupt = interrupt
        return self

    def before_connect(self, hook: RequestHook):
        """Hook receiving the built httpx.Request just before it is sent."""
        self._before_connect = hook
        return self

    def before_finish(self, hook: ResponseHook):
        """Hook receiving the httpx.Response before its body is read."""
        self._before_finish = hook
        return self

    def with_data(self, data: str):
        self._data = data
        return self

    def with_data_handler(self, handler: DataHandler):
        """Callback that writes the request body into a binary stream."""
        self._data_handler = handler
        return self

    def add_file_form_data(self, field_name: str, path: str | Path):
        """Attach a file as a multipart field; needs with_content_type("multipart/form-data")."""
        self._file_form_data[field_name] = Path(path)
        return self

    def as_sse(self, consumer: SseConsumer):
        self._sse_consumer = consumer
        return self

    def as_streaming(self, consumer: StreamConsumer):
        self._stream_consumer = consumer
        return self

    def ignoring_self_signed_cert(self, enabled: bool = True):
        """INSECURE: skip certificate and hostname checks for https URLs."""
        self._ignore_self_signed_cert = enabled
        return self

    def with_debugger(self, debugger: Debugger):
        self._debugger = debugger
        return self

    def with_transport(self, transport: httpx.BaseTransport):
        self._transport = transport
        return self

    def _debug(self, message: str):
        logger.debug(message)
        if self._debugger is not None:
            self._debugger(message)

    def validate(self) -> list[Exception]:
        """Check the configuration and resolve the target URL.

        Returns every problem found; an empty list means self.resolved now
        holds the request to send. Runs again on each call, since the
        configuration may have changed in between.
        """
        errors: list[Exception] = []

        if self._url is None:
            errors.append(ConfigurationError("URL must be set"))
        if self._verb is None:
            errors.append(ConfigurationError("verb must be set"))
        if self._sse_consumer is not None and self._stream_consumer is not None:
            errors.append(ConfigurationError("cannot be SSE and streaming at the same time"))
        if self._data is not None and self._data_handler is not None:
            errors.append(ConfigurationError("cannot have data and a data handler at the same time"))

        url = None
        if self._url is not None:
            url = self._resolve_url(errors)

        if errors:
            self.resolved = None
            for error in errors:
                self._debug(str(error))
            return errors

        self.resolved = ResolvedRequest(
            url=url,
            verb=self._verb,
            headers={name: list(values) for name, values in self._headers.items()},
        )
        return errors

    def _resolve_url(self, errors: list[Exception]) -> httpx.URL | None:
        target = self._url
        if self._path is not None:
            target = combine_path(target, self._path)

        try:
            url = parse_url(target)
        except httpx.InvalidURL as e:
            errors.append(e)
            return None

        if not self._query_params:
            return url

        try:
            query = "&".join(
                f"{quote_plus(key)}={quote_plus(value)}"
                for key, value in self._query_params.items()
            )
        except UnicodeEncodeError as e:
            errors.append(e)
            return None

        separator = "&" if url.query else "?"
        try:
            return parse_url(f"{url}{separator}{query}")
        except httpx.InvalidURL as e:
            errors.append(e)
            return None
