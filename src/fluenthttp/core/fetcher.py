"""HTTP execution on top of httpx."""

import io
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import IO

import httpx

from ..config import settings
from ..errors import ExecutionFailedError, ValidationErrors
from .protocols import ErrorHandler, HttpVerb, ResolvedRequest
from .request import CONTENT_TYPE_HEADER, MULTIPART_FORM_DATA, RequestBuilder
from .response import HttpResponse
from .sse import read_events
from .tls import insecure_ssl_context


METHOD_OVERRIDE_HEADER = "X-HTTP-Method-Override"

_shared_pool: ThreadPoolExecutor | None = None
_pool_lock = threading.Lock()


def shared_pool() -> ThreadPoolExecutor:
    """Worker pool used by execute_async when the caller does not pass one."""
    global _shared_pool
    if _shared_pool is None:
        with _pool_lock:
            if _shared_pool is None:
                _shared_pool = ThreadPoolExecutor(
                    max_workers=settings.max_workers,
                    thread_name_prefix="fluenthttp",
                )
    return _shared_pool


class ResponseStream(io.RawIOBase):
    """Readable binary stream over the undecoded bytes of a streamed response."""

    def __init__(self, response: httpx.Response):
        self._chunks = response.iter_raw()
        self._pending = b""

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        while not self._pending:
            chunk = next(self._chunks, None)
            if chunk is None:
                return 0
            self._pending = chunk
        size = min(len(buffer), len(self._pending))
        buffer[:size] = self._pending[:size]
        self._pending = self._pending[size:]
        return size


def open_stream(response: httpx.Response) -> io.BufferedReader:
    return io.BufferedReader(ResponseStream(response))


def header_map(headers: httpx.Headers) -> dict[str, list[str]]:
    """Group response headers by name, keeping repeated values in order."""
    grouped: dict[str, list[str]] = {}
    for name, value in headers.multi_items():
        grouped.setdefault(name, []).append(value)
    return grouped


class HttpClient(RequestBuilder):
    """Request builder that can send itself.

    Usage:
        response = (
            HttpClient()
            .against_url("https://example.com/api")
            .with_url_path("items")
            .with_verb(HttpVerb.GET)
            .execute(print)
        )
    """

    def execute(self, on_error: ErrorHandler) -> HttpResponse | None:
        """Send the request and wrap the outcome.

        Configuration and transport errors go to on_error and the result is
        None. Any status code, including 404 and 5xx, produces a response.
        In SSE or streaming mode this blocks until the consumer is done with
        the body.
        """
        errors = self.validate()
        if errors:
            for error in errors:
                on_error(error)
            return None

        resolved = self.resolved
        self._debug(f"Final url is: {resolved.url}")

        uploads: dict[str, tuple[str, IO[bytes]]] = {}
        try:
            with self._open_client(resolved.url) as client:
                try:
                    request = self._build_request(client, resolved, uploads)
                except ValueError as e:
                    # httpx refuses header values it cannot encode as ASCII.
                    self._debug(f"Could not build request: {e!r}")
                    on_error(e)
                    return None
                if self._before_connect is not None:
                    self._before_connect(request)

                response = client.send(request, stream=True)
                try:
                    return self._handle_response(resolved.url, response, on_error)
                finally:
                    response.close()
        except (httpx.HTTPError, OSError) as e:
            self._debug(f"Got exception {e!r}")
            on_error(e)
            return None
        finally:
            for _, handle in uploads.values():
                handle.close()

    def execute_async(self, pool: Executor | None = None) -> "Future[HttpResponse]":
        """Validate now, then run execute() on a worker pool.

        Configuration errors fail the returned future immediately with a
        ValidationErrors. Otherwise the future fails with the first error
        execute() reports, or with ExecutionFailedError if no response came
        back.
        """
        errors = self.validate()
        if errors:
            future: Future[HttpResponse] = Future()
            future.set_exception(ValidationErrors(errors))
            return future

        return (pool or shared_pool()).submit(self._execute_or_raise)

    def _execute_or_raise(self) -> HttpResponse:
        reported: list[Exception] = []
        response = self.execute(reported.append)
        if reported:
            raise reported[0]
        if response is None:
            raise ExecutionFailedError("HTTP execution failed")
        return response

    def _open_client(self, url: httpx.URL) -> httpx.Client:
        verify = True
        if self._ignore_self_signed_cert and url.scheme == "https":
            self._debug("Ignoring self signed certificate")
            verify = insecure_ssl_context()

        return httpx.Client(
            timeout=httpx.Timeout(None, connect=settings.connect_timeout),
            verify=verify,
            transport=self._transport,
            follow_redirects=True,
            headers={"User-Agent": settings.user_agent, "Accept-Encoding": "identity"},
        )

    def _merge_headers(self, configured: dict[str, list[str]]) -> dict[str, list[str]]:
        headers = {name: list(values) for name, values in configured.items()}
        if self._header_mutator is not None:
            self._header_mutator(headers)
        if self._simple_header_mutator is not None:
            simple: dict[str, str] = {}
            self._simple_header_mutator(simple)
            for name, value in simple.items():
                headers.setdefault(name, []).append(value)
        return headers

    def _build_request(
        self,
        client: httpx.Client,
        resolved: ResolvedRequest,
        uploads: dict[str, tuple[str, IO[bytes]]],
    ) -> httpx.Request:
        headers = self._merge_headers(resolved.headers)

        method = resolved.verb.value
        if resolved.verb is HttpVerb.PATCH:
            # Not every server routes PATCH; tunnel it through POST.
            headers.setdefault(METHOD_OVERRIDE_HEADER, []).append("PATCH")
            method = HttpVerb.POST.value

        content = None
        if self._is_multipart(headers):
            self._open_uploads(uploads)
        elif self._data is not None:
            content = self._data.encode("utf-8")
        elif self._data_handler is not None:
            buffer = io.BytesIO()
            self._data_handler(buffer)
            content = buffer.getvalue()

        # httpx reads the multipart boundary back out of the Content-Type header.
        return client.build_request(
            method,
            resolved.url,
            headers=[(name, value) for name, values in headers.items() for value in values],
            content=content,
            files=uploads or None,
        )

    def _is_multipart(self, headers: dict[str, list[str]]) -> bool:
        marker = f"{MULTIPART_FORM_DATA};boundary={self._boundary}"
        return marker in headers.get(CONTENT_TYPE_HEADER, [])

    def _open_uploads(self, uploads: dict[str, tuple[str, IO[bytes]]]):
        """Open every form file into uploads; the caller closes them."""
        for field_name, path in self._file_form_data.items():
            try:
                uploads[field_name] = (path.name, path.open("rb"))
            except OSError as e:
                raise OSError(f"Error when writing {path.name} to the request: {e}") from e

    def _handle_response(
        self,
        url: httpx.URL,
        response: httpx.Response,
        on_error: ErrorHandler,
    ) -> HttpResponse:
        if self._before_finish is not None:
            self._before_finish(response)

        status = response.status_code
        self._debug(f"Response code is {status}")
        headers = header_map(response.headers)

        if 200 <= status < 300:
            body = None
            if self._sse_consumer is not None:
                read_events(open_stream(response), self._sse_consumer, self._interrupt, on_error)
            elif self._stream_consumer is not None:
                self._stream_consumer(open_stream(response))
            else:
                body = io.BytesIO(b"".join(response.iter_raw()))
            return HttpResponse(url, status, headers, response_stream=body)

        payload = b"".join(response.iter_raw())
        if status < 400:
            # Unfollowed redirects and 304s keep their body on the normal stream.
            return HttpResponse(url, status, headers, response_stream=io.BytesIO(payload))
        error = io.BytesIO(payload) if payload else None
        return HttpResponse(url, status, headers, error_stream=error)
