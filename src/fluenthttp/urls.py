"""URL joining and reference resolution helpers."""

import re
from typing import Callable

import httpx

ABSOLUTE_HTTP = re.compile(r"^https?://.+")


def combine_path(original: str | httpx.URL, path: str) -> str:
    """Join two URL segments so exactly one slash separates them.

    >>> combine_path("http://a/b/", "/c/")
    'http://a/b/c/'
    """
    base = str(original)
    if base.endswith("/") and path.startswith("/"):
        return base + path[1:]
    if not base.endswith("/") and not path.startswith("/"):
        return f"{base}/{path}"
    return base + path


def combine_url_parts(*parts: str) -> str:
    """Fold combine_path over all parts, left to right."""
    if not parts:
        return ""
    result = parts[0]
    for part in parts[1:]:
        result = combine_path(result, part)
    return result


def parse_url(url: str | httpx.URL) -> httpx.URL:
    """Parse an absolute URL, raising httpx.InvalidURL when it is not one."""
    parsed = httpx.URL(url)
    if not parsed.scheme or not parsed.host:
        raise httpx.InvalidURL(f"Not an absolute URL: {str(url)!r}")
    return parsed


def url_from_string(url: str, on_error: Callable[[Exception], None]) -> httpx.URL | None:
    """Parse url, handing any parse failure to on_error instead of raising."""
    try:
        return parse_url(url)
    except httpx.InvalidURL as e:
        on_error(e)
    return None


def full_url_from_reference(ref: str, src_url: str | httpx.URL) -> str:
    """Resolve a link found on a page against the page's URL.

    Absolute http(s) references are returned untouched; anything else is
    appended to the source URL.
    """
    if ABSOLUTE_HTTP.match(ref):
        return ref
    return combine_path(src_url, ref)


def url_from_reference(
    ref: str,
    src_url: str | httpx.URL,
    on_error: Callable[[Exception], None],
) -> httpx.URL | None:
    return url_from_string(full_url_from_reference(ref, src_url), on_error)
