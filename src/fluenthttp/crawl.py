"""Recursive link-following crawler."""

import logging
import re
from typing import Callable, MutableMapping

import httpx

from .core import HttpResponse, HttpVerb
from .core.protocols import Client, ErrorHandler
from .urls import url_from_reference

logger = logging.getLogger(__name__)

ANCHOR_SEARCH = re.compile(r'<a\s[^>]*?href="(?P<url>[^"]+?)"', re.IGNORECASE)

UrlPredicate = Callable[[str], bool]
UrlParser = Callable[[HttpResponse], set[str]]


def extract_links(response: HttpResponse) -> set[str]:
    """Absolute URLs of the anchors in an HTML response.

    Non-HTML and unsuccessful responses have no links. A response without a
    Content-Type header is treated as HTML. Dot-relative references are
    skipped; everything else is resolved against the response URL.
    """
    content_types = response.header_values("Content-Type") or ["text/html"]
    if not response.is_valid_response() or not any(
        t.startswith("text/html") for t in content_types
    ):
        return set()

    links = set()
    for match in ANCHOR_SEARCH.finditer(response.get_response_text()):
        ref = match.group("url").strip()
        if ref.startswith("."):
            continue
        url = url_from_reference(ref, response.src_url, _skip_bad_reference)
        if url is not None:
            links.add(str(url))
    return links


def _skip_bad_reference(error: Exception):
    logger.debug("Skipping unusable link: %s", error)


class Spider:
    """Depth-first crawl driven by follow/save predicates.

    URLs accepted by ``save`` are fetched and stored in the accumulator.
    URLs accepted by ``follow`` (and not by ``save``) are fetched only to
    look for more links. The accumulator doubles as the visited set, so a
    saved URL is never fetched twice.
    """

    def __init__(self, base_client: Client):
        self.base_client = base_client
        self.url_parser: UrlParser = extract_links

    def set_url_parser(self, url_parser: UrlParser) -> "Spider":
        self.url_parser = url_parser
        return self

    def _fetch(self, url: str, on_error: ErrorHandler) -> HttpResponse | None:
        return (
            self.base_client.clone()
            .against_url(url)
            .with_verb(HttpVerb.GET)
            .execute(on_error)
        )

    def do_spider(
        self,
        start_url: str,
        follow: UrlPredicate,
        save: UrlPredicate,
        accumulator: MutableMapping[str, HttpResponse],
        on_error: ErrorHandler,
    ) -> MutableMapping[str, HttpResponse]:
        """Crawl from start_url, filling and returning accumulator."""
        self._visit(str(start_url), follow, save, accumulator, on_error, set())
        return accumulator

    def _visit(self, url, follow, save, accumulator, on_error, followed: set[str]):
        if url in accumulator or url in followed:
            return

        if save(url):
            logger.debug("Saving %s", url)
            response = self._fetch(url, on_error)
            if response is not None:
                accumulator[url] = response
        elif follow(url):
            logger.debug("Following %s", url)
            followed.add(url)
            response = self._fetch(url, on_error)
            if response is not None:
                for link in sorted(self.url_parser(response)):
                    self._visit(link, follow, save, accumulator, on_error, followed)
