"""Tests for the spider and link extraction."""

import io
from collections import Counter

import httpx

from fluenthttp.core import HttpClient, HttpResponse
from fluenthttp.crawl import Spider, extract_links

ROOT = "http://site.test/"


def fail_on_error(error):
    raise AssertionError(f"unexpected error: {error!r}")


def page(*hrefs: str) -> bytes:
    anchors = "".join(f'<li><a class="link" href="{href}">{href}</a></li>' for href in hrefs)
    return f"<html><body><ul>{anchors}</ul></body></html>".encode()


class FakeSite:
    """In-memory site keyed by absolute URL that counts every fetch."""

    def __init__(self, pages: dict[str, bytes]):
        self.pages = pages
        self.fetches: Counter[str] = Counter()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.fetches[url] += 1
        if url not in self.pages:
            return httpx.Response(404, stream=httpx.ByteStream(b"missing"))
        return httpx.Response(
            200,
            headers={"Content-Type": "text/html; charset=utf-8"},
            stream=httpx.ByteStream(self.pages[url]),
        )

    def client(self) -> HttpClient:
        return HttpClient().with_transport(httpx.MockTransport(self))


def html_response(body: bytes, status: int = 200, headers=None) -> HttpResponse:
    return HttpResponse(
        src_url=httpx.URL(ROOT),
        status_code=status,
        headers=headers if headers is not None else {"content-type": ["text/html"]},
        response_stream=io.BytesIO(body),
    )


class TestExtractLinks:
    def test_absolute_and_relative_links(self):
        """Absolute links are kept, relative ones appended to the page URL."""
        links = extract_links(html_response(page("http://other.test/x", "docs/", "/about")))
        assert links == {"http://other.test/x", "http://site.test/docs/", "http://site.test/about"}

    def test_skips_dot_relative_links(self):
        """References starting with a dot are ignored."""
        assert extract_links(html_response(page("../up", "./here"))) == set()

    def test_non_html_has_no_links(self):
        """Only HTML responses are scanned."""
        response = html_response(page("docs/"), headers={"Content-Type": ["application/xml"]})
        assert extract_links(response) == set()

    def test_missing_content_type_counts_as_html(self):
        """A response without Content-Type is scanned."""
        response = html_response(page("docs/"), headers={})
        assert extract_links(response) == {"http://site.test/docs/"}

    def test_invalid_response_has_no_links(self):
        """Error pages are not scanned."""
        assert extract_links(html_response(page("docs/"), status=500)) == set()


class TestSpider:
    def test_single_page_visited_once(self):
        """A page without links is fetched exactly once."""
        site = FakeSite({ROOT: page()})
        saved = Spider(site.client()).do_spider(ROOT, lambda u: True, lambda u: True, {}, fail_on_error)

        assert list(saved) == [ROOT]
        assert site.fetches == Counter({ROOT: 1})

    def test_shared_target_fetched_once(self):
        """A URL reachable from two pages is only fetched the first time."""
        shared = "http://site.test/shared.xml"
        site = FakeSite(
            {
                ROOT: page("a/", "b/"),
                "http://site.test/a/": page(shared),
                "http://site.test/b/": page(shared),
                shared: b"<metadata/>",
            }
        )

        saved = Spider(site.client()).do_spider(
            ROOT,
            follow=lambda u: u.startswith(ROOT),
            save=lambda u: u.endswith(".xml"),
            accumulator={},
            on_error=fail_on_error,
        )

        assert list(saved) == [shared]
        assert saved[shared].get_response_text() == "<metadata/>"
        assert site.fetches[shared] == 1
        assert sum(site.fetches.values()) == 4

    def test_cycles_terminate(self):
        """Pages linking back to each other are followed once each."""
        site = FakeSite(
            {
                ROOT: page("loop/"),
                "http://site.test/loop/": page(ROOT),
            }
        )

        saved = Spider(site.client()).do_spider(ROOT, lambda u: True, lambda u: False, {}, fail_on_error)

        assert saved == {}
        assert site.fetches == Counter({ROOT: 1, "http://site.test/loop/": 1})

    def test_existing_accumulator_entries_not_refetched(self):
        """URLs already in the accumulator are skipped."""
        site = FakeSite({ROOT: page()})
        existing = html_response(b"cached")
        accumulator = {ROOT: existing}

        Spider(site.client()).do_spider(ROOT, lambda u: True, lambda u: True, accumulator, fail_on_error)

        assert accumulator[ROOT] is existing
        assert site.fetches == Counter()

    def test_unfollowed_urls_not_fetched(self):
        """URLs rejected by both predicates are never requested."""
        site = FakeSite({ROOT: page("http://elsewhere.test/")})

        Spider(site.client()).do_spider(ROOT, lambda u: u.startswith(ROOT), lambda u: False, {}, fail_on_error)

        assert site.fetches == Counter({ROOT: 1})

    def test_custom_url_parser(self):
        """set_url_parser replaces link extraction."""
        target = "http://site.test/only.xml"
        site = FakeSite({ROOT: page(), target: b"x"})
        spider = Spider(site.client()).set_url_parser(lambda response: {target})

        saved = spider.do_spider(ROOT, lambda u: True, lambda u: u.endswith(".xml"), {}, fail_on_error)

        assert list(saved) == [target]

    def test_base_client_settings_reused(self):
        """Each fetch uses a clone carrying the base client's headers."""
        seen = []

        def handler(request):
            seen.append(request.headers.get("Authorization"))
            return httpx.Response(200, stream=httpx.ByteStream(b""))

        base = HttpClient().with_transport(httpx.MockTransport(handler)).with_basic_auth("u", "p")
        Spider(base).do_spider(ROOT, lambda u: True, lambda u: True, {}, fail_on_error)

        assert len(seen) == 1 and seen[0].startswith("Basic ")
        assert base.resolved is None

    def test_errors_reported(self):
        """Fetch failures go to on_error and nothing is saved."""

        def refuse(request):
            raise httpx.ConnectError("down", request=request)

        errors = []
        base = HttpClient().with_transport(httpx.MockTransport(refuse))
        saved = Spider(base).do_spider(ROOT, lambda u: True, lambda u: True, {}, errors.append)

        assert saved == {}
        assert len(errors) == 1
