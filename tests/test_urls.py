"""Tests for URL helpers."""

import httpx
import pytest

from fluenthttp.urls import (
    combine_path,
    combine_url_parts,
    full_url_from_reference,
    url_from_reference,
    url_from_string,
)

BASES = ["http://a", "http://a/", "http://a/b", "http://a/b/"]
SUFFIXES = ["c", "/c", "c/", "/c/"]


class TestCombinePath:
    def test_strips_duplicate_slash(self):
        """Slash on both sides should collapse to one."""
        assert combine_path("http://a/b/", "/c/") == "http://a/b/c/"

    def test_inserts_missing_slash(self):
        """No slash on either side should gain one."""
        assert combine_path("http://a/b", "c") == "http://a/b/c"

    def test_keeps_single_slash(self):
        """A slash on one side only is kept as is."""
        assert combine_path("http://a/b/", "c") == "http://a/b/c"
        assert combine_path("http://a/b", "/c") == "http://a/b/c"

    def test_accepts_httpx_url(self):
        """An httpx.URL base behaves like its string form."""
        assert combine_path(httpx.URL("http://a/b/"), "/c/") == "http://a/b/c/"

    @pytest.mark.parametrize("base", BASES)
    @pytest.mark.parametrize("suffix", SUFFIXES)
    def test_exactly_one_slash_at_seam(self, base, suffix):
        """Any base/suffix combination joins with exactly one slash."""
        joined = combine_path(base, suffix)
        seam = base.rstrip("/")
        assert joined.startswith(seam + "/")
        assert not joined[len(seam) + 1:].startswith("/")

    @pytest.mark.parametrize("suffix", SUFFIXES)
    def test_slash_placement_does_not_matter(self, suffix):
        """Moving the slash between base and suffix gives the same URL."""
        bare = suffix.lstrip("/")
        assert combine_path("http://a/b", bare) == combine_path("http://a/b/", bare)
        assert combine_path("http://a/b", bare) == combine_path("http://a/b", "/" + bare)


class TestCombineUrlParts:
    def test_combines_all_parts(self):
        """Every part is joined with a single slash."""
        assert combine_url_parts("http://a/", "/b/", "/c") == "http://a/b/c"

    def test_single_part(self):
        """One part comes back unchanged."""
        assert combine_url_parts("http://a") == "http://a"

    def test_no_parts(self):
        """No parts gives an empty string."""
        assert combine_url_parts() == ""


class TestFullUrlFromReference:
    def test_absolute_reference_used_as_is(self):
        """Absolute http(s) references are not touched."""
        assert full_url_from_reference("http://a/b/", "http://a") == "http://a/b/"
        assert full_url_from_reference("https://x/y", "http://a") == "https://x/y"

    def test_relative_reference_appended(self):
        """Anything else is appended to the source URL."""
        assert full_url_from_reference("/b/", "http://a") == "http://a/b/"

    def test_parsed_reference(self):
        """url_from_reference returns an httpx.URL."""
        errors = []
        url = url_from_reference("/b/", httpx.URL("http://a"), errors.append)
        assert url == httpx.URL("http://a/b/")
        assert errors == []


class TestUrlFromString:
    def test_valid_url(self):
        """A well formed absolute URL parses."""
        errors = []
        assert url_from_string("https://example.com/x", errors.append) == httpx.URL("https://example.com/x")
        assert errors == []

    def test_relative_url_reported(self):
        """A URL without scheme and host is reported, not raised."""
        errors = []
        assert url_from_string("not a url", errors.append) is None
        assert len(errors) == 1
        assert isinstance(errors[0], httpx.InvalidURL)
