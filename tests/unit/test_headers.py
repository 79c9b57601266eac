"""
Unit tests for header lookup and quote stripping.
"""

import pytest

from simplehttp.errors import HeaderMissingError
from simplehttp.http.headers import (
    extract_header,
    find_all,
    find_header,
    format_headers,
    strip_quoting,
)
from simplehttp.http.request import HTTPRequest, parse_request
from simplehttp.http.response import HTTPResponse


class TestStripQuoting:

    @pytest.mark.parametrize("value, expected", [
        ('"bar.com"', "bar.com"),
        ("bar.com", "bar.com"),
        ('"leading', "leading"),
        ('trailing"', "trailing"),
        ('W/"abc"', 'W/"abc'),          # interior quote untouched
        ('"a"b"', 'a"b'),
        ('""', ""),
        ('"', ""),
        ("", ""),
    ])
    def test_strips_one_leading_and_trailing_quote(self, value, expected):
        assert strip_quoting(value) == expected

    def test_only_one_quote_per_end(self):
        assert strip_quoting('""x""') == '"x"'


class TestExtractHeader:

    def test_returns_value(self):
        request = parse_request(b"GET /echo HTTP/1.1\r\nHost: example.com\r\n\r\n")
        assert extract_header(request, "Host") == "example.com"

    def test_lookup_is_case_insensitive(self):
        request = HTTPRequest(method="GET", path="/", headers=(("host", "a.com"),))
        assert extract_header(request, "HOST") == "a.com"

    def test_strips_quoting(self):
        request = HTTPRequest(method="GET", path="/", headers=(("Host", '"bar.com"'),))
        assert extract_header(request, "Host") == "bar.com"

    def test_first_duplicate_wins(self):
        request = HTTPRequest(
            method="GET", path="/",
            headers=(("X-Id", "1"), ("x-id", "2")),
        )
        assert extract_header(request, "X-Id") == "1"

    def test_missing_header_raises(self):
        request = HTTPRequest(method="GET", path="/")

        with pytest.raises(HeaderMissingError) as exc_info:
            extract_header(request, "Host")
        assert exc_info.value.name == "Host"

    def test_missing_header_is_lookup_error(self):
        with pytest.raises(LookupError):
            extract_header(HTTPRequest(method="GET", path="/"), "Host")


class TestFindHeader:

    HEADERS = (("Accept", "text/html"), ("Host", "h"), ("accept", "text/plain"))

    def test_find_header(self):
        assert find_header(self.HEADERS, "ACCEPT") == "text/html"
        assert find_header(self.HEADERS, "Missing") is None

    def test_find_all(self):
        assert find_all(self.HEADERS, "accept") == ["text/html", "text/plain"]
        assert find_all(self.HEADERS, "Missing") == []


class TestFormatHeaders:

    def test_format_in_order(self):
        headers = [("B", "2"), ("A", "1")]
        assert format_headers(headers) == "B: 2\r\nA: 1\r\n"

    def test_format_empty(self):
        assert format_headers([]) == ""

    def test_quoting_symmetry(self):
        """A header echoed from the request comes out as the handler saw it."""
        request = HTTPRequest(method="GET", path="/", headers=(("Host", '"bar.com"'),))
        seen_by_handler = extract_header(request, "Host")

        response = HTTPResponse(headers=[("Host", request.get_header("Host"))])
        wire = response.to_bytes().decode()

        assert f"Host: {seen_by_handler}\r\n" in wire
        assert '"' not in wire
