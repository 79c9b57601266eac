"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the raw bytes read from a connection into an HTTPRequest.

=============================================================================
ACCEPTED GRAMMAR
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   GET /search?q=a%20b HTTP/1.1\r\n         ← request line           │
    │   ─┬─ ──────┬──────── ────┬───                                      │
    │    │        │             └── HTTP/1.<digit>, digit not checked     │
    │    │        └── any run of non-space characters                     │
    │    └── one or more uppercase ASCII letters                          │
    │                                                                      │
    │   Host: example.com\r\n                    ← zero or more headers   │
    │   Accept: text/plain\r\n                     "Name: Value" only     │
    │                                                                      │
    │   \r\n                                     ← blank line             │
    │                                                                      │
    │   everything else is the body              ← no length framing      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

What this parser deliberately does NOT do:

    - Validate the method against a list (PURGE and BREW are fine)
    - Percent-decode the path (use request.decoded_path when you want it)
    - Case-fold header names or merge duplicate headers
    - Honour Content-Length or chunked encoding; the body is simply the
      rest of the buffer

A request that was cut short before the blank line (the connection reads a
single fixed-size buffer) still parses: you get the headers that arrived
and an empty body.

=============================================================================
FAILURE MODES
=============================================================================

    Buffer too large (> max_request_size)    →  HTTPParseError(413)
    No CRLF after the request line           →  HTTPParseError(400)
    Request line doesn't match the grammar   →  HTTPParseError(400)
    Header line without ": "                 →  HTTPParseError(400)

HTTPParseError never escapes the connection handler; it turns into a
400-class response for that one client.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from urllib.parse import parse_qs, unquote
import re

from ..errors import HTTPParseError
from .headers import HeaderPair, find_all, find_header, format_headers


@dataclass(frozen=True)
class HTTPRequest:
    """
    Represents a parsed HTTP request.

    =========================================================================
    REQUEST LIFECYCLE
    =========================================================================

        Raw bytes                  HTTPRequest                 Handler
        from socket    ──parse──►   (frozen)     ──route──►    function
           │                            │                          │
        b"GET /echo..."          HTTPRequest(                def echo(
                                   method="GET",               request):
                                   path="/echo",                ...
                                   headers=(("Host", ...),),
                                   ...)

    One request is built per connection and handed to exactly one handler.
    It is frozen, so a handler can't change what the next component sees.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:   Request method as sent ("GET", "POST", ...)
        path:     URI path, still percent-encoded ("/a%20b")
        query:    Raw query string, None when the URI had no "?"
        headers:  Ordered (name, value) pairs, names as captured
        body:     Text after the blank line ("" when absent)
        version:  The "HTTP/1.x" marker from the request line

    =========================================================================
    """

    method: str
    path: str
    query: Optional[str] = None
    headers: Tuple[HeaderPair, ...] = ()
    body: str = ""
    version: str = "HTTP/1.1"

    # Parsed query parameters, computed on first access
    _query_params: Optional[Dict[str, List[str]]] = field(
        default=None, init=False, repr=False, compare=False
    )

    # =========================================================================
    # HEADER ACCESS
    # =========================================================================

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get the first value of a header (case-insensitive lookup).

        Returns the value in its stored form; use
        simplehttp.http.headers.extract_header() for the quote-stripped
        form with an explicit error on absence.

        Example:
            request.get_header("host")             # "example.com"
            request.get_header("X-Missing", "n/a") # "n/a"
        """
        value = find_header(self.headers, name)
        return default if value is None else value

    def get_all(self, name: str) -> List[str]:
        """Get every value of a repeated header, in arrival order."""
        return find_all(self.headers, name)

    @property
    def host(self) -> Optional[str]:
        """The Host header, if the client sent one."""
        return self.get_header("Host")

    # =========================================================================
    # PATH AND QUERY DECODING (opt-in)
    # =========================================================================

    @property
    def decoded_path(self) -> str:
        """
        The path with percent-escapes decoded.

        Invalid UTF-8 sequences become U+FFFD instead of raising.
        """
        return unquote(self.path, errors="replace")

    @property
    def query_params(self) -> Dict[str, List[str]]:
        """
        Parsed query string as a dict of lists.

            "?a=1&a=2&b=3" → {"a": ["1", "2"], "b": ["3"]}

        Empty when there is no query.
        Returns a fresh copy; the parsed form is cached on the request.
        """
        return {name: list(values) for name, values in self._parsed_query().items()}

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get the first value of a query parameter.

        Example:
            # URL: /users?page=1&page=2
            request.get_query("page")  # Returns "1"
        """
        values = self._parsed_query().get(name, [])
        return values[0] if values else default

    def _parsed_query(self) -> Dict[str, List[str]]:
        if self._query_params is None:
            params = parse_qs(self.query or "", keep_blank_values=True, errors="replace")
            # Frozen dataclass: cache through object.__setattr__
            object.__setattr__(self, "_query_params", params)
        return self._query_params

    # =========================================================================
    # RE-SERIALIZATION
    # =========================================================================

    @property
    def target(self) -> str:
        """The request target as it appeared on the request line."""
        if self.query is None:
            return self.path
        return f"{self.path}?{self.query}"

    def to_wire(self) -> str:
        """
        Format the request back into HTTP/1.x text.

        The request line and header set (in order) come out as they were
        parsed, so parse(to_wire()) gives back an equivalent request.
        Header values pass through the same quote stripping used for
        responses.
        """
        return (
            f"{self.method} {self.target} {self.version}\r\n"
            f"{format_headers(self.headers)}"
            f"\r\n"
            f"{self.body}"
        )


def decode_query(request: HTTPRequest) -> Optional[str]:
    """
    Percent-decode a request's raw query string.

    Args:
        request: The request whose query to decode.

    Returns:
        The decoded query, or None when the request had no query at all.
        An empty query ("/path?") decodes to "", which is not None.

    Example:
        # GET /search?a%20b HTTP/1.1
        decode_query(request)  # Returns "a b"

    Invalid UTF-8 after decoding becomes U+FFFD rather than an error.
    Only %XX escapes are decoded; "+" stays a literal plus.
    """
    if request.query is None:
        return None
    return unquote(request.query, errors="replace")


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

    ==========================================================================
    PARSER STEPS
    ==========================================================================

        Raw Request Bytes
              │
              ▼
        1. Size check ─────────────── too large? → HTTPParseError(413)
              │
        2. Decode as UTF-8 (lossy, never fails)
              │
        3. Split at the first blank line (\r\n\r\n)
              │        head │ body
              ▼             ▼
        4. Request line ───────────── no match? → HTTPParseError(400)
              │
        5. Header lines ───────────── no ": "?  → HTTPParseError(400)
              │
        6. Build HTTPRequest

    ==========================================================================
    REGEX PATTERNS
    ==========================================================================

    REQUEST_LINE_PATTERN: ^([A-Z]+) ([^ ]+) (HTTP/1\\.\\d)$

        ([A-Z]+)       - Capture group 1: METHOD (uppercase letters)
        ([^ ]+)        - Capture group 2: target (path plus optional ?query)
        (HTTP/1\\.\\d)   - Capture group 3: version marker

    HEADER_PATTERN: ^([^:\\s]+): (.*)$

        ([^:\\s]+)      - Capture group 1: name (no colon, no whitespace)
        ": "           - The exact separator, colon then one space
        (.*)           - Capture group 2: value (rest of line, kept as is)

    ==========================================================================
    """

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/1\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:\s]+): (.*)$")

    def __init__(self, max_request_size: int = 1024 * 1024):
        """
        Initialize the request parser.

        Args:
            max_request_size: Largest buffer accepted, in bytes. The
                connection only ever reads one fixed-size buffer, so in
                practice this guards direct callers of parse().
        """
        self.max_request_size = max_request_size

    def parse(self, data: bytes) -> HTTPRequest:
        """
        Parse raw HTTP request data into an HTTPRequest.

        Args:
            data: Raw request bytes, as read from the connection.

        Returns:
            Parsed HTTPRequest.

        Raises:
            HTTPParseError: If the buffer doesn't follow the grammar.
        """
        # =====================================================================
        # STEP 1: Reject oversized buffers
        # =====================================================================
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=413,
            )

        # =====================================================================
        # STEP 2: Decode, replacing invalid UTF-8 instead of failing
        # =====================================================================
        text = data.decode("utf-8", errors="replace")
        if "\r\n" not in text:
            raise HTTPParseError("Incomplete request: no CRLF after request line")

        # =====================================================================
        # STEP 3: Split head from body at the first blank line
        # =====================================================================
        #
        #   GET /path HTTP/1.1\r\n
        #   Host: example.com\r\n
        #   \r\n                    <-- separator
        #   rest of buffer          <-- body, taken verbatim
        #
        # A truncated buffer may have no separator at all; then every
        # complete line is head and there is no body.
        #
        head, separator, body = text.partition("\r\n\r\n")
        if not separator:
            head = head[: head.rfind("\r\n")]

        lines = head.split("\r\n")

        # =====================================================================
        # STEP 4: Request line
        # =====================================================================
        method, target, version = self._parse_request_line(lines[0])
        path, question_mark, query = target.partition("?")

        # =====================================================================
        # STEP 5: Headers
        # =====================================================================
        headers = self._parse_headers(lines[1:])

        return HTTPRequest(
            method=method,
            path=path,
            query=query if question_mark else None,
            headers=headers,
            body=body,
            version=version,
        )

    def _parse_request_line(self, line: str) -> Tuple[str, str, str]:
        """
        Parse the request line into (method, target, version).

        Raises:
            HTTPParseError: If the line doesn't match REQUEST_LINE_PATTERN.
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line[:80]!r}")
        return match.group(1), match.group(2), match.group(3)

    def _parse_headers(self, lines: List[str]) -> Tuple[HeaderPair, ...]:
        """
        Parse header lines into ordered (name, value) pairs.

        Names keep their case and duplicates are all kept:

            "Accept: text/html"
            "accept: text/plain"   →  (("Accept", "text/html"),
                                       ("accept", "text/plain"))

        Raises:
            HTTPParseError: On any line that isn't "Name: Value".
        """
        headers: List[HeaderPair] = []
        for line in lines:
            match = self.HEADER_PATTERN.match(line)
            if not match:
                raise HTTPParseError(f"Malformed header line: {line[:80]!r}")
            headers.append((match.group(1), match.group(2)))
        return tuple(headers)


# =============================================================================
# CONVENIENCE FUNCTION
# =============================================================================

def parse_request(data: bytes, max_size: int = 1024 * 1024) -> HTTPRequest:
    """
    Parse an HTTP request in one call.

    Use RequestParser directly to reuse one parser for many buffers.
    """
    return RequestParser(max_request_size=max_size).parse(data)
