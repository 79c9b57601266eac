"""
=============================================================================
HTTP RESPONSE AND SERIALIZER
=============================================================================

Handlers return an HTTPResponse; the connection handler turns it into
bytes with to_bytes().

=============================================================================
WIRE FORMAT
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   HTTP/1.1 200 OK\r\n                 ← version, code, phrase       │
    │                                                                      │
    │   Content-Type: text/plain\r\n        ← headers, in the order       │
    │   X-Request-Id: 42\r\n                  they were added             │
    │                                                                      │
    │   \r\n                                ← blank line                  │
    │                                                                      │
    │   example.com                         ← body, as is                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Exactly what the handler built goes out. The serializer adds no
Content-Length, Date, or Server header; the connection is closed after
every response, so the client reads the body until EOF.

Header values go through the same strip_quoting() used when handlers read
request headers, so echoing a request header back is symmetric.

=============================================================================
BUILDER PATTERN
=============================================================================

    ResponseBuilder()
        .status(HTTPStatus.CREATED)
        .header("Location", "/users/7")
        .json({"id": 7})
        .build()

Or, for the common cases, the one-line helpers at the bottom of this
module: ok(), bad_request(), not_found(), internal_error().

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Union
import json

from .headers import HeaderPair, find_header, format_headers
from .status_codes import HTTPStatus, reason_phrase


@dataclass
class HTTPResponse:
    """
    Represents an HTTP response to be sent to the client.

    =========================================================================
    RESPONSE LIFECYCLE
    =========================================================================

        Handler returns          to_bytes()              Connection
        HTTPResponse    ─────►   serializes    ─────►    writes bytes
            │                       │                        │
        HTTPResponse(            b"HTTP/1.1 200 OK\r\n   conn.send_response(
          status=200,              \r\n                     response_bytes
          headers=[],              example.com"         )
          body="example.com"
        )

    Built once per request and serialized once; never reused.

    =========================================================================
    """

    status: int = HTTPStatus.OK
    headers: List[HeaderPair] = field(default_factory=list)
    body: str = ""
    version: str = "HTTP/1.1"

    @property
    def reason(self) -> str:
        """
        The canonical reason phrase for this response's status.

        Raises:
            ReasonPhraseLookupError: If the status code isn't registered.
        """
        return reason_phrase(self.status)

    @property
    def status_line(self) -> str:
        """
        Get the HTTP status line.

        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 404 Not Found"
        """
        return f"{self.version} {int(self.status)} {self.reason}"

    def add_header(self, name: str, value: str) -> "HTTPResponse":
        """
        Append a header, keeping any existing ones with the same name.

        Returns self for method chaining:
            response.add_header("Set-Cookie", "a=1").add_header("Set-Cookie", "b=2")
        """
        self.headers.append((name, value))
        return self

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """
        Set a header, replacing every existing header with that name.

        The header keeps the position of the first one it replaced, or
        goes to the end if it is new.
        """
        wanted = name.lower()
        replaced: List[HeaderPair] = []
        placed = False
        for header_name, header_value in self.headers:
            if header_name.lower() != wanted:
                replaced.append((header_name, header_value))
            elif not placed:
                replaced.append((name, value))
                placed = True
        if not placed:
            replaced.append((name, value))
        self.headers = replaced
        return self

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get the first value of a header (case-insensitive lookup)."""
        value = find_header(self.headers, name)
        return default if value is None else value

    def to_bytes(self) -> bytes:
        """
        Serialize the response to bytes for sending over the connection.

        =====================================================================
        SERIALIZATION FORMAT
        =====================================================================

            HTTP/1.1 200 OK\r\n          ← Status line
            Content-Type: text/plain\r\n ← Headers, insertion order
            \r\n                         ← Empty line (separator)
            Hello                        ← Body

        =====================================================================

        Returns:
            Complete HTTP response as UTF-8 bytes.

        Raises:
            ReasonPhraseLookupError: If the status code isn't registered.
                Nothing is produced in that case.
        """
        return (
            f"{self.status_line}\r\n"
            f"{format_headers(self.headers)}"
            f"\r\n"
            f"{self.body}"
        ).encode("utf-8")


class ResponseBuilder:
    """
    Fluent builder for constructing HTTP responses.

    Each method returns `self`, so calls chain:

        builder.status(201).header("X-Key", "val").json(data).build()

    Headers keep the order they were added in.
    """

    def __init__(self):
        self._status: int = HTTPStatus.OK
        self._headers: List[HeaderPair] = []
        self._body: str = ""

    # =========================================================================
    # STATUS AND HEADERS
    # =========================================================================

    def status(self, status: int) -> "ResponseBuilder":
        """Set the status code (an HTTPStatus member or a plain int)."""
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        """Append a single response header."""
        self._headers.append((name, value))
        return self

    def headers(self, headers: Sequence[HeaderPair]) -> "ResponseBuilder":
        """Append several (name, value) headers, in order."""
        self._headers.extend(headers)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        """Append a Content-Type header."""
        return self.header("Content-Type", content_type)

    # =========================================================================
    # BODY
    # =========================================================================

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """
        Set the response body.

        Bytes are decoded as UTF-8 (with replacement), since bodies are
        text in this library.
        """
        if isinstance(body, bytes):
            body = body.decode("utf-8", errors="replace")
        self._body = body
        return self

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "ResponseBuilder":
        """Set a plain text body and its Content-Type."""
        self._body = text
        return self.content_type(content_type)

    def html(self, html: str) -> "ResponseBuilder":
        """Set an HTML body and its Content-Type."""
        return self.text(html, "text/html; charset=utf-8")

    def json(self, data: Any, pretty: bool = False) -> "ResponseBuilder":
        """
        Serialize data to JSON for the body and set Content-Type.

        ensure_ascii=False keeps non-ASCII text readable in the body.
        """
        indent = 2 if pretty else None
        return self.text(
            json.dumps(data, indent=indent, ensure_ascii=False),
            "application/json; charset=utf-8",
        )

    # =========================================================================
    # BUILD
    # =========================================================================

    def build(self) -> HTTPResponse:
        """Build the HTTPResponse."""
        return HTTPResponse(
            status=self._status,
            headers=list(self._headers),
            body=self._body,
        )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
#     return ok("Hello, world!")
#     return not_found()
#
# =============================================================================

def ok(body: str = "") -> HTTPResponse:
    """Create a 200 OK response with a raw text body and no headers."""
    return HTTPResponse(status=HTTPStatus.OK, body=body)


def bad_request(status: int = HTTPStatus.BAD_REQUEST) -> HTTPResponse:
    """
    Create an empty 400-class response.

    Sent by the connection handler when a request can't be parsed; status
    lets the parser pick a more specific code such as 413.
    """
    return HTTPResponse(status=status)


def not_found() -> HTTPResponse:
    """Create a 404 Not Found response with an empty body."""
    return HTTPResponse(status=HTTPStatus.NOT_FOUND)


def internal_error() -> HTTPResponse:
    """
    Create a 500 Internal Server Error response with an empty body.

    Sent when a handler raises. The body stays empty so internal details
    never reach the client; the traceback goes to the log instead.
    """
    return HTTPResponse(status=HTTPStatus.INTERNAL_SERVER_ERROR)
