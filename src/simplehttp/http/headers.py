"""
=============================================================================
HEADER CODEC
=============================================================================

Headers are stored as an ordered sequence of (name, value) pairs, exactly
as they were captured or added:

    GET /echo HTTP/1.1\r\n
    Host: example.com\r\n         →   (("Host", "example.com"),
    Accept: text/html\r\n              ("Accept", "text/html"),
    Accept: text/plain\r\n             ("Accept", "text/plain"))

Nothing is case-folded and duplicates are kept in order. Lookups by name
are case-insensitive, since "Host" and "host" are the same header on the
wire.

=============================================================================
QUOTING ARTIFACTS
=============================================================================

A header value that went through a debug/repr-style representation picks
up a pair of enclosing double quotes:

    bar.com   →   "bar.com"

strip_quoting() removes exactly one leading and one trailing quote. It
never touches interior characters, so a value like

    W/"abc"   →   W/"abc     (only the trailing quote goes)

keeps its inner quote. The same function runs on request headers when a
handler extracts them and on response headers when they are serialized, so
a value echoed from the request comes back out unchanged.

=============================================================================
"""

import re
from typing import Iterable, List, Optional, Sequence, Tuple

from ..errors import HeaderMissingError


# A header as stored on requests and responses
HeaderPair = Tuple[str, str]

# One quote anchored at either end of the value
_QUOTING_PATTERN = re.compile(r'(^")|("$)')


def strip_quoting(value: str) -> str:
    """
    Remove one leading and one trailing double quote from a header value.

    Args:
        value: Header value in its stored form.

    Returns:
        The value with enclosing quote artifacts removed.

    Example:
        strip_quoting('"bar.com"')  # Returns "bar.com"
        strip_quoting('bar.com')    # Returns "bar.com"
    """
    return _QUOTING_PATTERN.sub("", value)


def find_header(headers: Iterable[HeaderPair], name: str) -> Optional[str]:
    """Return the first stored value for name (case-insensitive), or None."""
    wanted = name.lower()
    for header_name, value in headers:
        if header_name.lower() == wanted:
            return value
    return None


def find_all(headers: Iterable[HeaderPair], name: str) -> List[str]:
    """Return every stored value for name, in the order they appeared."""
    wanted = name.lower()
    return [value for header_name, value in headers if header_name.lower() == wanted]


def extract_header(request, name: str) -> str:
    """
    Extract a header's textual value from a request.

    The first header with a matching name (case-insensitive) wins, and the
    value is passed through strip_quoting().

    Args:
        request: An HTTPRequest.
        name: Header name, e.g. "Host".

    Returns:
        The header value.

    Raises:
        HeaderMissingError: If the request has no such header. Handlers
            decide their own fallback:

                try:
                    host = extract_header(request, "Host")
                except HeaderMissingError:
                    host = "localhost"
    """
    value = find_header(request.headers, name)
    if value is None:
        raise HeaderMissingError(name)
    return strip_quoting(value)


def format_headers(headers: Sequence[HeaderPair]) -> str:
    """
    Render header pairs as wire lines, each terminated by CRLF.

    Values go through strip_quoting(); order is preserved.
    """
    return "".join(f"{name}: {strip_quoting(value)}\r\n" for name, value in headers)
