"""
=============================================================================
ROUTE TABLE
=============================================================================

Maps request paths to handler functions using regular expressions.

=============================================================================
HOW DISPATCH WORKS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   Incoming request: GET /foo                                         │
    │        │                                                             │
    │        ▼                                                             │
    │   ┌─────────────────────────────────────────────────────────────┐   │
    │   │  Registered routes (in registration order)                   │   │
    │   │                                                              │   │
    │   │   1.  "/echo"        → echo_host      re.search → no         │   │
    │   │   2.  "/(foo|bar)"   → echo_path      re.search → MATCH!     │   │
    │   │   3.  "/.*"          → catch_all      (never reached)        │   │
    │   └─────────────────────────────────────────────────────────────┘   │
    │        │                                                             │
    │        ▼                                                             │
    │   echo_path(request)                                                 │
    │                                                                      │
    │   Nothing matched?  →  not_found(request)  →  404, empty body        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ORDER IS THE CONTRACT
=============================================================================

1. FIRST MATCH WINS
   Routes are scanned linearly in the order they were added. There is no
   precedence by specificity, longest match, or segment count.

       router.add_route("/foo", foo)      # /foo → foo
       router.add_route("/.*", catch_all)

       router.add_route("/.*", catch_all) # /foo → catch_all
       router.add_route("/foo", foo)      # unreachable!

   Register specific patterns before general ones.

2. MATCHING IS UNANCHORED
   A route matches when its pattern is found anywhere in the path
   (re.search, not re.fullmatch). "/echo" matches "/echo", "/echo/x" and
   "/api/echo". Add ^ and $ yourself for an exact match: "^/echo$".

3. PATTERNS COMPILE AT REGISTRATION
   A broken pattern raises PatternCompileError from add_route(), not on
   the first request that happens to reach it.

4. THE TABLE IS READ-ONLY ONCE SERVING
   The server calls freeze() before its first accept(). add_route() after
   that raises RouterFrozenError, so dispatch never sees a table that is
   changing underneath it.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional
import logging
import re

from ..errors import PatternCompileError, RouterFrozenError
from .request import HTTPRequest
from .response import HTTPResponse, not_found


logger = logging.getLogger(__name__)


# Handler: A function that takes a request and returns a response
Handler = Callable[[HTTPRequest], HTTPResponse]


def default_not_found(request: HTTPRequest) -> HTTPResponse:
    """Fallback handler: 404 Not Found with an empty body."""
    return not_found()


@dataclass(frozen=True)
class Route:
    """
    A registered (pattern, handler) binding.

        Route(
            pattern="/(foo|bar)",          # Pattern source as registered
            handler=echo_path,             # Handler function
            regex=re.compile("/(foo|bar)") # Compiled once, at registration
        )
    """

    pattern: str
    handler: Handler
    regex: "re.Pattern[str]" = field(repr=False, compare=False)

    def matches(self, path: str) -> bool:
        """True if the pattern occurs anywhere in path."""
        return self.regex.search(path) is not None


class Router:
    """
    Ordered route table with first-match dispatch.

    Usage:
        router = Router()

        @router.route("/echo")
        def echo(request):
            return ok(extract_header(request, "Host"))

        router.add_route("/(foo|bar)", echo_path)

        response = router.handle(request)
    """

    def __init__(self, fallback: Handler = default_not_found):
        """
        Initialize an empty route table.

        Args:
            fallback: Handler used when no route matches. Defaults to an
                empty 404 response.
        """
        self._routes: List[Route] = []
        self._fallback = fallback
        self._frozen = False

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def add_route(self, pattern: str, handler: Handler) -> Route:
        """
        Register a handler for paths matching pattern.

        Args:
            pattern: Regular expression in Python `re` syntax.
            handler: Function taking an HTTPRequest, returning an HTTPResponse.

        Returns:
            The registered Route.

        Raises:
            PatternCompileError: If pattern is not a valid regular expression.
            RouterFrozenError: If the router has been frozen.
        """
        if self._frozen:
            raise RouterFrozenError(
                f"Cannot add route {pattern!r}: the route table is frozen"
            )

        try:
            regex = re.compile(pattern)
        except re.error as e:
            raise PatternCompileError(pattern, str(e)) from e

        route = Route(pattern=pattern, handler=handler, regex=regex)
        self._routes.append(route)
        logger.debug(f"Registered route #{len(self._routes)} {pattern!r}")
        return route

    def route(self, pattern: str) -> Callable[[Handler], Handler]:
        """
        Decorator form of add_route().

            @router.route("/(foo|bar)")
            def echo_path(request):
                return ok(request.path)
        """
        def decorator(handler: Handler) -> Handler:
            self.add_route(pattern, handler)
            return handler  # Unchanged, so decorators can stack
        return decorator

    def freeze(self) -> None:
        """Make the table read-only. Idempotent."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def match(self, path: str) -> Optional[Route]:
        """
        Find the first route whose pattern occurs in path.

        Args:
            path: The request path (without query string).

        Returns:
            The winning Route, or None if nothing matches.
        """
        for route in self._routes:
            if route.matches(path):
                return route
        return None

    def resolve(self, path: str) -> Optional[Handler]:
        """Return the handler of the first matching route, or None."""
        route = self.match(path)
        return route.handler if route else None

    def handler_for(self, path: str) -> Handler:
        """
        Like resolve(), but never None: falls back to the fallback
        handler (404 by default) when no route matches.
        """
        handler = self.resolve(path)
        if handler is None:
            logger.debug(f"No route matches {path!r}")
            return self._fallback
        return handler

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Route a request and call its handler."""
        return self.handler_for(request.path)(request)

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    def routes(self) -> List[Route]:
        """All registered routes, in match order."""
        return list(self._routes)

    def __len__(self) -> int:
        return len(self._routes)

    def describe(self) -> str:
        """
        Human-readable route table, used for the startup log.

        Example output:
              1. '/echo'        -> echo_host
              2. '/(foo|bar)'   -> echo_path
        """
        width = max((len(repr(r.pattern)) for r in self._routes), default=0)
        return "\n".join(
            f"  {i:>2}. {repr(r.pattern):<{width}} -> "
            f"{getattr(r.handler, '__name__', repr(r.handler))}"
            for i, r in enumerate(self._routes, start=1)
        )
