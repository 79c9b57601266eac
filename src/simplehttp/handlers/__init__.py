"""
Ready-made request handlers.

    not_found          the 404 fallback used when no route matches
                       (the router's own default_not_found)
    echo_host          body = the request's Host header
    echo_path          body = the request path
    hello              body = "Hello, world!"
    register_examples  wire the three example handlers onto a server
"""

from ..http.router import default_not_found as not_found
from .examples import echo_host, echo_path, hello, register_examples

__all__ = ["not_found", "echo_host", "echo_path", "hello", "register_examples"]
