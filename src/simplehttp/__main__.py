"""
=============================================================================
COMMAND-LINE ENTRY POINT
=============================================================================

    # Run with defaults (127.0.0.1:7878, example routes registered)
    python -m simplehttp

    # Custom port, all interfaces
    python -m simplehttp --host 0.0.0.0 --port 3000

    # Bigger read buffer, JSON access log
    python -m simplehttp --buffer-size 8192 --log-format json

Environment variables (HTTP_HOST, HTTP_PORT, ...) provide the defaults;
command-line flags override them.

=============================================================================
"""

import argparse
import sys

from . import __version__
from .config import LOG_FORMATS, LOG_LEVELS, ServerConfig
from .errors import BindError
from .handlers import register_examples
from .server import HTTPServer, configure_logging


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="simplehttp",
        description="Minimal HTTP server with ordered regex routing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m simplehttp                        # Run with defaults
  python -m simplehttp --port 3000            # Custom port
  python -m simplehttp --host 0.0.0.0         # Listen on all interfaces
  python -m simplehttp --timeout 5            # Drop clients idle for 5s
  python -m simplehttp --no-examples          # Every request gets 404
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host})"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on, 0 for any free port (default: {defaults.port})"
    )

    parser.add_argument(
        "--buffer-size",
        type=int,
        default=defaults.buffer_size,
        help=f"Bytes read per request (default: {defaults.buffer_size})"
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=defaults.timeout,
        help="Per-connection socket timeout in seconds (default: none)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        default=defaults.log_level.upper(),
        help=f"Logging level (default: {defaults.log_level.upper()})"
    )

    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=defaults.log_format,
        help=f"Access log format (default: {defaults.log_format})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # ROUTES AND META
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--no-examples",
        action="store_true",
        help="Don't register the example routes (/echo, /(foo|bar), /test)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"simplehttp {__version__}"
    )

    return parser


def main(argv=None) -> int:
    """
    Parse arguments, build the server and run it until interrupted.

    Returns:
        Process exit status: 0 after a clean shutdown, 1 if the server
        could not start.
    """
    try:
        defaults = ServerConfig.from_env()
    except ValueError as e:
        print(f"Error: invalid environment configuration: {e}", file=sys.stderr)
        return 1

    args = build_parser(defaults).parse_args(argv)

    config = ServerConfig(
        host=args.host,
        port=args.port,
        buffer_size=args.buffer_size,
        timeout=args.timeout,
        log_level=args.log_level,
        log_format=args.log_format,
    )

    configure_logging(config.log_level)

    try:
        server = HTTPServer(config)
    except (BindError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not args.no_examples:
        register_examples(server)

    server.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
