"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Every tunable in one dataclass, filled from code, the environment, or a
"host:port" string.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments   python -m simplehttp --port 3000      │
    │   2. Environment variables    HTTP_PORT=3000 python -m simplehttp   │
    │   3. Defaults below                                                 │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional

from .errors import BindError


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP server.

        Development:
            ServerConfig(port=7878, log_level="DEBUG")

        Tests (let the OS pick a free port):
            ServerConfig(port=0)
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    The IPv4 address to bind to.
    - "127.0.0.1" - Localhost only
    - "0.0.0.0" - All network interfaces
    """

    port: int = 7878
    """
    The port to listen on. 0 asks the OS for a free one; read the
    result back from HTTPServer.server_address.
    """

    backlog: int = 128
    """Maximum number of connections queued while one is being handled."""

    buffer_size: int = 1024
    """
    Size of the single read that takes in a request, in bytes.
    Anything the client sends beyond this is never read.
    """

    timeout: Optional[float] = None
    """
    Socket timeout for accepted connections, in seconds.
    None = block indefinitely on read and write.
    """

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    max_request_size: int = 1024 * 1024  # 1 MiB
    """
    Largest buffer the request parser accepts; bigger ones get 413.
    Only matters when buffer_size is raised above it.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_format: str = "text"
    """Access log format: 'text' (Apache-like) or 'json'."""

    @property
    def address(self) -> str:
        """The configured bind address as "host:port"."""
        return f"{self.host}:{self.port}"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

            HTTP_HOST         Bind address (default: 127.0.0.1)
            HTTP_PORT         Port (default: 7878)
            HTTP_BUFFER_SIZE  Read buffer size in bytes (default: 1024)
            HTTP_TIMEOUT      Connection timeout in seconds (default: none)
            HTTP_LOG_LEVEL    Logging level (default: INFO)
            HTTP_LOG_FORMAT   Access log format (default: text)

        Raises:
            ValueError: If a numeric variable doesn't parse.
        """
        timeout = os.getenv("HTTP_TIMEOUT")
        return cls(
            host=os.getenv("HTTP_HOST", "127.0.0.1"),
            port=int(os.getenv("HTTP_PORT", "7878")),
            buffer_size=int(os.getenv("HTTP_BUFFER_SIZE", "1024")),
            timeout=float(timeout) if timeout else None,
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO"),
            log_format=os.getenv("HTTP_LOG_FORMAT", "text"),
        )

    @classmethod
    def from_address(cls, address: str, **overrides) -> "ServerConfig":
        """
        Create configuration from a bind address string.

            ServerConfig.from_address("127.0.0.1:7878")
            ServerConfig.from_address("0.0.0.0:0", buffer_size=4096)

        Raises:
            BindError: If address isn't "host:port" with a numeric port.
        """
        host, separator, port = address.rpartition(":")
        if not separator or not host or not port.isdigit():
            raise BindError(f"Invalid bind address {address!r}: expected host:port")
        return cls(host=host, port=int(port), **overrides)

    def validate(self) -> None:
        """
        Validate configuration values, failing fast at startup.

        Raises:
            ValueError: On the first invalid setting.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 64:
            raise ValueError("buffer_size must be >= 64")

        if self.max_request_size < 1:
            raise ValueError("max_request_size must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(LOG_FORMATS)}")
