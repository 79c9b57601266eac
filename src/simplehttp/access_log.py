"""
=============================================================================
ACCESS LOG
=============================================================================

One line per connection, written after the connection has closed, so the
line records what actually happened on the wire rather than what the
handler intended.

=============================================================================
LOG FORMATS
=============================================================================

    TEXT (default, Apache-like):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ 127.0.0.1:51234 - [18/Oct/2026:10:55:36 +0000] "GET /echo" 200     │
    │   30/30 0.41ms ok                                                   │
    │ ──────────────────────────────────────────────────────────────────  │
    │ client   timestamp   method/path  status  written/expected  outcome │
    └─────────────────────────────────────────────────────────────────────┘

    JSON (for log aggregators):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ {"connection_id": "a1b2c3d4", "client": "127.0.0.1:51234",          │
    │  "method": "GET", "path": "/echo", "status_code": 200,              │
    │  "bytes_written": 30, "bytes_expected": 30, "duration_ms": 0.41,    │
    │  "outcome": "ok", "error": null, "timestamp": "..."}                │
    └─────────────────────────────────────────────────────────────────────┘

A connection that failed before a request was parsed logs "-" for method
and path; one that never produced a response logs "-" for status.

Configure it like any other logger:

    logging.getLogger("simplehttp.access").addHandler(file_handler)

=============================================================================
"""

from dataclasses import asdict, dataclass
from typing import Optional
import json
import logging
import time

from .config import LOG_FORMATS


logger = logging.getLogger("simplehttp.access")


@dataclass
class RequestLog:
    """
    Structured log entry for one connection.

        connection_id:   Connection.id, correlates with debug lines
        client:          "ip:port" of the peer
        method, path:    From the parsed request, or "-" if parsing failed
        status_code:     Status sent, or None if nothing was sent
        bytes_written:   Bytes that reached the socket
        bytes_expected:  Size of the serialized response
        duration_ms:     Accept to close
        outcome:         "ok", or "<state>-failed" naming where it stopped
        error:           Exception class name, if any
    """

    connection_id: str
    client: str
    method: str
    path: str
    status_code: Optional[int]
    bytes_written: int
    bytes_expected: int
    duration_ms: float
    outcome: str
    error: Optional[str] = None
    timestamp: str = ""

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = time.strftime("%d/%b/%Y:%H:%M:%S %z")

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        status = "-" if self.status_code is None else str(self.status_code)
        line = (
            f'{self.client} - [{self.timestamp}] '
            f'"{self.method} {self.path}" {status} '
            f'{self.bytes_written}/{self.bytes_expected} '
            f'{self.duration_ms:.2f}ms {self.outcome}'
        )
        if self.error:
            line += f" ({self.error})"
        return line


class AccessLogger:
    """
    Emits RequestLog entries to the "simplehttp.access" logger.

    Usage:
        access = AccessLogger(log_format="json")
        access.log(RequestLog(...))
    """

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        """
        Args:
            log_format: "text" (Apache-like) or "json".
            log_level: Level the entries are logged at.
        """
        if log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}, got {log_format!r}")
        self.log_format = log_format
        self.log_level = log_level

    def format(self, entry: RequestLog) -> str:
        if self.log_format == "json":
            return json.dumps(entry.to_dict())
        return entry.to_text()

    def log(self, entry: RequestLog) -> None:
        if logger.isEnabledFor(self.log_level):
            logger.log(self.log_level, self.format(entry))
