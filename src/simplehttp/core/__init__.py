"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The transport side of the server:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  SOCKET SERVER (socket_server.py)                                    │
    │  • Binds the listening socket, runs the accept loop                  │
    │  • One connection at a time, SIGINT/SIGTERM aware                    │
    └─────────────────────────────────────────────────────────────────────┘
                                    │ each accepted client
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  CONNECTION HANDLER (pipeline.py)                                    │
    │  • read → parse → route → handle → serialize → write → close         │
    │  • Contains every per-connection failure                             │
    └─────────────────────────────────────────────────────────────────────┘
                                    │ socket I/O
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  CONNECTION (connection.py)                                          │
    │  • One fixed-size read, a counted write, a graceful close            │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .connection import Connection, ConnectionState
from .pipeline import ConnectionHandler, ConnectionResult
from .socket_server import SocketServer

__all__ = [
    "SocketServer",       # Listening socket and accept loop
    "ConnectionHandler",  # Per-connection request pipeline
    "ConnectionResult",   # Outcome of one connection
    "Connection",         # Wrapper for a client socket
    "ConnectionState",    # Enum for connection lifecycle states
]
