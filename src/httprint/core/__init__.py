"""
=============================================================================
CORE NETWORKING COMPONENTS
=============================================================================

Low-level building blocks:

    SocketServer    Binds the address, accepts connections, yields requests
    Connection      Buffered I/O for one client socket
    ConnectionState Lifecycle enum used in logs

=============================================================================
"""

from .socket_server import SocketServer, parse_address, format_address
from .connection import Connection, ConnectionState

__all__ = [
    "SocketServer",     # TCP listener - yields IncomingRequest objects
    "Connection",       # Wrapper for client socket - handles I/O
    "ConnectionState",  # Enum for connection lifecycle states
    "parse_address",    # "host:port" text → (host, port)
    "format_address",   # socket address → "host:port" text
]
