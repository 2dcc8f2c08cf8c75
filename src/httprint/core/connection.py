"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

This module wraps one accepted client socket with the operations the
listener and the dispatcher need: read the request head, hand out the
body bytes on demand, send the response, close.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

TCP does NOT preserve message boundaries. A single recv() can return half
a request line, or the whole head plus the first bytes of the body:

    recv() → b"POST /hook HTTP/1.1\r\nContent-Le"
    recv() → b"ngth: 5\r\n\r\nhel"          ◄── head ends, body begins
    recv() → b"lo"

So the connection buffers:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         _buffer lifecycle                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   read_head():   recv() until b"\r\n\r\n" is in _buffer              │
    │                  return everything before it                         │
    │                  keep everything after it (body bytes!)              │
    │                                                                      │
    │   read_chunk():  serve leftover _buffer bytes first                  │
    │                  then fall through to recv()                         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Body bytes that arrived together with the head are never lost, and the
body is never read unless somebody asks for it.

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid

from ..errors import ResponseSendError
from ..http.request import HTTPParseError
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)

HEAD_TERMINATOR = b"\r\n\r\n"
CONTINUE_LINE = b"HTTP/1.1 100 Continue\r\n\r\n"


class ConnectionState(Enum):
    """
    Connection lifecycle states.

    Used for logging and to make close() idempotent.
    """
    NEW = "new"              # Just accepted, haven't read anything yet
    READING = "reading"      # Reading the request head or body
    WRITING = "writing"      # Sending response data
    CLOSING = "closing"      # Shutdown sequence in progress
    CLOSED = "closed"        # Socket released


@dataclass
class Connection:
    """
    Represents one client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short unique identifier for log lines.
        state: Current connection state.
        created_at: Timestamp when the connection was accepted.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    buffer_size: int = 8192                 # How much to recv() at once
    timeout: Optional[float] = None         # None = block
    max_header_size: int = 64 * 1024        # Limit for request line + headers

    _buffer: bytes = field(default=b"", repr=False)
    _continue_sent: bool = field(default=False, repr=False)

    def __post_init__(self):
        # Accepted sockets don't inherit the listening socket's accept
        # timeout, so set ours explicitly.
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        """Get the client IP address."""
        return self.address[0]

    @property
    def client_port(self) -> int:
        """Get the client port."""
        return self.address[1]

    @property
    def age(self) -> float:
        """Get connection age in seconds."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_head(self) -> Optional[bytes]:
        """
        Read the request line and headers.

        Returns:
            Head bytes without the terminating blank line, or None if the
            client closed the connection before sending a complete head.

        Raises:
            HTTPParseError: If the head exceeds max_header_size (431).
            TimeoutError: If the configured timeout expires.
        """
        self.state = ConnectionState.READING

        while HEAD_TERMINATOR not in self._buffer:
            if len(self._buffer) > self.max_header_size:
                raise HTTPParseError(
                    f"Request head too large: {len(self._buffer)} bytes",
                    status_code=HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE,
                )

            chunk = self._recv(self.buffer_size)
            if not chunk:
                return None  # Connection closed by client

            self._buffer += chunk

        header_end = self._buffer.find(HEAD_TERMINATOR)
        if header_end > self.max_header_size:
            raise HTTPParseError(
                f"Request head too large: {header_end} bytes",
                status_code=HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE,
            )

        head = self._buffer[:header_end]

        # Anything after the blank line is the start of the body.
        self._buffer = self._buffer[header_end + len(HEAD_TERMINATOR):]

        return head

    def read_chunk(self, size: int) -> bytes:
        """
        Read up to `size` body bytes.

        Buffered bytes left over from read_head() are returned first.

        Returns:
            Up to `size` bytes, or b"" at end of stream.

        Raises:
            OSError: If the socket fails or times out.
        """
        self.state = ConnectionState.READING

        if self._buffer:
            chunk = self._buffer[:size]
            self._buffer = self._buffer[size:]
            return chunk

        return self._recv(min(size, self.buffer_size))

    def _recv(self, size: int) -> bytes:
        """
        Receive data, treating a reset connection as end of stream.

        Timeouts and other socket errors propagate to the caller.
        """
        try:
            return self.socket.recv(size)
        except (ConnectionResetError, BrokenPipeError):
            return b""

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_continue(self):
        """
        Send "100 Continue" to a client that sent "Expect: 100-continue".

        Such clients (curl does this for bodies over 1 KB) wait for this
        interim line before sending the body. Sent at most once.

        Raises:
            OSError: If the socket write fails.
        """
        if self._continue_sent:
            return
        self._continue_sent = True
        self.socket.sendall(CONTINUE_LINE)

    def send_response(self, data: bytes):
        """
        Send response bytes to the client.

        Uses sendall() so the whole response goes out or an error is raised.

        Raises:
            ResponseSendError: If the connection write fails.
        """
        self.state = ConnectionState.WRITING

        try:
            self.socket.sendall(data)
        except OSError as e:
            raise ResponseSendError(
                f"failed to send response to {self.client_ip}:{self.client_port}: {e}"
            ) from e

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully.

        1. shutdown(SHUT_WR): tell the client we're done sending (FIN)
        2. Drain unread data, so the kernel doesn't answer it with a RST
           that could destroy the response before the client reads it
        3. close(): release the file descriptor
        """
        if self.state == ConnectionState.CLOSED:
            return  # Already closed

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass  # Timed out or reset, we're closing anyway

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
