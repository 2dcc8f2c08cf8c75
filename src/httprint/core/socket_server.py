"""
=============================================================================
LOW-LEVEL TCP LISTENER
=============================================================================

This module binds the listening socket and turns accepted connections
into a stream of IncomingRequest objects. It is the only part of httprint
that knows about accept() and request heads.

=============================================================================
SOCKET LIFECYCLE (Server Side)
=============================================================================

    1. getaddrinfo()  Resolve "host:port" text to a socket address
    2. socket()       Create a socket of the matching family (IPv4/IPv6)
    3. bind()         Reserve the address          ─┐
    4. listen()       Start queueing connections    ├─ bind() below
                                                    ─┘
    5. accept()       Wait for a client             ─┐
    6. read head      Parse into IncomingRequest     ├─ incoming_requests()
    7. yield          Hand it to the dispatcher     ─┘
    8. close()        Release the listening socket

Steps 1-4 failing is fatal (BindError): with no address there is nothing
to inspect. Anything going wrong in steps 5-7 only affects one client.

=============================================================================
SIGNALS
=============================================================================

SIGINT (Ctrl+C) and SIGTERM (kill, docker stop) stop the accept loop.
The listening socket polls with a 1-second accept() timeout so it notices
within a second; the request being handled at that moment is finished
first, since handling happens between two accept() calls.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Iterator, Optional, Tuple

from ..config import ServerConfig
from ..errors import BindError, ResponseSendError
from ..http.request import HTTPParseError, IncomingRequest, RequestBody, RequestParser
from ..http.response import respond
from ..http.status_codes import HTTPStatus
from .connection import Connection


logger = logging.getLogger(__name__)


def parse_address(address: str) -> Tuple[str, int]:
    """
    Split "host:port" text into (host, port).

    Accepted forms:
        "127.0.0.1:8000"
        "localhost:8000"
        "[::1]:8000"        (IPv6 in brackets)

    Raises:
        BindError: If the text is not a valid address.
    """
    host, sep, port_text = address.rpartition(":")
    if not sep or not host:
        raise BindError(f"invalid address {address!r}: expected HOST:PORT")

    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]

    try:
        port = int(port_text)
    except ValueError:
        raise BindError(f"invalid address {address!r}: bad port {port_text!r}")

    if not 0 <= port < 65536:
        raise BindError(f"invalid address {address!r}: port out of range")

    return host, port


def format_address(sockaddr) -> str:
    """Format a socket address as "ip:port", bracketing IPv6 hosts."""
    host, port = sockaddr[0], sockaddr[1]
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


class SocketServer:
    """
    TCP listener yielding one IncomingRequest per accepted connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer Internals                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    bind()                Resolve, create, bind, listen              │
    │        │                                                             │
    │        └──► BindError on any failure                                 │
    │                                                                      │
    │    incoming_requests()   Generator (blocks here!)                   │
    │        │                                                             │
    │        └──► while running:                                           │
    │                accept()        Wait for connection (1s polls)       │
    │                Connection()    Wrap client socket                   │
    │                read_head()     Buffer until blank line              │
    │                parse()         Build IncomingRequest                │
    │                yield request   Dispatcher takes over                │
    │                                                                      │
    │    shutdown()            Stop after the current request             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        server = SocketServer(config)
        server.bind()
        for request in server.incoming_requests():
            with request:
                ...
    """

    def __init__(self, config: ServerConfig):
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._parser = RequestParser()

        self._running = False
        self._busy = False  # A request is being read or handled
        self._shutdown_event = threading.Event()

        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        """True from bind() until shutdown()."""
        return self._running

    @property
    def server_addr(self) -> str:
        """
        The address actually bound, e.g. "127.0.0.1:8000".

        Differs from config.address when a host name or port 0 was given.
        """
        if self._socket is None:
            raise RuntimeError("server is not bound")
        return format_address(self._socket.getsockname())

    def bind(self):
        """
        Resolve the configured address, bind and start listening.

        Raises:
            BindError: If the address is invalid, unresolvable or taken.
        """
        host, port = parse_address(self.config.address)

        try:
            infos = socket.getaddrinfo(
                host, port, type=socket.SOCK_STREAM, flags=socket.AI_PASSIVE
            )
        except socket.gaierror as e:
            raise BindError(f"cannot resolve {self.config.address}: {e}") from e

        family, socktype, proto, _, sockaddr = infos[0]
        sock = socket.socket(family, socktype, proto)

        try:
            # SO_REUSEADDR: restart right away instead of waiting out TIME_WAIT
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind(sockaddr)
            sock.listen(self.config.backlog)
        except OSError as e:
            sock.close()
            logger.debug(f"Failed to bind to {self.config.address}: {e}")
            raise BindError(f"cannot bind {self.config.address}: {e}") from e

        # accept() wakes up every second to check the running flag.
        sock.settimeout(1.0)

        self._socket = sock

        # Running from bind() on, so a shutdown() that comes before the
        # first request is pulled isn't forgotten.
        self._running = True
        self._shutdown_event.clear()
        logger.info(f"Bound to {self.server_addr}")

    def _setup_signals(self):
        """
        Install SIGTERM/SIGINT handlers that stop the accept loop.

        Python only allows this from the main thread; when embedded in
        another thread (tests) shutdown() is the way to stop.
        """
        if threading.current_thread() is not threading.main_thread():
            return

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, self._handle_signal)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, self._handle_signal)

    def _handle_signal(self, signum, frame):
        """
        Stop gracefully when idle, interrupt otherwise.

        While a request is being read or handled the loop may be blocked
        on a client that never finishes sending, so the signal raises
        KeyboardInterrupt instead. A second signal always does.
        """
        signal_name = signal.Signals(signum).name

        if self._busy or not self._running:
            logger.info(f"Received {signal_name}, interrupting")
            raise KeyboardInterrupt

        logger.info(f"Received {signal_name}, shutting down...")
        self.shutdown()

    def _restore_signals(self):
        """Restore original signal handlers."""
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def incoming_requests(self) -> Iterator[IncomingRequest]:
        """
        Accept connections and yield their requests, one at a time.

        The caller owns each yielded request and must close it (use it as
        a context manager). The next connection is not accepted until the
        caller asks for the next request.

        Requests whose head is malformed are answered here with an error
        status and never yielded.
        """
        if self._socket is None:
            self.bind()

        self._setup_signals()

        try:
            while self._running:
                conn = self._accept()
                if conn is None:
                    continue

                self._busy = True
                try:
                    request = self._read_request(conn)
                    if request is not None:
                        yield request
                finally:
                    self._busy = False
        finally:
            self._cleanup()

    def _accept(self) -> Optional[Connection]:
        """
        Wait up to a second for the next client.

        Returns:
            Wrapped connection, or None on timeout or shutdown.
        """
        try:
            client_socket, client_address = self._socket.accept()
        except socket.timeout:
            # Normal: lets the loop re-check self._running.
            return None
        except OSError as e:
            if self._running:
                logger.error(f"Accept error: {e}")
            self._running = False
            return None

        logger.debug(f"Accepted connection from {format_address(client_address)}")

        return Connection(
            socket=client_socket,
            address=client_address,
            buffer_size=self.config.buffer_size,
            timeout=self.config.timeout,
            max_header_size=self.config.max_header_size,
        )

    def _read_request(self, conn: Connection) -> Optional[IncomingRequest]:
        """
        Read and parse the head of a request.

        Returns:
            The request, or None if the client sent nothing usable (the
            connection is closed in that case).
        """
        try:
            head = conn.read_head()
            if head is None:
                logger.debug(f"[{conn.id}] Client closed before sending a request")
                conn.close()
                return None

            request = self._parser.parse(
                head,
                connection=conn,
                client_address=conn.address,
            )
        except HTTPParseError as e:
            logger.warning(f"[{conn.id}] Rejected request: {e}")
            self._reject(conn, e.status_code, str(e))
            return None
        except socket.timeout:
            logger.warning(f"[{conn.id}] Timed out waiting for request head")
            self._reject(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
            return None
        except OSError as e:
            logger.warning(f"[{conn.id}] Failed to read request: {e}")
            conn.close()
            return None

        request.body = RequestBody(
            conn.read_chunk,
            chunk_size=self.config.buffer_size,
            on_first_read=conn.send_continue if _expects_continue(request) else None,
        )
        return request

    def _reject(self, conn: Connection, status: HTTPStatus, message: str):
        """Answer a request that could not be read, then close."""
        with conn:
            try:
                respond(
                    conn,
                    status=status,
                    body=f"{message}\n".encode("utf-8", errors="replace"),
                    server_name=self.config.server_name,
                )
            except ResponseSendError as e:
                logger.debug(f"[{conn.id}] Could not send {int(status)}: {e}")

    def shutdown(self):
        """
        Stop accepting connections.

        Safe to call from a signal handler or another thread, and more
        than once.
        """
        logger.info("Shutting down listener...")
        self._running = False
        self._shutdown_event.set()

    def _cleanup(self):
        """Restore signal handlers and close the listening socket."""
        self._running = False
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        logger.info("Listener stopped")

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for shutdown() to be called.

        Returns:
            True if shutdown happened, False on timeout.
        """
        return self._shutdown_event.wait(timeout)


def _expects_continue(request: IncomingRequest) -> bool:
    expect = request.get_header("Expect", "")
    return expect.lower() == "100-continue" and request.version == "1.1"
