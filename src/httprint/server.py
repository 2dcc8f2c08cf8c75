"""
=============================================================================
DISPATCHER
=============================================================================

The loop that ties httprint together: take the next request from the
listener, print its report, answer 200, repeat.

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    ┌──────────┐  accept   ┌────────────────────────────────────────────┐
    │   IDLE   │ ────────► │                 HANDLING                   │
    │ (waiting │           │                                            │
    │  for the │           │   1. compose(request)     render report    │
    │   next   │           │   2. out.write(report)    one single write │
    │ request) │           │   3. respond(connection)  200, empty body  │
    │          │ ◄──────── │   4. close connection                      │
    └──────────┘   done    └────────────────────────────────────────────┘
                 (or failure reported on err)

There is no other state. The loop ends only when the listener stops
yielding requests (SIGINT/SIGTERM).

=============================================================================
FAILURE ISOLATION
=============================================================================

Nothing that goes wrong while handling one request may stop the next one
from being handled:

    BodyReadError       → reported, no report printed, 200 still attempted
    ResponseSendError   → reported
    anything else       → reported, traceback logged at DEBUG

Reporting means one line on the error stream. Report blocks on the output
stream stay whole: a block is written with a single write() call, so
diagnostics never land inside one.

=============================================================================
"""

import logging
import sys
from typing import Iterable, Optional, TextIO

from .config import ServerConfig
from .core import SocketServer
from .errors import BodyReadError, HttprintError, ResponseSendError
from .http.request import IncomingRequest
from .http.response import DEFAULT_SERVER_NAME, respond
from .render import compose


logger = logging.getLogger(__name__)


class Dispatcher:
    """
    Sequential request handler.

    Output and error streams are passed in, so tests can capture them
    without redirecting the process's stdout/stderr.

    Usage:
        dispatcher = Dispatcher(server.incoming_requests())
        dispatcher.serve()  # Blocks until the listener stops
    """

    def __init__(
        self,
        requests: Iterable[IncomingRequest],
        out: Optional[TextIO] = None,
        err: Optional[TextIO] = None,
        server_name: str = DEFAULT_SERVER_NAME,
    ):
        self.requests = requests
        self.out = out if out is not None else sys.stdout
        self.err = err if err is not None else sys.stderr
        self.server_name = server_name

        self.handled = 0
        self.failed = 0

    def serve(self):
        """Handle every request the source yields, in order."""
        for request in self.requests:
            self.handle(request)

        logger.info(f"Dispatcher stopped: {self.handled} handled, {self.failed} failed")

    def handle(self, request: IncomingRequest) -> bool:
        """
        Print one request and answer it.

        Never raises; failures are reported on the error stream.

        Returns:
            True if the report was printed and the response sent.
        """
        ok = True

        with request:
            try:
                self._print_report(request)
            except BodyReadError as e:
                self._report(e)
                ok = False
            except Exception as e:
                logger.debug("Printing report failed", exc_info=True)
                self._report(e)
                ok = False

            # The client gets its 200 whatever happened above.
            try:
                respond(request.connection, server_name=self.server_name)
            except ResponseSendError as e:
                self._report(e)
                ok = False
            except Exception as e:
                logger.debug("Sending response failed", exc_info=True)
                self._report(e)
                ok = False

        self.handled += 1
        if not ok:
            self.failed += 1
        return ok

    def _print_report(self, request: IncomingRequest):
        report = compose(request)

        # Blank line after each block; one write keeps the block together.
        self.out.write(report + "\n")
        self.out.flush()

    def _report(self, error: Exception):
        """Write one line describing a failure to the error stream."""
        if isinstance(error, HttprintError):
            line = error.message
        else:
            line = f"{type(error).__name__}: {error}"

        # A broken error stream must not stop the loop either.
        try:
            self.err.write(line.replace("\n", " ") + "\n")
            self.err.flush()
        except Exception:
            logger.exception(f"Could not report failure: {line}")


class HTTPrintServer:
    """
    The inspector: a listener plus a dispatcher.

    =========================================================================
    USAGE
    =========================================================================

        server = HTTPrintServer(ServerConfig(address="0.0.0.0:9000"))
        server.run()  # Blocks until Ctrl+C

    Binding can be done ahead of run(), e.g. to learn the port the OS
    picked for "127.0.0.1:0":

        server.bind()
        port = server.server_addr.rsplit(":", 1)[1]

    =========================================================================
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        out: Optional[TextIO] = None,
        err: Optional[TextIO] = None,
    ):
        self.config = config or ServerConfig()
        self.config.validate()  # Fail-fast on invalid config

        self.out = out if out is not None else sys.stdout
        self.err = err if err is not None else sys.stderr

        self._socket_server = SocketServer(self.config)
        self._bound = False

    @property
    def server_addr(self) -> str:
        """The resolved address being listened on."""
        return self._socket_server.server_addr

    def bind(self):
        """
        Bind the listening address.

        Raises:
            BindError: If the address cannot be bound.
        """
        self._socket_server.bind()
        self._bound = True

    def run(self) -> Dispatcher:
        """
        Inspect requests until the listener is shut down (blocking).

        Returns:
            The dispatcher, for its handled/failed counters.

        Raises:
            BindError: If the address cannot be bound.
        """
        if not self._bound:
            self.bind()

        print(f"Listening at {self.server_addr}\n", file=self.out, flush=True)

        requests = self._socket_server.incoming_requests()
        dispatcher = Dispatcher(
            requests,
            out=self.out,
            err=self.err,
            server_name=self.config.server_name,
        )
        try:
            dispatcher.serve()
        finally:
            # Restores signal handlers when serve() was interrupted.
            requests.close()
        return dispatcher

    def shutdown(self):
        """Stop after the request currently being handled."""
        self._socket_server.shutdown()
