"""
=============================================================================
HTTP RESPONSE ENCODING
=============================================================================

httprint answers every request it reads the same way: 200 OK, no body.
This module builds that response and writes it to the client.

=============================================================================
WIRE FORMAT
=============================================================================

    HTTP/1.1 200 OK\r\n                         ← Status line
    Content-Length: 0\r\n                       ← Empty body
    Connection: close\r\n                       ← One request per connection
    Date: Mon, 19 Oct 2026 12:00:00 GMT\r\n     ← Auto-added
    Server: httprint/0.1\r\n                    ← Auto-added
    \r\n                                        ← End of head, no body follows

Content-Length: 0 matters even for an empty body: without it (and with
Connection: close missing) a client can't tell the response has ended.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional

from .status_codes import HTTPStatus


DEFAULT_SERVER_NAME = "httprint/0.1"


@dataclass
class HTTPResponse:
    """
    Represents an HTTP response to be sent to the client.

        HTTPResponse           to_bytes()             Connection
        (status, headers) ───► serializes ───────►    send_response()
    """

    status: HTTPStatus = HTTPStatus.OK       # HTTP status code (enum)
    headers: Dict[str, str] = field(default_factory=dict)  # Response headers
    body: bytes = b""                        # Response body
    version: str = "HTTP/1.1"                # HTTP version

    @property
    def status_line(self) -> str:
        """
        Get the HTTP status line.

        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 200 OK"
        """
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """
        Set a response header.

        Returns self for method chaining:
            response.set_header("Connection", "close").set_header("X-A", "1")
        """
        self.headers[name] = value
        return self

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """
        Serialize the response to bytes for sending over the socket.

        Content-Length, Date and Server are filled in unless already set.
        """
        response_headers = dict(self.headers)

        if "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(len(self.body))

        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))

        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")

        # Empty line separates headers from body
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("latin-1") + b"\r\n"
        return header_bytes + self.body


def empty_response(status: HTTPStatus = HTTPStatus.OK, body: bytes = b"") -> HTTPResponse:
    """
    Build the response sent for every handled request.

    The connection is always closed afterwards, so say so.
    """
    return (HTTPResponse(status=status, body=body)
        .set_header("Connection", "close"))


def respond(
    connection,
    status: HTTPStatus = HTTPStatus.OK,
    body: bytes = b"",
    server_name: str = DEFAULT_SERVER_NAME,
) -> None:
    """
    Send the fixed response for a request.

    Args:
        connection: Anything with send_response(bytes); None sends nothing
                    (requests built without a client, e.g. in tests).
        status: Status code, 200 unless the listener is rejecting a request.
        body: Response body, empty for handled requests.
        server_name: Value for the Server header.

    Raises:
        ResponseSendError: If the connection write fails.
    """
    if connection is None:
        return

    response = empty_response(status, body)
    connection.send_response(response.to_bytes(server_name))


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Mon, 19 Oct 2026 12:00:00 GMT

    HTTP dates are ALWAYS in GMT, and the names are English no matter what
    the process locale is, so strftime's %a/%b can't be used.
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, {dt.day:02d} {months[dt.month - 1]} "
        f"{dt.year:04d} {dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )
