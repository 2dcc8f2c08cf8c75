"""
=============================================================================
HTTP REQUEST MODEL AND HEAD PARSING
=============================================================================

This module turns the bytes of a request head into an IncomingRequest,
and wraps the request body in a read-once stream.

=============================================================================
WHAT AN INSPECTOR NEEDS FROM A PARSER
=============================================================================

A normal web framework parser NORMALIZES: it lowercases header names,
merges duplicate headers, URL-decodes the path. An inspector must do the
opposite and keep what arrived:

    ┌─────────────────────────────────────────────────────────────────────┐
    │              FRAMEWORK PARSER vs INSPECTOR PARSER                    │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   "X-Trace: a" + "X-Trace: b"                                       │
    │       framework: {"x-trace": "a, b"}                                │
    │       inspector: [("X-Trace", "a"), ("X-Trace", "b")]               │
    │                                                                      │
    │   "GET /a%20b?q=1 HTTP/1.1"                                         │
    │       framework: path="/a b", query={"q": ["1"]}                    │
    │       inspector: url="/a%20b?q=1"                                   │
    │                                                                      │
    │   "PROPFIND / HTTP/1.1"                                             │
    │       framework: 405 Method Not Allowed                             │
    │       inspector: method="PROPFIND"                                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
THE BODY IS A STREAM, NOT A BYTES ATTRIBUTE
=============================================================================

The head is read eagerly; the body is NOT. It stays in the socket until
somebody asks for it, and it can only be asked for once:

    read_head()  ──►  RequestParser.parse()  ──►  IncomingRequest
                                                       │
                                                       └── body: RequestBody
                                                              │
                                                              └── read(n) once

RequestBody enforces the "once" part: a second read raises
BodyConsumedError instead of silently returning nothing.

=============================================================================
"""

import io
import re
from dataclasses import dataclass, field
from typing import Any, Callable, List, NamedTuple, Optional, Tuple

from ..errors import BodyReadError
from .status_codes import HTTPStatus


ChunkReader = Callable[[int], bytes]


class HTTPParseError(Exception):
    """
    Raised when a request head cannot be parsed.

    Carries the HTTP status code the listener should answer with:

        400 Bad Request                      - Malformed request syntax
        431 Request Header Fields Too Large  - Head exceeds the size limit
        505 HTTP Version Not Supported       - Not HTTP/1.0 or HTTP/1.1
    """

    def __init__(self, message: str, status_code: int = HTTPStatus.BAD_REQUEST):
        super().__init__(message)
        self.status_code = HTTPStatus(status_code)


class BodyConsumedError(RuntimeError):
    """Raised when a request body is read a second time."""


class Header(NamedTuple):
    """One header line, exactly as received."""

    field: str
    value: str


class RequestBody:
    """
    Read-once wrapper around the body bytes of a request.

    The underlying source is a chunk reader: a callable taking a maximum
    size and returning up to that many bytes, or b"" at end of stream.
    A Connection provides one backed by its socket; tests use from_bytes().

    =========================================================================
    READ-TO-END SEMANTICS
    =========================================================================

    read(10) on a client that declared Content-Length: 10 but only sent 6
    bytes before closing returns those 6 bytes. A short body is not an
    error; a failing socket is.

        chunk reader returns      read(10) result
        ─────────────────────     ───────────────
        b"hello", b"world"        b"helloworld"
        b"hel", b""               b"hel"
        raises OSError            BodyReadError

    =========================================================================
    """

    def __init__(
        self,
        reader: ChunkReader,
        chunk_size: int = 8192,
        on_first_read: Optional[Callable[[], Any]] = None,
    ):
        """
        Args:
            reader: Chunk reader returning b"" at end of stream.
            chunk_size: Largest chunk requested from the reader at once.
            on_first_read: Called once right before the first byte is
                           requested (used to send "100 Continue").
        """
        self._reader = reader
        self._chunk_size = chunk_size
        self._on_first_read = on_first_read
        self._consumed = False

    @classmethod
    def from_bytes(cls, data: bytes) -> "RequestBody":
        """Create a body over in-memory bytes."""
        return cls(io.BytesIO(data).read)

    @classmethod
    def empty(cls) -> "RequestBody":
        """Create a body with nothing in it."""
        return cls.from_bytes(b"")

    @property
    def consumed(self) -> bool:
        """True once read() or discard() has been called."""
        return self._consumed

    def read(self, length: int) -> bytes:
        """
        Read up to `length` bytes of body.

        Raises:
            BodyConsumedError: If the body was already read or discarded.
            BodyReadError: If the underlying stream fails.
        """
        chunks = []
        for chunk in self._consume(length):
            chunks.append(chunk)
        return b"".join(chunks)

    def discard(self, length: int) -> int:
        """
        Read and drop up to `length` bytes of body.

        Used for bodies that are never shown, so the bytes the client sent
        are still taken off the connection.

        Returns:
            Number of bytes drained.
        """
        drained = 0
        for chunk in self._consume(length):
            drained += len(chunk)
        return drained

    def _consume(self, length: int):
        if self._consumed:
            raise BodyConsumedError("request body already consumed")
        self._consumed = True

        try:
            if self._on_first_read is not None:
                self._on_first_read()

            remaining = length
            while remaining > 0:
                chunk = self._reader(min(remaining, self._chunk_size))
                if not chunk:
                    break  # Client closed before sending everything
                remaining -= len(chunk)
                yield chunk
        except OSError as e:
            raise BodyReadError(f"failed to read request body: {e}") from e


@dataclass
class IncomingRequest:
    """
    One accepted HTTP request.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:         Method token as sent ("GET", "post", "PROPFIND")
        url:            Request target as sent, query string included
        version:        Protocol version without prefix ("1.1", "1.0")
        headers:        Header(field, value) list in arrival order,
                        duplicates kept, field case kept
        body_length:    Declared Content-Length, None if not declared
        body:           Read-once RequestBody
        connection:     The client connection the response goes to
                        (None for requests built in tests)
        client_address: (ip, port) of the client

    =========================================================================
    OWNERSHIP
    =========================================================================

    A request belongs to whoever is handling it, for one cycle only. Using
    it as a context manager closes its connection on the way out:

        with request:
            report = compose(request)
            respond(request.connection)

    =========================================================================
    """

    method: str
    url: str
    version: str = "1.1"
    headers: List[Header] = field(default_factory=list)
    body_length: Optional[int] = None
    body: RequestBody = field(default_factory=RequestBody.empty)
    connection: Optional[Any] = field(default=None, repr=False)
    client_address: Tuple[str, int] = ("", 0)

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get the first value of a header (case-insensitive lookup).

        Example:
            request.get_header("content-type")  # matches "Content-Type"
        """
        wanted = name.lower()
        for header in self.headers:
            if header.field.lower() == wanted:
                return header.value
        return default

    def close(self):
        """Close the underlying connection, if any."""
        if self.connection is not None:
            self.connection.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class RequestParser:
    """
    Parses request head bytes into IncomingRequest objects.

    ==========================================================================
    REGEX PATTERNS
    ==========================================================================

    REQUEST_LINE_PATTERN: ^([^\\s]+) ([^ ]+) HTTP/(\\d\\.\\d)$
        ([^\\s]+)   - METHOD, any token (custom methods are welcome here)
        ([^ ]+)     - Request target, kept verbatim
        (\\d\\.\\d)   - Version digits only, "HTTP/" is dropped

    HEADER_PATTERN: ^([^:]+):\\s*(.*)$
        ([^:]+)     - Field name, case kept
        (.*)        - Value, surrounding whitespace trimmed afterwards

    CONTENT_LENGTH_PATTERN: ^[0-9]+\\Z
        ASCII digits only, no sign, no underscores

    ==========================================================================
    """

    SUPPORTED_VERSIONS = {"1.0", "1.1"}

    REQUEST_LINE_PATTERN = re.compile(r"^([^\s]+) ([^ ]+) HTTP/(\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")
    CONTENT_LENGTH_PATTERN = re.compile(r"^[0-9]+\Z")

    def parse(
        self,
        head: bytes,
        body: Optional[RequestBody] = None,
        connection: Optional[Any] = None,
        client_address: Tuple[str, int] = ("", 0),
    ) -> IncomingRequest:
        """
        Parse a request head.

        Args:
            head: Bytes up to (not including) the blank line ending the head.
            body: Body stream for this request; empty if not given.
            connection: Connection the request arrived on.
            client_address: Client's (ip, port) tuple.

        Raises:
            HTTPParseError: If the head is malformed.
        """
        # Latin-1 maps every byte to a character, so odd header bytes are
        # shown as-is rather than aborting the parse.
        text = head.decode("latin-1")

        lines = text.split("\r\n")
        if not lines or not lines[0]:
            raise HTTPParseError("Empty request line")

        method, url, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])
        body_length = self._parse_content_length(headers)

        return IncomingRequest(
            method=method,
            url=url,
            version=version,
            headers=headers,
            body_length=body_length,
            body=body if body is not None else RequestBody.empty(),
            connection=connection,
            client_address=client_address,
        )

    def _parse_request_line(self, line: str) -> Tuple[str, str, str]:
        """
        Parse "METHOD SP REQUEST-TARGET SP HTTP-VERSION".

        Returns:
            Tuple of (method, url, version)
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, url, version = match.groups()

        if version not in self.SUPPORTED_VERSIONS:
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=HTTPStatus.HTTP_VERSION_NOT_SUPPORTED,
            )

        return method, url, version

    def _parse_headers(self, lines: List[str]) -> List[Header]:
        """
        Parse header lines, keeping order, case and duplicates.

        Obsolete line folding (a line starting with whitespace) continues
        the previous header's value. Lines without a colon are skipped.
        """
        headers: List[Header] = []

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if headers:
                    previous = headers[-1]
                    headers[-1] = Header(
                        previous.field, f"{previous.value} {line.strip()}"
                    )
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue  # Lenient: skip malformed lines

            name, value = match.groups()
            headers.append(Header(name.rstrip(), value.strip()))

        return headers

    def _parse_content_length(self, headers: List[Header]) -> Optional[int]:
        """
        Get the declared body length.

        Transfer-Encoding overrides Content-Length; since transfer codings
        are not decoded, such a request has no declared length.

        Returns:
            Content-Length value, or None when the header is absent.
        """
        if any(header.field.lower() == "transfer-encoding" for header in headers):
            return None

        for header in headers:
            if header.field.lower() != "content-length":
                continue
            # int() alone would take "+5" and "1_000"
            if not self.CONTENT_LENGTH_PATTERN.match(header.value):
                raise HTTPParseError(f"Invalid Content-Length: {header.value!r}")
            return int(header.value)

        return None


def parse_request(head: bytes, body: bytes = b"") -> IncomingRequest:
    """
    Convenience function to parse a head and attach an in-memory body.

    Handy in tests and scripts:

        request = parse_request(b"POST / HTTP/1.1\\r\\nContent-Length: 2", b"hi")
    """
    return RequestParser().parse(head, body=RequestBody.from_bytes(body))
