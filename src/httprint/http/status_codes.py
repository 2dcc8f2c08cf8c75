"""
=============================================================================
HTTP STATUS CODES (RFC 7231)
=============================================================================

The status codes httprint actually sends, with their reason phrases.

    ┌────────────────────────────────────────────────────────────────────┐
    │                      STATUS CODES IN USE                           │
    ├────────┬───────────────────────────────────────────────────────────┤
    │  100   │ Continue - client asked "Expect: 100-continue"           │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  200   │ OK - every request that was read, whatever its content   │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  400   │ Bad Request - malformed request line or headers          │
    │  408   │ Request Timeout - head not received within the timeout   │
    │  431   │ Request Header Fields Too Large - head over the limit    │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  505   │ HTTP Version Not Supported - not HTTP/1.0 or HTTP/1.1    │
    └────────┴───────────────────────────────────────────────────────────┘

Error codes are only ever sent by the listener, for requests that never
become an IncomingRequest.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    This enum extends IntEnum, so status codes can be used as integers:

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.OK.phrase
        'OK'
    """

    CONTINUE = 100                          # Keep sending the request body

    OK = 200                                # Standard success response

    BAD_REQUEST = 400                       # Malformed request syntax
    REQUEST_TIMEOUT = 408                   # Client took too long to send request
    REQUEST_HEADER_FIELDS_TOO_LARGE = 431   # Headers too large

    HTTP_VERSION_NOT_SUPPORTED = 505        # HTTP version not supported

    @property
    def phrase(self) -> str:
        """
        Get the reason phrase for this status code.

            HTTP/1.1 200 OK
                     ─── ──
                      │   │
                      │   └── Reason phrase
                      └────── Status code
        """
        return _STATUS_PHRASES.get(self, "Unknown")


_STATUS_PHRASES = {
    HTTPStatus.CONTINUE: "Continue",
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE: "Request Header Fields Too Large",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}
