"""
=============================================================================
HTTP PROTOCOL COMPONENTS
=============================================================================

    request.py       IncomingRequest, RequestBody, RequestParser
    response.py      HTTPResponse, respond()
    status_codes.py  HTTPStatus enum

=============================================================================
"""

from .request import (
    IncomingRequest,
    RequestBody,
    RequestParser,
    Header,
    HTTPParseError,
    BodyConsumedError,
    parse_request,
)
from .response import HTTPResponse, empty_response, respond, format_http_date
from .status_codes import HTTPStatus

__all__ = [
    # Requests
    "IncomingRequest",
    "RequestBody",
    "RequestParser",
    "Header",
    "HTTPParseError",
    "BodyConsumedError",
    "parse_request",

    # Responses
    "HTTPResponse",
    "empty_response",
    "respond",
    "format_http_date",

    # Status codes
    "HTTPStatus",
]
