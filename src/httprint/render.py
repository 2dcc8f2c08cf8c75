"""
=============================================================================
REQUEST RENDERING
=============================================================================

Turns an IncomingRequest into the text block printed for it. Everything
here is a plain function over the request; the only side effect is
consuming the request body stream.

=============================================================================
REPORT LAYOUT
=============================================================================

    POST /hook HTTP/1.1                 ◄── request line
    Host: example.com                   ◄── headers, arrival order
    Content-Type: application/json
                                        ◄── blank line (only with a body)
    {"event": "push"}                   ◄── body text (only with a body)

    ---                                 ◄── separator

Without a body the headers are followed directly by the blank line and
the separator.

=============================================================================
BODY POLICY
=============================================================================

The body is judged by its declared Content-Type, never by sniffing bytes:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   Content-Length missing or 0?                                       │
    │       └── yes → no body section, body stream untouched              │
    │                                                                      │
    │   Content-Type contains "application/octet-stream"?                  │
    │       └── yes → drain the bytes, show "[binary data]"               │
    │                                                                      │
    │   Body decodes as strict UTF-8?                                      │
    │       ├── yes → show the text exactly                                │
    │       └── no  → show "[non utf8 data]"                               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A missing Content-Type counts as "text/plain". Bodies are shown whole or
replaced whole; nothing is truncated.

=============================================================================
"""

from typing import Optional

from .http.request import IncomingRequest


DEFAULT_CONTENT_TYPE = "text/plain"
BINARY_CONTENT_TYPE = "application/octet-stream"

BINARY_PLACEHOLDER = "[binary data]"
NON_UTF8_PLACEHOLDER = "[non utf8 data]"

SEPARATOR = "---"


def render_request_line(request: IncomingRequest) -> str:
    """
    Format the request line, e.g. "GET /status HTTP/1.1".

    Method and URL are passed through verbatim.
    """
    return f"{request.method} {request.url} HTTP/{request.version}"


def render_headers(request: IncomingRequest) -> str:
    """Format headers one per line as "Field: value", in arrival order."""
    return "\n".join(f"{header.field}: {header.value}" for header in request.headers)


def find_content_type(request: IncomingRequest) -> str:
    """
    Get the declared Content-Type.

    The first matching header wins, compared case-insensitively.
    """
    return request.get_header("Content-Type", DEFAULT_CONTENT_TYPE)


def render_body(request: IncomingRequest) -> Optional[str]:
    """
    Render the request body.

    Returns:
        Body text or a placeholder, or None when there is no body to show.

    Raises:
        BodyReadError: If reading the body from the client fails.
    """
    length = request.body_length or 0
    if length == 0:
        return None

    content_type = find_content_type(request)

    if BINARY_CONTENT_TYPE in content_type:
        # Still take the bytes off the wire, just don't look at them.
        request.body.discard(length)
        return BINARY_PLACEHOLDER

    data = request.body.read(length)

    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return NON_UTF8_PLACEHOLDER


def compose(request: IncomingRequest) -> str:
    """
    Build the complete report for one request.

    Example:
        "GET /status HTTP/1.1\\nHost: example.com\\n\\n---\\n"

    Raises:
        BodyReadError: If reading the body from the client fails.
    """
    parts = [render_request_line(request), "\n", render_headers(request), "\n"]

    body = render_body(request)
    if body is not None:
        parts.extend(["\n", body, "\n"])

    parts.extend(["\n", SEPARATOR, "\n"])
    return "".join(parts)
