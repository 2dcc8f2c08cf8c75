"""
=============================================================================
HTTPRINT - Print Every HTTP Request That Arrives
=============================================================================

httprint listens on a TCP address, prints each incoming HTTP request as a
readable text block, and answers it with an empty 200 OK. Point a webhook
or an API client at it to see exactly what it sends.

    $ httprint
    Listening at 127.0.0.1:8000

    POST /hook HTTP/1.1
    Host: 127.0.0.1:8000
    Content-Type: application/json
    Content-Length: 17

    {"event": "push"}

    ---

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    httprint/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m httprint)
    ├── server.py            # Dispatcher loop and HTTPrintServer
    ├── render.py            # Request → report text
    ├── config.py            # ServerConfig dataclass
    ├── errors.py            # BindError, BodyReadError, ResponseSendError
    ├── core/                # Low-level networking
    │   ├── socket_server.py # Bind, accept, yield requests
    │   └── connection.py    # Buffered client socket
    └── http/                # HTTP protocol pieces
        ├── request.py       # IncomingRequest, read-once body, head parser
        ├── response.py      # Fixed empty response
        └── status_codes.py  # HTTP status enum

=============================================================================
"""

__version__ = "0.1.0"

from .server import HTTPrintServer, Dispatcher
from .config import ServerConfig
from .render import compose
from .errors import HttprintError, BindError, BodyReadError, ResponseSendError

__all__ = [
    "HTTPrintServer",
    "Dispatcher",
    "ServerConfig",
    "compose",
    "HttprintError",
    "BindError",
    "BodyReadError",
    "ResponseSendError",
    "__version__",
]
