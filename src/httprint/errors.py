"""
=============================================================================
ERROR KINDS
=============================================================================

Every failure httprint knows how to report is one of a small, closed set
of exception classes. The dispatcher matches on them explicitly instead of
catching a catch-all error type.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         ERROR HIERARCHY                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   HttprintError                                                      │
    │   ├── BindError           startup only, FATAL                       │
    │   ├── BodyReadError       per request, reported, loop continues     │
    │   └── ResponseSendError   per request, reported, loop continues     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A body that is not valid UTF-8 is NOT an error. The renderer replaces it
with placeholder text and the request is handled normally.

=============================================================================
"""


class HttprintError(Exception):
    """
    Base class for all httprint failures.

    Carries a human-readable message; str(error) is what ends up on the
    error stream, so it should fit on one line.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BindError(HttprintError):
    """The listening address could not be parsed, resolved or bound."""


class BodyReadError(HttprintError):
    """Reading the declared request body from the client failed."""


class ResponseSendError(HttprintError):
    """Writing the response back to the client failed."""
