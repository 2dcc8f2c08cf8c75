"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the inspector.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line argument (the listen ADDRESS only)                │
    │      └── httprint 0.0.0.0:9000                                      │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── HTTPRINT_LOG_LEVEL=DEBUG httprint                          │
    │                                                                      │
    │   3. Default values (in this dataclass)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The command line is deliberately tiny (one optional ADDRESS), so every
other knob lives in the environment.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


DEFAULT_ADDRESS = "127.0.0.1:8000"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ServerConfig:
    """
    Configuration for the inspector.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - address, backlog, buffer_size, timeout

    HTTP SETTINGS
    - max_header_size, server_name

    LOGGING
    - log_level

    =========================================================================
    """

    # =========================================================================
    # NETWORK SETTINGS
    # =========================================================================

    address: str = DEFAULT_ADDRESS
    """
    The address to listen on, as "host:port" text.

    - "127.0.0.1:8000" - Localhost only (default)
    - "0.0.0.0:8000"   - All IPv4 interfaces
    - "[::1]:8000"     - IPv6 loopback
    - "127.0.0.1:0"    - Let the OS pick a free port
    """

    backlog: int = 128
    """
    Maximum number of queued connections.

    Requests are handled one at a time, so bursts wait in this queue.
    """

    buffer_size: int = 8192
    """
    Size of each recv() call in bytes (8 KB default).
    """

    timeout: Optional[float] = None
    """
    Socket timeout for client connections, in seconds.

    None = block until the client sends the declared bytes or hangs up.
    Set this when a misbehaving client could stall the whole loop.
    """

    # =========================================================================
    # HTTP SETTINGS
    # =========================================================================

    max_header_size: int = 64 * 1024  # 64 KB
    """
    Maximum size of the request line plus headers.

    Larger heads are answered with 431 Request Header Fields Too Large.
    """

    server_name: str = "httprint/0.1"
    """
    Value of the Server header on every response.
    """

    # =========================================================================
    # LOGGING
    # =========================================================================

    log_level: str = "WARNING"
    """
    Logging level for diagnostics on stderr.

    WARNING keeps stderr limited to real problems; DEBUG shows every
    accepted connection.
    """

    @classmethod
    def from_env(cls, address: Optional[str] = None) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTPRINT_LOG_LEVEL    Logging level (default: WARNING)
        HTTPRINT_TIMEOUT      Client socket timeout in seconds (default: none)
        HTTPRINT_BACKLOG      Listen backlog (default: 128)
        HTTPRINT_BUFFER_SIZE  recv() size in bytes (default: 8192)

        =====================================================================

        Args:
            address: Listen address from the command line, if any.
        """
        timeout = os.getenv("HTTPRINT_TIMEOUT")
        return cls(
            address=address or DEFAULT_ADDRESS,
            backlog=int(os.getenv("HTTPRINT_BACKLOG", "128")),
            buffer_size=int(os.getenv("HTTPRINT_BUFFER_SIZE", "8192")),
            timeout=float(timeout) if timeout else None,
            log_level=os.getenv("HTTPRINT_LOG_LEVEL", "WARNING"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        The address itself is checked when binding, where a bad address is
        reported as a BindError like any other bind failure.
        """
        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.max_header_size < 1024:
            raise ValueError("max_header_size must be >= 1024")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.log_level}")
