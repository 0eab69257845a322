"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Every knob the server has, in one dataclass.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    Priority (highest to lowest):

    1. Command-line arguments      python -m simplehttp --port 8000
    2. Environment variables       SIMPLEHTTP_PORT=8000 python -m simplehttp
    3. Dataclass defaults          127.0.0.1:5500, root = current directory

=============================================================================
THE SERVED ROOT IS INJECTED, NOT LOOKED UP
=============================================================================

The static handler never calls os.getcwd() while answering a request. The
root is captured once, here, when the configuration object is created, and
handed to the handler. Changing the process directory afterwards does not
change what the server serves, and tests can point a server at a tmp_path
without chdir.

=============================================================================
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from .http.request import ProtocolVersion


DISPATCH_MODES = ("pool", "sequential")
LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    HTTP server configuration.

    Example:
        config = ServerConfig(port=8000, root_dir="/srv/www", dispatch="sequential")
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """Loopback by default; use "0.0.0.0" to listen on every interface."""

    port: int = 5500
    """Port to listen on. 0 lets the OS choose (see HTTPServer.address)."""

    backlog: int = 128
    """Maximum number of queued, not yet accepted connections."""

    buffer_size: int = 1024
    """
    Upper bound on bytes read per request.
    Anything beyond is silently truncated, not rejected.
    """

    timeout: Optional[float] = 30.0
    """
    Socket timeout for reads and writes on client connections.
    None blocks forever on a stalled peer.
    """

    # ─────────────────────────────────────────────────────────────────────
    # FILE SERVING
    # ─────────────────────────────────────────────────────────────────────

    root_dir: str = field(default_factory=os.getcwd)
    """Directory resource paths are resolved against."""

    confine_to_root: bool = True
    """
    Answer 404 for targets resolving outside root_dir ("..", absolute
    segments, symlinks). False restores the unsanitised join.
    """

    response_version: Optional[ProtocolVersion] = None
    """
    Protocol version written on every status line.
    None echoes the request's version. ProtocolVersion.V2_0 reproduces the
    legacy behaviour of always answering "HTTP/2".
    """

    # ─────────────────────────────────────────────────────────────────────
    # DISPATCH
    # ─────────────────────────────────────────────────────────────────────

    dispatch: str = "pool"
    """
    "pool"       - connections are handed to a ThreadPool
    "sequential" - the accept loop serves each connection itself
    """

    min_workers: int = 4
    max_workers: int = 16
    queue_size: int = 100
    """Pending connections the pool holds before rejecting new ones."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    log_format: str = "text"
    """Access log format: 'text' (Apache style) or 'json'."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        SIMPLEHTTP_HOST       Server host (default: 127.0.0.1)
        SIMPLEHTTP_PORT       Server port (default: 5500)
        SIMPLEHTTP_ROOT       Served directory (default: current directory)
        SIMPLEHTTP_WORKERS    Max worker threads (default: 16)
        SIMPLEHTTP_DISPATCH   pool | sequential (default: pool)
        SIMPLEHTTP_TIMEOUT    Socket timeout in seconds (default: 30)
        SIMPLEHTTP_LOG_LEVEL  Logging level (default: INFO)
        """
        return cls(
            host=os.getenv("SIMPLEHTTP_HOST", "127.0.0.1"),
            port=int(os.getenv("SIMPLEHTTP_PORT", "5500")),
            root_dir=os.getenv("SIMPLEHTTP_ROOT") or os.getcwd(),
            max_workers=int(os.getenv("SIMPLEHTTP_WORKERS", "16")),
            dispatch=os.getenv("SIMPLEHTTP_DISPATCH", "pool"),
            timeout=float(os.getenv("SIMPLEHTTP_TIMEOUT", "30")),
            log_level=os.getenv("SIMPLEHTTP_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """Fail fast at startup instead of on the first request."""
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.dispatch not in DISPATCH_MODES:
            raise ValueError(f"dispatch must be one of {DISPATCH_MODES}, got {self.dispatch!r}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}, got {self.log_format!r}")

        if not os.path.isdir(self.root_dir):
            raise ValueError(f"root_dir is not a directory: {self.root_dir}")
