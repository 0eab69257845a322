"""
=============================================================================
SIMPLEHTTP - Minimal Static File Server Over Raw Sockets
=============================================================================

Listens on a TCP port, reads one request per connection, and answers with
the named file from a root directory or a 404 page.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    simplehttp/
    ├── __init__.py          # Package exports
    ├── __main__.py          # CLI entry point (python -m simplehttp)
    ├── server.py            # HTTPServer: dispatch and per-connection flow
    ├── config.py            # ServerConfig dataclass
    ├── access_log.py        # Structured access records
    ├── core/
    │   ├── socket_server.py # Listening socket and accept loop
    │   ├── connection.py    # Bounded read, write, close
    │   └── thread_pool.py   # Worker threads for "pool" dispatch
    ├── http/
    │   ├── request.py       # Scanner, version/method/resource/header parsing
    │   ├── response.py      # HTTPResponse and its wire format
    │   └── status_codes.py  # ResponseStatus, AcceptRanges
    └── handlers/
        └── static.py        # Filesystem lookup → response

=============================================================================
QUICK START
=============================================================================

    from simplehttp import HTTPServer, ServerConfig

    server = HTTPServer(ServerConfig(root_dir="./public", port=8000))
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .server import HTTPServer, create_app
from .http import (
    HTTPRequest,
    HTTPResponse,
    RequestParser,
    parse_request,
    ProtocolVersion,
    Method,
    Resource,
    VersionError,
    ResponseStatus,
    AcceptRanges,
)
from .handlers import StaticFileHandler

__all__ = [
    "__version__",
    "HTTPServer",
    "ServerConfig",
    "create_app",
    "HTTPRequest",
    "HTTPResponse",
    "RequestParser",
    "parse_request",
    "ProtocolVersion",
    "Method",
    "Resource",
    "VersionError",
    "ResponseStatus",
    "AcceptRanges",
    "StaticFileHandler",
]
