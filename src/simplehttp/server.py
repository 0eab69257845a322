"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the pieces together: accept loop, dispatch, parse, file lookup, write.

=============================================================================
ONE EXCHANGE
=============================================================================

    1. CLIENT CONNECTS
       └── SocketServer accepts, wraps the socket in a Connection

    2. DISPATCH
       ├── "pool":        Connection queued on the ThreadPool
       └── "sequential":  served right here on the accept thread

    3. READ
       └── Connection.read_request(): up to buffer_size bytes

    4. PARSE
       └── RequestParser: version (fatal if unknown), method, resource, headers

    5. BUILD
       └── StaticFileHandler: 200 with the file, or 404 with the fragment

    6. WRITE + CLOSE
       └── sendall(response bytes), then close. No keep-alive.

=============================================================================
FAILURES
=============================================================================

    ┌──────────────────────────────┬──────────────────────────────────────┐
    │ What went wrong              │ What the client sees                 │
    ├──────────────────────────────┼──────────────────────────────────────┤
    │ nothing read                 │ close                                │
    │ VersionError                 │ close, no response                   │
    │ OSError / UnicodeDecodeError │ close, no response                   │
    │ anything else                │ close, no response, traceback logged │
    │ unknown method / bad headers │ normal response (absorbed)           │
    │ missing file / directory     │ 404 response                         │
    └──────────────────────────────┴──────────────────────────────────────┘

Every exchange that read at least one byte produces one access log record,
including the ones that ended without a response.

=============================================================================
"""

import logging
import threading
import time
from typing import Optional

from .config import ServerConfig
from .core import SocketServer, Connection, ConnectionState, ThreadPool
from .http import HTTPRequest, HTTPResponse, RequestParser, VersionError
from .handlers import StaticFileHandler
from . import access_log


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Static file server over raw TCP sockets.

    Usage:
        server = HTTPServer(ServerConfig(root_dir="/srv/www", port=8000))
        server.run()                     # Blocks until Ctrl+C / SIGTERM

    Or without sockets at all:
        server.respond(b"GET /readme.txt HTTP/1.1\\r\\n\\r\\n")
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._parser = RequestParser()
        self._handler = StaticFileHandler(
            self.config.root_dir,
            confine_to_root=self.config.confine_to_root,
            response_version=self.config.response_version,
        )

        self._served = 0
        self._served_lock = threading.Lock()

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    @property
    def address(self) -> tuple[str, int]:
        """Bound (host, port). With port 0, valid once wait_until_ready() returns."""
        return self._socket_server.address

    @property
    def served(self) -> int:
        """Number of exchanges that ended with a response written."""
        return self._served

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Serve until shutdown() or a signal (blocking).

        Args:
            host: Override config host.
            port: Override config port.
        """
        if host:
            self.config.host = host
        if port is not None:
            self.config.port = port

        self._setup_logging()

        if self.config.dispatch == "pool":
            self._thread_pool.start()

        logger.info(
            f"Serving {self._handler.root_dir} on {self.config.host}:{self.config.port} "
            f"(dispatch={self.config.dispatch})"
        )

        try:
            self._socket_server.start(self._dispatch)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._stop()

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("simplehttp").setLevel(level)

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server is accepting connections."""
        return self._socket_server.wait_until_ready(timeout)

    def shutdown(self):
        """Ask the accept loop to stop; run() returns shortly after."""
        self._socket_server.shutdown()

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Block until the accept loop has exited. False on timeout."""
        return self._socket_server.wait_for_shutdown(timeout)

    def _stop(self):
        if self.config.dispatch == "pool":
            # In-flight connections finish before run() returns
            self._thread_pool.shutdown(wait=True, timeout=self.config.timeout)
        logger.info(f"Server stopped after {self._served} exchanges")

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _dispatch(self, conn: Connection):
        """Called on the accept thread for every new connection."""
        if self.config.dispatch == "sequential":
            self.handle_connection(conn)
            return

        if not self._thread_pool.submit(self.handle_connection, args=(conn,)):
            logger.warning(f"[{conn.id}] Worker queue full, closing connection")
            conn.close()

    def handle_connection(self, conn: Connection):
        """
        Serve one connection start to finish, then close it.

        Never raises: every failure is logged and ends the exchange without
        a response.
        """
        started_at = time.time()
        request: Optional[HTTPRequest] = None
        response: Optional[HTTPResponse] = None
        error: Optional[BaseException] = None

        with conn:
            try:
                raw = conn.read_request()
                if not raw:
                    logger.debug(f"[{conn.id}] Client sent nothing, closing")
                    return

                conn.state = ConnectionState.PROCESSING
                request = self._parser.parse(raw, conn.address)
                response = self._handler.handle(request)

                if conn.send_response(response.to_bytes()):
                    self._count_served(conn)

            except VersionError as e:
                error = e
                logger.warning(f"[{conn.id}] {e}")
            except (OSError, UnicodeDecodeError) as e:
                error = e
                logger.error(f"[{conn.id}] Aborting exchange: {type(e).__name__}: {e}")
            except Exception as e:
                error = e
                logger.exception(f"[{conn.id}] Unexpected error: {e}")

            self._log_access(conn, started_at, request, response, error)

    def _log_access(self, conn, started_at, request, response, error):
        record = access_log.build_record(
            conn.id, conn.client_ip, started_at,
            request=request, response=response, error=error,
        )
        level = logging.INFO if error is None else logging.WARNING
        access_log.emit(record, self.config.log_format, level)

    def _count_served(self, conn: Connection):
        with self._served_lock:
            self._served += 1
            served = self._served
        logger.debug(f"[{conn.id}] Served connection #{served}")

    def respond(self, raw: bytes, client_address: tuple[str, int] = ("", 0)) -> bytes:
        """
        Response bytes for raw request bytes, no sockets involved.

        Raises:
            VersionError: The request line carries no known version.
            OSError: The target file could not be read.
            UnicodeDecodeError: The target file is not UTF-8.
        """
        request = self._parser.parse(raw, client_address)
        return self._handler.handle(request).to_bytes()


def create_app(config: Optional[ServerConfig] = None, **overrides) -> HTTPServer:
    """
    Build a server from a config plus keyword overrides.

    Example:
        server = create_app(root_dir="./public", port=0, dispatch="sequential")
    """
    config = config or ServerConfig()
    for name, value in overrides.items():
        if not hasattr(config, name):
            raise TypeError(f"Unknown config option: {name}")
        setattr(config, name, value)
    return HTTPServer(config)
