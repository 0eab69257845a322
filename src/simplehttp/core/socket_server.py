"""
=============================================================================
SOCKET SERVER
=============================================================================

Owns the listening TCP socket and the accept loop. Everything above the
byte level (parsing, files, responses) lives in HTTPServer; this class only
turns accepted sockets into Connection objects and hands them over.

=============================================================================
SOCKET SETUP
=============================================================================

    socket(AF_INET, SOCK_STREAM)
        │
        ├── SO_REUSEADDR   rebind at once after a restart (no TIME_WAIT wait)
        ├── TCP_NODELAY    small responses leave immediately
        ├── settimeout(1)  accept() wakes every second to check _running
        │
    bind((host, port))     port 0 → the kernel picks a free port
        │
    listen(backlog)
        │
    ready ──► accept loop

Port 0 is how the tests get a server without racing other processes for a
fixed port; the chosen port is read back from getsockname() and exposed
as `address` once `ready` is set.

=============================================================================
SHUTDOWN
=============================================================================

    SIGINT (Ctrl+C) / SIGTERM ──► shutdown() ──► _running = False
                                                     │
                              accept() times out ◄───┘ (within 1s)
                                      │
                                  _cleanup(): close socket, restore signals
                                      │
                                  stopped event set

Signal handlers can only be installed from the main thread. When the
server runs in a background thread (as in the integration tests) they are
skipped and shutdown() is the only way to stop it.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP accept loop.

    Usage:
        server = SocketServer(config)
        server.start(handle)          # Blocks; handle(conn) per connection

        # From another thread:
        server.wait_until_ready(5)
        host, port = server.address
        server.shutdown()
    """

    def __init__(self, config: ServerConfig):
        # The socket is created lazily in start()
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = False
        self._bound_address: Optional[Tuple[str, int]] = None

        self._ready = threading.Event()
        self._stopped = threading.Event()
        self._original_handlers: dict = {}

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (host, port); the configured one before binding."""
        return self._bound_address or (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.settimeout(1.0)
        return sock

    def _setup_signals(self):
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread, skipping signal handlers")
            return

        def shutdown_handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, initiating shutdown...")
            self.shutdown()

        for sig in (signal.SIGTERM, signal.SIGINT):
            self._original_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and run the accept loop until shutdown().

        Args:
            connection_handler: Called on the accept thread with every new
                                Connection. It must not block for long
                                unless connections are meant to be served
                                one at a time.

        Raises:
            OSError: The address could not be bound.
        """
        self._stopped.clear()
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            self._stopped.set()
            raise

        self._socket.listen(self.config.backlog)
        self._bound_address = self._socket.getsockname()[:2]
        self._running = True
        self._setup_signals()

        host, port = self._bound_address
        logger.info(f"Server listening on {host}:{port}")
        self._ready.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")
            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
            )
            connection_handler(conn)

    def shutdown(self):
        """Stop the accept loop. Safe to call more than once, from any thread."""
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._running = False
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass  # Already closed
            self._socket = None

        self._ready.clear()
        self._stopped.set()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. False on timeout."""
        return self._ready.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Block until the accept loop has exited. False on timeout."""
        return self._stopped.wait(timeout)
