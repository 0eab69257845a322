"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket: a bounded read of the request, one write
of the response, a clean close.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL
=============================================================================

A single recv() may return half a request line. So read_request() keeps
calling recv() until it has seen the end of the headers (CRLF CRLF) and any
body announced by Content-Length, the peer stops sending, or the buffer
limit is hit:

    Client sends:   "GET /readme.txt HTTP/1.1\\r\\nHost: x\\r\\n\\r\\n"

    recv() #1  →   "GET /readme.txt HT"
    recv() #2  →   "TP/1.1\\r\\nHost: x\\r\\n\\r\\n"      ← headers complete, stop

=============================================================================
BOUNDED READ: TRUNCATE, DON'T REJECT
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   buffer_size = 1024                                                │
    │                                                                      │
    │   request of 300 bytes   →  300 bytes returned                       │
    │   request of 5000 bytes  →  first 1024 bytes returned, rest ignored │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

An oversized request is parsed from whatever fits. If the cut falls inside
the request line the version token is usually lost and the parser rejects
it; a cut inside the headers just loses the tail.

=============================================================================
ONE REQUEST PER CONNECTION
=============================================================================

    NEW ──► READING ──► PROCESSING ──► WRITING ──► CLOSED
                │             │
                └─────────────┴──────────────────► CLOSED  (nothing to send)

There is no keep-alive: the server closes after the first response.

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid


logger = logging.getLogger(__name__)


HEADER_TERMINATOR = b"\r\n\r\n"


class ConnectionState(Enum):
    """Connection lifecycle states (for logging and debugging)."""
    NEW = "new"                # Accepted, nothing read yet
    READING = "reading"        # Reading request bytes
    PROCESSING = "processing"  # Parsing and building the response
    WRITING = "writing"        # Sending the response
    CLOSED = "closed"          # Socket released


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short unique id used to prefix log lines.
        state: Current lifecycle state.
        created_at: Timestamp when the connection was accepted.
        buffer_size: Maximum number of request bytes read.
        timeout: Socket timeout for reads and writes (None = block forever).
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    buffer_size: int = 1024
    timeout: Optional[float] = 30.0

    truncated: bool = field(default=False, repr=False)
    stalled: bool = field(default=False, repr=False)

    def __post_init__(self):
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0] if self.address else ""

    @property
    def age(self) -> float:
        """Connection age in seconds."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> bytes:
        """
        Read one request, at most buffer_size bytes.

        Stops at the first of:
        - headers complete and Content-Length body (if any) received
        - peer closed its side (recv returned b"")
        - buffer_size bytes collected (truncated is set)
        - peer silent for timeout seconds after sending something (stalled
          is set; an unterminated request is still a request)

        Returns:
            The bytes read; b"" if the peer sent nothing at all.

        Raises:
            TimeoutError: The peer sent nothing within timeout.
        """
        self.state = ConnectionState.READING
        buffer = b""

        while len(buffer) < self.buffer_size:
            try:
                chunk = self._recv(self.buffer_size - len(buffer))
            except socket.timeout:
                if not buffer:
                    raise TimeoutError("Request read timeout")
                # Peer went quiet mid-request: answer what arrived
                self.stalled = True
                logger.debug(f"[{self.id}] Peer stalled after {len(buffer)} bytes")
                break
            if not chunk:
                break  # Peer closed or reset
            buffer += chunk

            if self._is_complete(buffer):
                break
        else:
            # Loop ran out of room without seeing a complete request
            self.truncated = not self._is_complete(buffer)
            if self.truncated:
                logger.debug(f"[{self.id}] Request truncated at {self.buffer_size} bytes")

        return buffer

    def _recv(self, size: int) -> bytes:
        try:
            return self.socket.recv(size)
        except (ConnectionResetError, BrokenPipeError):
            # Client disconnected abruptly
            return b""

    @staticmethod
    def _is_complete(buffer: bytes) -> bool:
        """Headers terminated and declared body fully present."""
        header_end = buffer.find(HEADER_TERMINATOR)
        if header_end == -1:
            return False
        content_length = _parse_content_length(buffer[:header_end])
        return len(buffer) - (header_end + len(HEADER_TERMINATOR)) >= content_length

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send the response.

        sendall() keeps writing until every byte is out, so a partial write
        by the kernel is not an error here.

        Returns:
            True if sent, False if the peer went away.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection.

        shutdown(SHUT_WR) first so the peer sees a FIN right after the last
        response byte, then release the descriptor. Safe to call twice.
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age * 1000:.1f}ms")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False  # Don't suppress exceptions


def _parse_content_length(headers: bytes) -> int:
    """
    Content-Length from raw header bytes, 0 if absent or invalid.

    Only used to decide when to stop reading; the parser itself does not
    validate the body against it.
    """
    text = headers.decode("utf-8", errors="replace").lower()
    for line in text.split("\r\n"):
        if line.startswith("content-length:"):
            try:
                return max(int(line.split(":", 1)[1].strip()), 0)
            except ValueError:
                return 0
    return 0
