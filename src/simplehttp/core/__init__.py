"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking plumbing underneath the HTTP layer:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  SocketServer   listening socket, accept loop, signal handling      │
    └─────────────────────────────────────────────────────────────────────┘
                                    │  one Connection per accept()
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  ThreadPool     worker threads serving connections ("pool" mode)    │
    │                 skipped entirely in "sequential" mode               │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  Connection     bounded read, one write, close                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "ThreadPool",
]
