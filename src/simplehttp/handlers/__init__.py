"""
=============================================================================
HANDLERS MODULE
=============================================================================

A handler turns a parsed HTTPRequest into an HTTPResponse.

    Request                 Handler                   Response
   ┌──────────────┐      ┌──────────────────┐      ┌──────────────────┐
   │ GET          │      │ StaticFileHandler│      │ HTTP/1.1 200 OK  │
   │ /readme.txt  │ ───▶ │  root_dir lookup │ ───▶ │ content-length: 2│
   │ HTTP/1.1     │      │                  │      │ hi               │
   └──────────────┘      └──────────────────┘      └──────────────────┘

The server has exactly one handler: files under a root directory.

=============================================================================
"""

from .static import StaticFileHandler, serve_static

__all__ = [
    "StaticFileHandler",
    "serve_static",
]
