"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Maps a parsed request onto the served directory and builds the response.

=============================================================================
DECISION TREE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   target = root_dir / request.resource.path                          │
    │       │                                                              │
    │       ├── escapes root_dir? (confine_to_root) ──► 404 + warning log  │
    │       │                                                              │
    │       ├── regular file ──► read text ──► 200, accept-ranges:bytes    │
    │       │                                  body = file content         │
    │       │                                                              │
    │       └── directory / missing / other ──► 404, accept-ranges:none    │
    │                                           body = NOT_FOUND_PAGE      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A request whose line yielded no resource arrives with path "" and is
answered exactly like "GET /": the root is a directory, so 404.

Directory requests are NOT served an index.html and are NOT listed.

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

The request parser hands over the target verbatim (minus one "/"), so
"GET /../../etc/passwd" arrives here as "../../etc/passwd" and
"GET //etc/passwd" as "/etc/passwd" (an absolute path, which pathlib
joins by discarding root_dir entirely).

With confine_to_root on, the joined path is resolved (following ".." and
symlinks) and must still lie inside root_dir:

    full_path = (root_dir / user_input).resolve()
    full_path.relative_to(root_dir)     # ValueError if outside

Escapes are answered with the ordinary 404 so the response does not
reveal whether the outside file exists.

=============================================================================
FAILURES
=============================================================================

OSError (permission denied, I/O error) and UnicodeDecodeError while
reading a regular file are NOT turned into a response. They propagate to
the connection handler, which closes the connection without answering.

A target that cannot name a file at all (a NUL character, a component
longer than NAME_MAX) is not a read failure: it is missing, so 404.

=============================================================================
"""

import logging
from pathlib import Path
from typing import Optional

from ..http.request import HTTPRequest, ProtocolVersion
from ..http.response import HTTPResponse, ok, not_found


logger = logging.getLogger(__name__)


class StaticFileHandler:
    """
    Builds responses for requests against one root directory.

    Stateless once constructed: calling handle() twice with the same request
    and an unchanged filesystem returns equal responses.

    Usage:
        handler = StaticFileHandler("/srv/www")
        response = handler.handle(parse_request(raw))
        conn.send_response(response.to_bytes())
    """

    def __init__(
        self,
        root_dir: str,
        confine_to_root: bool = True,
        response_version: Optional[ProtocolVersion] = None,
    ):
        """
        Args:
            root_dir: Directory resource paths are resolved against.
            confine_to_root: Refuse (404) targets resolving outside root_dir.
            response_version: Version for every status line; None echoes the
                              request's version.
        """
        # Resolve once so the confinement check compares canonical paths
        self.root_dir = Path(root_dir).resolve()
        self.confine_to_root = confine_to_root
        self.response_version = response_version

        if not self.root_dir.is_dir():
            raise ValueError(f"Root directory does not exist: {root_dir}")

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Answer a request from the filesystem.

        Raises:
            OSError: The target is a regular file that could not be read.
            UnicodeDecodeError: The target file is not valid UTF-8.
        """
        version = self.response_version or request.version
        resource_path = request.resource.path

        full_path = self.resolve_path(resource_path)
        if full_path is None:
            return not_found(version, resource_path)

        if _is_regular_file(full_path):
            # read_bytes, not read_text: newlines must reach the client untranslated
            content = full_path.read_bytes().decode("utf-8")
            logger.debug(f"Serving {full_path} ({len(content)} chars)")
            return ok(content, version, resource_path)

        # Directory, missing, or not a regular file (socket, fifo...)
        return not_found(version, resource_path)

    def resolve_path(self, resource_path: str) -> Optional[Path]:
        """
        Join a resource path onto the root.

        Returns None when confinement is on and the path leaves the root,
        or when the path cannot name a file at all (embedded NUL, a
        component longer than the filesystem allows).
        """
        full_path = self.root_dir / resource_path
        if not self.confine_to_root:
            return full_path

        try:
            resolved = full_path.resolve()
        except (ValueError, OSError) as e:
            logger.debug(f"Unresolvable path {resource_path!r}: {e}")
            return None

        try:
            resolved.relative_to(self.root_dir)
        except ValueError:
            logger.warning(f"Path traversal attempt: {resource_path!r}")
            return None
        return resolved


def _is_regular_file(path: Path) -> bool:
    """is_file() that treats an impossible path as a missing one."""
    try:
        return path.is_file()
    except (ValueError, OSError):
        return False


def serve_static(root_dir: str, **kwargs) -> StaticFileHandler:
    """
    Create a static file handler.

    Example:
        handler = serve_static("/srv/www", response_version=ProtocolVersion.V2_0)
    """
    return StaticFileHandler(root_dir, **kwargs)
