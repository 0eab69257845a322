"""
=============================================================================
RESPONSE STATUS AND ADVISORY HEADER VOCABULARY
=============================================================================

The server only ever answers with two outcomes, so the status vocabulary is
a closed set instead of the full RFC 9110 registry:

    ┌───────────┬────────────────┬──────────────────────────────────────┐
    │   Code    │  Phrase        │  When                                 │
    ├───────────┼────────────────┼──────────────────────────────────────┤
    │   200     │  OK            │  Target is a regular file             │
    │   404     │  Not Found     │  Target missing, a directory, or      │
    │           │                │  outside the served root              │
    └───────────┴────────────────┴──────────────────────────────────────┘

Both enums render themselves exactly as they appear on the wire:

    str(ResponseStatus.OK)          -> "200 OK"
    str(AcceptRanges.BYTES)         -> "accept-ranges:bytes"

=============================================================================
WHY ADVERTISE RANGES WE DON'T SUPPORT?
=============================================================================

Accept-Ranges is purely advisory. A file response announces "bytes" so that
clients know the resource is a plain byte sequence; a 404 announces "none".
No Range header is ever honoured.

=============================================================================
"""

from enum import Enum, IntEnum


class ResponseStatus(IntEnum):
    """HTTP status codes this server can emit."""

    OK = 200            # Regular file found and read
    NOT_FOUND = 404     # Anything else

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line."""
        return _STATUS_PHRASES[self]

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300

    def __str__(self) -> str:
        return f"{self.value} {self.phrase}"


_STATUS_PHRASES = {
    ResponseStatus.OK: "OK",
    ResponseStatus.NOT_FOUND: "Not Found",
}


class AcceptRanges(Enum):
    """Advisory Accept-Ranges values."""

    BYTES = "bytes"
    NONE = "none"

    @property
    def header_line(self) -> str:
        # No space after the colon: this is the exact legacy wire form
        return f"accept-ranges:{self.value}"

    def __str__(self) -> str:
        return self.header_line
