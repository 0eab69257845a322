"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Holds a response and renders it in the exact wire format existing clients
of this server expect.

=============================================================================
WIRE FORMAT
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     RESPONSE ON THE WIRE                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    HTTP/1.1 200 OK\\n                 ← status line, bare LF         │
    │    accept-ranges:bytes\\n             ← advisory, bare LF            │
    │    content-length: 2\\r\\n             ← byte length of body          │
    │    \\r\\n                              ← blank line                   │
    │    hi                                ← body                         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The first two line breaks are bare "\\n", not CRLF. That is not RFC 9112
conformant but it is what the legacy server sent, and clients of it parse
exactly this shape, so serialize() reproduces it byte for byte.

=============================================================================
BUILDER PATTERN
=============================================================================

    response = (ResponseBuilder(ProtocolVersion.V1_1)
        .status(ResponseStatus.OK)
        .accept_ranges(AcceptRanges.BYTES)
        .body("hi")
        .for_path("readme.txt")
        .build())

content_length is never set by hand: build() derives it from the UTF-8
encoding of the body, so the header always matches what is emitted.

=============================================================================
"""

from dataclasses import dataclass

from .request import ProtocolVersion
from .status_codes import ResponseStatus, AcceptRanges


NOT_FOUND_PAGE = """<html>
<body>
<h1>404 NOT FOUND</h1>
</body>
</html>"""


@dataclass(frozen=True)
class HTTPResponse:
    """
    A response ready to be written to a client.

    Attributes:
        version:        Protocol version on the status line.
        status:         200 or 404.
        content_length: Byte length of body (UTF-8).
        accept_ranges:  Advisory Accept-Ranges value.
        body:           Payload text.
        path:           The request's resource path, echoed for logging.
    """
    version: ProtocolVersion
    status: ResponseStatus
    content_length: int
    accept_ranges: AcceptRanges
    body: str = ""
    path: str = ""

    @property
    def status_line(self) -> str:
        # str() explicitly: an IntEnum formats as its bare number
        return f"{self.version} {str(self.status)}"

    def serialize(self) -> str:
        """Render the full response text (see module docstring)."""
        return (
            f"{self.status_line}\n"
            f"{self.accept_ranges}\n"
            f"content-length: {self.content_length}\r\n"
            f"\r\n"
            f"{self.body}"
        )

    def to_bytes(self) -> bytes:
        """Serialized response encoded for socket.sendall()."""
        return self.serialize().encode("utf-8")


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

    Defaults describe the not-found outcome (404, accept-ranges none, empty
    body), so callers only spell out what differs.
    """

    def __init__(self, version: ProtocolVersion = ProtocolVersion.V2_0):
        self._version = version
        self._status = ResponseStatus.NOT_FOUND
        self._accept_ranges = AcceptRanges.NONE
        self._body = ""
        self._path = ""

    def version(self, version: ProtocolVersion) -> "ResponseBuilder":
        self._version = version
        return self

    def status(self, status: ResponseStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def accept_ranges(self, accept_ranges: AcceptRanges) -> "ResponseBuilder":
        self._accept_ranges = accept_ranges
        return self

    def body(self, body: str) -> "ResponseBuilder":
        self._body = body
        return self

    def for_path(self, path: str) -> "ResponseBuilder":
        """Record which resource path this response answers."""
        self._path = path
        return self

    def build(self) -> HTTPResponse:
        """Create the immutable response; content_length is computed here."""
        return HTTPResponse(
            version=self._version,
            status=self._status,
            content_length=len(self._body.encode("utf-8")),
            accept_ranges=self._accept_ranges,
            body=self._body,
            path=self._path,
        )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def ok(content: str, version: ProtocolVersion, path: str = "") -> HTTPResponse:
    """200 response carrying file content."""
    return (ResponseBuilder(version)
        .status(ResponseStatus.OK)
        .accept_ranges(AcceptRanges.BYTES)
        .body(content)
        .for_path(path)
        .build())


def not_found(version: ProtocolVersion, path: str = "") -> HTTPResponse:
    """404 response carrying the fixed HTML page."""
    return (ResponseBuilder(version)
        .status(ResponseStatus.NOT_FOUND)
        .accept_ranges(AcceptRanges.NONE)
        .body(NOT_FOUND_PAGE)
        .for_path(path)
        .build())
