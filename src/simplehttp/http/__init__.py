"""
=============================================================================
HTTP PROTOCOL MODULE
=============================================================================

Request parsing, response rendering and the shared status vocabulary.

    request.py       bytes -> HTTPRequest (scanner, version, method,
                     resource, headers, assembler)
    response.py      HTTPResponse + ResponseBuilder -> wire text
    status_codes.py  ResponseStatus, AcceptRanges

Request on the wire (CRLF line endings):

    GET /readme.txt HTTP/1.1\\r\\n
    Host: localhost\\r\\n
    \\r\\n

Response on the wire (note the bare LF after the first two lines):

    HTTP/1.1 200 OK\\n
    accept-ranges:bytes\\n
    content-length: 2\\r\\n
    \\r\\n
    hi

=============================================================================
"""

from .request import (
    HTTPRequest,
    RequestParser,
    HTTPParseError,
    VersionError,
    ProtocolVersion,
    Method,
    Resource,
    MessageParts,
    scan_message,
    collect_headers,
    parse_request,
)
from .response import (
    HTTPResponse,
    ResponseBuilder,
    NOT_FOUND_PAGE,
    ok,
    not_found,
)
from .status_codes import ResponseStatus, AcceptRanges

__all__ = [
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "VersionError",
    "ProtocolVersion",
    "Method",
    "Resource",
    "MessageParts",
    "scan_message",
    "collect_headers",
    "parse_request",

    "HTTPResponse",
    "ResponseBuilder",
    "NOT_FOUND_PAGE",
    "ok",
    "not_found",

    "ResponseStatus",
    "AcceptRanges",
]
