"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the untrusted bytes read from a client socket into an immutable
HTTPRequest value.

=============================================================================
PARSING PIPELINE
=============================================================================

Every stage works on the same decoded text and can be called on its own:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         REQUEST PIPELINE                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   raw bytes                                                          │
    │       │  decode UTF-8, replacing invalid sequences                   │
    │       ▼                                                              │
    │   scan_message()        request line / header block / body          │
    │       │                                                              │
    │       ├──► ProtocolVersion.resolve()   HTTP/1.1 | HTTP/2   (FATAL)   │
    │       ├──► Method.classify()           GET | POST | UNINITIALISED    │
    │       ├──► Resource.resolve()          "path" | None                 │
    │       └──► collect_headers()           {name: value} | None          │
    │                                                                      │
    │   RequestParser.parse()  ──►  HTTPRequest (frozen dataclass)         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ERROR TAXONOMY
=============================================================================

    FATAL       No recognisable protocol version     -> VersionError
    ABSORBED    Unknown method                       -> Method.UNINITIALISED
                No target / too few tokens           -> Resource.absent()
                Header line without a colon          -> no headers at all

Only VersionError escapes RequestParser.parse(). Everything else degrades
to a default so a request value can always be built once the version is
known.

=============================================================================
WHAT WE DELIBERATELY DON'T DO
=============================================================================

- The target is NOT percent-decoded and ".." is NOT collapsed here. The
  resource path is the literal token minus one leading "/". Confinement to
  the served root happens in the static file handler, where the filesystem
  is actually touched.
- The request body is NOT checked against Content-Length.
- Header names are NOT lowercased; they keep the case the client sent.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Optional, Dict, Mapping
import re


CRLF = "\r\n"
BLANK_LINE = "\r\n\r\n"

# Any single whitespace character separates request line tokens
_WHITESPACE = re.compile(r"\s")


class HTTPParseError(Exception):
    """
    Raised when a request cannot be turned into an HTTPRequest.

    Carries the HTTP status code that describes the failure. The server
    never sends that status back (a failed parse closes the connection
    without a response) but it is useful in logs.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class VersionError(HTTPParseError):
    """The request line carries no supported protocol version token."""

    def __init__(self, message: str):
        super().__init__(message, status_code=505)  # HTTP Version Not Supported


# =============================================================================
# MESSAGE LINE SCANNER
# =============================================================================

@dataclass(frozen=True)
class MessageParts:
    """
    A request split into its three textual regions.

    request_line is None when the text contains no CRLF at all; a request
    without a terminated first line has no request line to speak of.
    """
    request_line: Optional[str]
    header_block: str = ""
    body: str = ""


def decode(data: bytes) -> str:
    """Lenient UTF-8 decode: bad byte sequences become U+FFFD."""
    return data.decode("utf-8", errors="replace")


def scan_message(text: str) -> MessageParts:
    """
    Split decoded request text into request line, header block and body.

        GET /a.txt HTTP/1.1\\r\\n        ← request line (up to first CRLF)
        Host: x\\r\\n                    ← header block (lines up to the
        \\r\\n                           ← blank line)
        payload                         ← body (after first CRLF CRLF)

    A missing body is a valid state, never an error.
    """
    if CRLF not in text:
        return MessageParts(request_line=None)

    request_line, rest = text.split(CRLF, 1)

    # The body starts after the first blank line anywhere in the message.
    # If the request line is immediately followed by CRLF, that blank line
    # is the one closing the request line itself.
    separator = text.find(BLANK_LINE)
    body = text[separator + len(BLANK_LINE):] if separator != -1 else ""

    header_end = rest.find(BLANK_LINE)
    if rest.startswith(CRLF):
        header_block = ""
    elif header_end != -1:
        header_block = rest[:header_end + len(CRLF)]
    else:
        header_block = rest

    return MessageParts(request_line=request_line, header_block=header_block, body=body)


def _split_first(line: str) -> Optional[list[str]]:
    """Split on the first whitespace character, None if there is none."""
    parts = _WHITESPACE.split(line, maxsplit=1)
    return parts if len(parts) == 2 else None


# =============================================================================
# VERSION RESOLVER
# =============================================================================

class ProtocolVersion(Enum):
    """
    Protocol versions the server recognises.

    The value is the token written on the status line. "HTTP/2.0" is
    accepted on input but always written back as "HTTP/2".
    """
    V1_1 = "HTTP/1.1"
    V2_0 = "HTTP/2"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_token(cls, token: str) -> Optional["ProtocolVersion"]:
        return _VERSION_TOKENS.get(token)

    @classmethod
    def resolve(cls, request_line: Optional[str]) -> "ProtocolVersion":
        """
        Find the protocol version on the request line.

        Tokens are scanned left to right and the first recognised one wins,
        wherever it sits on the line.

        Raises:
            VersionError: No line, or no recognised token on it. The message
                          echoes the offending input.
        """
        if request_line is None:
            raise VersionError("Unknown protocol version: no request line")
        for token in request_line.split():
            version = cls.from_token(token)
            if version is not None:
                return version
        raise VersionError(f"Unknown protocol version in {request_line!r}")


_VERSION_TOKENS = {
    "HTTP/1.1": ProtocolVersion.V1_1,
    "HTTP/2": ProtocolVersion.V2_0,
    "HTTP/2.0": ProtocolVersion.V2_0,
}


# =============================================================================
# METHOD CLASSIFIER
# =============================================================================

class Method(Enum):
    """
    Request methods.

    UNINITIALISED is a sentinel for "no recognised verb". It is a value the
    pipeline carries, not an error: the resource resolver decides what an
    unknown method means (it means "no resource").
    """
    GET = "GET"
    POST = "POST"
    UNINITIALISED = "UNINITIALISED"

    @property
    def is_supported(self) -> bool:
        return self is not Method.UNINITIALISED

    @classmethod
    def from_token(cls, token: str) -> "Method":
        if token in ("GET", "POST"):
            return cls(token)
        return cls.UNINITIALISED

    @classmethod
    def classify(cls, request_line: Optional[str]) -> "Method":
        """Classify the text before the first whitespace. Never raises."""
        if request_line is None:
            return cls.UNINITIALISED
        parts = _split_first(request_line)
        if parts is None:
            return cls.UNINITIALISED
        return cls.from_token(parts[0])


# =============================================================================
# RESOURCE RESOLVER
# =============================================================================

@dataclass(frozen=True)
class Resource:
    """
    The requested target, relative to the served root.

    Attributes:
        path:    Target token with exactly one leading "/" removed.
                 "" means the root itself.
        present: False when the request line yielded no target and this
                 value was substituted. Lets callers tell "GET /" apart from
                 an unparseable line even though both serve path "".
    """
    path: str
    present: bool = True

    @classmethod
    def absent(cls) -> "Resource":
        return cls(path="", present=False)

    @classmethod
    def resolve(cls, request_line: Optional[str]) -> Optional["Resource"]:
        """
        Extract the target from a GET or POST request line.

        Returns None (absence, not error) for an unknown method, a missing
        line, or a line without a token after the target.
        """
        if request_line is None:
            return None

        parts = _split_first(request_line)
        if parts is None:
            return None

        method, rest = parts
        if not Method.from_token(method).is_supported:
            return None

        # Target must be followed by at least one more token (the version)
        target_parts = _split_first(rest)
        if target_parts is None:
            return None

        target = target_parts[0]
        if target.startswith("/"):
            target = target[1:]
        return cls(path=target)


# =============================================================================
# HEADER COLLECTOR
# =============================================================================

def collect_headers(header_block: str) -> Optional[Dict[str, str]]:
    """
    Parse "Name: Value" lines into a dictionary.

    - Stops at the first empty line.
    - Splits on the first colon only, so "Host: a:8080" keeps its port.
    - Trims names and values; names keep their original case.
    - A later duplicate overwrites an earlier one.

    Returns None if any line has no colon: the whole block is discarded
    rather than returning a partial map.
    """
    headers: Dict[str, str] = {}

    lines = header_block.split(CRLF)
    if lines and lines[-1] == "":
        lines.pop()  # Trailing terminator, not a line

    for line in lines:
        if not line:
            break
        name, colon, value = line.partition(":")
        if not colon:
            return None
        headers[name.strip()] = value.strip()

    return headers


# =============================================================================
# REQUEST ASSEMBLER
# =============================================================================

@dataclass(frozen=True)
class HTTPRequest:
    """
    A parsed request. Built once per connection and never modified.

        method:         GET, POST, or UNINITIALISED
        resource:       Target relative to the served root
        version:        Protocol version from the request line
        headers:        Header name -> value, original name case (read-only)
        body:           Everything after the first blank line, verbatim
        client_address: (ip, port) of the peer, for logging
        raw:            The bytes the request was parsed from
    """
    method: Method
    resource: Resource
    version: ProtocolVersion
    headers: Mapping[str, str] = field(default_factory=dict)
    body: str = ""

    client_address: tuple[str, int] = ("", 0)
    raw: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        # Copy, then freeze: the caller's dict stays theirs
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    @property
    def path(self) -> str:
        return self.resource.path

    def get_header(self, name: str, default: str = "") -> str:
        """Exact-case header lookup."""
        return self.headers.get(name, default)


class RequestParser:
    """
    Composes the stage functions above into one HTTPRequest.

    Stateless; one instance can be shared by every worker thread.
    """

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse raw request bytes.

        Raises:
            VersionError: The only fatal outcome. Unknown methods, missing
                          targets and malformed headers are absorbed.
        """
        text = decode(data)
        parts = scan_message(text)

        # Version first: if it fails nothing else matters
        version = ProtocolVersion.resolve(parts.request_line)

        method = Method.classify(parts.request_line)
        resource = Resource.resolve(parts.request_line) or Resource.absent()
        headers = collect_headers(parts.header_block) if parts.request_line is not None else None

        return HTTPRequest(
            method=method,
            resource=resource,
            version=version,
            headers=headers if headers is not None else {},
            body=parts.body,
            client_address=client_address,
            raw=data,
        )


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0)
) -> HTTPRequest:
    """Convenience wrapper around RequestParser().parse()."""
    return RequestParser().parse(data, client_address)
