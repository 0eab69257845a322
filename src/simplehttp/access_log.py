"""
=============================================================================
ACCESS LOG
=============================================================================

One structured record per connection, emitted on the "simplehttp.access"
logger so it can be routed separately from the diagnostic logs:

    logging.getLogger("simplehttp.access").addHandler(file_handler)

Two renderings of the same RequestLog:

    text  127.0.0.1 - - [19/Oct/2026:10:00:00 +0000] "GET readme.txt HTTP/1.1" 200 2 0.41ms
    json  {"connection_id": "1f2e3d4c", "method": "GET", "path": "readme.txt", ...}

Exchanges that end without a response (version error, unreadable file) are
logged with status 0 and the error class in "outcome".

=============================================================================
"""

import json
import logging
import time
from dataclasses import dataclass, asdict
from typing import Optional

from .http.request import HTTPRequest
from .http.response import HTTPResponse


logger = logging.getLogger("simplehttp.access")


@dataclass
class RequestLog:
    """
    Structured log entry for one exchange.

        connection_id:  Short id shared with the connection's debug logs
        client_ip:      Peer address
        method:         GET / POST / UNINITIALISED, "-" if unparsed
        path:           Resource path, "-" if unparsed
        version:        Request version, "-" if unparsed
        status_code:    Response status, 0 if none was sent
        content_length: Response content-length, 0 if none was sent
        duration_ms:    Read + parse + build + write time
        outcome:        "ok" or the exception class that aborted the exchange
        timestamp:      Apache style local time
    """
    connection_id: str
    client_ip: str
    method: str
    path: str
    version: str
    status_code: int
    content_length: int
    duration_ms: float
    outcome: str
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        """Apache combined-ish format."""
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path} {self.version}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
            + ("" if self.outcome == "ok" else f" ({self.outcome})")
        )


def build_record(
    connection_id: str,
    client_ip: str,
    started_at: float,
    request: Optional[HTTPRequest] = None,
    response: Optional[HTTPResponse] = None,
    error: Optional[BaseException] = None,
) -> RequestLog:
    """Collect whatever is known about an exchange into a RequestLog."""
    return RequestLog(
        connection_id=connection_id,
        client_ip=client_ip or "-",
        method=request.method.value if request else "-",
        path=request.path if request else "-",
        version=str(request.version) if request else "-",
        status_code=int(response.status) if response else 0,
        content_length=response.content_length if response else 0,
        duration_ms=(time.time() - started_at) * 1000,
        outcome=type(error).__name__ if error else "ok",
        timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
    )


def emit(record: RequestLog, log_format: str = "text", level: int = logging.INFO) -> None:
    """Write a record to the access logger."""
    if log_format == "json":
        logger.log(level, json.dumps(record.to_dict()))
    else:
        logger.log(level, record.to_text())
