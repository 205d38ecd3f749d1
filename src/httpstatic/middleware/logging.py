"""
=============================================================================
ACCESS LOGGING MIDDLEWARE
=============================================================================

One line per request on the "httpstatic.access" logger:

    text:  ::1 - - [18/Oct/2026:10:02:11 +0000] "GET /css/site.css" 200 5123 0.41ms
    json:  {"request_id": "3f2a9c1e", "method": "GET", "path": "/css/site.css", ...}

Each response also carries the request id as X-Request-ID so a client
report can be matched to its log line.

The logger is separate from the module loggers so it can be routed on its
own:

    logging.getLogger("httpstatic.access").addHandler(file_handler)

=============================================================================
"""

import time
import json
import uuid
import logging
from typing import Optional
from dataclasses import dataclass, asdict

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("httpstatic.access")


@dataclass
class RequestLog:
    """
    Structured access log entry.

    content_length is the announced body size; for HEAD that is the size
    a GET would have sent.
    """

    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        """Apache-combined-like line."""
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Request logging middleware. Add it first so it sees every request.

    Args:
        log_format: "text" or "json".
        include_request_id: Add X-Request-ID to responses.
        log_level: Level for access lines.
        skip_paths: Exact paths not to log.
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[list[str]] = None,
    ):
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = set(skip_paths or [])

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = str(uuid.uuid4())[:8]
        start_time = time.time()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.time() - start_time) * 1000

        if self.include_request_id:
            response.headers["X-Request-ID"] = request_id

        if request.path in self.skip_paths:
            return response

        log_entry = RequestLog(
            request_id=request_id,
            method=request.method,
            path=request.path,
            query=str(request.query_params) if request.query_params else "",
            client_ip=str(request.client_address[0]),
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=response.content_length or 0,
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(log_entry.to_dict()))
        else:
            logger.log(self.log_level, log_entry.to_text())

        return response
