"""
=============================================================================
HTTP PROTOCOL IMPLEMENTATION
=============================================================================

The HTTP/1.1 layer between the connection and the resolvers:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ REQUEST PARSER (request.py)                                         │
    │   b"GET /css/site.css HTTP/1.1\r\n..."  →  HTTPRequest              │
    ├─────────────────────────────────────────────────────────────────────┤
    │ ROUTER (router.py)                                                  │
    │   GET/HEAD → static handler, other methods → 405                    │
    ├─────────────────────────────────────────────────────────────────────┤
    │ RESPONSE (response.py)                                              │
    │   HTTPResponse with a bytes or streamed body → wire bytes           │
    ├─────────────────────────────────────────────────────────────────────┤
    │ STATUS CODES / MIME TYPES                                           │
    │   HTTPStatus enum, extension → Content-Type table                   │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    error_response,
    bad_request,         # 400
    not_found,           # 404
    method_not_allowed,  # 405
    internal_error,      # 500
    service_unavailable, # 503
    format_http_date,
)
from .router import Router, Route, RouteMatch
from .status_codes import HTTPStatus
from .mime_types import DEFAULT_MIME_TYPE, MIME_TYPES, get_mime_type

__all__ = [
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",

    "HTTPResponse",
    "ResponseBuilder",
    "error_response",
    "bad_request",
    "not_found",
    "method_not_allowed",
    "internal_error",
    "service_unavailable",
    "format_http_date",

    "Router",
    "Route",
    "RouteMatch",

    "HTTPStatus",

    "DEFAULT_MIME_TYPE",
    "MIME_TYPES",
    "get_mime_type",
]
