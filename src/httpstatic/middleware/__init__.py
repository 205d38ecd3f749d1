"""
=============================================================================
MIDDLEWARE
=============================================================================

Cross-cutting request/response processing around the router.

    LoggingMiddleware   access log (text or JSON) + X-Request-ID

Custom middleware subclasses Middleware and runs inside the access log:

    server = HTTPServer(config)
    server.use(MyMiddleware())

=============================================================================
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "LoggingMiddleware",
    "RequestLog",
]
