"""
=============================================================================
STATIC CONTENT HANDLER
=============================================================================

The route handler behind GET /*path and HEAD /*path. All the path logic
lives in the resolver; this handler only turns its answer into HTTP:

    request.path ──► resolver.resolve() ──► ResolvedContent ──► HTTPResponse

        ResolvedContent.status   →  status line (200 or 404)
        ResolvedContent.mime     →  Content-Type
        ResolvedContent.length   →  Content-Length
        ResolvedContent.body     →  body (bytes, or a stream to send in chunks)

HEAD gets the very same headers with the body left out. A stream opened for
a HEAD request is still handed over so the server closes it.

=============================================================================
"""

import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder
from ..resolvers import Resolver


logger = logging.getLogger(__name__)


class StaticHandler:
    """
    Serves resolver content.

    Usage:
        static = StaticHandler(resolver)
        router.route("/*path", methods=["GET", "HEAD"])(static.handle)
    """

    def __init__(self, resolver: Resolver):
        self.resolver = resolver

    def __repr__(self) -> str:
        return f"StaticHandler({self.resolver!r})"

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        content = self.resolver.resolve(request.path)
        logger.debug(f"{request.method} {request.path} -> {content!r}")

        builder = (ResponseBuilder()
            .status(content.status)
            .content_type(content.mime)
            .head_only(request.is_head))

        if content.is_stream:
            builder.stream(content.body, length=content.length)
        else:
            builder.body(content.body)

        return builder.build()
