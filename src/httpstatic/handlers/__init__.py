"""
=============================================================================
REQUEST HANDLERS
=============================================================================

    StaticHandler   resolver content → HTTP response (GET and HEAD)

    from httpstatic.handlers import StaticHandler

    static = StaticHandler(create_resolver(config))
    router.route("/*path", methods=["GET", "HEAD"])(static.handle)

=============================================================================
"""

from .static import StaticHandler

__all__ = [
    "StaticHandler",
]
