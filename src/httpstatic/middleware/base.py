"""
=============================================================================
MIDDLEWARE BASE
=============================================================================

Middleware wraps the router: it sees every request on the way in and every
response on the way out.

    ┌───────────────────────────────────────────────────────────┐
    │  LoggingMiddleware                                        │
    │  ┌─────────────────────────────────────────────────────┐  │
    │  │  ...                                                │  │
    │  │  ┌───────────────────────────────────────────────┐  │  │
    │  │  │            FINAL HANDLER (router.handle)      │  │  │
    │  │  └───────────────────────────────────────────────┘  │  │
    │  └─────────────────────────────────────────────────────┘  │
    └───────────────────────────────────────────────────────────┘

Chain of responsibility: each layer may answer itself (short-circuit) or
call next(request) and post-process what comes back.

=============================================================================
"""

from abc import ABC, abstractmethod
from functools import partial
from typing import Callable, List
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


# The next middleware or the final handler
NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Base class for middleware.

        class AddHeader(Middleware):
            def __call__(self, request, next):
                response = next(request)
                response.set_header("X-Served-By", "httpstatic")
                return response
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """
        Process the request.

        Args:
            request: The incoming request.
            next: The rest of the chain; call it unless short-circuiting.
        """

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Ordered middleware around a final handler.

        pipeline = MiddlewarePipeline()
        pipeline.add(LoggingMiddleware())
        handler = pipeline.wrap(router.handle)
        response = handler(request)

    First added is outermost: it runs first on the request and last on
    the response.
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Build the chain around handler.

        [MW1, MW2] + handler  →  MW1 → MW2 → handler
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = partial(_call_layer, middleware, current)
        return current

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self):
        return iter(self._middleware)


def _call_layer(middleware: Middleware, next_handler: NextHandler, request: HTTPRequest) -> HTTPResponse:
    return middleware(request, next_handler)
