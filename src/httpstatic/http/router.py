"""
=============================================================================
URL ROUTER
=============================================================================

Maps (method, path) to a handler.

    Pattern            Matches                      path_params
    ─────────────────  ───────────────────────────  ───────────────────────
    /favicon.ico       /favicon.ico                 {}
    /files/:name       /files/a.txt                 {"name": "a.txt"}
    /*path             /, /css/site.css, ...        {"path": "css/site.css"}

Routes are tried in registration order; the first match wins. A path that
matches some route under a different method gets 405 Method Not Allowed
(with Allow), a path that matches nothing gets 404.

The static server registers a single catch-all for GET and HEAD; the
router is what turns every other method into a clean 405.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Optional, Dict, Any, List
import re

from .request import HTTPRequest
from .response import HTTPResponse, not_found, method_not_allowed


Handler = Callable[[HTTPRequest], HTTPResponse]


@dataclass
class Route:
    """
    A registered route.

    Attributes:
        path: URL pattern ("/files/:name", "/*path").
        method: HTTP method, or None for any method.
        handler: Called with the request, returns the response.
        name: Optional label for logs.
        meta: Free-form metadata for middleware.
    """

    path: str
    method: Optional[str]
    handler: Handler
    name: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=dict)

    _pattern: Optional[re.Pattern] = field(default=None, repr=False)
    _param_names: List[str] = field(default_factory=list, repr=False)


@dataclass
class RouteMatch:
    """A matched route and the parameters it captured."""
    route: Route
    params: Dict[str, str]


class Router:
    """
    Method + pattern router.

    Usage:
        router = Router()

        @router.get("/*path")
        def serve(request):
            ...

        response = router.handle(request)
    """

    def __init__(self, prefix: str = ""):
        self.prefix = prefix.rstrip("/")
        self._routes: List[Route] = []

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: Optional[str] = None,
        name: Optional[str] = None,
        **meta: Any
    ) -> Route:
        """
        Register a route.

        Args:
            path: URL pattern, relative to the router prefix.
            handler: Request handler.
            method: HTTP method (None for any).
            name: Optional route name.
            **meta: Stored on route.meta.
        """
        full_path = self.prefix + path
        pattern, param_names = self._compile_pattern(full_path)

        route = Route(
            path=full_path,
            method=method.upper() if method else None,
            handler=handler,
            name=name,
            meta=meta,
            _pattern=pattern,
            _param_names=param_names,
        )
        self._routes.append(route)
        return route

    def _compile_pattern(self, path: str) -> tuple[re.Pattern, List[str]]:
        """
        Compile a route pattern into an anchored regex.

            "/files/:name"  →  ^/files/(?P<name>[^/]+)$
            "/*path"        →  ^/(?P<path>.*)$

        A wildcard consumes the rest of the path (including an empty rest),
        so anything after it in the pattern is ignored.
        """
        param_names: List[str] = []
        regex_parts = ["^"]

        for segment in path.split("/"):
            if not segment:
                continue

            regex_parts.append("/")

            if segment.startswith(":"):
                param_name = segment[1:]
                param_names.append(param_name)
                regex_parts.append(f"(?P<{param_name}>[^/]+)")

            elif segment.startswith("*"):
                param_name = segment[1:] or "wildcard"
                param_names.append(param_name)
                regex_parts.append(f"(?P<{param_name}>.*)")
                break

            else:
                regex_parts.append(re.escape(segment))

        if len(regex_parts) == 1:
            regex_parts.append("/")  # The bare root pattern "/"

        regex_parts.append("$")
        return re.compile("".join(regex_parts), re.DOTALL), param_names

    @staticmethod
    def _normalize(path: str) -> str:
        # Leading slash, no trailing slash ("/" stays "/")
        return "/" + path.strip("/") if path != "/" else "/"

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """First route matching method and path, or None."""
        path = self._normalize(path)

        for route in self._routes:
            if route.method and route.method != method.upper():
                continue

            match = route._pattern.match(path)
            if match:
                return RouteMatch(route=route, params=match.groupdict())

        return None

    def get_allowed_methods(self, path: str) -> List[str]:
        """Methods with a route matching path (for the Allow header)."""
        path = self._normalize(path)
        methods = set()

        for route in self._routes:
            if route._pattern.match(path):
                if route.method is None:
                    return ["DELETE", "GET", "HEAD", "OPTIONS", "PATCH", "POST", "PUT"]
                methods.add(route.method)

        return sorted(methods)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Dispatch a request.

        Returns:
            The handler's response, 405 if only other methods match the
            path, else 404.
        """
        match = self.match(request.method, request.path)

        if match:
            request.path_params = match.params
            return match.route.handler(request)

        allowed = self.get_allowed_methods(request.path)
        if allowed:
            return method_not_allowed(allowed)

        return not_found()

    # =========================================================================
    # DECORATORS
    # =========================================================================

    def route(
        self,
        path: str,
        methods: Optional[List[str]] = None,
        name: Optional[str] = None,
        **meta: Any
    ) -> Callable[[Handler], Handler]:
        """
        Register the decorated function for one or more methods.

            @router.route("/*path", methods=["GET", "HEAD"])
            def serve(request): ...
        """
        def decorator(handler: Handler) -> Handler:
            for method in methods or [None]:
                self.add_route(path, handler, method=method, name=name, **meta)
            return handler
        return decorator

    def get(self, path: str, name: Optional[str] = None, **meta: Any) -> Callable[[Handler], Handler]:
        return self.route(path, ["GET"], name, **meta)

    def head(self, path: str, name: Optional[str] = None, **meta: Any) -> Callable[[Handler], Handler]:
        return self.route(path, ["HEAD"], name, **meta)

    @property
    def routes(self) -> List[Route]:
        """All registered routes, in match order."""
        return list(self._routes)
