"""
=============================================================================
ROUTE TABLE AND DISPATCHER
=============================================================================

Maps exact URL paths to handlers and hands each request to the right one.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ROUTING FLOW                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Listener                                                           │
    │   GET /show  ──►  dispatch(table, "/show", sink, request, tg)       │
    │                        │                                             │
    │                        ▼                                             │
    │   ┌─────────────────────────────────────────────────────────────┐   │
    │   │  ROUTE TABLE (immutable, built once at startup)              │   │
    │   │                                                              │   │
    │   │    /        → UploadFormHandler.handle                       │   │
    │   │    /start   → UploadFormHandler.handle                       │   │
    │   │    /upload  → UploadHandler.handle                           │   │
    │   │    /show    → ShowHandler.handle        ← HIT                │   │
    │   └─────────────────────────────────────────────────────────────┘   │
    │                        │                                             │
    │           hit ─────────┴──────── miss                                │
    │            │                      │                                  │
    │            ▼                      ▼                                  │
    │   tg.start_soon(handler)    sink.send(404, "404 Not found")          │
    │   (runs after dispatch      (the dispatcher finalizes;               │
    │    returns; the handler      no handler runs)                        │
    │    finalizes)                                                        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
MATCHING RULES
=============================================================================

Exact string comparison, nothing else:

    "/start"   matches  "/start"
    "/start/"  does NOT match "/start"
    "/START"   does NOT match "/start"

No parameters (":id"), no wildcards ("*path"), no method filter. The
request method is ignored; POST /start serves the form like GET /start.
build() rejects pattern syntax outright so nobody registers "/users/:id"
expecting it to work.

=============================================================================
"""

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Awaitable, Callable, Iterable, Iterator, Optional, Union
import inspect
import logging

from anyio.abc import TaskGroup

from ..errors import RouteConfigurationError
from .request import RawRequest
from .response import ResponseSink
from .status_codes import HTTPStatus


logger = logging.getLogger(__name__)


# =============================================================================
# TYPE ALIASES
# =============================================================================

# A handler receives the sink and the raw request. It either finalizes the
# sink before returning (plain function) or is a coroutine whose code after
# its await finalizes it.
Handler = Callable[[ResponseSink, RawRequest], Optional[Awaitable[None]]]

NOT_FOUND_BODY = "404 Not found"

_FORBIDDEN_CHARS = set("?#")


@dataclass(frozen=True)
class Route:
    """One path → handler binding."""

    path: str
    handler: Handler
    name: str


class RouteTable(Mapping):
    """
    Immutable mapping from URL path to handler.

    Build it with build(); there are no mutators. Iteration follows
    registration order.

        table = build([("/", form.handle), ("/show", show.handle)])
        table["/show"]        # show.handle
        "/nope" in table      # False
        table["/x"] = ...     # TypeError
    """

    def __init__(self, routes: tuple[Route, ...]):
        self._routes = routes
        self._handlers = MappingProxyType({route.path: route.handler for route in routes})

    def __getitem__(self, path: str) -> Handler:
        return self._handlers[path]

    def __iter__(self) -> Iterator[str]:
        return iter(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)

    def __repr__(self) -> str:
        return f"RouteTable({list(self._handlers)!r})"

    def paths(self) -> list[str]:
        """Registered paths, in registration order."""
        return [route.path for route in self._routes]

    def describe(self) -> str:
        """
        Render the table for the startup log.

            /          → start
            /upload    → upload
        """
        if not self._routes:
            return "  (no routes)"
        width = max(len(route.path) for route in self._routes)
        return "\n".join(
            f"  {route.path:<{width}}  → {route.name}" for route in self._routes
        )


def build(bindings: Iterable[tuple[str, Handler]]) -> RouteTable:
    """
    Build a route table from (path, handler) pairs.

    Args:
        bindings: Pairs in registration order.

    Returns:
        An immutable RouteTable.

    Raises:
        RouteConfigurationError: On a duplicate path, a path that is not a
            literal absolute path, or a handler that is not callable.
    """
    routes: list[Route] = []
    seen: set[str] = set()

    for path, handler in bindings:
        _validate_path(path)

        if not callable(handler):
            raise RouteConfigurationError(
                f"Handler for {path!r} is not callable: {handler!r}"
            )

        if path in seen:
            raise RouteConfigurationError(f"Duplicate route: {path!r}")
        seen.add(path)

        routes.append(Route(path=path, handler=handler, name=_handler_name(handler)))

    return RouteTable(tuple(routes))


def _validate_path(path: str) -> None:
    if not isinstance(path, str) or not path.startswith("/"):
        raise RouteConfigurationError(f"Route path must start with '/': {path!r}")

    if any(char in _FORBIDDEN_CHARS or char.isspace() for char in path):
        raise RouteConfigurationError(
            f"Route path must not contain '?', '#' or whitespace: {path!r}"
        )

    for segment in path.split("/"):
        if segment.startswith((":", "*")):
            raise RouteConfigurationError(
                f"Parameter and wildcard segments are not supported: {path!r}"
            )


def _handler_name(handler: Handler) -> str:
    """Readable name for logs: 'ShowHandler.handle', 'start', ..."""
    owner = getattr(handler, "__self__", None)
    name = getattr(handler, "__name__", None)
    if owner is not None and name:
        return f"{type(owner).__name__}.{name}"
    if name:
        return name
    return type(handler).__name__


# =============================================================================
# DISPATCH
# =============================================================================

def dispatch(
    table: Union[RouteTable, Mapping],
    path: str,
    sink: ResponseSink,
    request: RawRequest,
    task_group: TaskGroup,
) -> None:
    """
    Route one request.

    Hit: the bound handler is scheduled on task_group and this function
    returns immediately; the handler starts afterwards and owns the sink.

    Miss: the sink is finalized with 404 "404 Not found" (text/plain) and
    no handler is invoked.
    """
    handler = table.get(path)

    if handler is None:
        logger.info(f"No request handler found for {path}")
        sink.send(HTTPStatus.NOT_FOUND, NOT_FOUND_BODY, "text/plain")
        return

    logger.debug(f"About to route a request for {path}")
    task_group.start_soon(_invoke, handler, sink, request, name=f"handler {path}")


async def _invoke(handler: Handler, sink: ResponseSink, request: RawRequest) -> None:
    """
    Run a handler and make sure its sink ends up finalized exactly once.

    Plain functions are called; if the call returns an awaitable (async
    def handlers), it is awaited.
    """
    try:
        result = handler(sink, request)
        if inspect.isawaitable(result):
            await result
    except Exception as exc:
        logger.exception(f"Request handler for {request.path} failed")
        if not sink.finalized:
            sink.fail(f"{exc}\n")
        return

    if not sink.finalized:
        logger.error(f"Request handler for {request.path} returned without finalizing")
        sink.fail("Handler finished without a response\n")
