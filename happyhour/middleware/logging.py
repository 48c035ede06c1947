import time
import uuid
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars

log = structlog.get_logger()

REQUEST_ID_HEADER = "X-Request-ID"

def _route_template(request: Request) -> str:
    # "/api/places/{place_id}" rather than the concrete path, when a route matched
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)

class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Binds request_id / method / path for every log line emitted while the
    request is handled, logs one summary line per request and echoes the id
    back in X-Request-ID. An incoming X-Request-ID is reused.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        clear_contextvars()
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        bind_contextvars(request_id=request_id, http_method=request.method, path=request.url.path)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            log.exception("http_request_failed", elapsed_ms=self._elapsed(started))
            raise

        fields = dict(
            route=_route_template(request),
            status_code=response.status_code,
            elapsed_ms=self._elapsed(started),
        )
        if response.status_code >= 500:
            log.error("http_request", **fields)
        elif response.status_code >= 400:
            log.warning("http_request", **fields)
        else:
            log.info("http_request", **fields)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    @staticmethod
    def _elapsed(started: float) -> float:
        return round((time.perf_counter() - started) * 1000, 2)
