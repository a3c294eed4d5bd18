"""Request timing and tracing middleware for the Muster rating service."""
import time
import uuid
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from muster.services.perf_monitor import tracker

logger = logging.getLogger("muster-api.middleware")

SKIP_LOG_PATHS = {"/health"}

# Caller-supplied ids longer than this are replaced with a fresh uuid4.
_MAX_REQUEST_ID_LEN = 128


def _request_id(request: Request) -> str:
    incoming = request.headers.get("X-Request-ID", "").strip()
    if incoming and len(incoming) <= _MAX_REQUEST_ID_LEN:
        return incoming
    return str(uuid.uuid4())


def _route_path(request: Request) -> str:
    """Route template (``/api/rating/rate-card/{item_id}/line-item``) or the raw path when unrouted."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """
    Middleware that:
    - Reuses an incoming X-Request-ID header,
      otherwise assigns a uuid4, and echoes it on the response.
    - Adds X-Process-Time (ms) to every response.
    - Records durations with the performance tracker keyed by route template,
      so per-item rate-card URLs share one metrics entry.
    - Emits a structured log line for every request (except /health).
    - Counts a request whose handler raised as a 500 before re-raising.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = _request_id(request)
        start_time = time.perf_counter()

        request.state.request_id = request_id

        try:
            response: Response = await call_next(request)
        except Exception:
            # The app-level handler turns this into a 500 outside this middleware.
            duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
            path = _route_path(request)
            tracker.record_request(path, duration_ms, 500)
            logger.error(
                "request failed",
                extra={
                    "http_method": request.method,
                    "http_path": path,
                    "http_status": 500,
                    "request_id": request_id,
                    "duration_ms": duration_ms,
                },
            )
            raise

        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(duration_ms)

        if request.url.path in SKIP_LOG_PATHS:
            return response

        path = _route_path(request)
        tracker.record_request(path, duration_ms, response.status_code)
        logger.info(
            "request completed",
            extra={
                "http_method": request.method,
                "http_path": path,
                "http_status": response.status_code,
                "request_id": request_id,
                "duration_ms": duration_ms,
            },
        )
        return response
