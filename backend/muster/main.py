"""
Muster Rating API
FastAPI service exposing the field-operations rating engine: line totals,
modifier composition and project cost breakdowns.
"""
import os
import logging
import time
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

# .env must be loaded before muster.config reads the environment
load_dotenv()

from muster.config import ENGINE_LOG_LEVEL, LOG_JSON, LOG_LEVEL, RATE_OVERRIDES_FILE  # noqa: E402
from muster.services.logging_config import setup_logging  # noqa: E402
from muster.services.middleware import RequestTimingMiddleware  # noqa: E402
from muster.services.perf_monitor import tracker as perf_tracker  # noqa: E402
from muster.services.rate_catalog import RateCatalog  # noqa: E402

setup_logging(level=LOG_LEVEL, json_output=LOG_JSON, engine_level=ENGINE_LOG_LEVEL)
logger = logging.getLogger("muster-api")

APP_VERSION = "1.0.0"

# Record process start time for uptime calculation
_PROCESS_START = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        app.state.rate_catalog = RateCatalog.from_file(RATE_OVERRIDES_FILE)
    except (OSError, ValueError) as e:
        # A broken overrides file must not keep the estimator offline.
        logger.error(f"Failed to load rate overrides from {RATE_OVERRIDES_FILE}: {e}")
        app.state.rate_catalog = RateCatalog()
    logger.info(f"Rate catalog ready ({len(app.state.rate_catalog.items())} active items)")
    yield


app = FastAPI(
    title="Muster Rating API",
    version=APP_VERSION,
    description="Cost rating and project estimates for field operations",
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Security Headers Middleware
# ---------------------------------------------------------------------------
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds standard security headers to every response."""
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


# ---------------------------------------------------------------------------
# CORS: allowed origins from env
# ---------------------------------------------------------------------------
_cors_default = "http://localhost:3000,http://localhost:5173"
cors_origins = [o.strip() for o in os.getenv("CORS_ORIGINS", _cors_default).split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "X-Requested-With"],
)
app.add_middleware(SecurityHeadersMiddleware)
# Request timing + X-Request-ID must be outermost so it wraps all other middleware
app.add_middleware(RequestTimingMiddleware)

# Routers
from muster.api.rating_routes import router as rating_router  # noqa: E402

app.include_router(rating_router)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/health")
async def health_check():
    return {
        "status": "active",
        "version": APP_VERSION,
        "uptime_seconds": round(time.monotonic() - _PROCESS_START, 1),
    }


@app.get("/metrics")
async def metrics():
    """
    Performance metrics endpoint.

    Returns request throughput, per-path average duration and error counts,
    sourced from the in-process PerformanceTracker singleton.
    """
    snapshot = perf_tracker.get_metrics()
    return {
        "uptime_seconds": round(time.monotonic() - _PROCESS_START, 1),
        **snapshot,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("muster.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
