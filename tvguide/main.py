from contextlib import asynccontextmanager
from time import perf_counter
import logging

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from tvguide.config import settings, setup_logging
from tvguide.errors import GuideError, UpstreamUnavailable
from tvguide.routers import main_router
from tvguide.services import create_http_client
from tvguide.utils.logging_helpers import log_request


setup_logging()
logger = logging.getLogger(__name__)

INTERNAL_ERROR_BODY = "Internal Server Error"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    logger.info("Starting TV Guide server...")
    app.state.http_client = create_http_client(settings)
    logger.info("Upstream client ready (timeout: %ss)", settings.upstream_timeout_sec)

    yield

    logger.info("Shutting down TV Guide server...")
    try:
        await app.state.http_client.aclose()
        logger.info("Upstream client closed")
    except Exception as e:
        logger.error(f"Error closing upstream client: {e}", exc_info=True)
    app.state.http_client = None


app = FastAPI(
    title="tvtv2xmltv",
    version="0.1.0",
    lifespan=lifespan
)

app.include_router(main_router)


@app.middleware("http")
async def response_time_middleware(request: Request, call_next):
    """Log each request and attach X-Response-Time; unhandled errors become a plain 500"""
    started = perf_counter()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"Error processing {request.method} {request.url.path}: {e}", exc_info=True)
        response = PlainTextResponse(INTERNAL_ERROR_BODY, status_code=500)

    duration_ms = int((perf_counter() - started) * 1000)
    response.headers["X-Response-Time"] = f"{duration_ms}ms"
    log_request(logger, request.method, request.url.path, response.status_code, duration_ms)
    return response


@app.exception_handler(GuideError)
async def guide_error_handler(request: Request, exc: GuideError):
    """Log guide build failures; the client only sees a generic 500"""
    if isinstance(exc, UpstreamUnavailable):
        logger.error(f"Guide build failed, upstream unavailable: {exc}")
    else:
        logger.error(f"Guide build failed: {type(exc).__name__}: {exc}", exc_info=exc)
    return PlainTextResponse(INTERNAL_ERROR_BODY, status_code=500)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Plain-text bodies for routing errors (404/405)"""
    return PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=exc.headers)


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    uvicorn.run("tvguide.main:app", host="0.0.0.0", port=3000, timeout_keep_alive=255)
