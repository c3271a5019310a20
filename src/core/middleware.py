from collections.abc import Awaitable, Callable
import time
import traceback

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import sentry_sdk
from starlette.responses import Response

from loggers import get_logger
from src.core.errors.handlers import format_error_response

logger = get_logger(__name__)
timing_logger = get_logger("src.request.timing", plain_format=True)
INTERNAL_ERROR = "INTERNAL_ERROR"
UNEXPECTED_ERROR_MESSAGE = "Unexpected error"


def register_middlewares(app: FastAPI) -> None:
    """Registers all custom middlewares in proper order"""

    @app.middleware("http")
    async def security_headers_middleware(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        response = await call_next(request)
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Cache-Control", "no-store")
        return response

    @app.middleware("http")
    async def request_timing_middleware(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        start_time = time.perf_counter()
        response = await call_next(request)
        process_time = time.perf_counter() - start_time

        if process_time < 0.5:
            level = timing_logger.info
            category = "[FAST]"
        elif process_time < 2:
            level = timing_logger.warning
            category = "[MODERATE]"
        else:
            level = timing_logger.warning
            category = "[SLOW]"

        method = request.method
        path = request.url.path
        status_code = response.status_code
        duration = f"{process_time:.3f}s"

        level(f"{category} {method} {path} |{duration}|{status_code}")

        return response

    @app.middleware("http")
    async def unexpected_error_middleware(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            error_traceback = traceback.format_exc()
            logger.error(
                "Unexpected error at %s: %s\n%s",
                request.url.path,
                str(e),
                error_traceback,
            )
            sentry_sdk.capture_exception(e)
            return JSONResponse(
                status_code=500,
                content=format_error_response(INTERNAL_ERROR, UNEXPECTED_ERROR_MESSAGE),
            )
