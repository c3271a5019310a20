from collections.abc import Awaitable, Callable
from typing import Any, cast

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import sentry_sdk
from starlette.responses import Response

from loggers import get_logger
from src.core.errors.exceptions import (
    CoreException,
    InfrastructureException,
    TokenAuthException,
    TokenErrorCode,
)

response_logger = get_logger("app.request.error_response", plain_format=True)

HandlerCallable = Callable[[Request, Exception], Awaitable[Response]]

TOKEN_ERROR_STATUS: dict[TokenErrorCode, int] = {
    TokenErrorCode.EXPIRED_TOKEN: 401,
    TokenErrorCode.INVALID_TOKEN: 401,
    TokenErrorCode.INVALID_SIGNATURE: 401,
    TokenErrorCode.MALFORMED_TOKEN: 401,
    TokenErrorCode.INVALID_TOKEN_TYPE: 401,
    TokenErrorCode.REFRESH_REUSE_DETECTED: 401,
    TokenErrorCode.REFRESH_DISABLED: 400,
}

SENSITIVE_KEYS = {
    "authorization",
    "token",
    "access_token",
    "refresh_token",
    "password",
    "secret",
}


def as_exception_handler(handler: Any) -> HandlerCallable:
    """
    Convert a handler class instance to a compatible exception handler callable.
    This helps mypy understand the correct typing for FastAPI exception handlers.

    Args:
        handler: An instance of an exception handler class with __call__ method

    Returns:
        A callable with the correct type signature for FastAPI exception handlers
    """
    return cast(HandlerCallable, handler.__call__)


def format_error_response(error_type: str, message: str | None) -> dict[str, Any]:
    """
    Format error response content for JSONResponse

    Args:
        error_type: Type of error (e.g., "Unauthorized", "EXPIRED_TOKEN")
        message: Detailed error message

    Returns:
        Dictionary with error information
    """
    return {
        "error": error_type,
        "message": message or "No additional details available",
    }


def format_log_message(
    request: Request,
    error_type: str,
    message: str | None,
    additional_info: dict[str, Any] | None = None,
    include_request_path: bool = False,
) -> str:
    """
    Format error message for logging

    Args:
        request: FastAPI Request object
        error_type: Type of error
        message: Error message
        additional_info: Additional context information for logs only (not shown to clients)
        include_request_path: Include request path and method in the log message

    Returns:
        Formatted log message
    """
    raw_msg = message or "No additional details available"
    msg = " ".join(raw_msg.split())
    if len(msg) > 500:
        msg = msg[:497] + "..."

    et = (error_type or "").strip()
    err = (et[:1].upper() + et[1:]) if et else "Error"

    request_id = request.headers.get("x-request-id")
    prefix = f"[{request_id}] " if request_id else ""
    log_msg = f"{prefix}[{err}] {msg}"

    if include_request_path:
        log_msg = f"{prefix}[{err}] {request.method} {request.url.path} | {msg}"

    if additional_info:

        def mask(k: str, v: Any) -> str:
            return "***" if k.lower() in SENSITIVE_KEYS else repr(v)

        additional_str = ", ".join(
            f"{k}={mask(k, additional_info[k])}" for k in sorted(additional_info)
        )
        log_msg = f"{log_msg} | Additional info: {additional_str}"

    return log_msg


# ----- Infrastructure error handler ----- #
class InfrastructureExceptionHandler:
    async def __call__(
        self, request: Request, exc: InfrastructureException
    ) -> JSONResponse:
        error_type = "Infrastructure error"
        log_msg = format_log_message(
            request, error_type, exc.message, exc.additional_info
        )
        response_logger.error(log_msg)
        sentry_sdk.capture_exception(exc)
        return JSONResponse(
            status_code=500,
            content=format_error_response(error_type, exc.message),
        )


# ----- Validation Handlers ----- #
class RequestValidationExceptionHandler:
    async def __call__(
        self, request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        error_type = "Request validation error"
        safe_detail = jsonable_encoder(exc.errors())
        # Submitted values (passwords, tokens) stay out of the log
        logged_detail = [
            {key: value for key, value in error.items() if key != "input"}
            for error in safe_detail
        ]
        log_msg = format_log_message(
            request,
            error_type,
            str(logged_detail),
            include_request_path=True,
        )
        response_logger.debug(log_msg)
        return JSONResponse(status_code=422, content={"detail": safe_detail})


# ----- Core Error Handlers ----- #
class CoreExceptionHandler:
    async def __call__(self, request: Request, exc: CoreException) -> JSONResponse:
        error_type = "Bad request"
        log_msg = format_log_message(
            request, error_type, exc.message, exc.additional_info
        )
        response_logger.info(log_msg)
        return JSONResponse(
            status_code=400,
            content=format_error_response(error_type, exc.message),
        )


class UnauthorizedExceptionHandler:
    async def __call__(self, request: Request, exc: CoreException) -> JSONResponse:
        error_type = "Unauthorized"
        log_msg = format_log_message(
            request, error_type, exc.message, exc.additional_info
        )
        response_logger.warning(log_msg)
        return JSONResponse(
            status_code=401,
            content=format_error_response(error_type, exc.message),
            headers={"WWW-Authenticate": "Bearer"},
        )


class TokenAuthExceptionHandler:
    async def __call__(
        self, request: Request, exc: TokenAuthException
    ) -> JSONResponse:
        status_code = TOKEN_ERROR_STATUS.get(exc.code, 500)
        log_msg = format_log_message(
            request,
            exc.code.value,
            exc.message,
            exc.additional_info,
            include_request_path=True,
        )
        if exc.code is TokenErrorCode.REFRESH_REUSE_DETECTED:
            response_logger.error(log_msg)
        else:
            response_logger.warning(log_msg)

        headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
        return JSONResponse(
            status_code=status_code,
            content=format_error_response(exc.code.value, exc.message),
            headers=headers,
        )
