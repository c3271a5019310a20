from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from src.auth import routers as auth_routers
from src.core.errors.exceptions import (
    CoreException,
    InfrastructureException,
    TokenAuthException,
    UnauthorizedException,
)
from src.core.errors.handlers import (
    CoreExceptionHandler,
    InfrastructureExceptionHandler,
    RequestValidationExceptionHandler,
    TokenAuthExceptionHandler,
    UnauthorizedExceptionHandler,
    as_exception_handler,
)
from src.healthcheck import routers as healthcheck_routers


def include_routers(app: FastAPI) -> None:
    """
    Includes API routers into the FastAPI application.

    Parameters:
        app (FastAPI): The FastAPI application instance to which routers will
        be added.
    """
    app.include_router(auth_routers.auth_router, prefix="/auth", tags=["Auth"])
    app.include_router(
        auth_routers.verification_router, prefix="/api", tags=["Verification"]
    )
    app.include_router(healthcheck_routers.router, tags=["System"])


def include_exceptions_handlers(app: FastAPI) -> None:
    """
    Registers exception handlers for the custom exceptions. Starlette resolves
    handlers by walking the exception's MRO, so subclasses of CoreException
    registered here take precedence over the CoreException fallback.
    """
    app.add_exception_handler(
        InfrastructureException, as_exception_handler(InfrastructureExceptionHandler())
    )
    app.add_exception_handler(
        RequestValidationError,
        as_exception_handler(RequestValidationExceptionHandler()),
    )
    app.add_exception_handler(
        TokenAuthException, as_exception_handler(TokenAuthExceptionHandler())
    )
    app.add_exception_handler(
        UnauthorizedException, as_exception_handler(UnauthorizedExceptionHandler())
    )
    app.add_exception_handler(
        CoreException,
        as_exception_handler(CoreExceptionHandler()),
    )
