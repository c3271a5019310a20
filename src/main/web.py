import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sentry_sdk.integrations.asgi import SentryAsgiMiddleware

from loggers import get_logger
from src.auth.providers import (
    build_auth_gate,
    build_refresh_token_store,
    build_rotation_service,
    build_token_codec,
)
from src.auth.store.redis_store import RedisRefreshTokenStore
from src.core.middleware import register_middlewares
from src.main.config import Config, config
from src.main.lifespan import lifespan
from src.main.presentation import include_exceptions_handlers, include_routers

logging.getLogger("uvicorn.access").disabled = True
logger = get_logger(__name__)


def get_application(settings: Config = config) -> FastAPI:
    application = FastAPI(
        title=settings.app.PROJECT_NAME,
        debug=settings.app.DEBUG,
        version=settings.app.VERSION,
        lifespan=lifespan,
    )

    # Token machinery; a weak secret fails here, before anything is served
    codec = build_token_codec(settings.jwt)
    store = build_refresh_token_store(settings.redis)
    application.state.app_config = settings.app
    application.state.jwt_header = settings.jwt.JWT_HEADER
    application.state.token_codec = codec
    application.state.refresh_token_store = store
    application.state.rotation_service = build_rotation_service(
        codec, store, settings.jwt
    )
    application.state.redis_client = (
        store.r if isinstance(store, RedisRefreshTokenStore) else None
    )

    # Registered first so it runs innermost, after CORS and the error guard
    application.middleware("http")(build_auth_gate(codec, settings.jwt))

    register_middlewares(application)

    # CORS
    application.add_middleware(
        CORSMiddleware,  # noqa
        allow_origins=settings.app.CORS_ALLOWED_ORIGINS,
        allow_credentials=settings.app.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.app.CORS_ALLOWED_METHODS,
        allow_headers=settings.app.CORS_ALLOWED_HEADERS,
    )

    include_exceptions_handlers(application)
    include_routers(application)
    logger.info(
        "Application created: %s routes, protected paths %s",
        len(application.routes),
        settings.jwt.PROTECTED_PATHS,
    )

    # Sentry middleware for error tracking
    application.add_middleware(SentryAsgiMiddleware)

    return application


app = get_application()
