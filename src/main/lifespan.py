from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from loggers import get_logger
from src.core.redis.lifecycle import on_redis_shutdown, on_redis_startup
from src.main.sentry import init_sentry

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    init_sentry()
    on_redis_startup(app)
    logger.info("Lifespan started")

    yield

    on_redis_shutdown(app)
    logger.info("Lifespan ended")
