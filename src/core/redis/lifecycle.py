from fastapi import FastAPI
from redis import Redis
from redis.exceptions import RedisError

from loggers import get_logger
from src.core.errors.exceptions import InfrastructureException

logger = get_logger("redis")


def on_redis_startup(app: FastAPI) -> None:
    """
    Check the Redis client created by the application factory is reachable.
    Does nothing when the refresh token store is not Redis backed.
    """
    redis_client: Redis | None = getattr(app.state, "redis_client", None)
    if redis_client is None:
        return
    try:
        redis_client.ping()
    except RedisError as exc:
        logger.error("Redis ping failed during startup: %s", exc)
        raise InfrastructureException("Redis is unreachable") from exc
    logger.info("Redis client connected.")


def on_redis_shutdown(app: FastAPI) -> None:
    redis_client: Redis | None = getattr(app.state, "redis_client", None)
    if redis_client is not None:
        logger.info("Closing Redis client...")
        redis_client.close()
        logger.info("Redis client closed.")
