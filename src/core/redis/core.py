from redis import Redis

from loggers import get_logger

logger = get_logger(__name__)

DEFAULT_SOCKET_TIMEOUT = 5.0


def create_redis_client(
    connection_url: str,
    *,
    decode_responses: bool = True,
    socket_timeout: float = DEFAULT_SOCKET_TIMEOUT,
) -> Redis:
    """
    Build the synchronous client behind the refresh token store.

    The client connects lazily; the application lifespan pings it on startup.
    Responses are decoded so hash fields and set members come back as ``str``.
    """
    client = Redis.from_url(
        connection_url,
        decode_responses=decode_responses,
        socket_timeout=socket_timeout,
        socket_connect_timeout=socket_timeout,
        health_check_interval=30,
    )
    logger.debug("Redis client configured (timeout=%ss)", socket_timeout)
    return client
