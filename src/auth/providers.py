from redis import Redis

from loggers import get_logger
from src.auth.codec import TokenCodec
from src.auth.gate import AuthGate
from src.auth.rotation import RefreshRotationService, RefreshSettings
from src.auth.store.interface import RefreshTokenStore
from src.auth.store.memory import InMemoryRefreshTokenStore
from src.auth.store.redis_store import RedisRefreshTokenStore
from src.core.redis.core import create_redis_client
from src.main.config import JWTConfig, RedisConfig

logger = get_logger(__name__)


def build_token_codec(jwt_config: JWTConfig) -> TokenCodec:
    """
    Build the codec; raises ConfigurationException on a weak secret so the
    application never starts with one.
    """
    return TokenCodec(
        secret=jwt_config.JWT_SECRET,
        issuer=jwt_config.JWT_ISSUER,
        access_ttl_millis=jwt_config.ACCESS_TOKEN_TTL_MILLIS,
        refresh_ttl_millis=jwt_config.REFRESH_TOKEN_TTL_MILLIS,
    )


def build_refresh_token_store(
    redis_config: RedisConfig, redis_client: Redis | None = None
) -> RefreshTokenStore:
    if redis_config.REFRESH_STORE_BACKEND == "redis":
        client = redis_client or create_redis_client(redis_config.dsn)
        logger.info("Using Redis refresh token store.")
        return RedisRefreshTokenStore(client)
    logger.warning(
        "Using in-memory refresh token store; sessions are lost on restart "
        "and not shared between processes."
    )
    return InMemoryRefreshTokenStore()


def build_rotation_service(
    codec: TokenCodec, store: RefreshTokenStore, jwt_config: JWTConfig
) -> RefreshRotationService:
    return RefreshRotationService(
        codec,
        store,
        RefreshSettings(
            enabled=jwt_config.REFRESH_ENABLED,
            rotate=jwt_config.REFRESH_ROTATE,
            reuse_detection=jwt_config.REUSE_DETECTION,
        ),
    )


def build_auth_gate(codec: TokenCodec, jwt_config: JWTConfig) -> AuthGate:
    return AuthGate(
        codec,
        protected_paths=jwt_config.PROTECTED_PATHS,
        excluded_paths=jwt_config.EXCLUDED_PATHS,
        header=jwt_config.JWT_HEADER,
    )
