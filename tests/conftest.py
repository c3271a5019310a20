from collections.abc import AsyncGenerator, Generator
import os

os.environ.setdefault("TESTING", "true")
os.environ.setdefault("JWT_SECRET", "test-secret-key-that-is-long-enough-for-hs256")
os.environ.setdefault("JWT_ISSUER", "test-issuer")

from fastapi import FastAPI  # noqa: E402
import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from src.auth.codec import TokenCodec  # noqa: E402
from src.auth.rotation import RefreshRotationService  # noqa: E402
from src.auth.store.memory import InMemoryRefreshTokenStore  # noqa: E402
from src.auth.store.redis_store import RedisRefreshTokenStore  # noqa: E402
from src.main.config import Config, get_settings  # noqa: E402
from src.main.web import get_application  # noqa: E402
from tests.fakes.redis import InMemoryRedis  # noqa: E402
from tests.helpers.overrides import DependencyOverrides  # noqa: E402
from tests.helpers.tokens import TEST_ISSUER, TEST_SECRET  # noqa: E402


@pytest.fixture(scope="session")
def settings() -> Config:
    get_settings.cache_clear()
    return get_settings()


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(
        secret=TEST_SECRET,
        issuer=TEST_ISSUER,
        access_ttl_millis=60_000,
        refresh_ttl_millis=120_000,
    )


@pytest.fixture
def memory_store() -> InMemoryRefreshTokenStore:
    return InMemoryRefreshTokenStore()


@pytest.fixture
def fake_redis() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def redis_store(fake_redis: InMemoryRedis) -> RedisRefreshTokenStore:
    return RedisRefreshTokenStore(fake_redis)  # type: ignore[arg-type]


@pytest.fixture
def rotation_service(
    codec: TokenCodec, memory_store: InMemoryRefreshTokenStore
) -> RefreshRotationService:
    return RefreshRotationService(codec, memory_store)


@pytest.fixture
def app(settings: Config) -> FastAPI:
    return get_application(settings)


@pytest.fixture
def dependency_overrides(app: FastAPI) -> Generator[DependencyOverrides]:
    overrides = DependencyOverrides(app)
    yield overrides
    overrides.reset()


@pytest_asyncio.fixture
async def async_client(app: FastAPI) -> AsyncGenerator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(
        transport=transport, base_url="http://testserver"
    ) as client:
        yield client
