"""Shared fixtures.

Every test gets a fresh fake platform mounted on an ASGI transport, and
settings pointing at it with the settle delays switched off.
"""

import httpx
import pytest
import pytest_asyncio

from shopqa.application.context import ScenarioContext
from shopqa.application.runner import ScenarioRunner
from shopqa.data.factory import UniqueIdGenerator
from shopqa.infrastructure.config import Settings
from tests.fakeshop import PlatformBehaviour, ShopStore, create_app

BASE_URL = "http://shop.test"


@pytest.fixture
def settings() -> Settings:
    """Settings for the fake platform."""
    return Settings(
        _env_file=None,
        base_url=BASE_URL,
        settle_attempts=3,
        settle_delay=0,
        stock_settle_delay=0,
        smoke_timeout=10,
        checkout_timeout=10,
        teardown_timeout=5,
    )


@pytest.fixture
def behaviour() -> PlatformBehaviour:
    """Behaviour switches of the fake platform (all defaults)."""
    return PlatformBehaviour()


@pytest.fixture
def store(behaviour) -> ShopStore:
    """Fresh seeded platform state."""
    return ShopStore(behaviour)


@pytest.fixture
def app(store):
    """Fake platform app."""
    return create_app(store)


@pytest.fixture
def transport(app) -> httpx.ASGITransport:
    """Transport routing every client into the fake platform."""
    return httpx.ASGITransport(app=app)


@pytest.fixture
def ids() -> UniqueIdGenerator:
    """Identifier source for generated data."""
    return UniqueIdGenerator()


@pytest.fixture
def runner(settings, transport, ids) -> ScenarioRunner:
    """Runner wired to the fake platform."""
    return ScenarioRunner(settings, transport=transport, ids=ids)


@pytest_asyncio.fixture
async def ctx(settings, transport, ids):
    """Scenario context wired to the fake platform, closed after the test."""
    context = ScenarioContext("test", settings, transport=transport, ids=ids)
    yield context
    await context.teardown()
    await context.close()
