"""Pytest fixtures for the taskboard service tests."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from pydantic import SecretStr

from taskboard_service.config import Settings
from taskboard_service.core.container import ServiceContainer
from taskboard_service.core.principal import Principal
from taskboard_service.models import User, UserRole
from taskboard_service.storage import InMemoryDocumentStore
from tests.fixtures.factories import register_user


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings with a memory store and cheap hashing."""
    return Settings(
        jwt_secret=SecretStr("test-secret-with-enough-entropy-0123456789"),
        bcrypt_rounds=4,
        store_backend="memory",
        log_level="DEBUG",
        log_format="console",
        metrics_enabled=True,
    )


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest_asyncio.fixture
async def container(
    test_settings: Settings,
    store: InMemoryDocumentStore,
) -> AsyncGenerator[ServiceContainer, None]:
    """Services wired around a fresh in-memory store."""
    services = ServiceContainer.build(test_settings, store)
    await services.start()
    yield services
    await services.stop()


@pytest_asyncio.fixture
async def alice(container: ServiceContainer) -> User:
    return await register_user(container, "alice")


@pytest_asyncio.fixture
async def bob(container: ServiceContainer) -> User:
    return await register_user(container, "bob")


@pytest_asyncio.fixture
async def admin(container: ServiceContainer) -> User:
    return await register_user(container, "root", role=UserRole.ADMIN)


@pytest.fixture
def alice_principal(alice: User) -> Principal:
    return Principal.for_user(alice)


@pytest.fixture
def bob_principal(bob: User) -> Principal:
    return Principal.for_user(bob)


@pytest.fixture
def admin_principal(admin: User) -> Principal:
    return Principal.for_user(admin)
