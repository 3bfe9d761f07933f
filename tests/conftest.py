"""
Shared fixtures.

Every test gets a fresh in-memory MongoDB (mongomock-motor) with Beanie
initialised on all document models, so services run against real Beanie
queries without a database server.
"""
import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("RATE_LIMITING_ENABLED", "false")
os.environ.setdefault("RECONCILIATION_ENABLED", "false")

import pytest
import pytest_asyncio
from beanie import init_beanie
from httpx import AsyncClient, ASGITransport
from mongomock_motor import AsyncMongoMockClient

from storecart.config.database import DOCUMENT_MODELS
from storecart.config.settings import settings
from storecart.models.productModel import Product
from storecart.models.userModel import User

SET_ADDRESS = "221B Baker Street, London NW1 6XE"


@pytest_asyncio.fixture(autouse=True)
async def database():
    """Fresh mock database per test"""
    client = AsyncMongoMockClient()
    database = client["storecart_test"]
    await init_beanie(database=database, document_models=DOCUMENT_MODELS)
    yield database


@pytest.fixture
def make_user():
    async def _make_user(
            email: str = "u1@example.com",
            walletMoney: float = 100,
            address: str = SET_ADDRESS,
            is_superuser: bool = False,
    ) -> User:
        user = User(
            email=email,
            hashed_password="not-a-real-hash",
            walletMoney=walletMoney,
            address=address,
            is_superuser=is_superuser,
        )
        await user.insert()
        return user

    return _make_user


@pytest.fixture
def make_product():
    async def _make_product(name: str = "p1", cost: float = 30, category: str = "Fashion") -> Product:
        product = Product(name=name, cost=cost, category=category, rating=4)
        await product.insert()
        return product

    return _make_product


@pytest_asyncio.fixture
async def user(make_user) -> User:
    """u1: walletMoney=100, address set"""
    return await make_user()


@pytest_asyncio.fixture
async def user_without_address(make_user) -> User:
    """u2: default address sentinel"""
    return await make_user(email="u2@example.com", walletMoney=100, address=settings.DEFAULT_ADDRESS)


@pytest_asyncio.fixture
async def product(make_product) -> Product:
    """p1: cost=30"""
    return await make_product()


@pytest_asyncio.fixture
async def test_client(user):
    """
    HTTP client on the real app with the authenticated user fixed to `user`.
    The lifespan is not run; the database fixture already initialised Beanie.
    """
    from storecart.main import app
    from storecart.crud.userService import current_active_user

    app.dependency_overrides[current_active_user] = lambda: user

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
