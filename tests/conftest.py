"""Pytest fixtures for the EthioConnect services."""

import os

# Settings are read at import time, so the environment goes first
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["INTERNAL_API_KEY"] = "test-internal-key"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["TRACKING_SIMULATION_ENABLED"] = "false"
os.environ["PAYMENT_SIMULATED_DELAY"] = "0"
os.environ.pop("OTLP_ENDPOINT", None)
os.environ.pop("PAYMENT_GATEWAY_URL", None)

import httpx
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Registers every table with Base
from main import app
from services.order_service.main import order_app
from services.payment_service.gateway import PaymentGateway, PaymentResult, get_payment_gateway
from services.payment_service.main import payment_app
from services.product_service.main import product_app
from services.product_service.models import Product
from services.request_service.main import request_app
from services.tracking_service.broadcaster import RecordingBroadcaster, get_broadcaster
from shared.config.database import Base, DatabaseHealth, get_db, get_db_health
from shared.security import CurrentUser, create_user_token

SUB_APPS = (product_app, order_app, request_app, payment_app)

CUSTOMER = CurrentUser(id="user-1", role="user", name="Abebe Kebede", email="abebe@example.com")
OTHER_CUSTOMER = CurrentUser(id="user-2", role="user", name="Sara Tesfaye")
ADMIN = CurrentUser(id="admin-1", role="admin", name="Admin")

SHIPPING_ADDRESS = {
    "name": "Abebe Kebede",
    "street": "Bole Road 12",
    "city": "Addis Ababa",
    "country": "Ethiopia",
    "zip_code": "1000",
    "phone": "+251911000000",
}

CARD = {"card_number": "4242424242424242", "expiry_date": "12/30", "cvv": "123"}


class FakeGateway(PaymentGateway):
    """Scripted gateway: approves unless told otherwise and records calls."""

    def __init__(self, approved: bool = True, reason: str | None = None, error: Exception | None = None):
        self.approved = approved
        self.reason = reason
        self.error = error
        self.calls = []

    async def authorize(self, amount, method, card_details):
        self.calls.append({"amount": amount, "method": method, "card": card_details})
        if self.error is not None:
            raise self.error
        if self.approved:
            return PaymentResult(approved=True, reference=f"txn_test_{len(self.calls)}")
        return PaymentResult(approved=False, reason=self.reason or "Payment declined")


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def gateway():
    return FakeGateway()


async def make_product(db, name="Yirgacheffe Coffee", price=15.0, stock=10, **kwargs):
    product = Product(name=name, price=price, stock=stock, description="", category="coffee", **kwargs)
    db.add(product)
    await db.commit()
    await db.refresh(product)
    return product


@pytest.fixture
async def product(db):
    return await make_product(db)


def order_payload(product_id, quantity=1, **overrides):
    payload = {
        "items": [{"product_id": product_id, "quantity": quantity}],
        "shipping_address": dict(SHIPPING_ADDRESS),
        "payment_method": "credit_card",
        "payment_info": dict(CARD),
    }
    payload.update(overrides)
    return payload


def request_payload(**overrides):
    payload = {
        "product_url": "https://www.example.com/products/kindle",
        "product_name": "Kindle Paperwhite",
        "product_price": "€100",
        "quantity": 1,
        "category": "electronics",
        "urgency": "high",
        "shipping_address": {"name": "Abebe Kebede", "street": "Bole Road 12", "city": "Addis Ababa"},
    }
    payload.update(overrides)
    return payload


def auth_headers(user: CurrentUser) -> dict:
    token = create_user_token(user.id, role=user.role, name=user.name, email=user.email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def client(engine, session_factory, broadcaster, gateway):
    """HTTP client against the root app with the database and ports swapped out."""
    health = DatabaseHealth(engine)
    await health.ping()

    async def override_get_db():
        async with session_factory() as session:
            yield session

    for sub_app in SUB_APPS:
        sub_app.dependency_overrides[get_db] = override_get_db
        sub_app.dependency_overrides[get_db_health] = lambda: health
        sub_app.dependency_overrides[get_broadcaster] = lambda: broadcaster
        sub_app.dependency_overrides[get_payment_gateway] = lambda: gateway

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
        yield http

    for sub_app in SUB_APPS:
        sub_app.dependency_overrides.clear()
