"""Pytest fixtures for marketplace tests."""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from app import create_app
from marketplace.config import AppConfig
from marketplace.db.session import create_engine_for, init_db, make_session_factory
from marketplace.db.store import Store


class FakeNotifier:
    """Records notification calls instead of posting them."""

    def __init__(self, succeed=True):
        self.succeed = succeed
        self.calls = []

    def notify_supplier_status(self, supplier_id, action, admin_email=None):
        self.calls.append(("supplier", supplier_id, action, admin_email))
        return self.succeed

    def notify_order_status(self, order, previous_status):
        self.calls.append(("order", order["id"], previous_status, order["status"]))
        return self.succeed


def make_order_row(**overrides):
    row = {
        "order_number": "ORD-TEST-00001",
        "user_id": "customer-1",
        "supplier_id": "supplier-1",
        "status": "pending",
        "subtotal": Decimal("1000"),
        "delivery_fee": Decimal("0"),
        "total_amount": Decimal("1000"),
        "delivery_address": "KG 11 Ave, Kigali",
    }
    row.update(overrides)
    return row


def seed_catalog(store):
    """Two active suppliers, one pending supplier and a handful of products."""
    grill, market, pending = store.insert(
        "suppliers",
        [
            {"business_name": "Kigali Grill", "email": "grill@example.com",
             "delivery_fee": Decimal("1000"), "subscription_status": "active"},
            {"business_name": "Fresh Market", "email": "market@example.com",
             "delivery_fee": Decimal("500"), "subscription_status": "active"},
            {"business_name": "New Bakery", "email": "bakery@example.com",
             "delivery_fee": Decimal("0"), "subscription_status": "pending"},
        ],
    )
    brochette, chips, juice, retired, bread = store.insert(
        "products",
        [
            {"supplier_id": grill["id"], "name_en": "Brochette", "price": Decimal("1000")},
            {"supplier_id": grill["id"], "name_en": "Chips", "price": Decimal("500"),
             "discounted_price": Decimal("300")},
            {"supplier_id": market["id"], "name_en": "Passion juice", "price": Decimal("2000"),
             "max_quantity_per_order": 3},
            {"supplier_id": grill["id"], "name_en": "Old special", "price": Decimal("800"),
             "is_active": False},
            {"supplier_id": pending["id"], "name_en": "Bread", "price": Decimal("400")},
        ],
    )
    return SimpleNamespace(
        grill=grill,
        market=market,
        pending=pending,
        brochette=brochette,
        chips=chips,
        juice=juice,
        retired=retired,
        bread=bread,
    )


@pytest.fixture
def session_factory():
    """Session factory over a fresh in-memory database."""
    engine = create_engine_for("sqlite://")
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def store(session_factory):
    return Store(session_factory)


@pytest.fixture
def catalog(store):
    return seed_catalog(store)


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def app_config():
    return AppConfig(
        database_url="sqlite://",
        secret_key="test-secret",
        log_level="WARNING",
        currency="RWF",
        admin_username="admin",
        admin_password="secret",
    )


@pytest.fixture
def app(app_config, notifier):
    flask_app = create_app(app_config, notifier=notifier)
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(client):
    response = client.post("/admin/login", json={"username": "admin", "password": "secret"})
    assert response.status_code == 200
    return client
