import os

# must be set before storefront modules read their settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "1"
os.environ["RESTOCK_ON_DELETE"] = "0"

from decimal import Decimal
from itertools import count

import pytest
from sqlalchemy.orm import sessionmaker

from storefront.data.database import init_db, make_engine
from storefront.data.models import ProductModel, UserModel
from storefront.services.notification_service import NotificationService


class FakeGateway:
    """Stands in for PaymentGatewayClient; records every intent it issues."""

    def __init__(self):
        self.calls = []

    def create_payment_intent(self, amount, currency, order_id):
        n = len(self.calls) + 1
        self.calls.append({"amount": amount, "currency": currency, "order_id": order_id})
        return {
            "id": f"pi_test_{order_id}_{n}",
            "client_secret": f"pi_test_{order_id}_{n}_secret",
            "status": "requires_payment_method",
        }


class RecordingNotifications(NotificationService):
    def __init__(self):
        self.events = []

    def _dispatch(self, user_id, order_id, event):
        self.events.append((user_id, order_id, event))


@pytest.fixture
def engine(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'storefront.db'}")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


def _user(db, user_id, name, role="USER"):
    user = UserModel(id=user_id, name=name, role=role)
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def admin(db):
    return _user(db, 1, "admin", role="ADMIN")


@pytest.fixture
def customer(db):
    return _user(db, 2, "alice")


@pytest.fixture
def other_customer(db):
    return _user(db, 3, "bob")


@pytest.fixture
def make_product(db):
    seq = count(1)

    def _make(stock=5, price="10.00", active=True, name=None):
        n = next(seq)
        product = ProductModel(
            sku=f"SKU-{n:03d}",
            name=name or f"Product {n}",
            price=Decimal(price),
            stock=stock,
            is_active=active,
        )
        db.add(product)
        db.commit()
        return product

    return _make


@pytest.fixture
def stock_of(session_factory):
    """Reads stock through a fresh session, bypassing any cached rows."""

    def _stock(product_id):
        with session_factory() as s:
            return s.get(ProductModel, product_id).stock

    return _stock


@pytest.fixture
def address():
    return {
        "street": "123 Test St",
        "city": "Test City",
        "state": "TS",
        "zip_code": "12345",
        "country": "Test Country",
    }


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def notifications():
    return RecordingNotifications()
