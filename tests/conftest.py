import hashlib
import hmac
from decimal import Decimal

import pytest

from zenith_backend.app import create_app
from zenith_backend.config import TestConfig
from zenith_backend.extensions import db
from zenith_backend.models import User, Price

ADMIN_EMAIL = "admin@zenith.test"
ADMIN_PASSWORD = "admin-pass-123"


@pytest.fixture
def app(tmp_path):
    class _Config(TestConfig):
        SQLALCHEMY_DATABASE_URI = "sqlite:///" + (tmp_path / "studio.db").as_posix()
        UPLOAD_FOLDER = str(tmp_path / "uploads")

    app = create_app(_Config)
    with app.app_context():
        db.create_all()
        admin = User(name="Admin", email=ADMIN_EMAIL, user_type="admin", is_admin=True)
        admin.set_password(ADMIN_PASSWORD)
        db.session.add(admin)
        db.session.add(Price(
            album_type="Print only",
            user_type="user",
            paper_size="12x36",
            glossy_paper_price=8000,
            glossy_sheet_price=10000,
            ntr_paper_price=12000,
            ntr_sheet_price=0,
            binding_price=20000,
            bag_price=5000,
            service_tax=Decimal("18"),
            delivery_charge=11000,
            premium_glossy_sheet_price=15000,
        ))
        db.session.commit()
        db.session.remove()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    """App context for calling services directly."""
    with app.app_context():
        yield app
        db.session.remove()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(app):
    c = app.test_client()
    resp = c.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert resp.status_code == 200, resp.get_json()
    return c


def sign(order_id: str, payment_id: str, secret: str = TestConfig.RAZORPAY_KEY_SECRET) -> str:
    return hmac.new(secret.encode(), f"{order_id}|{payment_id}".encode(), hashlib.sha256).hexdigest()


def order_payload(order_no="ORD-1", **overrides):
    """Hand-priced counter order: 10 sheets x 100.00, no tax -> total 1000.00. Staff only."""
    data = {
        "orderNo": order_no,
        "albumName": "Wedding of A & B",
        "paperType": "glossy",
        "albumSize": "12x36",
        "orderDate": "2026-03-01",
        "email": "customer@example.com",
        "mobile": "9999999999",
        "deliveryOption": "pickup",
        "priceDetails": {
            "quantity": 10,
            "paperRate": "100.00",
            "bindingRate": "0",
            "bagRate": "0",
            "taxRate": "0",
            "advanceAmount": "300.00",
        },
    }
    data.update(overrides)
    return data


@pytest.fixture
def staff(ctx):
    """The seeded admin, for service calls made on behalf of the counter."""
    return User.query.filter_by(email=ADMIN_EMAIL).one()


@pytest.fixture
def make_order(ctx, staff):
    from zenith_backend.services.orders import create_order

    def _make(order_no="ORD-1", **overrides):
        return create_order(order_payload(order_no, **overrides), user=staff)

    return _make
