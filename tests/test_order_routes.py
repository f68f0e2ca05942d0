import io
import json

import pytest

from zenith_backend.extensions import db
from zenith_backend.models import Order, User
from conftest import order_payload


@pytest.fixture
def customer_client(app):
    with app.app_context():
        user = User(name="Customer", email="customer@example.com", user_type="user")
        user.set_password("secret-123")
        db.session.add(user)
        db.session.commit()
    c = app.test_client()
    c.post("/api/auth/login", json={"email": "customer@example.com", "password": "secret-123"})
    return c


def _create(client, order_no="ORD-1", **overrides):
    resp = client.post("/api/orders", json=order_payload(order_no, **overrides))
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["order"]


def test_create_and_fetch_details(client, admin_client):
    order = _create(admin_client)
    assert order["serialNo"].startswith("ZN-")
    assert order["priceDetails"]["total"] == 1000.0
    assert order["payment"] == {"totalPaid": 300.0, "dues": 700.0, "isFullyPaid": False}

    resp = client.get("/api/orders/details/ORD-1")
    body = resp.get_json()
    assert resp.status_code == 200
    assert body["dues"] == 700.0
    assert body["order"]["orderNo"] == "ORD-1"

    # serial works as a lookup key too
    assert client.get(f"/api/orders/details/{order['serialNo']}").status_code == 200
    assert client.get("/api/orders/details/NOPE").status_code == 404


def test_courier_without_zip_is_rejected(client, app):
    resp = client.post("/api/orders", json=order_payload(
        deliveryOption="courier",
        address={"street": "1 MG Road", "city": "Pune", "state": "MH", "zipCode": "", "country": "India"},
    ))
    body = resp.get_json()
    assert resp.status_code == 400
    assert body["ok"] is False
    assert body["missing"] == ["zipCode"]
    with app.app_context():
        assert Order.query.count() == 0


def test_anonymous_order_is_priced_from_schedule(client):
    resp = client.post("/api/orders", json=order_payload(albumType="Print only", priceDetails={"quantity": 2}))
    assert resp.status_code == 201, resp.get_json()
    # 2 x 100 + 200 binding + 50 bag = 450, + 18% tax
    assert resp.get_json()["order"]["priceDetails"]["total"] == 531.0


def test_anonymous_order_cannot_set_rates(client, app):
    resp = client.post("/api/orders", json=order_payload())
    assert resp.status_code == 403
    assert resp.get_json()["kind"] == "ForbiddenError"

    resp = client.post("/api/orders", json=order_payload(
        albumType="Print only", priceDetails={"quantity": 2, "advanceAmount": "531"},
    ))
    assert resp.status_code == 403
    with app.app_context():
        assert Order.query.count() == 0


def test_customer_order_is_linked_to_account(customer_client, app):
    resp = customer_client.post("/api/orders", json=order_payload(
        albumType="Print only", email=None, priceDetails={"quantity": 2, "advancePercent": "50"},
    ))
    assert resp.status_code == 201, resp.get_json()
    order = resp.get_json()["order"]
    assert order["email"] == "customer@example.com"
    assert order["priceDetails"]["advanceAmount"] == 265.5
    with app.app_context():
        assert db.session.get(Order, order["id"]).user.email == "customer@example.com"


def test_duplicate_order_no_conflicts(admin_client):
    _create(admin_client)
    resp = admin_client.post("/api/orders", json=order_payload())
    assert resp.status_code == 409
    assert resp.get_json()["kind"] == "ConflictError"


def test_multipart_create_stores_files(admin_client):
    data = order_payload()
    data["priceDetails"] = json.dumps(data["priceDetails"])
    data["albumFiles"] = [(io.BytesIO(b"first"), "p1.jpg"), (io.BytesIO(b"second"), "p2.jpg")]
    resp = admin_client.post("/api/orders", data=data, content_type="multipart/form-data")
    assert resp.status_code == 201, resp.get_json()
    urls = resp.get_json()["order"]["uploadedFiles"]
    assert len(urls) == 2

    served = admin_client.get(urls[0])
    assert served.status_code == 200
    assert served.data == b"first"


def test_orders_for_user(client, admin_client):
    _create(admin_client)
    resp = client.post("/api/orders/user", json={"email": "Customer@Example.com"})
    assert [o["orderNo"] for o in resp.get_json()["orders"]] == ["ORD-1"]


def test_admin_routes_require_login(client, customer_client):
    assert client.get("/api/orders").status_code == 401
    assert customer_client.get("/api/orders").status_code == 403
    assert client.get("/api/orders/admin/payment-statistics").status_code == 401


def test_admin_list_and_get(admin_client):
    created = _create(admin_client)
    listed = admin_client.get("/api/orders").get_json()
    assert listed["count"] == 1

    detail = admin_client.get(f"/api/orders/{created['id']}").get_json()
    assert detail["order"]["payments"] == []


def test_update_rejects_unknown_fields(admin_client):
    created = _create(admin_client)
    resp = admin_client.put(f"/api/orders/{created['id']}", json={"total": 5, "serialNo": "X"})
    assert resp.status_code == 400
    assert resp.get_json()["fields"] == ["serialNo", "total"]

    resp = admin_client.put(f"/api/orders/{created['id']}", json={"notes": "rush"})
    assert resp.get_json()["order"]["notes"] == "rush"


def test_status_transitions(admin_client):
    created = _create(admin_client)
    url = f"/api/orders/{created['id']}/status"

    assert admin_client.patch(url, json={"orderStatus": "Completed"}).status_code == 200
    back = admin_client.patch(url, json={"orderStatus": "Pending"})
    assert back.status_code == 409
    assert back.get_json()["currentStatus"] == "Completed"
    assert admin_client.patch(url, json={"orderStatus": "Shipped"}).status_code == 400
    assert admin_client.patch(url, json={}).status_code == 400


def test_soft_and_hard_delete(admin_client, app):
    created = _create(admin_client)
    url = f"/api/orders/{created['id']}"

    soft = admin_client.delete(url)
    assert soft.status_code == 200
    assert soft.get_json()["hard"] is False
    assert admin_client.get(url).status_code == 404
    with app.app_context():
        assert db.session.get(Order, created["id"]).active is False

    hard = admin_client.delete(url + "?hard=1")
    assert hard.status_code == 200
    with app.app_context():
        assert db.session.get(Order, created["id"]) is None


def test_counter_upi_payment_by_order_no(admin_client):
    _create(admin_client)
    resp = admin_client.post("/api/orders/payment/update", json={"orderNo": "ORD-1", "amount": 700, "utr": "UTR9"})
    body = resp.get_json()
    assert resp.status_code == 200
    assert body["transitionedToPaid"] is True
    assert body["order"]["paymentStatus"] == "Paid"
    assert body["order"]["priceDetails"]["counterUpiPayment"] == 700.0

    assert admin_client.post("/api/orders/payment/update", json={"orderNo": "ORD-1"}).status_code == 400


def test_counter_upi_payment_needs_staff(client, customer_client, admin_client):
    _create(admin_client)
    body = {"orderNo": "ORD-1", "amount": 700, "channel": "cash"}
    assert client.post("/api/orders/payment/update", json=body).status_code == 401
    assert customer_client.post("/api/orders/payment/update", json=body).status_code == 403

    details = client.get("/api/orders/details/ORD-1").get_json()
    assert details["order"]["paymentStatus"] == "Pending"
    assert details["dues"] == 700.0


def test_admin_cash_payment_and_statistics(admin_client):
    _create(admin_client, "ORD-1")
    _create(admin_client, "ORD-2")

    resp = admin_client.post("/api/orders/admin/update-cash-payment", json={"orderNo": "ORD-1", "cashAmount": "700"})
    assert resp.get_json()["order"]["paymentStatus"] == "Paid"

    stats = admin_client.get("/api/orders/admin/payment-statistics").get_json()["statistics"]
    assert stats["totalOrders"] == 2
    assert stats["fullyPaidOrders"] == 1
    assert stats["totalRevenue"] == 2000.0
    assert stats["totalCollected"] == 1300.0
    assert stats["totalDues"] == 700.0
    assert stats["paymentStatus"]["Paid"] == 1


def test_bulk_update_payment(admin_client):
    a = _create(admin_client, "ORD-A")
    resp = admin_client.post("/api/orders/admin/bulk-update-payment", json={
        "orderIds": [a["id"], 4242],
        "paymentStatus": "Paid",
    })
    body = resp.get_json()
    assert resp.status_code == 200
    assert body["summary"] == {"total": 2, "successful": 1, "failed": 1}
    assert body["errors"][0]["id"] == 4242

    bad = admin_client.post("/api/orders/admin/bulk-update-payment", json={"orderIds": [], "paymentStatus": "Paid"})
    assert bad.status_code == 400


def test_customer_views(admin_client):
    _create(admin_client)
    users = admin_client.get("/api/orders/admin/users-with-orders").get_json()
    assert users["users"][0]["email"] == "customer@example.com"
    assert users["users"][0]["dues"] == 700.0

    detail = admin_client.get("/api/orders/admin/user-orders/customer@example.com").get_json()
    assert detail["summary"]["orderCount"] == 1
    assert admin_client.get("/api/orders/admin/user-orders/nobody@example.com").status_code == 404


def test_qr_payment_json_and_png(client, admin_client):
    _create(admin_client)
    body = client.post("/api/orders/make-qr-payment", json={"orderNo": "ORD-1"}).get_json()
    assert body["amount"] == 700.0
    assert body["upiUri"].startswith("upi://pay?")
    assert "png" not in body

    png = client.post("/api/orders/make-qr-payment?format=png", json={"orderNo": "ORD-1", "amount": 100})
    assert png.mimetype == "image/png"
    assert png.data.startswith(b"\x89PNG")


def test_send_reminder(client, admin_client):
    from zenith_backend.extensions import mail

    _create(admin_client)
    with mail.record_messages() as outbox:
        resp = client.post("/api/orders/send-reminder", json={"orderNo": "ORD-1"})
    assert resp.status_code == 200
    assert len(outbox) == 1
    assert "Payment reminder" in outbox[0].subject


def test_exports_and_archive(admin_client):
    data = order_payload()
    data["priceDetails"] = json.dumps(data["priceDetails"])
    data["albumFiles"] = [(io.BytesIO(b"first"), "p1.jpg")]
    admin_client.post("/api/orders", data=data, content_type="multipart/form-data")

    xlsx = admin_client.get("/api/orders/admin/export.xlsx")
    assert xlsx.status_code == 200
    assert xlsx.data[:2] == b"PK"

    archive = admin_client.get("/api/orders/download/ORD-1")
    assert archive.status_code == 200
    assert archive.mimetype == "application/zip"
    assert archive.data[:2] == b"PK"
