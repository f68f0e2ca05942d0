import io
import os

import pytest
from werkzeug.datastructures import FileStorage

from zenith_backend.errors import ConflictError, ValidationError, NotFoundError, InsufficientStateError, ForbiddenError
from zenith_backend.models import Order
from zenith_backend.services import orders as order_service
from zenith_backend.services.file_storage import LocalFileStorage
from conftest import order_payload


def _file(name="page1.jpg", data=b"jpeg-bytes"):
    return FileStorage(stream=io.BytesIO(data), filename=name, content_type="image/jpeg")


def test_create_order_assigns_serial_and_prices(make_order):
    order = make_order()
    assert order.serial_no.startswith("ZN-")
    assert order.serial_no.endswith("-0001")
    assert order.total == 100000
    assert order.advance_amount == 30000
    assert order.delivery_charge == 0
    assert order.payment_status == "Pending"
    assert order.order_status == "Pending"


def test_create_order_from_schedule(ctx):
    data = order_payload(albumType="Print only", priceDetails={"quantity": 2, "advancePercent": "50"})
    order = order_service.create_order(data)
    # 2 x 100 + 200 binding + 50 bag = 450, + 18% tax
    assert order.subtotal == 45000
    assert order.tax == 8100
    assert order.total == 53100
    assert order.advance_amount == 26550


def test_schedule_requires_album_type(ctx):
    data = order_payload(priceDetails={"quantity": 2})
    with pytest.raises(ValidationError):
        order_service.create_order(data)


@pytest.mark.parametrize("price_details", [
    {"quantity": 10, "paperRate": "1.00"},
    {"quantity": 10, "taxRate": "0"},
    {"quantity": 2, "advanceAmount": "531.00"},
])
def test_customers_cannot_price_by_hand(ctx, price_details):
    data = order_payload(albumType="Print only", priceDetails=price_details)
    with pytest.raises(ForbiddenError):
        order_service.create_order(data)
    assert Order.query.count() == 0


def test_customer_user_type_comes_from_account(ctx):
    data = order_payload(albumType="Print only", userType="retailer", priceDetails={"quantity": 2})
    order = order_service.create_order(data)
    # the "user" schedule applies, not the one asked for
    assert order.subtotal == 45000


def test_staff_order_is_not_linked_to_staff_account(make_order):
    order = make_order()
    assert order.user_id is None
    assert order.email == "customer@example.com"


def test_advance_percent_must_be_a_percentage(ctx):
    data = order_payload(albumType="Print only", priceDetails={"quantity": 2, "advancePercent": "150"})
    with pytest.raises(ValidationError):
        order_service.create_order(data)


def test_courier_order_includes_delivery(staff):
    data = order_payload(
        deliveryOption="courier",
        address={"street": "1 MG Road", "city": "Pune", "state": "MH", "zipCode": "411001", "country": "India"},
    )
    data["priceDetails"] = dict(data["priceDetails"], deliveryCharge="110")
    order = order_service.create_order(data, user=staff)
    assert order.delivery_charge == 11000
    assert order.total == 111000
    assert order.zip_code == "411001"


def test_courier_order_needs_full_address(staff):
    data = order_payload(deliveryOption="courier", street="1 MG Road", city="Pune", state="MH", zipCode="", country="India")
    with pytest.raises(ValidationError) as exc:
        order_service.create_order(data, user=staff)
    assert exc.value.details["missing"] == ["zipCode"]
    assert Order.query.count() == 0


def test_missing_fields_reported(ctx):
    with pytest.raises(ValidationError) as exc:
        order_service.create_order({"orderNo": "X"})
    assert "albumName" in exc.value.details["missing"]


def test_duplicate_order_no(make_order):
    make_order()
    with pytest.raises(ConflictError):
        make_order()


def test_failed_create_removes_written_files(ctx, staff, monkeypatch):
    def boom():
        raise RuntimeError("allocator down")

    monkeypatch.setattr(order_service, "next_serial", boom)
    with pytest.raises(RuntimeError):
        order_service.create_order(order_payload(), files=[_file()], user=staff)

    order_dir = os.path.join(ctx.config["UPLOAD_FOLDER"], "orders", "ORD-1")
    if os.path.isdir(order_dir):
        assert os.listdir(order_dir) == []
    assert Order.query.count() == 0


def test_files_stored_under_order(ctx, staff):
    order = order_service.create_order(order_payload(), files=[_file("a.jpg"), _file("b.jpg")], user=staff)
    assert len(order.uploaded_files) == 2
    storage = LocalFileStorage()
    for url in order.uploaded_files:
        assert url.startswith("/uploads/orders/ORD-1/")
        assert os.path.isfile(storage.url_to_path(url))


def test_update_order_allow_list(make_order):
    order = make_order()
    with pytest.raises(ValidationError) as exc:
        order_service.update_order(order.id, {"albumName": "New", "total": 1})
    assert exc.value.details["fields"] == ["total"]

    updated = order_service.update_order(order.id, {"albumName": "New name", "orderStatus": "In Progress"})
    assert updated.album_name == "New name"
    assert updated.order_status == "In Progress"
    assert updated.total == 100000


def test_update_to_courier_checks_address(make_order):
    order = make_order()
    with pytest.raises(ValidationError):
        order_service.update_order(order.id, {"deliveryOption": "courier"})


def test_soft_then_hard_delete(staff):
    order = order_service.create_order(order_payload(), files=[_file()], user=staff)
    order_id = order.id

    result = order_service.delete_order(order_id)
    assert result == {"orderNo": "ORD-1", "hard": False, "filesReleased": 1}
    with pytest.raises(NotFoundError):
        order_service.delete_order(order_id)

    hard = order_service.delete_order(order_id, hard=True)
    assert hard["hard"] is True
    assert Order.query.count() == 0


def test_orders_for_email_is_case_insensitive(make_order):
    make_order()
    assert [o.order_no for o in order_service.orders_for_email("CUSTOMER@example.com")] == ["ORD-1"]
    with pytest.raises(ValidationError):
        order_service.orders_for_email("")


def test_reminder_only_for_unpaid(make_order):
    from zenith_backend.extensions import mail
    from zenith_backend.services.reconciliation import record_manual_payment

    make_order()
    with mail.record_messages() as outbox:
        result = order_service.send_payment_reminder("ORD-1")
    assert result["dues"] == 700.0
    assert outbox[0].recipients == ["customer@example.com"]
    assert "INR 700.00" in outbox[0].body

    record_manual_payment("ORD-1", "700", "cash")
    with pytest.raises(InsufficientStateError):
        order_service.send_payment_reminder("ORD-1")


def test_qr_payment_defaults_to_dues(make_order):
    make_order()
    result = order_service.generate_qr_payment("ORD-1")
    assert result["amount"] == 700.0
    assert result["upiUri"].startswith("upi://pay?pa=zenith%40upi")
    assert "am=700.00" in result["upiUri"]
    assert result["png"][:8] == b"\x89PNG\r\n\x1a\n"
