from decimal import Decimal

from zenith_backend.api.utils.upi_qr import build_upi_uri, render_qr_png
from zenith_backend.invoicing import format_inr, build_receipt_pdf_bytes, snapshot_from_order
from zenith_backend.services.order_paid_hook import on_order_marked_paid, receipt_filename
from zenith_backend.extensions import mail


def test_format_inr_groups_indian_style():
    assert format_inr(0) == "INR 0.00"
    assert format_inr(99999) == "INR 999.99"
    assert format_inr(12345600) == "INR 1,23,456.00"
    assert format_inr(1234567890) == "INR 1,23,45,678.90"
    assert format_inr(-150000) == "-INR 1,500.00"


def test_snapshot_and_pdf(make_order):
    order = make_order()
    snap = snapshot_from_order(order)
    assert snap.serial_no == order.serial_no
    assert snap.total == 100000
    assert snap.dues == 70000
    assert snap.address_lines == []

    pdf = build_receipt_pdf_bytes(snap)
    assert pdf.startswith(b"%PDF")
    assert receipt_filename(order) == f"Receipt-{order.serial_no}.pdf"


def test_paid_hook_mails_customer_and_studio(make_order, app):
    order = make_order()
    app.config["ORDER_NOTIFY_EMAIL"] = "studio-inbox@example.com"
    with mail.record_messages() as outbox:
        result = on_order_marked_paid(order.id)
    assert result == {"ok": True, "emailed": True}
    assert [m.recipients for m in outbox] == [["customer@example.com"], ["studio-inbox@example.com"]]


def test_paid_hook_swallows_mail_failures(make_order, monkeypatch):
    from zenith_backend.services import order_paid_hook

    def broken(**kwargs):
        raise OSError("smtp down")

    monkeypatch.setattr(order_paid_hook, "send_email", broken)
    result = on_order_marked_paid(make_order().id)
    assert result == {"ok": True, "emailed": False}


def test_paid_hook_unknown_order(ctx):
    assert on_order_marked_paid(424242)["ok"] is False


def test_upi_uri_and_qr(ctx):
    uri = build_upi_uri(Decimal("700.5"), reference="ZN-2026-0001", note="Order ORD-1")
    assert uri.startswith("upi://pay?pa=zenith%40upi")
    assert "am=700.50" in uri
    assert "cu=INR" in uri
    assert "tr=ZN-2026-0001" in uri
    assert render_qr_png(uri).startswith(b"\x89PNG")
