# zenith_backend/services/order_paid_hook.py
from __future__ import annotations

import threading

from flask import current_app

from zenith_backend.api.utils.email import send_email
from zenith_backend.extensions import db
from zenith_backend.invoicing import build_receipt_pdf_bytes, snapshot_from_order, format_inr
from zenith_backend.models import Order


def receipt_filename(order: Order) -> str:
    return f"Receipt-{order.serial_no}.pdf"


def _send_receipt_email(order: Order, pdf_bytes: bytes) -> None:
    recipients = [order.email] if order.email else []
    notify = current_app.config.get("ORDER_NOTIFY_EMAIL")
    studio = current_app.config.get("STUDIO_NAME", "Zenith Studio")
    if not recipients and not notify:
        return

    subject = f"Payment received for order {order.order_no} ({order.serial_no})"
    body = (
        "Hello,\n\n"
        f"we have received the full payment of {format_inr(order.total)} for your album "
        f"'{order.album_name}'. The receipt is attached as a PDF.\n\n"
        f"Thank you,\n{studio}"
    )
    attachments = [{
        "filename": receipt_filename(order),
        "content": pdf_bytes,
        "mimetype": "application/pdf",
    }]
    send_email(
        subject=subject,
        recipients=recipients or [notify],
        body=body,
        attachments=attachments,
    )
    if recipients and notify:
        send_email(
            subject=f"[{studio}] order {order.serial_no} paid",
            recipients=[notify],
            body=f"Order {order.order_no} ({order.serial_no}) is fully paid: {format_inr(order.total)}.",
        )


def on_order_marked_paid(order_id: int) -> dict:
    """
    Call only on the transition to Paid.
    Builds the receipt PDF and mails it; failures are logged, never raised.
    """
    order = db.session.get(Order, order_id)
    if not order:
        return {"ok": False, "error": "Order not found"}

    try:
        pdf_bytes = build_receipt_pdf_bytes(snapshot_from_order(order))
    except Exception:
        current_app.logger.exception("[RECEIPT] building receipt for %s failed", order.order_no)
        return {"ok": False, "error": "Receipt generation failed"}

    emailed = False
    try:
        _send_receipt_email(order, pdf_bytes)
        emailed = True
    except Exception:
        current_app.logger.exception("[MAIL] sending receipt for %s failed", order.order_no)

    current_app.logger.info("[RECEIPT] order %s paid, receipt emailed=%s", order.order_no, emailed)
    return {"ok": True, "emailed": emailed}


def dispatch_order_paid(order_id: int) -> None:
    """Fire-and-forget: daemon thread with its own app context when NOTIFY_ASYNC."""
    if not current_app.config.get("NOTIFY_ASYNC", True):
        on_order_marked_paid(order_id)
        return

    app = current_app._get_current_object()

    def _run():
        with app.app_context():
            try:
                on_order_marked_paid(order_id)
            except Exception:
                app.logger.exception("[RECEIPT] paid hook crashed for order #%s", order_id)
            finally:
                db.session.remove()

    threading.Thread(target=_run, name=f"order-paid-{order_id}", daemon=True).start()
