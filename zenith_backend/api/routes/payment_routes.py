# zenith_backend/api/routes/payment_routes.py
import io

from flask import Blueprint, request, jsonify, current_app, send_file
from flask_login import login_required

from zenith_backend.api.utils.razorpay import RazorpayClient
from zenith_backend.errors import ValidationError
from zenith_backend.extensions import db
from zenith_backend.invoicing import build_receipt_pdf_bytes, snapshot_from_order
from zenith_backend.models import Payment, Order
from zenith_backend.services import reconciliation
from zenith_backend.services.money import as_float
from zenith_backend.services.order_paid_hook import receipt_filename
from zenith_backend.services.orders import serialize_order
from zenith_backend.services.repository import find_order

payment_bp = Blueprint("payment_bp", __name__, url_prefix="/api/payments")


def _safe_int(value, default):
    try:
        v = int(value)
        return v if v >= 0 else default
    except (TypeError, ValueError):
        return default


@payment_bp.post("/create-order")
def create_gateway_order():
    """
    Body: {"orderNo": "...", "kind": "advance" | "full"}
    Collects the advance (kind=advance) or the current dues.
    """
    data = request.get_json(silent=True) or {}
    if not data.get("orderNo"):
        raise ValidationError("orderNo is required.")
    kind = data.get("kind") or "full"

    order = find_order(data["orderNo"])
    amount = reconciliation.gateway_amount_for(order, kind)

    gw = RazorpayClient().create_order(
        amount,
        receipt=order.serial_no,
        notes={"orderNo": order.order_no, "kind": kind},
    )
    reconciliation.open_gateway_intent(order, gw.get("id"), kind, amount)
    current_app.logger.info("[PAYMENT] gateway order %s for %s (%s, %.2f)", gw.get("id"), order.order_no, kind, as_float(amount))

    return jsonify({
        "ok": True,
        "orderNo": order.order_no,
        "kind": kind,
        "razorpayOrderId": gw.get("id"),
        "amount": as_float(amount),
        "currency": gw.get("currency", "INR"),
        "keyId": current_app.config.get("RAZORPAY_KEY_ID"),
    }), 200


@payment_bp.post("/verify")
def verify_payment():
    data = request.get_json(silent=True) or {}
    if not data.get("orderNo"):
        raise ValidationError("orderNo is required.")
    refs = {
        "razorpay_order_id": data.get("razorpay_order_id"),
        "razorpay_payment_id": data.get("razorpay_payment_id"),
        "razorpay_signature": data.get("razorpay_signature"),
    }
    result = reconciliation.record_gateway_payment(data["orderNo"], refs)
    order = result["order"]
    return jsonify({
        "ok": True,
        "message": "Payment already recorded" if result["replay"] else "Payment verified",
        "replay": result["replay"],
        "order": serialize_order(order),
    }), 200


@payment_bp.post("/failed")
def payment_failed():
    data = request.get_json(silent=True) or {}
    if not data.get("orderNo"):
        raise ValidationError("orderNo is required.")
    order = reconciliation.record_gateway_failure(
        data["orderNo"],
        {"razorpay_order_id": data.get("razorpay_order_id"), "razorpay_payment_id": data.get("razorpay_payment_id")},
        reason=(data.get("error") or {}).get("description") if isinstance(data.get("error"), dict) else data.get("error"),
    )
    return jsonify({"ok": True, "paymentStatus": order.payment_status, "order": serialize_order(order)}), 200


@payment_bp.get("/download-receipt/<order_no>")
def download_receipt(order_no: str):
    order = find_order(order_no)
    pdf = build_receipt_pdf_bytes(snapshot_from_order(order))
    return send_file(
        io.BytesIO(pdf),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=receipt_filename(order),
    )


@payment_bp.get("/alltransaction")
@login_required
def all_transactions():
    limit = _safe_int(request.args.get("limit"), 200) or 200
    limit = max(1, min(limit, 1000))
    q = db.session.query(Payment, Order).join(Order, Order.id == Payment.order_id)
    channel = (request.args.get("channel") or "").strip()
    if channel:
        q = q.filter(Payment.channel == channel)
    rows = q.order_by(Payment.id.desc()).limit(limit).all()

    items = [
        {
            "id": p.id,
            "orderNo": o.order_no,
            "serialNo": o.serial_no,
            "email": o.email,
            "channel": p.channel,
            "amount": as_float(p.amount),
            "gatewayOrderId": p.gateway_order_id,
            "gatewayPaymentId": p.gateway_payment_id,
            "utr": p.utr,
            "recordedAt": p.recorded_at.isoformat() if p.recorded_at else None,
            "paymentStatus": o.payment_status,
        }
        for p, o in rows
    ]
    return jsonify({
        "ok": True,
        "count": len(items),
        "total": as_float(sum(p.amount or 0 for p, _ in rows)),
        "transactions": items,
    }), 200
