import io
import os

from flask import Blueprint, request, jsonify, current_app, send_file, after_this_request

from zenith_backend.auth.decorators import admin_required, acting_user
from zenith_backend.errors import ValidationError
from zenith_backend.services import orders as order_service
from zenith_backend.services import reconciliation
from zenith_backend.services import statistics
from zenith_backend.services.orders import serialize_order
from zenith_backend.services.repository import find_order, find_order_by_id

order_bp = Blueprint("order_bp", __name__, url_prefix="/api/orders")


def _payload() -> dict:
    """JSON body, or the form fields of a multipart upload."""
    if request.mimetype and request.mimetype.startswith("multipart/"):
        return request.form.to_dict()
    return request.get_json(silent=True) or {}


# --- customer-facing ----------------------------------------------------------

@order_bp.post("")
def create_order():
    files = request.files.getlist("albumFiles") if request.files else []
    order = order_service.create_order(_payload(), files=files, user=acting_user())
    return jsonify({"ok": True, "message": "Order created", "order": serialize_order(order)}), 201


@order_bp.get("/details/<order_no>")
def order_details(order_no: str):
    order = find_order(order_no)
    return jsonify({
        "ok": True,
        "order": serialize_order(order),
        **reconciliation.reconcile(order).to_dict(),
    }), 200


@order_bp.post("/user")
def orders_by_user():
    data = request.get_json(silent=True) or {}
    orders = order_service.orders_for_email(data.get("email"))
    return jsonify({"ok": True, "orders": [serialize_order(o) for o in orders]}), 200


@order_bp.post("/payment/update")
@admin_required
def update_payment_by_order_no():
    """QR / counter UPI payment confirmed by staff against its UTR."""
    data = request.get_json(silent=True) or {}
    order_no = data.get("orderNo")
    amount = data.get("amount")
    if not order_no or amount in (None, ""):
        raise ValidationError("orderNo and amount are required.")
    result = reconciliation.record_manual_payment(
        order_no, amount, data.get("channel") or "counterUpi", utr=data.get("utr")
    )
    order = result["order"]
    return jsonify({
        "ok": True,
        "order": serialize_order(order),
        "transitionedToPaid": result["transitioned"],
    }), 200


@order_bp.post("/make-qr-payment")
def make_qr_payment():
    data = request.get_json(silent=True) or {}
    if not data.get("orderNo"):
        raise ValidationError("orderNo is required.")
    result = order_service.generate_qr_payment(data["orderNo"], data.get("amount"))
    if (request.args.get("format") or data.get("format")) == "png":
        return send_file(
            io.BytesIO(result["png"]),
            mimetype="image/png",
            as_attachment=False,
            download_name=f"upi-{result['orderNo']}.png",
            max_age=0,
        )
    result.pop("png")
    return jsonify({"ok": True, **result}), 200


@order_bp.post("/send-reminder")
def send_reminder():
    data = request.get_json(silent=True) or {}
    if not data.get("orderNo"):
        raise ValidationError("orderNo is required.")
    return jsonify({"ok": True, **order_service.send_payment_reminder(data["orderNo"])}), 200


# --- admin --------------------------------------------------------------------

@order_bp.get("")
@admin_required
def list_orders():
    orders = order_service.list_orders()
    return jsonify({"ok": True, "count": len(orders), "orders": [serialize_order(o) for o in orders]}), 200


@order_bp.get("/<int:order_id>")
@admin_required
def get_order(order_id: int):
    return jsonify({"ok": True, "order": serialize_order(find_order_by_id(order_id), with_payments=True)}), 200


@order_bp.put("/<int:order_id>")
@admin_required
def update_order(order_id: int):
    order = order_service.update_order(order_id, request.get_json(silent=True) or {})
    return jsonify({"ok": True, "message": "Order updated", "order": serialize_order(order)}), 200


@order_bp.patch("/<int:order_id>/status")
@admin_required
def update_order_status(order_id: int):
    data = request.get_json(silent=True) or {}
    if not data.get("orderStatus"):
        raise ValidationError("orderStatus is required.")
    order = order_service.set_order_status(order_id, data["orderStatus"])
    return jsonify({"ok": True, "order": serialize_order(order)}), 200


@order_bp.delete("/<int:order_id>")
@admin_required
def delete_order(order_id: int):
    hard = (request.args.get("hard") or "").lower() in ("1", "true", "yes")
    return jsonify({"ok": True, **order_service.delete_order(order_id, hard=hard)}), 200


@order_bp.get("/download/<order_no>")
@admin_required
def download_order_files(order_no: str):
    path, filename = order_service.order_archive(order_no)

    @after_this_request
    def _cleanup(response):
        try:
            os.remove(path)
        except OSError:
            current_app.logger.warning("[ORDER] could not remove temp archive %s", path)
        return response

    return send_file(path, mimetype="application/zip", as_attachment=True, download_name=filename)


@order_bp.get("/admin/users-with-orders")
@admin_required
def users_with_orders():
    users = statistics.users_with_orders()
    return jsonify({"ok": True, "count": len(users), "users": users}), 200


@order_bp.get("/admin/user-orders/<path:email>")
@admin_required
def user_orders(email: str):
    return jsonify({"ok": True, **statistics.user_orders_with_payments(email)}), 200


@order_bp.post("/admin/update-cash-payment")
@admin_required
def update_cash_payment():
    data = request.get_json(silent=True) or {}
    order_no = data.get("orderNo")
    amount = data.get("cashAmount", data.get("amount"))
    if not order_no or amount in (None, ""):
        raise ValidationError("orderNo and cashAmount are required.")
    result = reconciliation.record_manual_payment(order_no, amount, "cash")
    return jsonify({
        "ok": True,
        "order": serialize_order(result["order"]),
        "transitionedToPaid": result["transitioned"],
    }), 200


@order_bp.get("/admin/payment-statistics")
@admin_required
def payment_statistics():
    return jsonify({"ok": True, "statistics": statistics.payment_statistics()}), 200


@order_bp.post("/admin/bulk-update-payment")
@admin_required
def bulk_update_payment():
    data = request.get_json(silent=True) or {}
    result = reconciliation.bulk_reconcile(
        data.get("orderIds"), data.get("paymentStatus"), data.get("cashAmount")
    )
    return jsonify({"ok": True, "message": "Bulk update completed", **result}), 200


@order_bp.get("/admin/export.xlsx")
@admin_required
def export_orders():
    bio = io.BytesIO(statistics.export_orders_xlsx())
    return send_file(
        bio,
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        as_attachment=True,
        download_name="orders.xlsx",
    )
