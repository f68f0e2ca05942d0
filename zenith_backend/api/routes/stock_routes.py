import io

from flask import Blueprint, request, jsonify, send_file

from zenith_backend.auth.decorators import admin_required, acting_user
from zenith_backend.services import stock as stock_service

stock_bp = Blueprint("stock_bp", __name__, url_prefix="/api/stock")


@stock_bp.post("")
@admin_required
def create_stock():
    stock = stock_service.create_stock(request.get_json(silent=True) or {}, user=acting_user())
    return jsonify({"ok": True, "message": "Stock item created", "stock": stock_service.serialize_stock(stock)}), 201


@stock_bp.get("")
@admin_required
def list_stock():
    return jsonify({"ok": True, **stock_service.list_stock(request.args)}), 200


@stock_bp.get("/analytics")
@admin_required
def stock_analytics():
    return jsonify({"ok": True, "analytics": stock_service.analytics()}), 200


@stock_bp.get("/alerts/low-stock")
@admin_required
def low_stock_alerts():
    items = stock_service.low_stock_alerts()
    return jsonify({"ok": True, "count": len(items), "items": [stock_service.serialize_stock(s) for s in items]}), 200


@stock_bp.get("/export")
@admin_required
def export_stock():
    items = stock_service.export_stock(request.args)
    if request.args.get("format") == "xlsx":
        return send_file(
            io.BytesIO(stock_service.export_stock_xlsx(items)),
            mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            as_attachment=True,
            download_name="stock-export.xlsx",
        )
    return jsonify({"ok": True, "count": len(items), "data": [stock_service.serialize_stock(s) for s in items]}), 200


@stock_bp.post("/bulk-update")
@admin_required
def bulk_update_stock():
    data = request.get_json(silent=True) or {}
    result = stock_service.bulk_update(data.get("updates"), user=acting_user())
    return jsonify({"ok": True, "message": "Bulk update completed", **result}), 200


@stock_bp.get("/<int:stock_id>")
@admin_required
def get_stock(stock_id: int):
    return jsonify({"ok": True, "stock": stock_service.serialize_stock(stock_service.get_stock(stock_id))}), 200


@stock_bp.put("/<int:stock_id>")
@admin_required
def update_stock(stock_id: int):
    stock = stock_service.update_stock(stock_id, request.get_json(silent=True) or {}, user=acting_user())
    return jsonify({"ok": True, "message": "Stock item updated", "stock": stock_service.serialize_stock(stock)}), 200


@stock_bp.patch("/<int:stock_id>/quantity")
@admin_required
def update_stock_quantity(stock_id: int):
    data = request.get_json(silent=True) or {}
    result = stock_service.adjust_quantity(
        stock_id, data.get("quantity"), data.get("operation"), data.get("reason"), user=acting_user()
    )
    return jsonify({"ok": True, "message": "Stock quantity updated", **result}), 200


@stock_bp.delete("/<int:stock_id>")
@admin_required
def delete_stock(stock_id: int):
    stock_service.delete_stock(stock_id)
    return jsonify({"ok": True, "message": "Stock item deleted"}), 200
