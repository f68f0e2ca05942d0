from flask import Blueprint, request, jsonify

from zenith_backend.auth.decorators import admin_required
from zenith_backend.errors import ValidationError
from zenith_backend.services import prices as price_service
from zenith_backend.services.money import to_decimal
from zenith_backend.services.pricing import resolve_rate_card, calculate_price

price_bp = Blueprint("price_bp", __name__, url_prefix="/api/prices")


@price_bp.get("")
def list_prices():
    items = price_service.list_prices(request.args)
    return jsonify({"ok": True, "prices": [price_service.serialize_price(p, premium=False) for p in items]}), 200


@price_bp.get("/premium")
def list_prices_with_premium():
    items = price_service.list_prices(request.args)
    return jsonify({"ok": True, "prices": [price_service.serialize_price(p) for p in items]}), 200


@price_bp.post("/resolve")
def resolve_price():
    """Quote for the order form: resolved rate card plus the breakdown it would produce."""
    data = request.get_json(silent=True) or {}
    try:
        quantity = int(data.get("quantity") or 0)
    except (TypeError, ValueError):
        raise ValidationError("quantity must be a whole number.")
    card = resolve_rate_card(
        album_type=data.get("albumType"),
        user_type=data.get("userType") or "user",
        paper_size=data.get("paperSize"),
        paper_type=data.get("paperType"),
        premium=bool(data.get("premium")),
    )
    advance_percent = data.get("advancePercent")
    breakdown = calculate_price(
        quantity,
        card,
        include_delivery=(data.get("deliveryOption") == "courier"),
        advance_percent=to_decimal(advance_percent, "advancePercent") if advance_percent not in (None, "") else None,
    )
    return jsonify({"ok": True, "priceId": card.price_id, "premium": card.premium, "priceDetails": breakdown.to_dict()}), 200


@price_bp.get("/<int:price_id>")
def get_price(price_id: int):
    return jsonify({"ok": True, "price": price_service.serialize_price(price_service.get_price(price_id))}), 200


@price_bp.post("")
@admin_required
def create_price():
    price = price_service.create_price(request.get_json(silent=True) or {})
    return jsonify({"ok": True, "message": "Price created", "price": price_service.serialize_price(price)}), 201


@price_bp.put("/<int:price_id>")
@admin_required
def update_price(price_id: int):
    price = price_service.update_price(price_id, request.get_json(silent=True) or {})
    return jsonify({"ok": True, "message": "Price updated", "price": price_service.serialize_price(price)}), 200


@price_bp.put("/<int:price_id>/premium")
@admin_required
def update_premium(price_id: int):
    price = price_service.update_premium(price_id, request.get_json(silent=True) or {})
    return jsonify({"ok": True, "message": "Premium prices updated", "price": price_service.serialize_price(price)}), 200


@price_bp.delete("/<int:price_id>")
@admin_required
def delete_price(price_id: int):
    price_service.delete_price(price_id)
    return jsonify({"ok": True, "message": "Price deleted"}), 200
