# zenith_backend/services/prices.py
from __future__ import annotations

from flask import current_app

from zenith_backend.errors import ValidationError, NotFoundError
from zenith_backend.extensions import db
from zenith_backend.models import Price
from zenith_backend.models.price import ALBUM_TYPES, USER_TYPES
from zenith_backend.services.money import as_float, to_decimal, to_minor

STANDARD_FIELDS = {
    "glossyPaperPrice": "glossy_paper_price",
    "glossySheetPrice": "glossy_sheet_price",
    "ntrPaperPrice": "ntr_paper_price",
    "ntrSheetPrice": "ntr_sheet_price",
    "bindingPrice": "binding_price",
    "bagPrice": "bag_price",
    "deliveryCharge": "delivery_charge",
}
PREMIUM_FIELDS = {
    "premiumGlossyPaperPrice": "premium_glossy_paper_price",
    "premiumGlossySheetPrice": "premium_glossy_sheet_price",
    "premiumNtrPaperPrice": "premium_ntr_paper_price",
    "premiumNtrSheetPrice": "premium_ntr_sheet_price",
    "premiumBindingPrice": "premium_binding_price",
    "premiumBagPrice": "premium_bag_price",
}
KEY_FIELDS = {
    "albumType": "album_type",
    "userType": "user_type",
    "paperSize": "paper_size",
    "bagType": "bag_type",
}


def serialize_price(p: Price, premium: bool = True) -> dict:
    out = {
        "id": p.id,
        **{k: getattr(p, attr) for k, attr in KEY_FIELDS.items()},
        **{k: as_float(getattr(p, attr)) for k, attr in STANDARD_FIELDS.items()},
        "serviceTax": float(p.service_tax or 0),
        "createdAt": p.created_at.isoformat() if p.created_at else None,
        "updatedAt": p.updated_at.isoformat() if p.updated_at else None,
    }
    if premium:
        out.update({k: as_float(getattr(p, attr)) for k, attr in PREMIUM_FIELDS.items()})
        out["hasPremium"] = any(getattr(p, attr) for attr in PREMIUM_FIELDS.values())
    return out


def _apply(price: Price, data: dict, allowed: dict) -> None:
    unknown = sorted(k for k in data if k not in allowed)
    if unknown:
        raise ValidationError("These fields cannot be set.", fields=unknown)
    for key, value in data.items():
        attr = allowed[key]
        if key == "serviceTax":
            rate = to_decimal(value, key)
            if rate < 0 or rate > 100:
                raise ValidationError("serviceTax must be between 0 and 100.")
            setattr(price, attr, rate)
        elif key in KEY_FIELDS:
            s = str(value or "").strip()
            if key == "albumType" and s not in ALBUM_TYPES:
                raise ValidationError(f"albumType must be one of {', '.join(ALBUM_TYPES)}.")
            if key == "userType" and s not in USER_TYPES:
                raise ValidationError(f"userType must be one of {', '.join(USER_TYPES)}.")
            if key == "paperSize" and not s:
                raise ValidationError("paperSize cannot be empty.")
            setattr(price, attr, s or None)
        else:
            setattr(price, attr, to_minor(value or 0, key))


def get_price(price_id: int) -> Price:
    price = db.session.get(Price, price_id)
    if not price:
        raise NotFoundError("Price entry not found.")
    return price


def create_price(data: dict) -> Price:
    missing = [k for k in ("albumType", "userType", "paperSize") if not str(data.get(k) or "").strip()]
    if missing:
        raise ValidationError("Missing required fields.", missing=missing)
    price = Price()
    if "deliveryCharge" not in data:
        price.delivery_charge = to_minor(current_app.config.get("DEFAULT_DELIVERY_CHARGE", "110.00"))
    _apply(price, data, {**KEY_FIELDS, **STANDARD_FIELDS, **PREMIUM_FIELDS, "serviceTax": "service_tax"})
    db.session.add(price)
    db.session.commit()
    current_app.logger.info("[PRICE] created %s/%s/%s", price.album_type, price.user_type, price.paper_size)
    return price


def update_price(price_id: int, data: dict) -> Price:
    if not data:
        raise ValidationError("No changes given.")
    price = get_price(price_id)
    _apply(price, data, {**KEY_FIELDS, **STANDARD_FIELDS, **PREMIUM_FIELDS, "serviceTax": "service_tax"})
    db.session.commit()
    return price


def update_premium(price_id: int, data: dict) -> Price:
    if not data:
        raise ValidationError("No premium prices given.")
    price = get_price(price_id)
    _apply(price, data, PREMIUM_FIELDS)
    db.session.commit()
    return price


def delete_price(price_id: int) -> None:
    price = get_price(price_id)
    db.session.delete(price)
    db.session.commit()


def list_prices(args=None):
    args = args or {}
    q = Price.query
    for key, attr in KEY_FIELDS.items():
        if args.get(key):
            q = q.filter(getattr(Price, attr) == args[key])
    return q.order_by(Price.album_type, Price.user_type, Price.paper_size, Price.id).all()
