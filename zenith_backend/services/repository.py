# zenith_backend/services/repository.py
from __future__ import annotations

from sqlalchemy import or_

from zenith_backend.errors import NotFoundError, ValidationError
from zenith_backend.extensions import db
from zenith_backend.models import Order


def find_order(key, include_inactive: bool = False) -> Order:
    """Look an order up by surrogate id, orderNo or serialNo."""
    if key is None or str(key).strip() == "":
        raise ValidationError("Order reference is required.")

    q = db.session.query(Order)
    if not include_inactive:
        q = q.filter(Order.active.is_(True))

    if isinstance(key, int):
        order = q.filter(Order.id == key).first()
    else:
        ref = str(key).strip()
        order = q.filter(or_(Order.order_no == ref, Order.serial_no == ref)).first()
        if order is None and ref.isdigit():
            order = q.filter(Order.id == int(ref)).first()

    if order is None:
        raise NotFoundError(f"Order '{key}' not found.")
    return order


def find_order_by_id(order_id, include_inactive: bool = False) -> Order:
    try:
        oid = int(order_id)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid order id '{order_id}'.")
    if isinstance(order_id, bool) or oid <= 0:
        raise ValidationError(f"Invalid order id '{order_id}'.")
    return find_order(oid, include_inactive=include_inactive)
