# zenith_backend/services/orders.py
"""
Order creation, allow-listed edits, deletion and customer-facing helpers.

Creation runs pricing, serial allocation and the insert in one transaction;
files written for a creation that fails are removed again.
"""
from __future__ import annotations

import base64
import json
from datetime import datetime, date

from flask import current_app
from sqlalchemy.exc import IntegrityError

from zenith_backend.api.utils.email import send_email
from zenith_backend.api.utils.upi_qr import build_upi_uri, render_qr_png
from zenith_backend.errors import ValidationError, ConflictError, ForbiddenError, InsufficientStateError
from zenith_backend.extensions import db
from zenith_backend.invoicing import format_inr
from zenith_backend.models import Order
from zenith_backend.models.order import DELIVERY_OPTIONS
from zenith_backend.services.file_storage import LocalFileStorage
from zenith_backend.services.lifecycle import transition_order_status
from zenith_backend.services.money import as_float, from_minor, to_decimal, to_minor
from zenith_backend.services.pricing import RateCard, calculate_price, resolve_rate_card
from zenith_backend.services.reconciliation import reconcile
from zenith_backend.services.repository import find_order, find_order_by_id
from zenith_backend.services.serials import next_serial

REQUIRED_FIELDS = ("orderNo", "albumName", "paperType", "albumSize", "orderDate")
ADDRESS_FIELDS = {
    "street": "street",
    "landmark": "landmark",
    "city": "city",
    "state": "state",
    "zipCode": "zip_code",
    "country": "country",
}
HAND_PRICED_FIELDS = ("paperRate", "bindingRate", "bagRate", "taxRate", "deliveryCharge")
COURIER_REQUIRED = ("street", "city", "state", "zip_code", "country")

# request key -> model attribute, for fields an edit may touch
UPDATABLE_FIELDS = {
    "albumName": "album_name",
    "albumType": "album_type",
    "paperType": "paper_type",
    "albumSize": "album_size",
    "designPoint": "design_point",
    "bagType": "bag_type",
    "sheetCount": "sheet_count",
    "notes": "notes",
    "orderDate": "order_date",
    "deliveryDate": "delivery_date",
    "paymentMethod": "payment_method",
    "email": "email",
    "mobile": "mobile",
    "deliveryOption": "delivery_option",
    **ADDRESS_FIELDS,
}


# --- parsing ------------------------------------------------------------------

def _str(val) -> str | None:
    if val is None:
        return None
    s = str(val).strip()
    return s or None


def parse_date(val, field: str) -> datetime | None:
    if val in (None, ""):
        return None
    if isinstance(val, datetime):
        return val
    if isinstance(val, date):
        return datetime(val.year, val.month, val.day)
    raw = str(val).strip().replace("Z", "+00:00")
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        raise ValidationError(f"Invalid date for {field}.")
    return parsed.replace(tzinfo=None)


def _int(val, field: str, minimum: int = 0) -> int | None:
    if val in (None, ""):
        return None
    try:
        out = int(val)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a whole number.")
    if out < minimum:
        raise ValidationError(f"{field} must be at least {minimum}.")
    return out


def _bool(val) -> bool:
    if isinstance(val, bool):
        return val
    return str(val or "").strip().lower() in ("1", "true", "yes", "on")


def _json_field(val):
    """Multipart forms send nested objects as JSON strings."""
    if isinstance(val, str) and val.strip().startswith("{"):
        try:
            return json.loads(val)
        except ValueError:
            raise ValidationError("Malformed JSON in form field.")
    return val


def _flatten_address(data: dict) -> dict:
    address = _json_field(data.get("address"))
    if isinstance(address, dict):
        merged = {k: v for k, v in address.items() if k in ADDRESS_FIELDS}
        merged.update({k: v for k, v in data.items() if k != "address"})
        return merged
    return data


def check_courier_address(order: Order) -> None:
    if order.delivery_option not in DELIVERY_OPTIONS:
        raise ValidationError(f"deliveryOption must be one of {', '.join(DELIVERY_OPTIONS)}.")
    if not order.is_courier:
        return
    missing = [attr for attr in COURIER_REQUIRED if not _str(getattr(order, attr))]
    if missing:
        names = [k for k, v in ADDRESS_FIELDS.items() if v in missing]
        raise ValidationError("Courier delivery requires a complete address.", missing=names)


# --- serialization ------------------------------------------------------------

def _iso(dt):
    return dt.isoformat() if dt else None


def price_details_dict(order: Order) -> dict:
    return {
        "quantity": order.quantity,
        "paperRate": as_float(order.paper_rate),
        "bindingRate": as_float(order.binding_rate),
        "bagRate": as_float(order.bag_rate),
        "deliveryCharge": as_float(order.delivery_charge),
        "subtotal": as_float(order.subtotal),
        "taxRate": float(order.tax_rate or 0),
        "tax": as_float(order.tax),
        "total": as_float(order.total),
        "advanceAmount": as_float(order.advance_amount),
        "cashPayment": as_float(order.cash_payment),
        "counterUpiPayment": as_float(order.counter_upi_payment),
        "manualPaymentDate": _iso(order.manual_payment_date),
    }


def serialize_order(order: Order, with_payments: bool = False) -> dict:
    out = {
        "id": order.id,
        "orderNo": order.order_no,
        "serialNo": order.serial_no,
        "albumName": order.album_name,
        "albumType": order.album_type,
        "paperType": order.paper_type,
        "albumSize": order.album_size,
        "designPoint": order.design_point,
        "bagType": order.bag_type,
        "sheetCount": order.sheet_count,
        "notes": order.notes,
        "orderDate": _iso(order.order_date),
        "deliveryDate": _iso(order.delivery_date),
        "paymentMethod": order.payment_method,
        "email": order.email,
        "mobile": order.mobile,
        "deliveryOption": order.delivery_option,
        "address": {k: getattr(order, v) for k, v in ADDRESS_FIELDS.items()},
        "priceDetails": price_details_dict(order),
        "paymentStatus": order.payment_status,
        "paymentInfo": {
            "razorpayOrderId": order.razorpay_order_id,
            "gatewayKind": order.gateway_kind,
            "razorpayPaymentId": order.razorpay_payment_id,
            "paymentDate": _iso(order.payment_date),
            "utr": order.utr,
        },
        "orderStatus": order.order_status,
        "orderStatusUpdatedAt": _iso(order.order_status_updated_at),
        "uploadedFiles": list(order.uploaded_files or []),
        "active": order.active,
        "createdAt": _iso(order.created_at),
        "updatedAt": _iso(order.updated_at),
        "payment": reconcile(order).to_dict(),
    }
    if with_payments:
        out["payments"] = [
            {
                "id": p.id,
                "channel": p.channel,
                "amount": as_float(p.amount),
                "gatewayPaymentId": p.gateway_payment_id,
                "utr": p.utr,
                "recordedAt": _iso(p.recorded_at),
            }
            for p in order.payments
        ]
    return out


# --- create -------------------------------------------------------------------

def _is_staff(user) -> bool:
    return bool(user is not None and getattr(user, "is_admin", False))


def _rate_card_for(data: dict, pd: dict, user_type: str, premium: bool, staff: bool) -> RateCard:
    """
    Staff may price a counter order by hand with explicit rates in
    priceDetails; everyone else gets the schedule for albumType/userType/albumSize.
    """
    if any(pd.get(k) not in (None, "") for k in HAND_PRICED_FIELDS):
        if not staff:
            raise ForbiddenError("Only staff can set explicit rates.")
        if pd.get("paperRate") in (None, ""):
            raise ValidationError("paperRate is required for a hand-priced order.")
        default_delivery = current_app.config.get("DEFAULT_DELIVERY_CHARGE", "110.00")
        return RateCard(
            paper_rate=to_minor(pd.get("paperRate"), "paperRate"),
            binding_rate=to_minor(pd.get("bindingRate") or 0, "bindingRate"),
            bag_rate=to_minor(pd.get("bagRate") or 0, "bagRate"),
            tax_rate=to_decimal(pd.get("taxRate") or 0, "taxRate"),
            delivery_charge=to_minor(pd.get("deliveryCharge", default_delivery), "deliveryCharge"),
        )

    album_type = _str(data.get("albumType"))
    if not album_type:
        raise ValidationError("albumType is required when no explicit rates are given.")
    return resolve_rate_card(
        album_type=album_type,
        user_type=user_type,
        paper_size=_str(data.get("albumSize")),
        paper_type=_str(data.get("paperType")),
        premium=premium,
    )


def create_order(data: dict, files=None, user=None) -> Order:
    data = _flatten_address(dict(data or {}))
    missing = [k for k in REQUIRED_FIELDS if not _str(data.get(k))]
    if missing:
        raise ValidationError("Missing required fields.", missing=missing)

    staff = _is_staff(user)
    # staff place counter orders on behalf of a customer, not for themselves
    customer = None if staff else user

    order_no = _str(data["orderNo"])
    order = Order(
        order_no=order_no,
        album_name=_str(data.get("albumName")),
        album_type=_str(data.get("albumType")),
        paper_type=_str(data.get("paperType")),
        album_size=_str(data.get("albumSize")),
        design_point=_str(data.get("designPoint")),
        bag_type=_str(data.get("bagType")),
        sheet_count=_int(data.get("sheetCount"), "sheetCount"),
        notes=_str(data.get("notes")),
        order_date=parse_date(data.get("orderDate"), "orderDate"),
        delivery_date=parse_date(data.get("deliveryDate"), "deliveryDate"),
        payment_method=_str(data.get("paymentMethod")),
        email=_str(data.get("email")) or (customer.email if customer else None),
        mobile=_str(data.get("mobile")),
        user_id=customer.id if customer else None,
        delivery_option=(_str(data.get("deliveryOption")) or "pickup").lower(),
        **{attr: _str(data.get(key)) for key, attr in ADDRESS_FIELDS.items()},
    )
    check_courier_address(order)

    if Order.query.filter_by(order_no=order_no).first():
        raise ConflictError(f"Order number '{order_no}' already exists.")

    pd = _json_field(data.get("priceDetails")) or {}
    if not isinstance(pd, dict):
        raise ValidationError("priceDetails must be an object.")
    quantity = _int(pd.get("quantity", data.get("quantity")), "quantity")
    if quantity is None:
        quantity = order.sheet_count or 0
    own_type = customer.user_type if customer else "user"
    user_type = (_str(data.get("userType")) or own_type) if staff else own_type
    card = _rate_card_for(data, pd, user_type, _bool(data.get("premium")), staff)

    advance_amount = pd.get("advanceAmount", data.get("advanceAmount"))
    if advance_amount not in (None, "") and not staff:
        raise ForbiddenError("Only staff can set an advance amount; use advancePercent.")
    advance_percent = pd.get("advancePercent", data.get("advancePercent"))
    breakdown = calculate_price(
        quantity,
        card,
        include_delivery=order.is_courier,
        advance_percent=to_decimal(advance_percent, "advancePercent") if advance_percent not in (None, "") else None,
        advance_amount=to_minor(advance_amount, "advanceAmount") if advance_amount not in (None, "") else None,
    )
    order.quantity = breakdown.quantity
    order.paper_rate = breakdown.paper_rate
    order.binding_rate = breakdown.binding_rate
    order.bag_rate = breakdown.bag_rate
    order.delivery_charge = breakdown.delivery_charge
    order.subtotal = breakdown.subtotal
    order.tax_rate = breakdown.tax_rate
    order.tax = breakdown.tax
    order.total = breakdown.total
    order.advance_amount = breakdown.advance_amount
    if advance_percent not in (None, ""):
        order.advance_percent = to_decimal(advance_percent, "advancePercent")

    storage = LocalFileStorage()
    written: list[str] = []
    try:
        for f in files or []:
            if f and getattr(f, "filename", ""):
                written.append(storage.save(order_no, f))
        order.uploaded_files = written
        order.serial_no = next_serial()
        db.session.add(order)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        storage.delete_urls(written)
        raise ConflictError(f"Order number '{order_no}' already exists.")
    except Exception:
        db.session.rollback()
        storage.delete_urls(written)
        raise

    current_app.logger.info(
        "[ORDER] created %s (%s) total=%.2f files=%d",
        order.order_no, order.serial_no, as_float(order.total), len(written),
    )
    return order


# --- update / delete ----------------------------------------------------------

def update_order(order_id, changes: dict) -> Order:
    if not isinstance(changes, dict) or not changes:
        raise ValidationError("No changes given.")
    changes = _flatten_address(dict(changes))

    allowed = set(UPDATABLE_FIELDS) | {"orderStatus"}
    rejected = sorted(k for k in changes if k not in allowed)
    if rejected:
        raise ValidationError("These fields cannot be changed.", fields=rejected)

    order = find_order_by_id(order_id)
    for key, value in changes.items():
        if key == "orderStatus":
            continue
        attr = UPDATABLE_FIELDS[key]
        if attr in ("order_date", "delivery_date"):
            value = parse_date(value, key)
            if attr == "order_date" and value is None:
                raise ValidationError("orderDate cannot be cleared.")
        elif attr == "sheet_count":
            value = _int(value, key)
        elif attr == "delivery_option":
            value = (_str(value) or "pickup").lower()
        else:
            value = _str(value)
            if attr in ("album_name", "paper_type", "album_size") and not value:
                raise ValidationError(f"{key} cannot be empty.")
        setattr(order, attr, value)

    check_courier_address(order)
    if "orderStatus" in changes:
        transition_order_status(order, _str(changes["orderStatus"]) or "")

    db.session.commit()
    current_app.logger.info("[ORDER] %s updated: %s", order.order_no, ", ".join(sorted(changes)))
    return order


def set_order_status(order_id, status: str) -> Order:
    order = find_order_by_id(order_id)
    transition_order_status(order, _str(status) or "")
    db.session.commit()
    return order


def delete_order(order_id, hard: bool = False) -> dict:
    order = find_order_by_id(order_id, include_inactive=hard)
    order_no = order.order_no

    if hard:
        db.session.delete(order)
    else:
        order.active = False
        order.uploaded_files = []
    db.session.commit()

    released = LocalFileStorage().delete_prefix(order_no)
    current_app.logger.info("[ORDER] %s %s deleted", order_no, "hard" if hard else "soft")
    return {"orderNo": order_no, "hard": hard, "filesReleased": released}


# --- queries ------------------------------------------------------------------

def list_orders():
    return Order.query.filter(Order.active.is_(True)).order_by(Order.created_at.desc(), Order.id.desc()).all()


def orders_for_email(email: str):
    email = _str(email)
    if not email:
        raise ValidationError("email is required.")
    return (
        Order.query
        .filter(Order.active.is_(True), db.func.lower(Order.email) == email.lower())
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def order_archive(order_no: str) -> tuple[str, str]:
    order = find_order(order_no)
    path = LocalFileStorage().export_archive(order.uploaded_files)
    return path, f"{order.order_no}-files.zip"


# --- reminders / QR -------------------------------------------------------------

def send_payment_reminder(order_no: str) -> dict:
    order = find_order(order_no)
    breakdown = reconcile(order)
    if breakdown.is_fully_paid:
        raise InsufficientStateError("Order is already fully paid.")
    if not order.email:
        raise ValidationError("Order has no customer e-mail.")

    studio = current_app.config.get("STUDIO_NAME", "Zenith Studio")
    body = (
        "Hello,\n\n"
        f"this is a friendly reminder for your album '{order.album_name}' "
        f"(order {order.order_no}, serial {order.serial_no}).\n\n"
        f"Total: {format_inr(order.total)}\n"
        f"Paid: {format_inr(breakdown.total_paid)}\n"
        f"Balance due: {format_inr(breakdown.dues)}\n\n"
        f"Thank you,\n{studio}"
    )
    send_email(
        subject=f"Payment reminder for order {order.order_no}",
        recipients=[order.email],
        body=body,
    )
    current_app.logger.info("[ORDER] reminder sent for %s (dues %.2f)", order.order_no, as_float(breakdown.dues))
    return {"orderNo": order.order_no, "email": order.email, "dues": as_float(breakdown.dues)}


def generate_qr_payment(order_no: str, amount=None) -> dict:
    order = find_order(order_no)
    breakdown = reconcile(order)
    if amount not in (None, ""):
        minor = to_minor(amount, "amount")
    else:
        minor = breakdown.dues
    if minor <= 0:
        raise InsufficientStateError("Nothing left to pay for this order.")

    uri = build_upi_uri(from_minor(minor), reference=order.serial_no, note=f"Order {order.order_no}")
    png = render_qr_png(uri)
    return {
        "orderNo": order.order_no,
        "amount": as_float(minor),
        "upiUri": uri,
        "qrPng": base64.b64encode(png).decode("ascii"),
        "png": png,
    }
