# zenith_backend/services/reconciliation.py
"""
Payment reconciliation.

Every write is a single atomic SQL statement (accumulator increment or a
conditional status UPDATE), so two payment events on the same order can
never lose each other's contribution. The Paid side effect is dispatched
only by the writer whose UPDATE actually flipped the status.
"""
from __future__ import annotations

import hmac
from dataclasses import dataclass
from datetime import datetime

from flask import current_app
from sqlalchemy import update, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from zenith_backend.api.utils.razorpay import verify_signature
from zenith_backend.errors import (
    StudioError, ValidationError, ConflictError, AuthenticationError, InsufficientStateError,
)
from zenith_backend.extensions import db
from zenith_backend.models import Order, Payment
from zenith_backend.models.order import PAYMENT_STATUSES
from zenith_backend.services.money import as_float, to_minor
from zenith_backend.services.order_paid_hook import dispatch_order_paid
from zenith_backend.services.repository import find_order, find_order_by_id

MANUAL_CHANNELS = {"cash": "cash_payment", "counterUpi": "counter_upi_payment"}
GATEWAY_KINDS = ("full", "advance")
# "Done" only appears on imported legacy orders
SETTLED_STATUSES = ("Paid", "Done")


@dataclass(frozen=True)
class PaymentBreakdown:
    total_paid: int
    dues: int
    is_fully_paid: bool

    def to_dict(self) -> dict:
        return {
            "totalPaid": as_float(self.total_paid),
            "dues": as_float(self.dues),
            "isFullyPaid": self.is_fully_paid,
        }


def reconcile(order) -> PaymentBreakdown:
    """Pure projection of an order's paid side. No I/O."""
    total = int(order.total or 0)
    if order.payment_status in SETTLED_STATUSES:
        return PaymentBreakdown(total_paid=total, dues=0, is_fully_paid=True)

    paid = int(order.advance_amount or 0) + int(order.cash_payment or 0) + int(order.counter_upi_payment or 0)
    if paid >= total:
        return PaymentBreakdown(total_paid=paid, dues=0, is_fully_paid=True)
    return PaymentBreakdown(total_paid=paid, dues=total - paid, is_fully_paid=False)


# --- atomic statements ------------------------------------------------------

def _paid_sum():
    return Order.advance_amount + Order.cash_payment + Order.counter_upi_payment


def _mark_paid_if_covered(order_id: int, now: datetime) -> bool:
    res = db.session.execute(
        update(Order)
        .where(Order.id == order_id, Order.payment_status.notin_(SETTLED_STATUSES), _paid_sum() >= Order.total)
        .values(payment_status="Paid", payment_date=func.coalesce(Order.payment_date, now), updated_at=now)
        .execution_options(synchronize_session=False)
    )
    return res.rowcount == 1


def _mark_paid(order_id: int, now: datetime, **values) -> bool:
    res = db.session.execute(
        update(Order)
        .where(Order.id == order_id, Order.payment_status.notin_(SETTLED_STATUSES))
        .values(payment_status="Paid", payment_date=now, updated_at=now, **values)
        .execution_options(synchronize_session=False)
    )
    return res.rowcount == 1


def _increment(order_id: int, column: str, amount: int, now: datetime) -> None:
    col = getattr(Order, column)
    db.session.execute(
        update(Order)
        .where(Order.id == order_id)
        .values({col: col + amount, Order.manual_payment_date: now, Order.updated_at: now})
        .execution_options(synchronize_session=False)
    )


def _commit_and_reload(order: Order) -> Order:
    db.session.commit()
    db.session.refresh(order)
    return order


# --- gateway ----------------------------------------------------------------

def gateway_amount_for(order, kind: str) -> int:
    """What a gateway order of this kind collects: the advance, or the current dues."""
    if kind not in GATEWAY_KINDS:
        raise ValidationError(f"Unknown payment kind '{kind}'.")
    breakdown = reconcile(order)
    if kind == "full" and breakdown.is_fully_paid:
        raise InsufficientStateError("Order is already fully paid.")
    amount = int(order.advance_amount or 0) if kind == "advance" else breakdown.dues
    if amount <= 0:
        raise ValidationError("Amount must be greater than zero.")
    return amount


def open_gateway_intent(order, gateway_order_id: str, kind: str = "full", amount: int | None = None) -> Order:
    """
    Bind a freshly created gateway order to this order.

    Only a signature over this gateway order id can later settle the order,
    and the kind and amount recorded here are what the confirmation applies.
    """
    if not gateway_order_id:
        raise ValidationError("Gateway order id is required.")
    if amount is None:
        amount = gateway_amount_for(order, kind)
    elif kind not in GATEWAY_KINDS:
        raise ValidationError(f"Unknown payment kind '{kind}'.")
    order.razorpay_order_id = gateway_order_id
    order.gateway_kind = kind
    order.gateway_amount = int(amount)
    order.updated_at = datetime.utcnow()
    db.session.commit()
    return order


def _check_intent(order, gw_order_id: str) -> None:
    bound = order.razorpay_order_id or ""
    if not bound or not hmac.compare_digest(bound.encode(), gw_order_id.encode()):
        current_app.logger.warning(
            "[PAYMENT][SECURITY] gateway order %s is not bound to order %s", gw_order_id, order.order_no
        )
        raise AuthenticationError("Payment does not belong to this order.")


def record_gateway_payment(order_no: str, refs: dict) -> dict:
    """
    Confirm a gateway payment.

    The gateway order id must be the one opened for this order; its stored
    kind decides the effect. "full" settles the order, "advance" confirms the
    advance that is already part of the price details and lets the
    projection decide. Replaying the same gateway payment id is a no-op.
    """
    gw_order_id = (refs.get("razorpay_order_id") or "").strip()
    gw_payment_id = (refs.get("razorpay_payment_id") or "").strip()
    signature = (refs.get("razorpay_signature") or "").strip()
    if not gw_order_id or not gw_payment_id or not signature:
        raise ValidationError("razorpay_order_id, razorpay_payment_id and razorpay_signature are required.")

    if not verify_signature(gw_order_id, gw_payment_id, signature):
        current_app.logger.warning(
            "[PAYMENT][SECURITY] signature mismatch for order=%s gateway_order=%s payment=%s",
            order_no, gw_order_id, gw_payment_id,
        )
        raise AuthenticationError("Payment verification failed.")

    order = find_order(order_no)

    existing = Payment.query.filter_by(gateway_payment_id=gw_payment_id).first()
    if existing:
        if existing.order_id != order.id:
            raise ConflictError("Gateway payment already recorded for another order.")
        current_app.logger.info("[PAYMENT] replay of %s for order %s ignored", gw_payment_id, order.order_no)
        return {"order": order, "replay": True, "transitioned": False}

    _check_intent(order, gw_order_id)
    if Payment.query.filter_by(gateway_order_id=gw_order_id).first():
        raise ConflictError("Gateway order already paid.")

    now = datetime.utcnow()
    kind = order.gateway_kind or "full"
    if order.gateway_amount is not None:
        amount = int(order.gateway_amount)
    elif kind == "advance":
        amount = int(order.advance_amount or 0)
    else:
        amount = reconcile(order).dues

    gw_values = dict(
        razorpay_payment_id=gw_payment_id,
        razorpay_signature=signature,
    )
    try:
        with db.session.begin_nested():
            db.session.add(Payment(
                order_id=order.id,
                channel="gateway",
                amount=amount,
                gateway_order_id=gw_order_id,
                gateway_payment_id=gw_payment_id,
                signature=signature,
                note=f"razorpay:{kind}",
                recorded_at=now,
            ))
    except IntegrityError:
        # a concurrent verify stored the same payment id first
        db.session.rollback()
        current_app.logger.info("[PAYMENT] concurrent replay of %s for order %s", gw_payment_id, order.order_no)
        return {"order": find_order(order_no), "replay": True, "transitioned": False}

    if kind == "full":
        transitioned = _mark_paid(order.id, now, **gw_values)
    else:
        db.session.execute(
            update(Order).where(Order.id == order.id).values(updated_at=now, **gw_values)
            .execution_options(synchronize_session=False)
        )
        transitioned = _mark_paid_if_covered(order.id, now)

    _commit_and_reload(order)
    current_app.logger.info(
        "[PAYMENT] gateway %s %s recorded for %s (status=%s)", kind, gw_payment_id, order.order_no, order.payment_status
    )
    if transitioned:
        dispatch_order_paid(order.id)
    return {"order": order, "replay": False, "transitioned": transitioned}


def record_gateway_failure(order_no: str, refs: dict | None = None, reason: str | None = None) -> Order:
    """A failed attempt on the bound gateway order. Never downgrades a Paid order."""
    order = find_order(order_no)
    refs = refs or {}
    _check_intent(order, (refs.get("razorpay_order_id") or "").strip())
    now = datetime.utcnow()
    values = {"payment_status": "Failed", "updated_at": now}
    if refs.get("razorpay_payment_id"):
        values["razorpay_payment_id"] = refs["razorpay_payment_id"]

    res = db.session.execute(
        update(Order)
        .where(Order.id == order.id, Order.payment_status.notin_(SETTLED_STATUSES))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    _commit_and_reload(order)
    if res.rowcount:
        current_app.logger.info("[PAYMENT] gateway failure for %s: %s", order.order_no, reason or "-")
    return order


# --- manual -----------------------------------------------------------------

def record_manual_payment(order_no: str, amount, channel: str, utr: str | None = None) -> dict:
    """Add a cash / counter UPI contribution and settle the order once covered."""
    column = MANUAL_CHANNELS.get(channel)
    if column is None:
        raise ValidationError(f"Unknown payment channel '{channel}' (use cash or counterUpi).")
    minor = to_minor(amount, "amount")
    if minor <= 0:
        raise ValidationError("Amount must be greater than zero.")
    utr = (utr or "").strip() or None

    order = find_order(order_no)
    now = datetime.utcnow()

    _increment(order.id, column, minor, now)
    if utr:
        db.session.execute(
            update(Order).where(Order.id == order.id).values(utr=utr)
            .execution_options(synchronize_session=False)
        )
    db.session.add(Payment(order_id=order.id, channel=channel, amount=minor, utr=utr, recorded_at=now))
    transitioned = _mark_paid_if_covered(order.id, now)

    _commit_and_reload(order)
    current_app.logger.info(
        "[PAYMENT] %s %.2f recorded for %s (status=%s)", channel, as_float(minor), order.order_no, order.payment_status
    )
    if transitioned:
        dispatch_order_paid(order.id)
    return {"order": order, "transitioned": transitioned}


# --- bulk -------------------------------------------------------------------

def _bulk_one(order_id, new_status: str, cash: int, now: datetime) -> dict:
    order = find_order_by_id(order_id)
    previous = order.payment_status
    if new_status != "Paid" and previous in SETTLED_STATUSES:
        raise InsufficientStateError(f"Order {order.order_no} is already {previous}.")

    if cash > 0:
        _increment(order.id, "cash_payment", cash, now)
        db.session.add(Payment(order_id=order.id, channel="cash", amount=cash, note="bulk", recorded_at=now))

    if new_status == "Paid":
        transitioned = _mark_paid(order.id, now)
    else:
        db.session.execute(
            update(Order)
            .where(Order.id == order.id, Order.payment_status.notin_(SETTLED_STATUSES))
            .values(payment_status=new_status, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        transitioned = _mark_paid_if_covered(order.id, now)
    _commit_and_reload(order)

    if transitioned:
        dispatch_order_paid(order.id)
    return {
        "id": order.id,
        "orderNo": order.order_no,
        "previousStatus": previous,
        "paymentStatus": order.payment_status,
        "cashPayment": as_float(order.cash_payment),
    }


def bulk_reconcile(order_ids, new_status: str, cash_amount=None) -> dict:
    """
    Apply a payment status (and optional cash increment) to many orders.
    Each order commits on its own; one failure never aborts the others.
    """
    if not isinstance(order_ids, (list, tuple)) or not order_ids:
        raise ValidationError("orderIds must be a non-empty list.")
    if new_status not in PAYMENT_STATUSES:
        raise ValidationError(f"Invalid payment status '{new_status}'.")
    cash = to_minor(cash_amount, "cashAmount") if cash_amount not in (None, "") else 0

    results, errors = [], []
    for oid in order_ids:
        now = datetime.utcnow()
        try:
            results.append(_bulk_one(oid, new_status, cash, now))
        except StudioError as exc:
            db.session.rollback()
            errors.append({"id": oid, "error": exc.message})
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception("[PAYMENT] bulk reconcile failed for order %s", oid)
            errors.append({"id": oid, "error": f"Database error: {exc.__class__.__name__}"})

    current_app.logger.info(
        "[PAYMENT] bulk reconcile to %s: %d ok, %d failed", new_status, len(results), len(errors)
    )
    return {
        "results": results,
        "errors": errors,
        "summary": {"total": len(order_ids), "successful": len(results), "failed": len(errors)},
    }


__all__ = [
    "PaymentBreakdown",
    "reconcile",
    "gateway_amount_for",
    "open_gateway_intent",
    "record_gateway_payment",
    "record_gateway_failure",
    "record_manual_payment",
    "bulk_reconcile",
]
