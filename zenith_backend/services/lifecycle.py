# zenith_backend/services/lifecycle.py
"""
Order status axis. Forward-only Pending -> In Progress -> Completed -> Delivered
(skips allowed); Cancelled from any non-terminal state. The payment axis lives
in the reconciliation module and is independent of this one.
"""
from __future__ import annotations

from datetime import datetime

from flask import current_app

from zenith_backend.errors import InsufficientStateError, ValidationError
from zenith_backend.models.order import ORDER_STATUSES

FORWARD = ("Pending", "In Progress", "Completed", "Delivered")
TERMINAL = frozenset({"Delivered", "Cancelled"})


def can_transition(current: str, target: str) -> bool:
    if current == target:
        return True
    if current in TERMINAL:
        return False
    if target == "Cancelled":
        return True
    if current in FORWARD and target in FORWARD:
        return FORWARD.index(target) > FORWARD.index(current)
    return False


def transition_order_status(order, target: str, now: datetime | None = None) -> bool:
    """
    Move the order to `target`. Returns True when the status changed.
    Re-applying the current status is a no-op; illegal moves leave the order untouched.
    """
    if target not in ORDER_STATUSES:
        raise ValidationError(f"Invalid order status '{target}'.")

    current = order.order_status or "Pending"
    if current == target:
        return False
    if not can_transition(current, target):
        raise InsufficientStateError(
            f"Cannot change order status from {current} to {target}.",
            currentStatus=current,
            requestedStatus=target,
        )

    order.order_status = target
    order.order_status_updated_at = now or datetime.utcnow()
    current_app.logger.info("[ORDER] %s status %s -> %s", order.order_no, current, target)
    return True
