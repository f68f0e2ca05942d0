# zenith_backend/services/statistics.py
"""Admin aggregates. Everything goes through the same payment projection as single-order views."""
from __future__ import annotations

import io
from collections import OrderedDict
from datetime import datetime

import openpyxl
from openpyxl.utils import get_column_letter

from zenith_backend.errors import NotFoundError
from zenith_backend.extensions import db
from zenith_backend.models import Order
from zenith_backend.services.money import as_float
from zenith_backend.services.orders import serialize_order
from zenith_backend.services.reconciliation import reconcile


def _active_orders():
    return Order.query.filter(Order.active.is_(True)).order_by(Order.created_at.desc(), Order.id.desc()).all()


def payment_statistics() -> dict:
    orders = _active_orders()
    by_status = {"Pending": 0, "Paid": 0, "Failed": 0}
    by_order_status: dict[str, int] = {}
    revenue = collected = dues = 0
    advance = cash = counter_upi = 0
    fully_paid = 0

    for o in orders:
        b = reconcile(o)
        by_status[o.payment_status] = by_status.get(o.payment_status, 0) + 1
        by_order_status[o.order_status] = by_order_status.get(o.order_status, 0) + 1
        revenue += o.total or 0
        collected += b.total_paid
        dues += b.dues
        advance += o.advance_amount or 0
        cash += o.cash_payment or 0
        counter_upi += o.counter_upi_payment or 0
        if b.is_fully_paid:
            fully_paid += 1

    return {
        "totalOrders": len(orders),
        "fullyPaidOrders": fully_paid,
        "ordersWithDues": len(orders) - fully_paid,
        "paymentStatus": by_status,
        "orderStatus": by_order_status,
        "totalRevenue": as_float(revenue),
        "totalCollected": as_float(collected),
        "totalDues": as_float(dues),
        "byChannel": {
            "advance": as_float(advance),
            "cash": as_float(cash),
            "counterUpi": as_float(counter_upi),
        },
    }


def users_with_orders() -> list[dict]:
    """One row per customer e-mail with totals across their active orders."""
    customers: "OrderedDict[str, dict]" = OrderedDict()
    for o in _active_orders():
        key = (o.email or "").strip().lower() or "(no e-mail)"
        row = customers.setdefault(key, {
            "email": key,
            "mobile": o.mobile,
            "name": o.user.name if o.user else None,
            "orderCount": 0,
            "total": 0,
            "totalPaid": 0,
            "dues": 0,
            "lastOrderDate": None,
        })
        b = reconcile(o)
        row["orderCount"] += 1
        row["total"] += o.total or 0
        row["totalPaid"] += b.total_paid
        row["dues"] += b.dues
        if o.order_date and (row["lastOrderDate"] is None or o.order_date > row["lastOrderDate"]):
            row["lastOrderDate"] = o.order_date

    out = []
    for row in customers.values():
        row["total"] = as_float(row["total"])
        row["totalPaid"] = as_float(row["totalPaid"])
        row["dues"] = as_float(row["dues"])
        row["lastOrderDate"] = row["lastOrderDate"].isoformat() if row["lastOrderDate"] else None
        out.append(row)
    return out


def user_orders_with_payments(email: str) -> dict:
    orders = (
        Order.query
        .filter(Order.active.is_(True), db.func.lower(Order.email) == (email or "").strip().lower())
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )
    if not orders:
        raise NotFoundError(f"No orders for '{email}'.")

    total = sum(o.total or 0 for o in orders)
    paid = dues = 0
    for o in orders:
        b = reconcile(o)
        paid += b.total_paid
        dues += b.dues
    return {
        "email": email,
        "orders": [serialize_order(o, with_payments=True) for o in orders],
        "summary": {
            "orderCount": len(orders),
            "total": as_float(total),
            "totalPaid": as_float(paid),
            "dues": as_float(dues),
        },
    }


EXPORT_HEADERS = [
    "Serial", "Order No", "Order date", "Album", "Album type", "Paper", "Size",
    "E-mail", "Mobile", "Delivery", "Total", "Advance", "Cash", "Counter UPI",
    "Paid", "Dues", "Payment status", "Order status",
]


def export_orders_xlsx() -> bytes:
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Orders"
    ws.append(EXPORT_HEADERS)

    for o in _active_orders():
        b = reconcile(o)
        ws.append([
            o.serial_no, o.order_no,
            o.order_date.strftime("%Y-%m-%d") if isinstance(o.order_date, datetime) else "",
            o.album_name, o.album_type, o.paper_type, o.album_size,
            o.email, o.mobile, o.delivery_option,
            as_float(o.total), as_float(o.advance_amount), as_float(o.cash_payment),
            as_float(o.counter_upi_payment), as_float(b.total_paid), as_float(b.dues),
            o.payment_status, o.order_status,
        ])

    for col_idx, _ in enumerate(EXPORT_HEADERS, start=1):
        max_len = 0
        for row in ws.iter_rows(min_col=col_idx, max_col=col_idx):
            cell = row[0]
            if cell.value is not None:
                max_len = max(max_len, len(str(cell.value)))
        ws.column_dimensions[get_column_letter(col_idx)].width = min(max_len + 2, 40)

    bio = io.BytesIO()
    wb.save(bio)
    return bio.getvalue()
