# zenith_backend/invoicing/__init__.py
import io
import os
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from flask import current_app
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from zenith_backend.services.money import from_minor


@dataclass
class ReceiptSnapshot:
    """Everything the receipt needs, detached from the ORM session."""

    order_no: str
    serial_no: str
    album_name: str
    album_type: str | None
    paper_type: str | None
    album_size: str | None
    order_date: datetime | None
    email: str | None
    mobile: str | None
    address_lines: list[str] = field(default_factory=list)

    quantity: int = 0
    paper_rate: int = 0
    binding_rate: int = 0
    bag_rate: int = 0
    delivery_charge: int = 0
    subtotal: int = 0
    tax_rate: Decimal = Decimal("0")
    tax: int = 0
    total: int = 0
    total_paid: int = 0
    dues: int = 0

    payment_status: str = "Pending"
    payment_date: datetime | None = None
    payment_reference: str | None = None
    issued_at: datetime = field(default_factory=datetime.utcnow)


def snapshot_from_order(order) -> ReceiptSnapshot:
    from zenith_backend.services.reconciliation import reconcile

    breakdown = reconcile(order)
    address = []
    if order.is_courier:
        address = [
            order.street or "",
            order.landmark or "",
            ", ".join(p for p in (order.city, order.state, order.zip_code) if p),
            order.country or "",
        ]
    return ReceiptSnapshot(
        order_no=order.order_no,
        serial_no=order.serial_no,
        album_name=order.album_name,
        album_type=order.album_type,
        paper_type=order.paper_type,
        album_size=order.album_size,
        order_date=order.order_date,
        email=order.email,
        mobile=order.mobile,
        address_lines=[a for a in address if a],
        quantity=order.quantity or 0,
        paper_rate=order.paper_rate or 0,
        binding_rate=order.binding_rate or 0,
        bag_rate=order.bag_rate or 0,
        delivery_charge=order.delivery_charge or 0,
        subtotal=order.subtotal or 0,
        tax_rate=Decimal(order.tax_rate or 0),
        tax=order.tax or 0,
        total=order.total or 0,
        total_paid=breakdown.total_paid,
        dues=breakdown.dues,
        payment_status=order.payment_status,
        payment_date=order.payment_date,
        payment_reference=order.razorpay_payment_id or order.utr,
    )


def format_inr(minor: int | None) -> str:
    """Indian digit grouping: 1,23,456.00"""
    value = from_minor(minor)
    sign = "-" if value < 0 else ""
    whole, frac = f"{abs(value):.2f}".split(".")
    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ",".join(groups + [tail])
    return f"{sign}INR {whole}.{frac}"


def _register_fonts():
    """DejaVuSans from static/fonts when present, otherwise Helvetica."""
    from reportlab.pdfbase import pdfmetrics
    from reportlab.pdfbase.ttfonts import TTFont

    fonts_dir = os.path.join(current_app.root_path, "static", "fonts")
    reg_path = os.path.join(fonts_dir, "DejaVuSans.ttf")
    bold_path = os.path.join(fonts_dir, "DejaVuSans-Bold.ttf")
    if not os.path.isfile(reg_path):
        return "Helvetica", "Helvetica-Bold"
    try:
        pdfmetrics.registerFont(TTFont("DejaVuSans", reg_path))
        bold = "DejaVuSans"
        if os.path.isfile(bold_path):
            pdfmetrics.registerFont(TTFont("DejaVuSans-Bold", bold_path))
            bold = "DejaVuSans-Bold"
        return "DejaVuSans", bold
    except Exception:
        current_app.logger.warning("[RECEIPT] font registration failed, using Helvetica")
        return "Helvetica", "Helvetica-Bold"


def _fmt_dt(dt):
    return dt.strftime("%d-%m-%Y") if isinstance(dt, datetime) else "-"


def build_receipt_pdf_bytes(snap: ReceiptSnapshot) -> bytes:
    reg_font, bold_font = _register_fonts()

    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    w, h = A4

    studio = current_app.config.get("STUDIO_NAME", "Zenith Studio")
    c.setFont(bold_font, 16)
    c.drawString(20 * mm, h - 18 * mm, "PAYMENT RECEIPT")
    c.setFont(bold_font, 11)
    c.drawString(20 * mm, h - 26 * mm, studio)

    c.setFont(reg_font, 10)
    c.drawRightString(w - 20 * mm, h - 18 * mm, f"Serial: {snap.serial_no}")
    c.drawRightString(w - 20 * mm, h - 23 * mm, f"Order No: {snap.order_no}")
    c.drawRightString(w - 20 * mm, h - 28 * mm, f"Order date: {_fmt_dt(snap.order_date)}")
    c.drawRightString(w - 20 * mm, h - 33 * mm, f"Issued: {_fmt_dt(snap.issued_at)}")

    # customer
    y = h - 48 * mm
    c.setFont(bold_font, 11)
    c.drawString(20 * mm, y, "Customer")
    y -= 6 * mm
    c.setFont(reg_font, 10)
    for line in [snap.email, snap.mobile, *snap.address_lines]:
        if line:
            c.drawString(20 * mm, y, str(line)[:95])
            y -= 5 * mm
    y -= 4 * mm

    # album
    c.setFont(bold_font, 11)
    c.drawString(20 * mm, y, "Album")
    y -= 6 * mm
    c.setFont(reg_font, 10)
    c.drawString(20 * mm, y, f"{snap.album_name}  ({snap.album_type or '-'}, {snap.paper_type or '-'}, {snap.album_size or '-'})"[:110])
    y -= 10 * mm

    # price lines
    c.setFont(bold_font, 10)
    c.drawString(20 * mm, y, "Item")
    c.drawRightString(120 * mm, y, "Qty")
    c.drawRightString(155 * mm, y, "Rate")
    c.drawRightString(190 * mm, y, "Amount")
    y -= 5 * mm
    c.line(20 * mm, y, 190 * mm, y)
    y -= 6 * mm
    c.setFont(reg_font, 10)

    rows = [
        ("Paper / sheets", snap.quantity, snap.paper_rate, snap.paper_rate * snap.quantity),
        ("Binding", 1, snap.binding_rate, snap.binding_rate),
        ("Bag", 1, snap.bag_rate, snap.bag_rate),
    ]
    if snap.delivery_charge:
        rows.append(("Courier delivery", 1, snap.delivery_charge, snap.delivery_charge))
    for name, qty, rate, amount in rows:
        if not amount:
            continue
        c.drawString(20 * mm, y, name)
        c.drawRightString(120 * mm, y, str(qty))
        c.drawRightString(155 * mm, y, format_inr(rate))
        c.drawRightString(190 * mm, y, format_inr(amount))
        y -= 6 * mm

    y -= 2 * mm
    c.line(110 * mm, y, 190 * mm, y)
    y -= 6 * mm
    summary = [
        ("Subtotal", snap.subtotal),
        (f"Tax ({snap.tax_rate.normalize():f}%)", snap.tax),
        ("Total", snap.total),
        ("Paid", snap.total_paid),
        ("Balance due", snap.dues),
    ]
    for label, amount in summary:
        c.setFont(bold_font if label in ("Total", "Balance due") else reg_font, 10)
        c.drawRightString(155 * mm, y, label)
        c.drawRightString(190 * mm, y, format_inr(amount))
        y -= 6 * mm

    y -= 6 * mm
    c.setFont(bold_font, 10)
    c.drawString(20 * mm, y, f"Payment status: {snap.payment_status}")
    y -= 5 * mm
    c.setFont(reg_font, 10)
    if snap.payment_date:
        c.drawString(20 * mm, y, f"Paid on: {_fmt_dt(snap.payment_date)}")
        y -= 5 * mm
    if snap.payment_reference:
        c.drawString(20 * mm, y, f"Reference: {snap.payment_reference}")
        y -= 5 * mm

    c.setFont(reg_font, 8)
    c.drawString(20 * mm, 15 * mm, f"Thank you for choosing {studio}.")

    c.showPage()
    c.save()
    buf.seek(0)
    return buf.getvalue()
