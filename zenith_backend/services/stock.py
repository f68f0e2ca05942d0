# zenith_backend/services/stock.py
from __future__ import annotations

import io
import math

import openpyxl
from flask import current_app
from sqlalchemy import or_, func

from zenith_backend.errors import ValidationError, NotFoundError, ConflictError, InsufficientStateError
from zenith_backend.extensions import db
from zenith_backend.models import Stock
from zenith_backend.models.stock import PAPER_TYPES, STOCK_UNITS, STOCK_STATUSES
from zenith_backend.services.money import as_float, to_minor

# request key -> (attribute, kind)
STOCK_FIELDS = {
    "productName": ("product_name", "str"),
    "productCode": ("product_code", "str"),
    "paperType": ("paper_type", "str"),
    "paperSize": ("paper_size", "str"),
    "brand": ("brand", "str"),
    "gsm": ("gsm", "int"),
    "description": ("description", "str"),
    "quantity": ("quantity", "int"),
    "unit": ("unit", "str"),
    "sheetsPerPack": ("sheets_per_pack", "int"),
    "purchasePrice": ("purchase_price", "money"),
    "sellingPrice": ("selling_price", "money"),
    "reorderLevel": ("reorder_level", "int"),
    "reorderQuantity": ("reorder_quantity", "int"),
    "status": ("status", "str"),
}
SORTABLE = {
    "createdAt": Stock.created_at,
    "productName": Stock.product_name,
    "quantity": Stock.quantity,
    "sellingPrice": Stock.selling_price,
    "gsm": Stock.gsm,
}


def serialize_stock(s: Stock) -> dict:
    return {
        "id": s.id,
        "productName": s.product_name,
        "productCode": s.product_code,
        "paperType": s.paper_type,
        "paperSize": s.paper_size,
        "brand": s.brand,
        "gsm": s.gsm,
        "description": s.description,
        "quantity": s.quantity,
        "unit": s.unit,
        "sheetsPerPack": s.sheets_per_pack,
        "purchasePrice": as_float(s.purchase_price),
        "sellingPrice": as_float(s.selling_price),
        "reorderLevel": s.reorder_level,
        "reorderQuantity": s.reorder_quantity,
        "status": s.status,
        "stockStatus": s.stock_status,
        "totalValue": as_float(s.total_value),
        "sheetsInStock": s.sheets_in_stock,
        "profitMargin": float(s.profit_margin),
        "createdBy": s.created_by_id,
        "lastUpdatedBy": s.last_updated_by_id,
        "createdAt": s.created_at.isoformat() if s.created_at else None,
        "updatedAt": s.updated_at.isoformat() if s.updated_at else None,
    }


def _coerce(key: str, kind: str, value):
    if kind == "int":
        try:
            out = int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{key} must be a whole number.")
        if out < 0:
            raise ValidationError(f"{key} must not be negative.")
        return out
    if kind == "money":
        return to_minor(value, key)
    out = str(value or "").strip()
    if key == "paperType" and out not in PAPER_TYPES:
        raise ValidationError(f"paperType must be one of {', '.join(PAPER_TYPES)}.")
    if key == "unit" and out not in STOCK_UNITS:
        raise ValidationError(f"unit must be one of {', '.join(STOCK_UNITS)}.")
    if key == "status" and out not in STOCK_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(STOCK_STATUSES)}.")
    if key in ("productName", "productCode", "paperSize") and not out:
        raise ValidationError(f"{key} cannot be empty.")
    return out


def _apply(stock: Stock, data: dict) -> None:
    unknown = sorted(k for k in data if k not in STOCK_FIELDS)
    if unknown:
        raise ValidationError("These fields cannot be set.", fields=unknown)
    for key, value in data.items():
        attr, kind = STOCK_FIELDS[key]
        setattr(stock, attr, _coerce(key, kind, value))


def get_stock(stock_id: int) -> Stock:
    stock = db.session.get(Stock, stock_id)
    if not stock:
        raise NotFoundError("Stock item not found.")
    return stock


def create_stock(data: dict, user=None) -> Stock:
    missing = [k for k in ("productName", "productCode", "paperType", "paperSize") if not str(data.get(k) or "").strip()]
    if missing:
        raise ValidationError("Missing required fields.", missing=missing)
    code = str(data["productCode"]).strip()
    if Stock.query.filter_by(product_code=code).first():
        raise ConflictError("Product code already exists.")

    stock = Stock()
    _apply(stock, data)
    stock.created_by_id = user.id if user else None
    stock.last_updated_by_id = stock.created_by_id
    db.session.add(stock)
    db.session.commit()
    current_app.logger.info("[STOCK] created %s", stock.product_code)
    return stock


def update_stock(stock_id: int, data: dict, user=None) -> Stock:
    if not data:
        raise ValidationError("No changes given.")
    stock = get_stock(stock_id)
    code = str(data.get("productCode") or "").strip()
    if code and code != stock.product_code and Stock.query.filter_by(product_code=code).first():
        raise ConflictError("Product code already exists.")
    _apply(stock, data)
    stock.last_updated_by_id = user.id if user else stock.last_updated_by_id
    db.session.commit()
    return stock


def delete_stock(stock_id: int) -> None:
    stock = get_stock(stock_id)
    db.session.delete(stock)
    db.session.commit()
    current_app.logger.info("[STOCK] deleted %s", stock.product_code)


def _adjust(stock_id: int, quantity, operation: str, user=None) -> tuple[Stock, int]:
    try:
        qty = int(quantity)
    except (TypeError, ValueError):
        raise ValidationError("quantity must be a whole number.")
    if qty <= 0:
        raise ValidationError("quantity must be greater than zero.")
    if operation not in ("add", "subtract"):
        raise ValidationError("Invalid operation. Use 'add' or 'subtract'.")

    stock = get_stock(stock_id)
    old = stock.quantity
    uid = user.id if user else stock.last_updated_by_id
    if operation == "add":
        db.session.execute(
            db.text("UPDATE stock SET quantity = quantity + :q, last_updated_by_id = :u WHERE id = :id"),
            {"q": qty, "u": uid, "id": stock.id},
        )
    else:
        res = db.session.execute(
            db.text(
                "UPDATE stock SET quantity = quantity - :q, last_updated_by_id = :u "
                "WHERE id = :id AND quantity >= :q"
            ),
            {"q": qty, "u": uid, "id": stock.id},
        )
        if res.rowcount == 0:
            db.session.rollback()
            raise InsufficientStateError("Insufficient stock quantity.", available=old)
    return stock, old


def adjust_quantity(stock_id: int, quantity, operation: str, reason: str | None, user=None) -> dict:
    if not (reason or "").strip():
        raise ValidationError("Quantity, operation, and reason are required.")
    stock, old = _adjust(stock_id, quantity, operation, user)
    db.session.commit()
    db.session.refresh(stock)
    current_app.logger.info("[STOCK] %s %s %s (%s)", stock.product_code, operation, quantity, reason)
    return {
        "stock": serialize_stock(stock),
        "operation": operation,
        "quantityChanged": int(quantity),
        "oldQuantity": old,
        "reason": reason,
    }


def bulk_update(updates, user=None) -> dict:
    if not isinstance(updates, list) or not updates:
        raise ValidationError("Updates array is required.")

    results, errors = [], []
    for item in updates:
        item = item if isinstance(item, dict) else {}
        sid = item.get("id")
        try:
            stock, old = _adjust(int(sid), item.get("quantity"), item.get("operation"), user)
            db.session.commit()
            db.session.refresh(stock)
            results.append({
                "id": stock.id,
                "productName": stock.product_name,
                "oldQuantity": old,
                "newQuantity": stock.quantity,
                "operation": item.get("operation"),
                "reason": item.get("reason"),
            })
        except (TypeError, ValueError):
            db.session.rollback()
            errors.append({"id": sid, "error": "Invalid stock id."})
        except (ValidationError, NotFoundError, InsufficientStateError) as exc:
            db.session.rollback()
            errors.append({"id": sid, "error": exc.message})

    return {
        "results": results,
        "errors": errors,
        "summary": {"successful": len(results), "failed": len(errors)},
    }


def _filtered(args):
    q = Stock.query
    search = (args.get("search") or "").strip()
    if search:
        like = f"%{search}%"
        q = q.filter(or_(
            Stock.product_name.ilike(like),
            Stock.product_code.ilike(like),
            Stock.description.ilike(like),
            Stock.paper_size.ilike(like),
            Stock.paper_type.ilike(like),
        ))
    if args.get("paperType"):
        q = q.filter(Stock.paper_type == args["paperType"])
    if args.get("paperSize"):
        q = q.filter(Stock.paper_size == args["paperSize"])
    if args.get("brand"):
        q = q.filter(Stock.brand.ilike(f"%{args['brand']}%"))
    if args.get("status"):
        q = q.filter(Stock.status == args["status"])
    if args.get("minGsm"):
        q = q.filter(Stock.gsm >= int(args["minGsm"]))
    if args.get("maxGsm"):
        q = q.filter(Stock.gsm <= int(args["maxGsm"]))
    if args.get("minPrice"):
        q = q.filter(Stock.selling_price >= to_minor(args["minPrice"], "minPrice"))
    if args.get("maxPrice"):
        q = q.filter(Stock.selling_price <= to_minor(args["maxPrice"], "maxPrice"))
    return q


def list_stock(args) -> dict:
    try:
        page = max(int(args.get("page", 1)), 1)
        limit = min(max(int(args.get("limit", 10)), 1), 200)
    except (TypeError, ValueError):
        raise ValidationError("page and limit must be whole numbers.")

    try:
        q = _filtered(args)
    except ValueError:
        raise ValidationError("Invalid numeric filter.")
    col = SORTABLE.get(args.get("sortBy") or "createdAt", Stock.created_at)
    q = q.order_by(col.asc() if args.get("sortOrder") == "asc" else col.desc(), Stock.id.desc())

    total = q.count()
    items = q.offset((page - 1) * limit).limit(limit).all()
    return {
        "stocks": [serialize_stock(s) for s in items],
        "pagination": {
            "currentPage": page,
            "totalPages": math.ceil(total / limit) if total else 0,
            "totalItems": total,
            "itemsPerPage": limit,
        },
    }


def low_stock_alerts() -> list[Stock]:
    return (
        Stock.query
        .filter(Stock.status == "active", Stock.quantity <= Stock.reorder_level)
        .order_by(Stock.quantity.asc())
        .all()
    )


def analytics() -> dict:
    total_items = Stock.query.count()
    active_items = Stock.query.filter(Stock.status == "active").count()
    out_of_stock = Stock.query.filter(Stock.quantity == 0).count()
    low_stock = Stock.query.filter(Stock.quantity <= Stock.reorder_level, Stock.quantity > 0).count()

    value_expr = Stock.quantity * Stock.selling_price
    total_value = (
        db.session.query(func.coalesce(func.sum(value_expr), 0))
        .filter(Stock.status == "active")
        .scalar()
    )
    distribution = (
        db.session.query(Stock.paper_type, func.count(Stock.id), func.coalesce(func.sum(value_expr), 0))
        .filter(Stock.status == "active")
        .group_by(Stock.paper_type)
        .order_by(func.count(Stock.id).desc())
        .all()
    )
    top = (
        Stock.query.filter(Stock.status == "active")
        .order_by(Stock.selling_price.desc())
        .limit(10)
        .all()
    )
    return {
        "totalItems": total_items,
        "activeItems": active_items,
        "outOfStockItems": out_of_stock,
        "lowStockItems": low_stock,
        "totalValue": as_float(total_value),
        "paperTypeDistribution": [
            {"paperType": pt, "count": count, "totalValue": as_float(value)}
            for pt, count, value in distribution
        ],
        "topItems": [
            {
                "id": s.id,
                "productName": s.product_name,
                "productCode": s.product_code,
                "paperType": s.paper_type,
                "paperSize": s.paper_size,
                "sellingPrice": as_float(s.selling_price),
                "quantity": s.quantity,
            }
            for s in top
        ],
    }


EXPORT_HEADERS = [
    "Product Name", "Product Code", "Paper Type", "Paper Size", "Brand", "GSM",
    "Quantity", "Unit", "Sheets Per Pack", "Purchase Price", "Selling Price",
    "Status", "Created At",
]


def export_stock(args) -> list[Stock]:
    q = Stock.query
    for key, col in (("paperType", Stock.paper_type), ("paperSize", Stock.paper_size), ("status", Stock.status)):
        if args.get(key):
            q = q.filter(col == args[key])
    return q.order_by(Stock.product_code.asc()).all()


def export_stock_xlsx(items: list[Stock]) -> bytes:
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Stock"
    ws.append(EXPORT_HEADERS)
    for s in items:
        ws.append([
            s.product_name, s.product_code, s.paper_type, s.paper_size, s.brand, s.gsm,
            s.quantity, s.unit, s.sheets_per_pack, as_float(s.purchase_price),
            as_float(s.selling_price), s.status,
            s.created_at.strftime("%Y-%m-%d") if s.created_at else "",
        ])
    bio = io.BytesIO()
    wb.save(bio)
    return bio.getvalue()
