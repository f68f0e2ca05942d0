# zenith_backend/models/stock.py
from datetime import datetime
from decimal import Decimal
from zenith_backend.extensions import db

PAPER_TYPES = ("glossy", "ntr", "matte", "luster", "silk", "metallic", "canvas", "other")
STOCK_UNITS = ("sheets", "packs")
STOCK_STATUSES = ("active", "inactive", "discontinued")


class Stock(db.Model):
    __tablename__ = "stock"

    id = db.Column(db.Integer, primary_key=True)
    product_name = db.Column(db.String(150), nullable=False)
    product_code = db.Column(db.String(64), unique=True, index=True, nullable=False)
    paper_type = db.Column(db.String(20), nullable=False, default="glossy")
    paper_size = db.Column(db.String(40), nullable=False)
    brand = db.Column(db.String(100), nullable=False, default="")
    gsm = db.Column(db.Integer, nullable=False, default=0)
    description = db.Column(db.Text, nullable=False, default="")

    quantity = db.Column(db.Integer, nullable=False, default=0)
    unit = db.Column(db.String(10), nullable=False, default="sheets")
    sheets_per_pack = db.Column(db.Integer, nullable=False, default=100)

    purchase_price = db.Column(db.BigInteger, nullable=False, default=0)  # minor units
    selling_price = db.Column(db.BigInteger, nullable=False, default=0)

    reorder_level = db.Column(db.Integer, nullable=False, default=10)
    reorder_quantity = db.Column(db.Integer, nullable=False, default=50)
    status = db.Column(db.String(20), nullable=False, default="active", index=True)

    created_by_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    last_updated_by_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def stock_status(self) -> str:
        if self.quantity == 0:
            return "out_of_stock"
        if self.quantity <= self.reorder_level:
            return "low_stock"
        return "in_stock"

    @property
    def total_value(self) -> int:
        return self.quantity * self.selling_price

    @property
    def sheets_in_stock(self) -> int:
        if self.unit == "sheets":
            return self.quantity
        return self.quantity * (self.sheets_per_pack or 1)

    @property
    def profit_margin(self) -> Decimal:
        if self.purchase_price > 0:
            margin = Decimal(self.selling_price - self.purchase_price) / Decimal(self.purchase_price) * 100
            return margin.quantize(Decimal("0.01"))
        return Decimal("0")

    def __repr__(self) -> str:
        return f"<Stock {self.product_code} qty={self.quantity}>"
