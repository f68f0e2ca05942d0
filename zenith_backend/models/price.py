# zenith_backend/models/price.py
from datetime import datetime
from zenith_backend.extensions import db

ALBUM_TYPES = ("Print only", "Design only", "Print and design both")
USER_TYPES = ("user", "admin", "retailer", "Professional")

# (standard column, premium override column); amounts are minor units
RATE_FIELDS = (
    ("glossy_paper_price", "premium_glossy_paper_price"),
    ("glossy_sheet_price", "premium_glossy_sheet_price"),
    ("ntr_paper_price", "premium_ntr_paper_price"),
    ("ntr_sheet_price", "premium_ntr_sheet_price"),
    ("binding_price", "premium_binding_price"),
    ("bag_price", "premium_bag_price"),
)


class Price(db.Model):
    __tablename__ = "price"
    __table_args__ = (
        db.Index("ix_price_lookup", "album_type", "user_type", "paper_size"),
    )

    id = db.Column(db.Integer, primary_key=True)
    album_type = db.Column(db.String(40), nullable=False)
    user_type = db.Column(db.String(20), nullable=False)
    paper_size = db.Column(db.String(40), nullable=False)
    bag_type = db.Column(db.String(80), nullable=True)

    glossy_paper_price = db.Column(db.BigInteger, nullable=False, default=0)
    glossy_sheet_price = db.Column(db.BigInteger, nullable=False, default=0)
    ntr_paper_price = db.Column(db.BigInteger, nullable=False, default=0)
    ntr_sheet_price = db.Column(db.BigInteger, nullable=False, default=0)
    binding_price = db.Column(db.BigInteger, nullable=False, default=0)
    bag_price = db.Column(db.BigInteger, nullable=False, default=0)
    service_tax = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    delivery_charge = db.Column(db.BigInteger, nullable=False, default=11000)

    premium_glossy_paper_price = db.Column(db.BigInteger, nullable=False, default=0)
    premium_glossy_sheet_price = db.Column(db.BigInteger, nullable=False, default=0)
    premium_ntr_paper_price = db.Column(db.BigInteger, nullable=False, default=0)
    premium_ntr_sheet_price = db.Column(db.BigInteger, nullable=False, default=0)
    premium_binding_price = db.Column(db.BigInteger, nullable=False, default=0)
    premium_bag_price = db.Column(db.BigInteger, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Price {self.album_type}/{self.user_type}/{self.paper_size}>"
