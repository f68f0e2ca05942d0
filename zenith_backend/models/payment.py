# zenith_backend/models/payment.py
from datetime import datetime
from zenith_backend.extensions import db

PAYMENT_CHANNELS = ("gateway", "cash", "counterUpi")


class Payment(db.Model):
    """Ledger row: one recorded payment contribution against an order."""

    __tablename__ = "payment"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False)
    channel = db.Column(db.String(20), nullable=False)
    amount = db.Column(db.BigInteger, nullable=False, default=0)  # minor units

    gateway_order_id = db.Column(db.String(100), nullable=True)
    # at most one ledger row per successful gateway transaction
    gateway_payment_id = db.Column(db.String(100), unique=True, nullable=True)
    signature = db.Column(db.String(255), nullable=True)
    utr = db.Column(db.String(64), nullable=True)
    note = db.Column(db.String(255), nullable=True)

    recorded_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Payment #{self.id} order={self.order_id} {self.channel} {self.amount}>"
