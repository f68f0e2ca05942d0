# zenith_backend/models/order.py
from datetime import datetime
from zenith_backend.extensions import db

ORDER_STATUSES = ("Pending", "In Progress", "Completed", "Delivered", "Cancelled")
PAYMENT_STATUSES = ("Pending", "Paid", "Failed")
DELIVERY_OPTIONS = ("pickup", "courier")


class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)

    # identity
    order_no = db.Column(db.String(64), unique=True, index=True, nullable=False)
    serial_no = db.Column(db.String(32), unique=True, index=True, nullable=False)

    # product specification (opaque to reconciliation)
    album_name = db.Column(db.String(200), nullable=False)
    album_type = db.Column(db.String(40), nullable=True)
    paper_type = db.Column(db.String(40), nullable=False)
    album_size = db.Column(db.String(40), nullable=False)
    design_point = db.Column(db.String(80), nullable=True)
    bag_type = db.Column(db.String(80), nullable=True)
    sheet_count = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    order_date = db.Column(db.DateTime, nullable=False)
    delivery_date = db.Column(db.DateTime, nullable=True)
    payment_method = db.Column(db.String(40), nullable=True)
    advance_percent = db.Column(db.Numeric(5, 2), nullable=True)

    # customer
    email = db.Column(db.String(255), index=True, nullable=True)
    mobile = db.Column(db.String(20), nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)

    # delivery
    delivery_option = db.Column(db.String(10), nullable=False, default="pickup")
    street = db.Column(db.String(255), nullable=True)
    landmark = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(100), nullable=True)
    state = db.Column(db.String(100), nullable=True)
    zip_code = db.Column(db.String(20), nullable=True)
    country = db.Column(db.String(100), nullable=True)

    # price details: integer minor units (paise)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    paper_rate = db.Column(db.BigInteger, nullable=False, default=0)
    binding_rate = db.Column(db.BigInteger, nullable=False, default=0)
    bag_rate = db.Column(db.BigInteger, nullable=False, default=0)
    delivery_charge = db.Column(db.BigInteger, nullable=False, default=0)
    subtotal = db.Column(db.BigInteger, nullable=False, default=0)
    tax_rate = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    tax = db.Column(db.BigInteger, nullable=False, default=0)
    total = db.Column(db.BigInteger, nullable=False, default=0)
    advance_amount = db.Column(db.BigInteger, nullable=False, default=0)
    cash_payment = db.Column(db.BigInteger, nullable=False, default=0)
    counter_upi_payment = db.Column(db.BigInteger, nullable=False, default=0)
    manual_payment_date = db.Column(db.DateTime, nullable=True)

    # payment
    payment_status = db.Column(db.String(10), nullable=False, default="Pending", index=True)
    razorpay_order_id = db.Column(db.String(100), nullable=True)
    # what the bound gateway order collects: "full" or "advance", and how much
    gateway_kind = db.Column(db.String(10), nullable=True)
    gateway_amount = db.Column(db.BigInteger, nullable=True)
    razorpay_payment_id = db.Column(db.String(100), nullable=True)
    razorpay_signature = db.Column(db.String(255), nullable=True)
    payment_date = db.Column(db.DateTime, nullable=True)
    utr = db.Column(db.String(64), nullable=True)

    # lifecycle
    order_status = db.Column(db.String(20), nullable=False, default="Pending", index=True)
    order_status_updated_at = db.Column(db.DateTime, nullable=True)

    uploaded_files = db.Column(db.JSON, nullable=False, default=list)
    active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = db.relationship("User", backref=db.backref("orders", lazy=True))
    payments = db.relationship(
        "Payment", backref="order", lazy=True, cascade="all, delete-orphan", order_by="Payment.id"
    )

    @property
    def is_courier(self) -> bool:
        return self.delivery_option == "courier"

    def __repr__(self):
        return f"<Order {self.serial_no} no={self.order_no} {self.payment_status}/{self.order_status}>"
