# zenith_backend/models/__init__.py
from .user import User, OtpCode
from .order import Order
from .payment import Payment
from .price import Price
from .serial_counter import SerialCounter
from .stock import Stock

__all__ = [
    "User",
    "OtpCode",
    "Order",
    "Payment",
    "Price",
    "SerialCounter",
    "Stock",
]
