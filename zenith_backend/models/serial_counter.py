# zenith_backend/models/serial_counter.py
from zenith_backend.extensions import db


class SerialCounter(db.Model):
    """Last issued serial sequence per calendar year."""

    __tablename__ = "serial_counter"

    year = db.Column(db.Integer, primary_key=True, autoincrement=False)
    value = db.Column(db.Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<SerialCounter {self.year}={self.value}>"
