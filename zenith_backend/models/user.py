# zenith_backend/models/user.py
from datetime import datetime
from zenith_backend.extensions import db, bcrypt
from flask_login import UserMixin


class User(db.Model, UserMixin):
    __tablename__ = "user"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(200), nullable=False)
    user_type = db.Column(db.String(20), nullable=False, default="user")
    license_key = db.Column(db.String(100), nullable=False, default="")
    is_admin = db.Column(db.Boolean, default=False, nullable=False)
    active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # --- Password handling ---------------------------------------------------
    def set_password(self, password: str) -> None:
        self.password_hash = bcrypt.generate_password_hash(password).decode("utf-8")

    def check_password(self, password: str) -> bool:
        return bcrypt.check_password_hash(self.password_hash, password)

    @property
    def is_active(self) -> bool:
        return bool(self.active)

    def get_id(self):
        return str(self.id)

    def __repr__(self):
        return f"<User {self.email} type={self.user_type}>"


class OtpCode(db.Model):
    """One pending one-time code per e-mail, valid until expires_at or too many wrong guesses."""

    __tablename__ = "otp_code"

    email = db.Column(db.String(255), primary_key=True)
    purpose = db.Column(db.String(20), nullable=False, default="register")
    code_hash = db.Column(db.String(200), nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    attempts = db.Column(db.Integer, nullable=False, default=0)

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.utcnow()) >= self.expires_at
