# zenith_backend/services/otp.py
from __future__ import annotations

import secrets
from datetime import datetime, timedelta

from flask import current_app

from zenith_backend.api.utils.email import send_email
from zenith_backend.errors import ValidationError
from zenith_backend.extensions import db, bcrypt
from zenith_backend.models import OtpCode

OTP_PURPOSES = ("register", "reset")


def normalize_email(email: str | None) -> str:
    email = (email or "").strip().lower()
    if not email or "@" not in email:
        raise ValidationError("A valid email is required.")
    return email


def issue_otp(email: str, purpose: str = "register") -> datetime:
    """Create (or replace) the pending code for an e-mail and mail it. Returns the expiry."""
    if purpose not in OTP_PURPOSES:
        raise ValidationError(f"Unknown OTP purpose '{purpose}'.")
    email = normalize_email(email)
    code = f"{secrets.randbelow(900000) + 100000}"
    ttl = int(current_app.config.get("OTP_TTL_SECONDS", 600))
    expires_at = datetime.utcnow() + timedelta(seconds=ttl)

    row = db.session.get(OtpCode, email)
    if row is None:
        row = OtpCode(email=email)
        db.session.add(row)
    row.purpose = purpose
    row.code_hash = bcrypt.generate_password_hash(code).decode("utf-8")
    row.expires_at = expires_at
    row.attempts = 0
    db.session.commit()

    studio = current_app.config.get("STUDIO_NAME", "Zenith Studio")
    minutes = max(ttl // 60, 1)
    what = "password reset code" if purpose == "reset" else "OTP"
    send_email(
        subject=f"Your {studio} {what}",
        recipients=[email],
        body=f"Your OTP is {code}. It is valid for {minutes} minutes.",
        html=f"<p>Your OTP is <strong>{code}</strong>. It is valid for {minutes} minutes.</p>",
    )
    current_app.logger.info("[OTP] %s code issued for %s, valid until %s", purpose, email, expires_at.isoformat())
    return expires_at


def _reject(email: str, row: OtpCode | None) -> None:
    """Count a wrong guess against the pending code; the code dies after OTP_MAX_ATTEMPTS."""
    if row is not None:
        row.attempts = (row.attempts or 0) + 1
        if row.attempts >= int(current_app.config.get("OTP_MAX_ATTEMPTS", 5)):
            db.session.delete(row)
            current_app.logger.warning("[OTP] too many wrong codes for %s, code discarded", email)
        db.session.commit()
    current_app.logger.info("[OTP] rejected code for %s", email)
    raise ValidationError("Invalid or expired OTP.")


def verify_otp(email: str, code: str, purpose: str = "register", consume: bool = True) -> None:
    email = normalize_email(email)
    row = db.session.get(OtpCode, email)
    code = (code or "").strip()
    if row is None or row.is_expired() or (row.purpose or "register") != purpose:
        _reject(email, None)
    if not code or not bcrypt.check_password_hash(row.code_hash, code):
        _reject(email, row)
    if consume:
        db.session.delete(row)


def purge_expired() -> int:
    n = OtpCode.query.filter(OtpCode.expires_at <= datetime.utcnow()).delete(synchronize_session=False)
    db.session.commit()
    return n
