# zenith_backend/auth/password_reset_routes.py
from flask import request, jsonify, current_app

from zenith_backend.auth.login_routes import auth_bp  # same blueprint as login
from zenith_backend.errors import ValidationError
from zenith_backend.extensions import db
from zenith_backend.models.user import User
from zenith_backend.services.otp import issue_otp, verify_otp, normalize_email


@auth_bp.post("/send-reset-otp")
def send_reset_otp():
    """Mails a reset code when the account exists. The answer never reveals whether it does."""
    data = request.get_json(silent=True) or {}
    email = normalize_email(data.get("email"))

    user = User.query.filter_by(email=email).first()
    if user and user.is_active:
        issue_otp(email, purpose="reset")
    else:
        current_app.logger.info("[RESET] no active account for %s, nothing sent", email)
    return jsonify({"ok": True, "message": "If the account exists, a reset code was sent."}), 200


@auth_bp.post("/reset-password")
def reset_password():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    otp = str(data.get("otp") or "").strip()
    password = data.get("password") or ""
    confirm = data.get("confirmPassword") or ""

    if not (email and otp and password and confirm):
        raise ValidationError("All fields are required.")
    if password != confirm:
        raise ValidationError("Passwords do not match.")
    if len(password) < 6:
        raise ValidationError("Password must have at least 6 characters.")

    user = User.query.filter_by(email=email).first()
    if not user:
        raise ValidationError("Invalid or expired OTP.")
    verify_otp(email, otp, purpose="reset", consume=True)

    user.set_password(password)
    db.session.commit()
    current_app.logger.info("[RESET] password changed for %s", email)
    return jsonify({"ok": True, "message": "Password changed. You can log in now."}), 200
