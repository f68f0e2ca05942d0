# zenith_backend/auth/register_routes.py
from flask import request, jsonify, current_app
from flask_login import login_user

from zenith_backend.auth.login_routes import auth_bp, user_dict
from zenith_backend.errors import ValidationError, ConflictError
from zenith_backend.extensions import db
from zenith_backend.models.price import USER_TYPES
from zenith_backend.models.user import User
from zenith_backend.services.otp import issue_otp, verify_otp


@auth_bp.post("/send-otp")
def send_otp():
    data = request.get_json(silent=True) or {}
    expires_at = issue_otp(data.get("email"))
    return jsonify({"ok": True, "message": "OTP sent", "expiresAt": expires_at.isoformat()}), 200


@auth_bp.post("/register")
def register():
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    confirm = data.get("confirmPassword") or ""
    otp = str(data.get("otp") or "").strip()

    if not (name and email and password and confirm and otp):
        raise ValidationError("All fields are required.")
    if password != confirm:
        raise ValidationError("Passwords do not match.")
    if len(password) < 6:
        raise ValidationError("Password must have at least 6 characters.")

    user_type = (data.get("userType") or "user").strip()
    # self-registration never grants admin
    if user_type not in USER_TYPES or user_type == "admin":
        raise ValidationError(f"Invalid user type '{user_type}'.")

    if User.query.filter_by(email=email).first():
        raise ConflictError("User already exists.")

    verify_otp(email, otp, consume=True)

    user = User(
        name=name,
        email=email,
        user_type=user_type,
        license_key=(data.get("licenseKey") or "").strip(),
        is_admin=False,
        active=True,
    )
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    current_app.logger.info("[AUTH] registered %s (%s)", email, user_type)

    login_user(user)
    return jsonify({"ok": True, "user": user_dict(user)}), 201
