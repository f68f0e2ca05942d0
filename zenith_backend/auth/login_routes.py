# zenith_backend/auth/login_routes.py
from flask import Blueprint, request, jsonify, current_app
from flask_login import login_user, logout_user, login_required, current_user

from zenith_backend.errors import AuthenticationError, ValidationError
from zenith_backend.models.user import User

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def user_dict(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "userType": user.user_type,
        "licenseKey": user.license_key,
        "isAdmin": user.is_admin,
        "active": user.active,
        "createdAt": user.created_at.isoformat() if user.created_at else None,
    }


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    if not email or not password:
        raise ValidationError("Email and password are required.")

    user = User.query.filter_by(email=email).first()
    if not user or not user.check_password(password):
        current_app.logger.info("[AUTH] failed login for %s", email)
        raise AuthenticationError("Invalid email or password.")
    if not user.is_active:
        raise AuthenticationError("Account is disabled.")

    login_user(user, remember=bool(data.get("remember")))
    return jsonify({"ok": True, "user": user_dict(user)}), 200


@auth_bp.post("/logout")
def logout():
    logout_user()
    return jsonify({"ok": True}), 200


@auth_bp.get("/check-email")
def check_email():
    email = (request.args.get("email") or "").strip().lower()
    if not email:
        raise ValidationError("email is required.")
    exists = User.query.filter_by(email=email).first() is not None
    return jsonify({"ok": True, "exists": exists}), 200


@auth_bp.get("/profile")
@login_required
def profile():
    return jsonify({"ok": True, "user": user_dict(current_user)}), 200
