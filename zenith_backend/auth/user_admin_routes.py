# zenith_backend/auth/user_admin_routes.py
from flask import request, jsonify, current_app
from flask_login import current_user
from sqlalchemy import update

from zenith_backend.auth.decorators import admin_required
from zenith_backend.auth.login_routes import auth_bp, user_dict
from zenith_backend.errors import ValidationError, NotFoundError
from zenith_backend.extensions import db
from zenith_backend.models import Order, Stock
from zenith_backend.models.user import User


def _get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found.")
    return user


def _not_self(user: User, action: str) -> None:
    if current_user.is_authenticated and current_user.id == user.id:
        raise ValidationError(f"You cannot {action} your own account.")


@auth_bp.get("/users")
@admin_required
def list_users():
    q = User.query
    user_type = (request.args.get("userType") or "").strip()
    if user_type:
        q = q.filter(User.user_type == user_type)
    active = (request.args.get("active") or "").strip().lower()
    if active in ("true", "1"):
        q = q.filter(User.active.is_(True))
    elif active in ("false", "0"):
        q = q.filter(User.active.is_(False))
    users = q.order_by(User.created_at.desc(), User.id.desc()).all()
    return jsonify({"ok": True, "count": len(users), "users": [user_dict(u) for u in users]}), 200


@auth_bp.patch("/users/<int:user_id>/activate")
@admin_required
def activate_user(user_id: int):
    user = _get_user(user_id)
    user.active = True
    db.session.commit()
    current_app.logger.info("[AUTH] user %s activated", user.email)
    return jsonify({"ok": True, "user": user_dict(user)}), 200


@auth_bp.patch("/users/<int:user_id>/deactivate")
@admin_required
def deactivate_user(user_id: int):
    user = _get_user(user_id)
    _not_self(user, "deactivate")
    user.active = False
    db.session.commit()
    current_app.logger.info("[AUTH] user %s deactivated", user.email)
    return jsonify({"ok": True, "user": user_dict(user)}), 200


@auth_bp.delete("/users/<int:user_id>")
@admin_required
def delete_user(user_id: int):
    """Orders and stock records survive the account; they just lose the link."""
    user = _get_user(user_id)
    _not_self(user, "delete")
    email = user.email

    db.session.execute(
        update(Order).where(Order.user_id == user.id).values(user_id=None)
        .execution_options(synchronize_session=False)
    )
    db.session.execute(
        update(Stock).where(Stock.created_by_id == user.id).values(created_by_id=None)
        .execution_options(synchronize_session=False)
    )
    db.session.execute(
        update(Stock).where(Stock.last_updated_by_id == user.id).values(last_updated_by_id=None)
        .execution_options(synchronize_session=False)
    )
    db.session.delete(user)
    db.session.commit()
    current_app.logger.info("[AUTH] user %s deleted", email)
    return jsonify({"ok": True, "message": "User deleted"}), 200
