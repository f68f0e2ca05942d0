from functools import wraps

from flask import current_app
from flask_login import current_user

from zenith_backend.errors import AuthenticationError, ForbiddenError


def admin_required(view):
    """Logged-in admin only. Skipped entirely when LOGIN_DISABLED is set."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        if current_app.config.get("LOGIN_DISABLED"):
            return view(*args, **kwargs)
        if not current_user.is_authenticated:
            raise AuthenticationError("Login required.")
        if not current_user.is_admin:
            raise ForbiddenError("Admin access required.")
        return view(*args, **kwargs)

    return wrapper


def acting_user():
    """The logged-in user, or None for anonymous requests."""
    return current_user if current_user.is_authenticated else None
