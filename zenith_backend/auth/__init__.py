# zenith_backend/auth/__init__.py

# One blueprint object shared by app.py and every auth route module.
from . import login_routes as _login

auth_bp = _login.auth_bp

# importing attaches the view functions to auth_bp
from . import register_routes  # noqa: F401,E402
from . import password_reset_routes  # noqa: F401,E402
from . import user_admin_routes  # noqa: F401,E402
