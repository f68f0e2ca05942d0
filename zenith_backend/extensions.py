# zenith_backend/extensions.py
from __future__ import annotations

import socket
import sqlite3

from flask import jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_bcrypt import Bcrypt
from flask_migrate import Migrate
from flask_cors import CORS
from flask_mail import Mail
from sqlalchemy import event
from sqlalchemy.engine import Engine

# Keep extension instances in one place to avoid circular imports
db = SQLAlchemy()
login_manager = LoginManager()
bcrypt = Bcrypt()
migrate = Migrate()
cors = CORS()
mail = Mail()


@login_manager.user_loader
def load_user(user_id):
    # Lazy import to avoid circular dependency when loading the model
    from zenith_backend.models.user import User
    try:
        user = db.session.get(User, int(user_id))
    except (TypeError, ValueError):
        return None
    # a deactivated account loses its open sessions too
    return user if user is not None and user.is_active else None


@login_manager.unauthorized_handler
def _unauthorized():
    return jsonify({"ok": False, "error": "Login required.", "kind": "AuthenticationError"}), 401


# --- SQLite transaction mode ------------------------------------------------
# pysqlite defers BEGIN until the first write, so two transactions that both
# read first can dead-lock when they upgrade. Emitting BEGIN IMMEDIATE makes
# writers queue on the busy timeout instead.

@event.listens_for(Engine, "connect")
def _sqlite_connect(dbapi_connection, connection_record):
    if isinstance(dbapi_connection, sqlite3.Connection):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@event.listens_for(Engine, "begin")
def _sqlite_begin(conn):
    if conn.dialect.name == "sqlite":
        conn.exec_driver_sql("BEGIN IMMEDIATE")


# --- Mail -------------------------------------------------------------------

def _coerce_bool(v, default=False) -> bool:
    if v is None:
        return default
    if isinstance(v, bool):
        return v
    s = str(v).strip().lower()
    return s in ("1", "true", "t", "yes", "y", "on")


def _clean_hostname(server: str | None) -> str:
    """Return hostname without scheme/path/spaces."""
    s = (server or "").strip()
    if "://" in s:
        s = s.split("://", 1)[1]
    if "/" in s:
        s = s.split("/", 1)[0]
    return s


def init_mail(app):
    """
    Initialize Flask-Mail after sanitizing the MAIL_* settings, so a
    malformed MAIL_SERVER shows up in the log at startup rather than on the
    first receipt.
    """
    cfg = app.config

    server = _clean_hostname(cfg.get("MAIL_SERVER"))
    if not server:
        server = "smtp.gmail.com"
        app.logger.warning("[MAIL] MAIL_SERVER was not set -> using fallback 'smtp.gmail.com'.")
    cfg["MAIL_SERVER"] = server

    use_ssl = _coerce_bool(cfg.get("MAIL_USE_SSL"), False)
    use_tls = _coerce_bool(cfg.get("MAIL_USE_TLS"), False)
    if use_ssl and use_tls:
        use_tls = False
        cfg["MAIL_USE_TLS"] = False
        app.logger.info("[MAIL] MAIL_USE_SSL and MAIL_USE_TLS were both set -> disabling TLS (prefer SSL).")

    try:
        int(cfg.get("MAIL_PORT"))
    except (TypeError, ValueError):
        port = 465 if use_ssl else (587 if use_tls else 25)
        cfg["MAIL_PORT"] = port
        app.logger.info("[MAIL] MAIL_PORT was invalid -> setting %s (SSL=%s, TLS=%s).", port, use_ssl, use_tls)

    if not cfg.get("MAIL_DEFAULT_SENDER"):
        cfg["MAIL_DEFAULT_SENDER"] = cfg.get("MAIL_USERNAME")

    if cfg.get("MAIL_CHECK_DNS", True):
        try:
            infos = socket.getaddrinfo(server, cfg.get("MAIL_PORT") or 0, proto=socket.IPPROTO_TCP)
            if not {i[4][0] for i in infos if i[4]}:
                app.logger.warning("[MAIL] DNS resolve for '%s' returned no IP addresses.", server)
        except OSError as e:
            app.logger.error("[MAIL] DNS resolve failed for MAIL_SERVER='%s': %s", server, e)

    app.logger.info(
        "[MAIL] cfg -> server=%s port=%s ssl=%s tls=%s sender=%s suppress=%s",
        cfg.get("MAIL_SERVER"),
        cfg.get("MAIL_PORT"),
        bool(cfg.get("MAIL_USE_SSL")),
        bool(cfg.get("MAIL_USE_TLS")),
        cfg.get("MAIL_DEFAULT_SENDER"),
        bool(cfg.get("MAIL_SUPPRESS_SEND")),
    )

    mail.init_app(app)
