# zenith_backend/app.py
import logging
import os

# Show INFO logs even outside the werkzeug access log
logging.basicConfig(level=logging.INFO)

from flask import Flask, jsonify

from zenith_backend.config import Config
from zenith_backend.extensions import db, login_manager, bcrypt, migrate, cors, init_mail
from zenith_backend.errors import register_error_handlers

# Blueprints
from zenith_backend.auth import auth_bp
from zenith_backend.api.routes.order_routes import order_bp
from zenith_backend.api.routes.payment_routes import payment_bp
from zenith_backend.api.routes.price_routes import price_bp
from zenith_backend.api.routes.stock_routes import stock_bp
from zenith_backend.api.routes.upload_routes import upload_bp
from zenith_backend.cli import register_cli
from zenith_backend import models as _models  # noqa: F401


def create_app(config_object=Config) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Init extensions
    db.init_app(app)
    migrate.init_app(app, db, render_as_batch=True)
    login_manager.init_app(app)
    bcrypt.init_app(app)
    init_mail(app)

    cors.init_app(
        app,
        resources={
            r"/api/*": {
                "origins": app.config.get("CORS_ORIGINS", []),
                "supports_credentials": True,
            }
        },
    )

    os.makedirs(app.config["UPLOAD_FOLDER"], exist_ok=True)

    register_error_handlers(app)
    register_cli(app)

    app.register_blueprint(auth_bp)
    app.register_blueprint(order_bp)
    app.register_blueprint(payment_bp)
    app.register_blueprint(price_bp)
    app.register_blueprint(stock_bp)
    app.register_blueprint(upload_bp)

    @app.get("/api/health")
    def health():
        return jsonify({"ok": True, "service": app.config.get("STUDIO_NAME")}), 200

    # Diagnostics: list all routes
    @app.get("/__routes")
    def __routes():
        lines = []
        for r in sorted(app.url_map.iter_rules(), key=lambda x: x.rule):
            methods = ",".join(
                sorted(m for m in r.methods if m in {"GET", "POST", "PUT", "DELETE", "PATCH"})
            )
            lines.append(f"{r.rule:45s} -> {r.endpoint} [{methods}]")
        return "<pre>" + "\n".join(lines) + "</pre>"

    return app
