# zenith_backend/cli.py
import os

import click
from flask.cli import with_appcontext

from zenith_backend.extensions import db


@click.command("init-db")
@with_appcontext
def init_db():
    """Create all tables (development; production uses `flask db upgrade`)."""
    db.create_all()
    click.echo("Database tables created.")


@click.command("create-admin")
@click.option("--name", default=lambda: os.environ.get("ADMIN_NAME", "Admin"), show_default=True)
@click.option("--email", default=lambda: os.environ.get("ADMIN_EMAIL", "admin@example.com"),
              show_default=True, help="Admin e-mail (login)")
@click.option("--password", default=lambda: os.environ.get("ADMIN_PASSWORD"),
              help="Password (prompted when not given)")
@click.option("--force", is_flag=True, default=False,
              help="Reset password and admin flag when the account exists")
@with_appcontext
def create_admin(name: str, email: str, password: str | None, force: bool):
    """Create or reset an admin account."""
    from zenith_backend.models.user import User

    db.create_all()
    if not password:
        password = click.prompt("Password", hide_input=True, confirmation_prompt=True)

    email = email.strip().lower()
    u = User.query.filter_by(email=email).first()
    if u and not force:
        click.echo(f"User '{email}' already exists. Use --force to reset the password.")
        return

    if not u:
        u = User(name=name, email=email)
        db.session.add(u)
    u.user_type = "admin"
    u.is_admin = True
    u.active = True
    u.set_password(password)
    db.session.commit()
    click.echo(f"Admin ready: {email}")


# standard rates in rupees for `flask seed-prices`
DEFAULT_RATES = {
    "glossyPaperPrice": "0", "glossySheetPrice": "45", "ntrPaperPrice": "0", "ntrSheetPrice": "60",
    "bindingPrice": "350", "bagPrice": "150", "serviceTax": "18",
}


@click.command("seed-prices")
@click.option("--paper-size", "paper_sizes", multiple=True, default=("12x36", "12x30", "10x30"), show_default=True)
@with_appcontext
def seed_prices(paper_sizes):
    """Insert a default price schedule for every album type / user type / paper size missing one."""
    from zenith_backend.models import Price
    from zenith_backend.models.price import ALBUM_TYPES, USER_TYPES
    from zenith_backend.services.prices import create_price

    db.create_all()
    created = 0
    for album_type in ALBUM_TYPES:
        for user_type in USER_TYPES:
            for size in paper_sizes:
                exists = Price.query.filter_by(album_type=album_type, user_type=user_type, paper_size=size).first()
                if exists:
                    continue
                create_price({"albumType": album_type, "userType": user_type, "paperSize": size, **DEFAULT_RATES})
                created += 1
    click.echo(f"Seeded {created} price entries.")


@click.command("purge-otp")
@with_appcontext
def purge_otp():
    """Delete expired one-time codes."""
    from zenith_backend.services.otp import purge_expired

    click.echo(f"Removed {purge_expired()} expired OTP(s).")


def register_cli(app):
    for cmd in (init_db, create_admin, seed_prices, purge_otp):
        app.cli.add_command(cmd)
