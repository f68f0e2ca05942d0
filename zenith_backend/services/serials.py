# zenith_backend/services/serials.py
"""
Serial numbers ZN-<year>-<NNNN>, one sequence per calendar year.

The counter row is bumped with a single UPDATE inside the caller's
transaction, so concurrent creators queue on the row lock and a rolled-back
order also rolls back its number.
"""
from __future__ import annotations

import re
from datetime import datetime

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from zenith_backend.extensions import db
from zenith_backend.models import Order, SerialCounter


def _prefix() -> str:
    return current_app.config.get("SERIAL_PREFIX", "ZN")


def format_serial(year: int, seq: int) -> str:
    return f"{_prefix()}-{year}-{seq:04d}"


def parse_serial_seq(serial: str | None, year: int) -> int | None:
    if not serial:
        return None
    m = re.fullmatch(rf"{re.escape(_prefix())}-{year}-(\d+)", serial.strip())
    return int(m.group(1)) if m else None


def find_last_serial_for_year(year: int) -> str | None:
    """Highest serial already issued for the year (legacy data included)."""
    rows = (
        db.session.query(Order.serial_no)
        .filter(Order.serial_no.like(f"{_prefix()}-{year}-%"))
        .all()
    )
    best, best_seq = None, -1
    for (serial,) in rows:
        seq = parse_serial_seq(serial, year)
        if seq is not None and seq > best_seq:
            best, best_seq = serial, seq
    return best


def _bump(year: int) -> int | None:
    res = db.session.execute(
        text("UPDATE serial_counter SET value = value + 1 WHERE year = :y"),
        {"y": year},
    )
    if res.rowcount == 0:
        return None
    return db.session.execute(
        text("SELECT value FROM serial_counter WHERE year = :y"), {"y": year}
    ).scalar_one()


def next_serial(year: int | None = None, max_tries: int = 5) -> str:
    """Allocate the next serial inside the current transaction."""
    year = year or datetime.utcnow().year

    for _ in range(max_tries):
        seq = _bump(year)
        if seq is not None:
            return format_serial(year, seq)

        # first order of the year: seed from existing data, then bump
        seed = parse_serial_seq(find_last_serial_for_year(year), year) or 0
        try:
            with db.session.begin_nested():
                db.session.add(SerialCounter(year=year, value=seed))
        except IntegrityError:
            # another creator seeded the row first
            current_app.logger.info("[SERIAL] counter row for %s created concurrently, retrying", year)
            continue

    raise RuntimeError(f"Serial allocator unavailable for year {year}.")
