import threading
from datetime import datetime

from zenith_backend.extensions import db
from zenith_backend.models import Order, SerialCounter
from zenith_backend.services.serials import format_serial, parse_serial_seq, next_serial


def _legacy_order(serial: str) -> Order:
    return Order(
        order_no=f"LEGACY-{serial}",
        serial_no=serial,
        album_name="Legacy",
        paper_type="glossy",
        album_size="12x36",
        order_date=datetime(2026, 1, 5),
    )


def test_format_and_parse(ctx):
    assert format_serial(2026, 7) == "ZN-2026-0007"
    assert format_serial(2026, 12345) == "ZN-2026-12345"
    assert parse_serial_seq("ZN-2026-0042", 2026) == 42
    assert parse_serial_seq("ZN-2025-0042", 2026) is None
    assert parse_serial_seq("garbage", 2026) is None


def test_sequence_per_year(ctx):
    first = next_serial(2026)
    second = next_serial(2026)
    other_year = next_serial(2027)
    db.session.commit()
    assert (first, second, other_year) == ("ZN-2026-0001", "ZN-2026-0002", "ZN-2027-0001")


def test_counter_seeds_from_existing_orders(ctx):
    db.session.add(_legacy_order("ZN-2026-0041"))
    db.session.add(_legacy_order("ZN-2026-0007"))
    db.session.commit()

    assert next_serial(2026) == "ZN-2026-0042"
    db.session.commit()
    assert db.session.get(SerialCounter, 2026).value == 42


def test_rolled_back_allocation_is_reused(ctx):
    assert next_serial(2026) == "ZN-2026-0001"
    db.session.rollback()
    assert next_serial(2026) == "ZN-2026-0001"


def test_concurrent_allocations_are_unique(app):
    results, errors = [], []
    lock = threading.Lock()

    def worker():
        with app.app_context():
            try:
                serial = next_serial(2026)
                db.session.commit()
                with lock:
                    results.append(serial)
            except Exception as exc:  # surfaced through the assertion below
                errors.append(exc)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert sorted(results) == [f"ZN-2026-{n:04d}" for n in range(1, 9)]
