from decimal import Decimal

import pytest

from zenith_backend.errors import ValidationError
from zenith_backend.services.money import to_minor, from_minor, as_float, percent_of, MAX_AMOUNT


def test_to_minor_rounds_half_up():
    assert to_minor("10.005") == 1001
    assert to_minor(12) == 1200
    assert to_minor(" 0.1 ") == 10


@pytest.mark.parametrize("bad", ["abc", "", None, True, "NaN", "Infinity"])
def test_to_minor_rejects_garbage(bad):
    with pytest.raises(ValidationError):
        to_minor(bad, "amount")


def test_to_minor_rejects_negative_unless_allowed():
    with pytest.raises(ValidationError):
        to_minor("-1")
    assert to_minor("-1", allow_negative=True) == -100


@pytest.mark.parametrize("huge", ["1e30", "-1e30", "10000000000.01"])
def test_to_minor_rejects_amounts_past_ceiling(huge):
    with pytest.raises(ValidationError):
        to_minor(huge, "amount", allow_negative=True)


def test_to_minor_accepts_ceiling():
    assert to_minor(MAX_AMOUNT) == 1_000_000_000_000


def test_minor_rendering():
    assert from_minor(123456) == Decimal("1234.56")
    assert from_minor(None) == Decimal("0.00")
    assert as_float(70000) == 700.0


def test_percent_of():
    assert percent_of(10000, Decimal("18")) == 1800
    assert percent_of(333, Decimal("50")) == 167
    assert percent_of(0, Decimal("18")) == 0
