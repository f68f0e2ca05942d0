# zenith_backend/services/pricing.py
"""
Rate-card resolution and the price breakdown snapshotted into every order.

All amounts are integer minor units. The breakdown is computed once at order
creation; payments only move the paid side afterwards.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict
from decimal import Decimal

from zenith_backend.errors import NotFoundError, ValidationError
from zenith_backend.models.price import Price, ALBUM_TYPES, USER_TYPES
from zenith_backend.services.money import percent_of, as_float, MAX_MINOR


@dataclass(frozen=True)
class RateCard:
    paper_rate: int
    binding_rate: int
    bag_rate: int
    tax_rate: Decimal
    delivery_charge: int
    price_id: int | None = None
    premium: bool = False


@dataclass(frozen=True)
class PriceBreakdown:
    quantity: int
    paper_rate: int
    binding_rate: int
    bag_rate: int
    delivery_charge: int
    subtotal: int
    tax_rate: Decimal
    tax: int
    total: int
    advance_amount: int

    def to_dict(self) -> dict:
        d = asdict(self)
        for key in ("paper_rate", "binding_rate", "bag_rate", "delivery_charge",
                    "subtotal", "tax", "total", "advance_amount"):
            d[key] = as_float(d[key])
        d["tax_rate"] = float(self.tax_rate)
        return d


def _pick(price: Price, field: str, premium: bool) -> int:
    if premium:
        override = getattr(price, f"premium_{field}") or 0
        if override > 0:
            return override
    return getattr(price, field) or 0


def rate_card_from_price(price: Price, paper_type: str, premium: bool = False) -> RateCard:
    """
    Paper rate is the per-sheet price of the chosen paper when it is set,
    otherwise the per-paper price. Premium fields override only when non-zero.
    """
    kind = (paper_type or "").strip().lower()
    if kind not in ("glossy", "ntr"):
        raise ValidationError(f"Unsupported paper type '{paper_type}' (use glossy or ntr).")

    paper_rate = _pick(price, f"{kind}_sheet_price", premium) or _pick(price, f"{kind}_paper_price", premium)
    if paper_rate <= 0:
        raise NotFoundError(f"No {kind} paper rate configured for {price.album_type}/{price.user_type}/{price.paper_size}.")

    return RateCard(
        paper_rate=paper_rate,
        binding_rate=_pick(price, "binding_price", premium),
        bag_rate=_pick(price, "bag_price", premium),
        tax_rate=Decimal(price.service_tax or 0),
        delivery_charge=price.delivery_charge or 0,
        price_id=price.id,
        premium=premium,
    )


def resolve_rate_card(album_type: str, user_type: str, paper_size: str,
                      paper_type: str, premium: bool = False) -> RateCard:
    """Fail closed: a lookup miss raises NotFoundError."""
    if album_type not in ALBUM_TYPES:
        raise ValidationError(f"Unknown album type '{album_type}'.")
    if user_type not in USER_TYPES:
        raise ValidationError(f"Unknown user type '{user_type}'.")

    price = (
        Price.query
        .filter_by(album_type=album_type, user_type=user_type, paper_size=paper_size)
        .order_by(Price.id.desc())
        .first()
    )
    if not price:
        raise NotFoundError(f"No price schedule for {album_type}/{user_type}/{paper_size}.")
    return rate_card_from_price(price, paper_type, premium)


def calculate_price(quantity: int, card: RateCard, include_delivery: bool = False,
                    advance_percent: Decimal | None = None,
                    advance_amount: int | None = None) -> PriceBreakdown:
    if quantity is None or int(quantity) < 0:
        raise ValidationError("Quantity must not be negative.")
    quantity = int(quantity)
    for name in ("paper_rate", "binding_rate", "bag_rate", "delivery_charge"):
        if getattr(card, name) < 0:
            raise ValidationError(f"{name} must not be negative.")
    if not 0 <= card.tax_rate <= 100:
        raise ValidationError("Tax rate must be between 0 and 100.")

    delivery = card.delivery_charge if include_delivery else 0
    subtotal = card.paper_rate * quantity + card.binding_rate + card.bag_rate + delivery
    if subtotal > MAX_MINOR:
        raise ValidationError("Order total is too large.")
    tax = percent_of(subtotal, card.tax_rate)
    total = subtotal + tax

    if advance_amount is not None:
        if advance_amount < 0:
            raise ValidationError("Advance amount must not be negative.")
        advance = advance_amount
    elif advance_percent is not None:
        if not 0 <= advance_percent <= 100:
            raise ValidationError("Advance percent must be between 0 and 100.")
        advance = percent_of(total, advance_percent)
    else:
        advance = 0
    advance = max(0, min(advance, total))

    return PriceBreakdown(
        quantity=quantity,
        paper_rate=card.paper_rate,
        binding_rate=card.binding_rate,
        bag_rate=card.bag_rate,
        delivery_charge=delivery,
        subtotal=subtotal,
        tax_rate=card.tax_rate,
        tax=tax,
        total=total,
        advance_amount=advance,
    )
