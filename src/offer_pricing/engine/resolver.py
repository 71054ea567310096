"""
Pricing resolvers - derive a consistent set of figures from sparse inputs.

Two independent resolvers are composed for every line item:

1. Base price: vendor price + (discount | price per bottle)
2. Markup: price per bottle + VAT rate + (customer price > gross > margin)

Each intermediate is rounded where it is derived, never carried forward
as an unrounded fraction.
"""
import math
from dataclasses import dataclass
from numbers import Real
from typing import Optional

from ..exceptions import ValidationError
from .rounding import round_money


@dataclass(frozen=True)
class BasePrice:
    """Result of the discount / price-per-bottle resolution."""
    discount: float
    price_per_bottle: float


@dataclass(frozen=True)
class Markup:
    """Result of the margin / gross / customer price resolution."""
    margin: float
    gross: float
    vat_amount: float
    customer_price: float
    anchor: str  # "customer_price", "gross" or "margin"


def _is_number(value) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def validate_price(price) -> float:
    """
    Check the vendor price.

    Raises ValidationError when the price is missing, not a number,
    negative, NaN or infinite.
    """
    if price is None:
        raise ValidationError("Vendor price is required", field='price')
    if not _is_number(price):
        raise ValidationError(f"Vendor price must be a number, got {price!r}", field='price')
    if not math.isfinite(price):
        raise ValidationError(f"Vendor price must be finite, got {price!r}", field='price')
    if price < 0:
        raise ValidationError(f"Vendor price must not be negative, got {price!r}", field='price')
    return price


def validate_number(name: str, value) -> Optional[float]:
    """Check an optional numeric input; ``None`` passes through."""
    if value is None:
        return None
    if not _is_number(value) or not math.isfinite(value):
        raise ValidationError(f"{name} must be a finite number, got {value!r}", field=name)
    return value


def resolve_base_price(price: float, discount: Optional[float] = None,
                       price_per_bottle: Optional[float] = None) -> BasePrice:
    """
    Resolve discount and price per bottle.

    When both are supplied both are trusted as-is, so an explicit discount
    never shifts on export/reconstruct cycles.
    """
    if discount is not None and price_per_bottle is not None:
        return BasePrice(discount=discount, price_per_bottle=price_per_bottle)

    if price_per_bottle is not None:
        if price == 0:
            return BasePrice(discount=0.0, price_per_bottle=price_per_bottle)
        return BasePrice(
            discount=round_money((1 - price_per_bottle / price) * 100),
            price_per_bottle=price_per_bottle,
        )

    discount = round_money(discount or 0)
    return BasePrice(
        discount=discount,
        price_per_bottle=round_money(price * (1 - discount / 100)),
    )


def _derive_margin(gross: float, price_before_vat: float) -> float:
    if price_before_vat == 0:
        return 0.0
    return round_money(gross / price_before_vat * 100)


def resolve_markup(price_per_bottle: float, vat_rate: float, margin: Optional[float] = None,
                   gross: Optional[float] = None, customer_price: Optional[float] = None) -> Markup:
    """
    Resolve margin, gross, VAT amount and customer price.

    The first supplied member of customer price > gross > margin is
    authoritative; the others are derived from it. A supplied margin is
    kept as informational when a higher anchor exists.
    """
    if vat_rate <= -100:
        raise ValidationError(f"VAT rate must be above -100, got {vat_rate!r}", field='vat_rate')

    if customer_price is not None:
        price_before_vat = customer_price / (1 + vat_rate / 100)
        if gross is not None:
            vat_amount = round_money(customer_price - (price_per_bottle + gross))
        else:
            vat_amount = round_money(customer_price - price_before_vat)
            gross = round_money(price_before_vat - price_per_bottle)
        if margin is None:
            margin = _derive_margin(gross, price_before_vat)
        return Markup(margin=margin, gross=gross, vat_amount=vat_amount,
                      customer_price=customer_price, anchor='customer_price')

    if gross is not None:
        price_before_vat = price_per_bottle + gross
        vat_amount = round_money(price_before_vat * vat_rate / 100)
        if margin is None:
            margin = _derive_margin(gross, price_before_vat)
        return Markup(margin=margin, gross=gross, vat_amount=vat_amount,
                      customer_price=round_money(price_before_vat + vat_amount), anchor='gross')

    margin = round_money(margin or 0)
    if margin == 100:
        # Selling price would be infinite
        gross = 0.0
    else:
        gross = round_money(price_per_bottle / (1 - margin / 100) - price_per_bottle)
    price_before_vat = price_per_bottle + gross
    vat_amount = round_money(price_before_vat * vat_rate / 100)
    return Markup(margin=margin, gross=gross, vat_amount=vat_amount,
                  customer_price=round_money(price_before_vat + vat_amount), anchor='margin')
