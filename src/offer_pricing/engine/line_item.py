"""
Line Item - an immutable, fully resolved offer line.

A LineItem is built from a sparse ItemConfig by composing the base price
and markup resolvers. It never changes after construction: ``update`` and
the rounding helpers return new instances built from the exported config.
"""
import logging
import uuid
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

from ..config.settings import get_settings
from .ledger import config_from_export, export_config, export_item
from .models import ExplicitFields, ItemConfig, TraceStep
from .resolver import resolve_base_price, resolve_markup, validate_number, validate_price
from .rounding import round_money, round_to_step
from .units import UnitTable, get_unit_table
from .updates import apply_changes

log = logging.getLogger("offer_pricing.engine.line_item")

ConfigLike = Union[ItemConfig, Mapping[str, Any]]

_NUMERIC_FIELDS = (
    'discount', 'price_per_bottle', 'margin', 'gross', 'customer_price',
    'quantity', 'vat_rate', 'glass_price',
)


def new_id() -> str:
    """Generate a unique identifier for an item or offer."""
    return str(uuid.uuid4())


@dataclass(frozen=True)
class LineItem:
    """A resolved line item. Build with ``LineItem.from_config``."""
    id: str
    price: float
    discount: float
    price_per_bottle: float
    margin: float
    gross: float
    vat_amount: float
    customer_price: float
    unit: str
    multiplier: int
    price_per_unit: float
    quantity: float
    total_price: float
    total_customer_price: float
    vat_rate: float
    tags: tuple[str, ...] = ()
    available_units: tuple[str, ...] = ()
    glass_price: Optional[float] = None
    data: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}), hash=False)
    explicit: ExplicitFields = field(default_factory=ExplicitFields)
    trace: tuple[TraceStep, ...] = field(default=(), compare=False, repr=False)

    @classmethod
    def from_config(cls, config: ConfigLike, units: Optional[UnitTable] = None) -> 'LineItem':
        """
        Resolve a sparse config into a line item.

        Raises ValidationError for a missing, negative or non-finite price;
        nothing is built in that case.
        """
        if not isinstance(config, ItemConfig):
            config = ItemConfig.from_dict(config)
        settings = get_settings()
        units = units if units is not None else get_unit_table()

        price = validate_price(config.price)
        for name in _NUMERIC_FIELDS:
            validate_number(name, getattr(config, name))

        trace = []

        # 1. Resolve discount and price per bottle
        base = resolve_base_price(price, config.discount, config.price_per_bottle)
        if config.discount is not None and config.price_per_bottle is not None:
            trace.append(TraceStep("Base Price", "Discount and price per bottle both supplied", f"{base.price_per_bottle:.2f}"))
        elif config.price_per_bottle is not None:
            trace.append(TraceStep("Base Price", "Discount derived from price per bottle", f"{base.discount}%"))
        else:
            trace.append(TraceStep("Base Price", f"{base.discount}% off {price:.2f}", f"{base.price_per_bottle:.2f}"))

        # 2. Scale to the sale unit
        unit = config.unit or settings.default_unit
        multiplier = units.multiplier(unit)
        price_per_unit = round_money(base.price_per_bottle * multiplier)
        if not units.is_known(unit):
            trace.append(TraceStep("Unit", f"Unknown unit '{unit}', multiplier 1 used", f"{price_per_unit:.2f}"))
        else:
            trace.append(TraceStep("Unit", f"{unit} × {multiplier}", f"{price_per_unit:.2f}"))

        # 3. Resolve markup (customer price > gross > margin)
        vat_rate = settings.default_vat_rate if config.vat_rate is None else config.vat_rate
        markup = resolve_markup(
            base.price_per_bottle,
            vat_rate,
            margin=config.margin,
            gross=config.gross,
            customer_price=config.customer_price,
        )
        trace.append(TraceStep("Markup", f"Anchored on {markup.anchor.replace('_', ' ')}", f"{markup.customer_price:.2f}"))

        # 4. Extend by quantity
        quantity = 1 if config.quantity is None else config.quantity
        total_price = round_money(price_per_unit * quantity)
        trace.append(TraceStep("Extension", f"Quantity {quantity} × {price_per_unit:.2f}", f"{total_price:.2f}"))

        item = cls(
            id=config.id or new_id(),
            price=price,
            discount=base.discount,
            price_per_bottle=base.price_per_bottle,
            margin=markup.margin,
            gross=markup.gross,
            vat_amount=markup.vat_amount,
            customer_price=markup.customer_price,
            unit=unit,
            multiplier=multiplier,
            price_per_unit=price_per_unit,
            quantity=quantity,
            total_price=total_price,
            total_customer_price=round_money(markup.customer_price * multiplier * quantity),
            vat_rate=vat_rate,
            tags=tuple(config.tags or ()),
            available_units=tuple(config.available_units or (settings.default_unit,)),
            glass_price=config.glass_price,
            data=MappingProxyType(dict(config.data or {})),
            explicit=ExplicitFields.from_config(config),
            trace=tuple(trace),
        )
        log.debug("Resolved item %s: %s anchor, customer price %.2f", item.id, markup.anchor, item.customer_price)
        return item

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any], units: Optional[UnitTable] = None) -> 'LineItem':
        """Rebuild an item from its ``to_dict`` export, keeping its original authority."""
        return cls.from_config(config_from_export(payload), units)

    # --- Immutable update patterns ---

    def update(self, changes: Optional[Mapping[str, Any]] = None, units: Optional[UnitTable] = None,
               **fields) -> 'LineItem':
        """
        Return a new item with ``changes`` applied.

        Fields that would outrank the change are cleared first, so the
        changed field becomes authoritative.
        """
        merged = {**(changes or {}), **fields}
        config = apply_changes(self.to_config().to_dict(), merged, margin=self.margin)
        return LineItem.from_config(ItemConfig.from_dict(config), units)

    def round_customer_price(self, step: float = 1, units: Optional[UnitTable] = None) -> 'LineItem':
        """Snap the customer price to the nearest multiple of ``step``."""
        return self.update(customer_price=round_to_step(self.customer_price, step), units=units)

    def round_glass_price(self, step: float = 1, units: Optional[UnitTable] = None) -> 'LineItem':
        """Snap the glass price to the nearest multiple of ``step``; no-op when unset."""
        if self.glass_price is None:
            return self
        return self.update(glass_price=round_to_step(self.glass_price, step), units=units)

    # --- Export ---

    def to_config(self) -> ItemConfig:
        return export_config(self)

    def to_dict(self) -> dict:
        return export_item(self)

    def get_trace_text(self) -> str:
        """Get human-readable trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"→ {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"→ {t.step}: {t.description}")
        return "\n".join(lines)
