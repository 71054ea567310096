"""
Data models for the offer pricing engine.

Uses dataclasses for structured, type-safe data representation.
"""
from dataclasses import dataclass, fields, asdict
from typing import Any, Mapping, Optional


# Fields whose value may be either supplied or derived; the ledger
# records which of them the caller supplied.
AMBIGUOUS_FIELDS = ('price_per_bottle', 'gross', 'customer_price')

# Fields a LineItem computes; on export these win over raw config values.
COMPUTED_FIELDS = (
    'price_per_unit',
    'vat_amount',
    'customer_price',
    'total_price',
    'price_per_bottle',
    'gross',
    'multiplier',
    'total_customer_price',
)


@dataclass(frozen=True)
class TraceStep:
    """A single step in the pricing resolution trace."""
    step: str
    description: str
    value: Optional[str] = None


@dataclass
class ItemConfig:
    """
    Sparse input for a line item. ``None`` means "not supplied".

    Only ``price`` is required; the resolver decides everything else.
    """
    price: Optional[float] = None
    discount: Optional[float] = None
    price_per_bottle: Optional[float] = None
    margin: Optional[float] = None
    gross: Optional[float] = None
    customer_price: Optional[float] = None
    unit: Optional[str] = None
    quantity: Optional[float] = None
    vat_rate: Optional[float] = None
    tags: Optional[list[str]] = None
    available_units: Optional[list[str]] = None
    glass_price: Optional[float] = None
    id: Optional[str] = None
    data: Optional[dict[str, Any]] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> 'ItemConfig':
        """Create a config from a mapping; keys that are not config fields are ignored."""
        values = {name: payload.get(name) for name in ITEM_FIELDS}
        for name in ('tags', 'available_units'):
            if values[name] is not None:
                values[name] = list(values[name])
        if values['data'] is not None:
            values['data'] = dict(values['data'])
        return cls(**values)

    def to_dict(self) -> dict:
        """Supplied fields only, with collections copied."""
        result = {}
        for name in ITEM_FIELDS:
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, (list, tuple)):
                value = list(value)
            elif isinstance(value, Mapping):
                value = dict(value)
            result[name] = value
        return result


ITEM_FIELDS = tuple(f.name for f in fields(ItemConfig))


@dataclass(frozen=True)
class ExplicitFields:
    """
    Provenance of the ambiguous pricing fields.

    A flag is set when the caller supplied the value verbatim rather than
    having the resolver derive it.
    """
    price_per_bottle: bool = False
    gross: bool = False
    customer_price: bool = False

    @classmethod
    def from_config(cls, config: ItemConfig) -> 'ExplicitFields':
        return cls(
            price_per_bottle=config.price_per_bottle is not None,
            gross=config.gross is not None,
            customer_price=config.customer_price is not None,
        )

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> 'ExplicitFields':
        return cls(**{name: bool(payload.get(name, False)) for name in AMBIGUOUS_FIELDS})

    @property
    def markup_anchor(self) -> str:
        """The authoritative member of the margin/gross/customer price group."""
        if self.customer_price:
            return 'customer_price'
        if self.gross:
            return 'gross'
        return 'margin'

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class OfferTotals:
    """Grand totals of an offer."""
    total_net: float = 0.0
    total_vat: float = 0.0
    total_gross: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)
