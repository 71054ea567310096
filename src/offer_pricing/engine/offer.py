"""
Offer - an immutable, ordered collection of resolved line items.

Grand totals are recomputed whenever an Offer is constructed. Every
operation returns a new Offer and leaves the current one untouched.

Totals accumulate with rounding at each step:
- total_net:   price per unit × quantity (cost after discount)
- total_vat:   VAT amount × quantity × unit multiplier
- total_gross: customer price × unit multiplier × quantity (VAT and markup included)
"""
import logging
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Optional, Union

import pandas as pd

from .line_item import ConfigLike, LineItem, new_id
from .models import OfferTotals
from .rounding import round_money
from .units import UnitTable, get_unit_table
from .updates import check_fields

log = logging.getLogger("offer_pricing.engine.offer")

ItemChanges = Union[Mapping[str, Any], Callable[[LineItem], LineItem]]

# Columns of the tabular export, in display order
FRAME_COLUMNS = [
    'id', 'unit', 'quantity', 'price', 'discount', 'price_per_bottle', 'price_per_unit',
    'margin', 'gross', 'vat_rate', 'vat_amount', 'customer_price', 'total_price',
    'total_customer_price', 'glass_price',
]


def calculate_totals(items: Iterable[LineItem]) -> OfferTotals:
    """Accumulate offer totals, rounding after every item."""
    total_net = total_vat = total_gross = 0.0
    for item in items:
        total_net = round_money(total_net + item.price_per_unit * item.quantity)
        total_vat = round_money(total_vat + item.vat_amount * item.quantity * item.multiplier)
        total_gross = round_money(total_gross + item.total_customer_price)
    return OfferTotals(total_net=total_net, total_vat=total_vat, total_gross=total_gross)


@dataclass(frozen=True)
class Offer:
    """An offer with its line items and computed grand totals."""
    id: str = field(default_factory=new_id)
    title: str = ''
    items: tuple[LineItem, ...] = ()
    menu: Any = None
    data: Mapping[str, Any] = field(default_factory=dict, hash=False)
    units: UnitTable = field(default_factory=get_unit_table, compare=False, repr=False)
    totals: OfferTotals = field(init=False)

    def __post_init__(self):
        # Frozen: normalise collections and attach totals through object.__setattr__
        object.__setattr__(self, 'id', self.id or new_id())
        object.__setattr__(self, 'title', self.title or '')
        object.__setattr__(self, 'items', tuple(self.items))
        object.__setattr__(self, 'data', MappingProxyType(dict(self.data or {})))
        object.__setattr__(self, 'totals', calculate_totals(self.items))

    @classmethod
    def create(cls, items: Iterable[ConfigLike] = (), units: Optional[UnitTable] = None, **kwargs) -> 'Offer':
        """Resolve ``items`` and build an offer around them."""
        units = units if units is not None else get_unit_table()
        resolved = tuple(LineItem.from_config(config, units) for config in items)
        return cls(items=resolved, units=units, **kwargs)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any], units: Optional[UnitTable] = None) -> 'Offer':
        """Rebuild an offer from its ``to_dict`` export."""
        units = units if units is not None else get_unit_table()
        return cls(
            id=payload.get('id'),
            title=payload.get('title') or '',
            items=tuple(LineItem.from_dict(item, units) for item in payload.get('items') or ()),
            menu=payload.get('menu'),
            data=payload.get('data') or {},
            units=units,
        )

    def _with_items(self, items: Iterable[LineItem]) -> 'Offer':
        return replace(self, items=tuple(items))

    def _targets(self, ids: Optional[Iterable[str]]) -> Optional[set]:
        """Selected ids; ``None`` selects every item."""
        if ids is None:
            return None
        if isinstance(ids, str):
            ids = [ids]
        selected = set(ids)
        missing = selected - {item.id for item in self.items}
        if missing:
            log.debug("Offer %s: ignoring unknown item ids %s", self.id, sorted(missing))
        return selected

    def _map_items(self, fn: Callable[[LineItem], LineItem], ids: Optional[Iterable[str]] = None) -> 'Offer':
        targets = self._targets(ids)
        return self._with_items(
            fn(item) if targets is None or item.id in targets else item
            for item in self.items
        )

    def get_item(self, item_id: str) -> Optional[LineItem]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    # --- Immutable mutation methods ---

    def with_title(self, title: str) -> 'Offer':
        return replace(self, title=title)

    def with_menu(self, menu: Any) -> 'Offer':
        return replace(self, menu=menu)

    def add_items(self, configs: Iterable[ConfigLike]) -> 'Offer':
        """Resolve configs and append them to the offer."""
        new_items = [LineItem.from_config(config, self.units) for config in configs]
        log.debug("Offer %s: adding %d item(s)", self.id, len(new_items))
        return self._with_items([*self.items, *new_items])

    def remove_items(self, ids: Union[str, Iterable[str]]) -> 'Offer':
        """Drop items by id; a single string is one id. Unknown ids are ignored."""
        targets = self._targets(ids or ())
        return self._with_items(item for item in self.items if item.id not in targets)

    def update_item(self, item_id: str, changes: ItemChanges) -> 'Offer':
        """
        Update a single item.

        ``changes`` is either a mapping of fields, applied through the
        dependency-busting update, or a function from item to new item.
        """
        if callable(changes):
            return self._map_items(changes, [item_id])
        return self._map_items(lambda item: item.update(changes, units=self.units), [item_id])

    def swap_item(self, old_id: str, new_config: ConfigLike) -> 'Offer':
        """Replace an item with a freshly resolved one; its ledger is not carried over."""
        if self.get_item(old_id) is None:
            log.debug("Offer %s: no item %s to swap", self.id, old_id)
            return self._with_items(self.items)
        new_item = LineItem.from_config(new_config, self.units)
        return self._map_items(lambda item: new_item, [old_id])

    def bulk_update_field(self, field_name: str, value: Any, ids: Optional[Iterable[str]] = None) -> 'Offer':
        """Set one field on the selected items (all items when ``ids`` is None)."""
        check_fields({field_name: value})
        return self._map_items(lambda item: item.update({field_name: value}, units=self.units), ids)

    def set_margin(self, margin: float, ids: Optional[Iterable[str]] = None) -> 'Offer':
        return self.bulk_update_field('margin', margin, ids)

    def set_gross(self, gross: float, ids: Optional[Iterable[str]] = None) -> 'Offer':
        return self.bulk_update_field('gross', gross, ids)

    def set_discount(self, discount: float, ids: Optional[Iterable[str]] = None) -> 'Offer':
        return self.bulk_update_field('discount', discount, ids)

    def set_quantity(self, quantity: float, ids: Optional[Iterable[str]] = None) -> 'Offer':
        return self.bulk_update_field('quantity', quantity, ids)

    def set_vat_rate(self, vat_rate: float, ids: Optional[Iterable[str]] = None) -> 'Offer':
        return self.bulk_update_field('vat_rate', vat_rate, ids)

    def set_glass_price(self, glass_price: float, ids: Optional[Iterable[str]] = None) -> 'Offer':
        return self.bulk_update_field('glass_price', glass_price, ids)

    def round_customer_prices(self, step: float = 1, ids: Optional[Iterable[str]] = None) -> 'Offer':
        return self._map_items(lambda item: item.round_customer_price(step, units=self.units), ids)

    def round_glass_prices(self, step: float = 1, ids: Optional[Iterable[str]] = None) -> 'Offer':
        return self._map_items(lambda item: item.round_glass_price(step, units=self.units), ids)

    def set_unit(self, unit: str, ids: Optional[Iterable[str]] = None) -> 'Offer':
        """
        Switch the sale unit on items that allow it.

        Items whose ``available_units`` lack ``unit`` keep theirs. A unit
        the table does not know aborts the whole call and returns this
        same Offer.
        """
        if not self.units.is_known(unit):
            log.warning("Offer %s: unknown unit '%s', nothing changed", self.id, unit)
            return self

        def apply(item: LineItem) -> LineItem:
            if unit not in item.available_units:
                return item
            return item.update(unit=unit, units=self.units)

        return self._map_items(apply, ids)

    # --- Export ---

    def to_dict(self) -> dict:
        """Serialize for API storage."""
        return {
            'id': self.id,
            'title': self.title,
            'menu': self.menu,
            'items': [item.to_dict() for item in self.items],
            'totals': self.totals.to_dict(),
            'data': dict(self.data),
        }

    def to_frame(self) -> pd.DataFrame:
        """One row per item, for CSV/Excel export."""
        rows = [{name: getattr(item, name) for name in FRAME_COLUMNS} for item in self.items]
        df = pd.DataFrame(rows, columns=FRAME_COLUMNS)
        df['tags'] = [', '.join(item.tags) for item in self.items]
        return df
