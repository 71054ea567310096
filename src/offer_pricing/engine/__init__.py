"""Engine subpackage - line item resolution and offer aggregation."""
from .line_item import LineItem
from .models import ItemConfig, ExplicitFields, OfferTotals
from .offer import Offer
from .units import UnitTable, get_unit_table, load_unit_table

__all__ = [
    'LineItem', 'ItemConfig', 'ExplicitFields', 'OfferTotals', 'Offer',
    'UnitTable', 'get_unit_table', 'load_unit_table',
]
