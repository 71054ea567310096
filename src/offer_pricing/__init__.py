"""
Offer Pricing Package

Drift-free pricing for offer line items. Resolves vendor price, discount,
margin, gross and customer price into one consistent set of figures and
aggregates the resolved items into a priced offer.
"""

__version__ = "1.0.0"

from .engine import ItemConfig, LineItem, Offer, OfferTotals, UnitTable
from .exceptions import OfferPricingError, ValidationError

__all__ = [
    'ItemConfig', 'LineItem', 'Offer', 'OfferTotals', 'UnitTable',
    'OfferPricingError', 'ValidationError',
]
