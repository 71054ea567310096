"""
Exceptions raised by the offer pricing engine.
"""


class OfferPricingError(Exception):
    """Base class for all offer pricing errors."""


class ValidationError(OfferPricingError, ValueError):
    """Input that cannot be resolved into a line item or offer."""

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.field = field
