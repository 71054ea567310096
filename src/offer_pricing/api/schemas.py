"""
Pydantic models for the offer pricing API.
"""
from typing import Any, Optional

from pydantic import BaseModel, Field


class ItemConfigIn(BaseModel):
    """Request model for a sparse line item config."""
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

    def to_config(self) -> dict:
        # Only what the caller sent; unsent fields must stay unsupplied
        return self.model_dump(exclude_unset=True)


class ItemUpdateRequest(BaseModel):
    """Request model for updating an exported item."""
    item: dict[str, Any]
    changes: dict[str, Any] = Field(default_factory=dict)


class OfferRequest(BaseModel):
    """Request model for pricing a new offer."""
    id: Optional[str] = None
    title: str = ""
    menu: Optional[Any] = None
    data: dict[str, Any] = Field(default_factory=dict)
    items: list[ItemConfigIn] = Field(default_factory=list)


class BulkRequest(BaseModel):
    """Request model for a bulk operation on an exported offer."""
    offer: dict[str, Any]
    operation: str
    value: Optional[Any] = None
    ids: Optional[list[str]] = None
    step: float = Field(default=1, gt=0)


class OfferTotalsOut(BaseModel):
    total_net: float
    total_vat: float
    total_gross: float


class OfferOut(BaseModel):
    """Response model for an offer export."""
    id: str
    title: str
    menu: Optional[Any] = None
    items: list[dict[str, Any]]
    totals: OfferTotalsOut
    data: dict[str, Any]
