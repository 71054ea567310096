"""
Explicit-field ledger - selective export of resolved line items.

Export reproduces only what the caller actually supplied in the ambiguous
groups, plus every unambiguous field verbatim. Resolving an exported
config therefore yields the identical line item.
"""
from typing import Any, Mapping

from .models import AMBIGUOUS_FIELDS, COMPUTED_FIELDS, ExplicitFields, ItemConfig


def export_config(item) -> ItemConfig:
    """Build the config that reconstructs ``item`` exactly."""
    explicit = item.explicit
    return ItemConfig(
        id=item.id,
        price=item.price,
        discount=item.discount,
        price_per_bottle=item.price_per_bottle if explicit.price_per_bottle else None,
        # Margin is informational only once customer price is the anchor
        margin=None if explicit.customer_price else item.margin,
        gross=item.gross if explicit.gross else None,
        customer_price=item.customer_price if explicit.customer_price else None,
        unit=item.unit,
        quantity=item.quantity,
        vat_rate=item.vat_rate,
        tags=list(item.tags),
        available_units=list(item.available_units),
        glass_price=item.glass_price,
        data=dict(item.data),
    )


def export_item(item) -> dict:
    """Exported config merged with the computed fields and the provenance record."""
    payload = export_config(item).to_dict()
    payload.update({name: getattr(item, name) for name in COMPUTED_FIELDS})
    payload['explicit'] = item.explicit.to_dict()
    return payload


def config_from_export(payload: Mapping[str, Any]) -> ItemConfig:
    """
    Rebuild a config from an exported item.

    If the payload carries an ``explicit`` record, ambiguous fields that
    were derived rather than supplied are dropped so they cannot take
    authority on reload. Without the record every field counts as supplied.
    """
    explicit = payload.get('explicit')
    if explicit is None:
        return ItemConfig.from_dict(payload)

    ledger = ExplicitFields.from_dict(explicit)
    values = dict(payload)
    for name in AMBIGUOUS_FIELDS:
        if not getattr(ledger, name):
            values.pop(name, None)
    if ledger.customer_price:
        values.pop('margin', None)
    return ItemConfig.from_dict(values)
