"""
Update engine - dependency busting for partial line item updates.

Before new values are merged into an exported config, any previously
authoritative field that would outrank the incoming change is cleared.
Otherwise a stale customer price would silently override a margin the
caller just set.
"""
import logging
from typing import Any, Mapping, Optional

from ..exceptions import ValidationError
from .models import ITEM_FIELDS

log = logging.getLogger("offer_pricing.engine.updates")


# Incoming field → config fields it invalidates
BUSTING_RULES = {
    # Cost changed: discount/margin intent is kept, absolute derivatives are not
    'price': ('price_per_bottle', 'gross', 'customer_price'),
    'discount': ('price_per_bottle',),
    'price_per_bottle': ('discount',),
    'margin': ('gross', 'customer_price'),
    'gross': ('customer_price', 'margin'),
    'customer_price': ('margin', 'gross'),
}

MARKUP_FIELDS = ('margin', 'gross', 'customer_price')

# Removing one of these must not silently drop the markup to zero
ANCHOR_FIELDS = ('gross', 'customer_price')


def check_fields(changes: Mapping[str, Any]) -> None:
    """Reject field names that are not part of an item config."""
    unknown = sorted(set(changes) - set(ITEM_FIELDS))
    if unknown:
        raise ValidationError(f"Unknown item field(s): {', '.join(unknown)}", field=unknown[0])


def bust_dependencies(config: Mapping[str, Any], changes: Mapping[str, Any]) -> dict:
    """Return a copy of ``config`` without the fields ``changes`` invalidate."""
    busted = dict(config)
    for name, value in changes.items():
        if value is None:
            continue
        for dependent in BUSTING_RULES.get(name, ()):
            if busted.pop(dependent, None) is not None:
                log.debug("Cleared %s because %s changed", dependent, name)
    return busted


def apply_changes(config: Mapping[str, Any], changes: Mapping[str, Any],
                  margin: Optional[float] = None) -> dict:
    """
    Bust dependencies, then overlay ``changes``.

    A change to ``None`` removes the field from the config. When that
    leaves no markup anchor at all, ``margin`` (the item's current
    margin) takes over so the selling price keeps its markup.
    """
    check_fields(changes)
    merged = bust_dependencies(config, changes)
    for name, value in changes.items():
        if value is None:
            merged.pop(name, None)
        else:
            merged[name] = value

    dropped_anchor = any(name in changes and changes[name] is None for name in ANCHOR_FIELDS)
    if (dropped_anchor and margin is not None and 'margin' not in changes
            and all(merged.get(name) is None for name in MARKUP_FIELDS)):
        log.debug("Markup anchor removed, falling back to margin %s", margin)
        merged['margin'] = margin
    return merged
