"""
Unit Table - Maps sale units (case, pallet) onto base-unit multipliers.

The table is a configuration surface: the built-in defaults can be
extended in code (``UnitTable.with_units``) or from a CSV file with
``symbol`` and ``multiplier`` columns.
"""
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

import pandas as pd

from ..config.settings import get_settings
from ..exceptions import ValidationError

log = logging.getLogger("offer_pricing.engine.units")


DEFAULT_MULTIPLIERS = {
    'bottle': 1,
    'single': 1,
    'case': 6,
    'case_6': 6,
    'case_12': 12,
    'pallet': 600,
}


def normalize_symbol(symbol: str) -> str:
    """Normalize a unit symbol for lookup."""
    return str(symbol).strip().lower()


def _check_multiplier(symbol: str, value) -> int:
    if isinstance(value, float) and not value.is_integer():
        raise ValidationError(f"Multiplier for unit '{symbol}' must be an integer, got {value!r}", field='unit')
    try:
        multiplier = int(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError):
        raise ValidationError(f"Multiplier for unit '{symbol}' must be an integer, got {value!r}", field='unit')
    if multiplier <= 0:
        raise ValidationError(f"Multiplier for unit '{symbol}' must be positive, got {value!r}", field='unit')
    return multiplier


class UnitTable:
    """
    Immutable lookup of unit symbol → positive integer multiplier.

    Unknown symbols resolve to a multiplier of 1; use ``is_known`` where an
    unknown symbol has to be rejected instead.
    """

    def __init__(self, multipliers: Optional[Mapping[str, int]] = None):
        source = DEFAULT_MULTIPLIERS if multipliers is None else multipliers
        table = {}
        for symbol, value in source.items():
            table[normalize_symbol(symbol)] = _check_multiplier(symbol, value)
        self._multipliers = MappingProxyType(table)

    def multiplier(self, symbol: str) -> int:
        """Multiplier for ``symbol``, 1 if the symbol is not in the table."""
        key = normalize_symbol(symbol)
        if key not in self._multipliers:
            log.debug("Unknown unit '%s', using multiplier 1", symbol)
            return 1
        return self._multipliers[key]

    def is_known(self, symbol: str) -> bool:
        return normalize_symbol(symbol) in self._multipliers

    def symbols(self) -> list[str]:
        return list(self._multipliers)

    def with_units(self, extra: Mapping[str, int]) -> 'UnitTable':
        """Return a new table with ``extra`` layered over this one."""
        return UnitTable({**self._multipliers, **extra})

    def to_dict(self) -> dict:
        return dict(self._multipliers)

    def __contains__(self, symbol) -> bool:
        return self.is_known(symbol)

    def __eq__(self, other) -> bool:
        if not isinstance(other, UnitTable):
            return NotImplemented
        return self._multipliers == other._multipliers

    def __hash__(self):
        return hash(tuple(sorted(self._multipliers.items())))

    def __repr__(self) -> str:
        return f"UnitTable({dict(self._multipliers)!r})"


def load_unit_table(path: Path, base: Optional[UnitTable] = None) -> UnitTable:
    """
    Load unit multipliers from a CSV file and layer them over ``base``.

    The file needs ``symbol`` and ``multiplier`` columns; blank rows are
    skipped.
    """
    base = base or UnitTable()
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Unit table not found at {path}.")

    df = pd.read_csv(path, dtype=str).fillna('')
    # Strip all strings and headers
    df.columns = [c.strip().lower() for c in df.columns]
    missing = {'symbol', 'multiplier'} - set(df.columns)
    if missing:
        raise ValidationError(f"Unit table {path} is missing columns: {', '.join(sorted(missing))}")
    for col in df.columns:
        df[col] = df[col].astype(str).str.strip()
    df = df[df['symbol'] != '']

    extra = {}
    for row in df.itertuples(index=False):
        extra[row.symbol] = _check_multiplier(row.symbol, row.multiplier)

    log.info("Loaded %d unit multipliers from %s", len(extra), path)
    return base.with_units(extra)


_unit_table: Optional[UnitTable] = None


def get_unit_table() -> UnitTable:
    """Get the configured unit table (defaults plus the settings CSV, if any)."""
    global _unit_table
    if _unit_table is None:
        settings = get_settings()
        table = UnitTable()
        if settings.units_csv is not None:
            table = load_unit_table(settings.units_csv, base=table)
        _unit_table = table
    return _unit_table
