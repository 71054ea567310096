"""
Centralized settings and logging configuration for the offer pricing engine.
"""
import logging
import os
from pathlib import Path
from dataclasses import dataclass
from typing import Optional


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def get_project_root() -> Path:
    """Get the project root directory (where pyproject.toml lives)."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'pyproject.toml').exists():
            return parent
    # Fallback to 3 levels up from this file
    return Path(__file__).resolve().parent.parent.parent.parent


@dataclass
class Settings:
    """Application settings with sensible defaults."""

    # Item defaults applied when a config leaves them out
    default_unit: str = 'bottle'
    default_vat_rate: float = 25.5

    # Optional CSV (symbol,multiplier) layered over the built-in unit table
    units_csv: Optional[Path] = None

    log_level: str = 'INFO'

    @classmethod
    def load(cls, environ: Optional[dict] = None) -> 'Settings':
        """Load settings, honouring environment overrides."""
        env = os.environ if environ is None else environ

        units_csv = env.get('OFFER_PRICING_UNITS_CSV')
        if not units_csv:
            candidate = get_project_root() / 'units.csv'
            units_csv = str(candidate) if candidate.exists() else None

        return cls(
            default_unit=env.get('OFFER_PRICING_DEFAULT_UNIT', 'bottle').strip() or 'bottle',
            default_vat_rate=float(env.get('OFFER_PRICING_DEFAULT_VAT_RATE', '25.5')),
            units_csv=Path(units_csv) if units_csv else None,
            log_level=env.get('LOG_LEVEL', 'INFO').upper(),
        )


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def configure_logging(settings: Optional[Settings] = None) -> logging.Logger:
    """Configure root logging once; module loggers inherit this."""
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
    return logging.getLogger("offer_pricing")
