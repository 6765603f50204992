"""
catalog.py
----------
Isotope catalog accessors backed by hotlab/data/isotopes.json, validated
through hotlab/models.py.

This module exposes:
- lookup_isotope(symbol) -> IsotopeDefinition, alias aware
- canonical_symbol(symbol) -> canonical catalog symbol
- list_isotopes() -> all definitions in catalog order
- convert_activity(value, from_unit, to_unit) -> activity in another unit

Every alias maps to the canonical symbol, never to a copy of the record, so
two spellings of one isotope always share the same physical data.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List

from hotlab.models import IsotopeDefinition, load_isotope_catalog
from hotlab.services.errors import InvalidActivity, InvalidInput, UnknownIsotope

logger = logging.getLogger(__name__)


# ------------------------------
# JSON backed catalog tables
# ------------------------------

# Snapshots taken at import time, constant for the process lifetime.
_ISOTOPES: Dict[str, IsotopeDefinition] = {
    iso.symbol: iso for iso in load_isotope_catalog().isotopes
}

# Lowercase key -> canonical symbol, for both symbols and aliases.
_ALIASES: Dict[str, str] = {}
for _iso in _ISOTOPES.values():
    _ALIASES[_iso.symbol.lower()] = _iso.symbol
    for _alias in _iso.aliases:
        _ALIASES[_alias.strip().lower()] = _iso.symbol


def canonical_symbol(symbol: str) -> str:
    """
    Normalize a user-supplied isotope symbol to its canonical catalog key.

    Strategy:
    - Try direct hit.
    - Try case-insensitive match on symbols and aliases.

    Raises:
        UnknownIsotope if no mapping found.
    """
    if not isinstance(symbol, str):
        raise UnknownIsotope(f"Isotope symbol must be a string, got {type(symbol).__name__}")
    if symbol in _ISOTOPES:
        return symbol

    key = symbol.strip().lower()
    if key in _ALIASES:
        return _ALIASES[key]

    raise UnknownIsotope(
        f"Unknown isotope '{symbol}'. Supported isotopes: {sorted(_ISOTOPES)}"
    )


def lookup_isotope(symbol: str) -> IsotopeDefinition:
    """Return the canonical definition for a symbol or any of its aliases."""
    return _ISOTOPES[canonical_symbol(symbol)]


def resolve_isotope(isotope) -> IsotopeDefinition:
    """Accept either an IsotopeDefinition or a symbol and return the definition."""
    if isinstance(isotope, IsotopeDefinition):
        return isotope
    return lookup_isotope(isotope)


def list_isotopes() -> List[IsotopeDefinition]:
    return list(_ISOTOPES.values())


# -------------------------------------------------
# Activity units
# -------------------------------------------------

# Multipliers to MBq, the base unit of the engine.
ACTIVITY_UNITS_MBQ: Dict[str, float] = {
    "MBq": 1.0,
    "GBq": 1000.0,
    "mCi": 37.0,
    "Ci": 37000.0,
}


def to_mbq_factor(unit: str) -> float:
    try:
        return ACTIVITY_UNITS_MBQ[unit]
    except KeyError:
        raise InvalidInput(
            f"Unknown activity unit '{unit}'. Valid units: {sorted(ACTIVITY_UNITS_MBQ)}"
        ) from None


def convert_activity(value: float, from_unit: str, to_unit: str) -> float:
    """
    Convert an activity between MBq, GBq, mCi and Ci.

    1 mCi = 37 MBq exactly, 1 GBq = 1000 MBq.

    Raises
    ------
    InvalidInput
        For an unknown unit.
    InvalidActivity
        For a negative or non-finite value.
    """
    if not math.isfinite(value) or value < 0:
        raise InvalidActivity(f"Activity must be a finite non-negative number, got {value}")
    mbq = value * to_mbq_factor(from_unit)
    return mbq / to_mbq_factor(to_unit)
