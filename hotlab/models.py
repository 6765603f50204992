"""
models.py
---------
Domain models and validated loaders for the static reference data stored in
hotlab/data/isotopes.json and hotlab/data/dosimetry.json.

This module is the single place that reads reference tables from disk:
- the isotope catalog (half-life, decay constant, emission energy, dose-rate factor)
- dose factors per (exam type, isotope), organ fractions and dose limits

Both files are validated with pydantic when first loaded. A failed validation is
a data authoring bug and surfaces as a ValueError at load time.

Usage example
-------------
from hotlab.models import load_isotope_catalog, load_dosimetry_tables
catalog = load_isotope_catalog()      # validated IsotopeCatalogFile
tables = load_dosimetry_tables()      # validated DosimetryTables
"""

from __future__ import annotations

import json
import math
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from hotlab import config


# Relative tolerance between the stored decay constant and ln(2) / half-life
DECAY_CONSTANT_REL_TOL = 1e-4

# Tight tolerance for fraction tables that must sum to one
SUM_TOL = 1e-9


# -------------------------------
# Isotope catalog
# -------------------------------

class IsotopeDefinition(BaseModel):
    """
    Immutable physical data for one radionuclide.

    Units
    - half_life_hours: h
    - decay_constant_per_hour: 1/h, must equal ln(2) / half_life_hours
    - energy_keV: principal emission energy in keV
    - dose_rate_factor: mSv/h per GBq at 1 m
    """
    model_config = ConfigDict(frozen=True)

    symbol: str
    half_life_hours: float = Field(..., gt=0.0)
    decay_constant_per_hour: float = Field(..., gt=0.0)
    energy_keV: float = Field(..., gt=0.0)
    dose_rate_factor: float = Field(..., gt=0.0)
    aliases: Tuple[str, ...] = ()

    @field_validator("symbol")
    @classmethod
    def _validate_symbol(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("isotope symbol must be a non-empty string.")
        return v

    @model_validator(mode="after")
    def _validate_decay_constant(self) -> "IsotopeDefinition":
        expected = math.log(2) / self.half_life_hours
        if abs(self.decay_constant_per_hour - expected) / expected > DECAY_CONSTANT_REL_TOL:
            raise ValueError(
                f"decay constant for '{self.symbol}' is {self.decay_constant_per_hour} 1/h, "
                f"expected ln(2)/T1/2 = {expected:.8f} 1/h"
            )
        return self


class IsotopeCatalogFile(BaseModel):
    catalog_version: str
    units: Dict[str, str]
    isotopes: List[IsotopeDefinition]

    @field_validator("units")
    @classmethod
    def _validate_units(cls, u: Dict[str, str]) -> Dict[str, str]:
        exp = {"half_life": "h", "decay_constant": "1/h", "energy": "keV"}
        for key, expected in exp.items():
            if key not in u:
                raise ValueError(f"units must contain '{key}'")
            if u[key] != expected:
                raise ValueError(f"units['{key}'] should be '{expected}', got '{u[key]}'")
        return u

    @model_validator(mode="after")
    def _validate_names(self) -> "IsotopeCatalogFile":
        if not self.isotopes:
            raise ValueError("isotope catalog must not be empty.")

        symbols = [iso.symbol.lower() for iso in self.isotopes]
        if len(set(symbols)) != len(symbols):
            raise ValueError("isotope symbols must be unique (case insensitive).")

        # Aliases point at exactly one canonical record and never shadow a symbol
        seen: Set[str] = set(symbols)
        for iso in self.isotopes:
            for alias in iso.aliases:
                key = alias.strip().lower()
                if key in seen:
                    raise ValueError(f"alias '{alias}' of '{iso.symbol}' is already in use")
                seen.add(key)
        return self


# -------------------------------
# Dosimetry tables
# -------------------------------

class ExamDosimetry(BaseModel):
    aliases: List[str] = []
    # mSv/MBq keyed by canonical isotope symbol
    dose_factors: Dict[str, float]
    # fraction of the effective dose attributed to each organ
    organ_fractions: Optional[Dict[str, float]] = None

    @model_validator(mode="after")
    def _validate_tables(self) -> "ExamDosimetry":
        for iso, f in self.dose_factors.items():
            if f <= 0:
                raise ValueError(f"dose factor for '{iso}' must be > 0, got {f}")
        if self.organ_fractions is not None:
            if any(v <= 0 for v in self.organ_fractions.values()):
                raise ValueError("organ fractions must be > 0")
            total = sum(self.organ_fractions.values())
            if abs(total - 1.0) > SUM_TOL:
                raise ValueError(f"organ fractions must sum to 1.0, got {total}")
        return self


class DoseLimits(BaseModel):
    pregnant: float = Field(..., gt=0.0)
    pediatric: float = Field(..., gt=0.0)
    adult: float = Field(..., gt=0.0)


class DosimetryTables(BaseModel):
    units: Dict[str, str]
    default_dose_factor: float = Field(..., gt=0.0)
    reference_weight_kg: float = Field(..., gt=0.0)
    pediatric_age_years: float = Field(..., gt=0.0)
    minimum_pediatric_weight_factor: float = Field(..., gt=0.0, le=1.0)
    dose_limits: DoseLimits
    exam_types: Dict[str, ExamDosimetry]

    @model_validator(mode="after")
    def _validate_exam_aliases(self) -> "DosimetryTables":
        seen: Set[str] = set(k.lower() for k in self.exam_types)
        for name, exam in self.exam_types.items():
            for alias in exam.aliases:
                key = alias.strip().lower()
                if key in seen:
                    raise ValueError(f"exam alias '{alias}' of '{name}' is already in use")
                seen.add(key)
        return self


# -------------------------------
# Loader helpers
# -------------------------------

def _read_json(path: Path) -> dict:
    if not path.exists():
        raise FileNotFoundError(f"reference data file not found at {path}")
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


@lru_cache(maxsize=None)
def load_isotope_catalog(path: Optional[str] = None) -> IsotopeCatalogFile:
    """
    Load and validate the isotope catalog.

    Results are cached since the file is static for a given process.

    :param path: optional explicit path to the JSON file
    :raises FileNotFoundError: if the file does not exist
    :raises ValueError: if validation fails
    """
    json_path = Path(path) if path is not None else config.DATA_DIR / "isotopes.json"
    return IsotopeCatalogFile(**_read_json(json_path))


@lru_cache(maxsize=None)
def load_dosimetry_tables(path: Optional[str] = None) -> DosimetryTables:
    """
    Load and validate dose factors, organ fractions and dose limits.
    """
    json_path = Path(path) if path is not None else config.DATA_DIR / "dosimetry.json"
    tables = DosimetryTables(**_read_json(json_path))

    # Dose factors must reference isotopes that exist in the catalog
    known = {iso.symbol for iso in load_isotope_catalog().isotopes}
    for name, exam in tables.exam_types.items():
        unknown = set(exam.dose_factors).difference(known)
        if unknown:
            raise ValueError(f"exam '{name}' references unknown isotopes: {sorted(unknown)}")
    return tables
