"""
test_reference_data.py
----------------------
Validation of the JSON reference tables. Authoring mistakes must fail at load
time, not produce wrong numbers at runtime.
"""

import json
import math

import pytest

from hotlab.models import (
    DosimetryTables,
    IsotopeCatalogFile,
    IsotopeDefinition,
    load_dosimetry_tables,
    load_isotope_catalog,
)


def test_shipped_catalog_is_valid():
    catalog = load_isotope_catalog()
    assert catalog.units["half_life"] == "h"
    assert len(catalog.isotopes) == 5


def test_shipped_dosimetry_tables_are_valid():
    tables = load_dosimetry_tables()
    assert tables.default_dose_factor == 0.005
    assert tables.dose_limits.pregnant == 1.0
    for exam in tables.exam_types.values():
        if exam.organ_fractions:
            assert math.isclose(sum(exam.organ_fractions.values()), 1.0)


def test_inconsistent_decay_constant_is_rejected():
    with pytest.raises(ValueError, match="decay constant"):
        IsotopeDefinition(
            symbol="Tc-99m",
            half_life_hours=6.02,
            decay_constant_per_hour=0.1151,
            energy_keV=140,
            dose_rate_factor=0.0017,
        )


def test_duplicate_alias_is_rejected():
    tc = load_isotope_catalog().isotopes[0].model_dump()
    f18 = load_isotope_catalog().isotopes[2].model_dump()
    f18["aliases"] = list(f18["aliases"]) + [tc["aliases"][0]]
    with pytest.raises(ValueError, match="already in use"):
        IsotopeCatalogFile(
            catalog_version="1",
            units={"half_life": "h", "decay_constant": "1/h", "energy": "keV"},
            isotopes=[tc, f18],
        )


def test_definitions_are_frozen():
    iso = load_isotope_catalog().isotopes[0]
    with pytest.raises(ValueError):
        iso.half_life_hours = 1.0


def test_organ_fractions_must_sum_to_one(tmp_path):
    data = load_dosimetry_tables().model_dump()
    data["exam_types"]["bone_scintigraphy"]["organ_fractions"]["bone"] = 0.7
    with pytest.raises(ValueError, match="sum to 1.0"):
        DosimetryTables(**data)


def test_dosimetry_tables_reject_unknown_isotopes(tmp_path):
    data = load_dosimetry_tables().model_dump()
    data["exam_types"]["pet_fdg"]["dose_factors"]["Lu-177"] = 0.1
    path = tmp_path / "dosimetry.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    with pytest.raises(ValueError, match="unknown isotopes"):
        load_dosimetry_tables(str(path))


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_isotope_catalog(str(tmp_path / "missing.json"))
