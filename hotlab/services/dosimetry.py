"""
dosimetry.py
------------
Patient dosimetry for diagnostic administrations.

Responsibilities:
- Map (exam type, isotope) to a dose factor in mSv/MBq.
- Apply the pediatric weight correction.
- Split the effective dose over organs with per-exam fraction tables.
- Check the effective dose against the limit of the patient category.

    E = A * f(exam, isotope) * w
    w = max(0.3, weight / 70)   for patients under 18, else 1.0

Design notes:
- A missing (exam, isotope) factor falls back to the documented default factor
  and always adds a `default_dose_factor_used` warning.
- Warnings are emitted in a fixed order: default factor, pediatric correction,
  over limit, pregnancy review.
- The limit check uses the unrounded dose; reported doses are rounded to 3 decimals.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from hotlab.models import ExamDosimetry, load_dosimetry_tables
from hotlab.schemas import DoseRateResult, DosimetryResult, DosimetryWarning
from hotlab.services.catalog import resolve_isotope
from hotlab.services.common import is_finite_number, round_half_up
from hotlab.services.errors import (
    InvalidActivity,
    InvalidInput,
    InvalidPatientParameters,
)

logger = logging.getLogger(__name__)


# Tables are constant for the process lifetime.
_TABLES = load_dosimetry_tables()
_EXAMS: Dict[str, ExamDosimetry] = dict(_TABLES.exam_types)

DEFAULT_DOSE_FACTOR: float = _TABLES.default_dose_factor
DEFAULT_ORGAN_FRACTIONS: Dict[str, float] = {"whole_body": 1.0}

_EXAM_ALIASES: Dict[str, str] = {}
for _name, _exam in _EXAMS.items():
    _EXAM_ALIASES[_name.lower()] = _name
    _EXAM_ALIASES[_name.replace("_", " ")] = _name
    for _alias in _exam.aliases:
        _EXAM_ALIASES[_alias.strip().lower()] = _name


def canonical_exam_type(exam_type: str) -> Optional[str]:
    """
    Normalize an exam name to its table key, or None when no table exists.

    Unknown exams are not an error; they use the default dose factor.
    """
    if exam_type in _EXAMS:
        return exam_type
    key = exam_type.strip().lower()
    if key in _EXAM_ALIASES:
        return _EXAM_ALIASES[key]
    key = key.replace("-", " ").replace("_", " ")
    return _EXAM_ALIASES.get(key)


def list_exam_types() -> List[str]:
    return list(_EXAMS)


def _require_positive(name: str, value: float) -> None:
    if not is_finite_number(value) or value <= 0:
        raise InvalidPatientParameters(f"{name} must be a finite number greater than zero, got {value}")


def dose_limit_mSv(age_years: float, is_pregnant: bool) -> float:
    """Effective dose limit for the patient category."""
    limits = _TABLES.dose_limits
    if is_pregnant:
        return limits.pregnant
    if age_years < _TABLES.pediatric_age_years:
        return limits.pediatric
    return limits.adult


def compute_dosimetry(
    isotope,
    activity: float,
    exam_type: str,
    weight_kg: float,
    age_years: float,
    is_pregnant: bool = False,
) -> DosimetryResult:
    """
    Estimate effective and organ doses of one administration.

    Parameters
    ----------
    isotope : str or IsotopeDefinition
    activity : float
        Administered activity in MBq.
    exam_type : str
        Exam identifier or alias. Unknown exams use the default factor.
    weight_kg, age_years : float
        Patient weight and age.
    is_pregnant : bool

    Raises
    ------
    UnknownIsotope
    InvalidPatientParameters
        For activity <= 0, weight_kg <= 0 or age_years < 0.
    """
    iso = resolve_isotope(isotope)
    _require_positive("activity", activity)
    _require_positive("weight_kg", weight_kg)
    if not is_finite_number(age_years) or age_years < 0:
        raise InvalidPatientParameters(f"age_years must be a finite number >= 0, got {age_years}")
    if not isinstance(exam_type, str):
        raise InvalidInput("exam_type must be a string.")

    warnings: List[DosimetryWarning] = []
    exam_key = canonical_exam_type(exam_type)
    exam = _EXAMS.get(exam_key) if exam_key is not None else None

    dose_factor = exam.dose_factors.get(iso.symbol) if exam is not None else None
    if dose_factor is None:
        dose_factor = DEFAULT_DOSE_FACTOR
        logger.warning(
            "no dose factor for exam '%s' with %s, using default %s mSv/MBq",
            exam_type, iso.symbol, dose_factor,
        )
        warnings.append(DosimetryWarning(
            code="default_dose_factor_used",
            message=(
                f"No dose factor for exam '{exam_type}' with {iso.symbol}; "
                f"default {dose_factor} mSv/MBq applied"
            ),
        ))

    weight_factor = 1.0
    if age_years < _TABLES.pediatric_age_years:
        weight_factor = max(
            _TABLES.minimum_pediatric_weight_factor,
            weight_kg / _TABLES.reference_weight_kg,
        )
        warnings.append(DosimetryWarning(
            code="pediatric_dose_applied",
            message=f"Pediatric dose correction applied (weight factor {weight_factor:.3f})",
        ))

    effective = activity * dose_factor * weight_factor

    fractions = DEFAULT_ORGAN_FRACTIONS
    if exam is not None and exam.organ_fractions:
        fractions = exam.organ_fractions
    organ_doses = {
        organ: round_half_up(effective * fraction, 3) for organ, fraction in fractions.items()
    }

    limit = dose_limit_mSv(age_years, is_pregnant)
    within = effective <= limit
    if not within:
        warnings.append(DosimetryWarning(
            code="dose_over_limit",
            message=f"Effective dose {effective:.3f} mSv exceeds the {limit} mSv limit",
        ))
    if is_pregnant:
        warnings.append(DosimetryWarning(
            code="pregnancy_special_review",
            message="Pregnant patient: specialist review required before administration",
        ))

    return DosimetryResult(
        isotope=iso.symbol,
        activity_MBq=activity,
        exam_type=exam_key if exam_key is not None else exam_type.strip(),
        dose_factor=dose_factor,
        weight_factor=weight_factor,
        effective_dose_mSv=round_half_up(effective, 3),
        organ_doses_mSv=organ_doses,
        dose_limit_mSv=limit,
        is_within_limits=within,
        warnings=warnings,
    )


def compute_weight_based_activity(
    base_activity: float, weight_kg: float, standard_weight_kg: float = 70.0
) -> float:
    """Scale a reference adult activity linearly with patient weight."""
    _require_positive("base_activity", base_activity)
    _require_positive("weight_kg", weight_kg)
    _require_positive("standard_weight_kg", standard_weight_kg)
    return base_activity * weight_kg / standard_weight_kg


def compute_dose_rate(isotope, activity_MBq: float, distance_m: float = 1.0) -> DoseRateResult:
    """
    Ambient dose rate near an unshielded point source, inverse-square law.

        H' = k * A[GBq] / d^2      k in mSv/h per GBq at 1 m
    """
    iso = resolve_isotope(isotope)
    if not is_finite_number(activity_MBq) or activity_MBq <= 0:
        raise InvalidActivity(f"activity_MBq must be greater than zero, got {activity_MBq}")
    if not is_finite_number(distance_m) or distance_m <= 0:
        raise InvalidInput(f"distance_m must be greater than zero, got {distance_m}")

    rate = iso.dose_rate_factor * (activity_MBq / 1000.0) / (distance_m ** 2)
    return DoseRateResult(
        isotope=iso.symbol,
        activity_MBq=activity_MBq,
        distance_m=distance_m,
        dose_rate_mSv_per_h=round_half_up(rate, 6),
    )
