"""
decay.py
--------
Radioactive decay of a source with a known calibration activity.

    A(t) = A0 * exp(-lambda * t),   lambda = ln(2) / T1/2

Design notes:
- exp(-lambda * t) underflows to 0.0 for very long elapsed times, so the math is
  stable for any number of half-lives; results never go negative or NaN.
- Reported values are rounded half-up: activity and factor to 3 decimals,
  percent and half-lives to 2 decimals.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime

from hotlab.schemas import DecayResult
from hotlab.services.catalog import resolve_isotope
from hotlab.services.common import hours_between, is_finite_number, round_half_up
from hotlab.services.errors import InvalidActivity, InvalidInput

logger = logging.getLogger(__name__)


def _check_activity(initial_activity: float) -> None:
    if not is_finite_number(initial_activity) or initial_activity <= 0:
        raise InvalidActivity(
            f"initial_activity must be a finite number greater than zero, got {initial_activity}"
        )


def decay_factor(isotope, elapsed_hours: float) -> float:
    """Unrounded exp(-lambda * t) for a symbol or IsotopeDefinition."""
    iso = resolve_isotope(isotope)
    if not is_finite_number(elapsed_hours) or elapsed_hours < 0:
        raise InvalidInput(
            f"elapsed_hours must be a finite number >= 0, got {elapsed_hours}"
        )
    return math.exp(-iso.decay_constant_per_hour * elapsed_hours)


def compute_decay(isotope, initial_activity: float, elapsed_hours: float) -> DecayResult:
    """
    Compute the decayed activity of `initial_activity` after `elapsed_hours`.

    Parameters
    ----------
    isotope : str or IsotopeDefinition
        Symbol or alias, e.g. 'Tc-99m' or '99mTc'.
    initial_activity : float
        Activity at the reference time, any unit. The result keeps that unit.
    elapsed_hours : float
        Hours since the reference time, >= 0.

    Raises
    ------
    UnknownIsotope
        If the symbol is not in the catalog.
    InvalidInput
        If elapsed_hours is negative or not finite.
    InvalidActivity
        If initial_activity is zero, negative or not finite.
    """
    iso = resolve_isotope(isotope)
    _check_activity(initial_activity)
    factor = decay_factor(iso, elapsed_hours)

    current = initial_activity * factor
    percent = max(0.0, factor * 100.0)
    half_lives = elapsed_hours / iso.half_life_hours

    logger.debug(
        "decay %s A0=%s t=%sh factor=%.6g", iso.symbol, initial_activity, elapsed_hours, factor
    )
    return DecayResult(
        isotope=iso.symbol,
        initial_activity=initial_activity,
        elapsed_hours=elapsed_hours,
        current_activity=round_half_up(current, 3),
        decay_factor=round_half_up(factor, 3),
        percent_remaining=round_half_up(percent, 2),
        half_lives_elapsed=round_half_up(half_lives, 2),
    )


def activity_at(isotope, initial_activity: float, reference_time: datetime,
                at_time: datetime = None) -> float:
    """
    Unrounded activity at a wall-clock instant.

    Instants before the reference time are clamped to the reference activity.
    """
    _check_activity(initial_activity)
    elapsed = max(0.0, hours_between(reference_time, at_time))
    return initial_activity * decay_factor(isotope, elapsed)
