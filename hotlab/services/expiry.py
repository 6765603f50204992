"""
expiry.py
---------
Usability window of a tracer lot.

A lot stops being clinically useful when its decayed activity falls under the
minimum usable activity:

    t_min = ln(A0 / A_min) / lambda        (hours after the reference time)

A lot is expired when that instant has passed or when the regulatory expiry
date printed on the lot has passed, whichever comes first.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, timedelta
from typing import Optional

from hotlab.schemas import UsabilityWindow
from hotlab.services.catalog import resolve_isotope
from hotlab.services.common import (
    ensure_utc,
    hours_between,
    is_finite_number,
    round_half_up,
    utc_now,
)
from hotlab.services.errors import InvalidActivity, InvalidThreshold

logger = logging.getLogger(__name__)


def is_past_stated_expiry(stated_expiry_date: Optional[date], now: datetime) -> bool:
    """
    True once `now` is after the stated expiry.

    A plain date is valid through the end of that day, compared against the
    calendar date of `now` in its own timezone. A datetime is compared as an
    instant.
    """
    if stated_expiry_date is None:
        return False
    if isinstance(stated_expiry_date, datetime):
        return ensure_utc(now) > ensure_utc(stated_expiry_date)
    return now.date() > stated_expiry_date


def compute_usability_window(
    isotope,
    initial_activity: float,
    minimum_usable_activity: float,
    reference_time: datetime,
    now: Optional[datetime] = None,
    stated_expiry_date: Optional[date] = None,
) -> UsabilityWindow:
    """
    Compute the expiry instant, hours left and expiry status of a lot.

    Parameters
    ----------
    isotope : str or IsotopeDefinition
    initial_activity : float
        Activity at reference_time.
    minimum_usable_activity : float
        Clinical threshold, same unit as initial_activity.
    reference_time : datetime
        Calibration instant. Naive values are read as UTC.
    now : datetime, optional
        Evaluation instant, defaults to the current UTC time.
    stated_expiry_date : date or datetime, optional
        Regulatory expiry printed on the lot.

    Raises
    ------
    UnknownIsotope, InvalidActivity, InvalidThreshold
    """
    iso = resolve_isotope(isotope)
    if not is_finite_number(initial_activity) or initial_activity <= 0:
        raise InvalidActivity(
            f"initial_activity must be a finite number greater than zero, got {initial_activity}"
        )
    if not is_finite_number(minimum_usable_activity) or minimum_usable_activity <= 0:
        raise InvalidThreshold(
            f"minimum_usable_activity must be greater than zero, got {minimum_usable_activity}"
        )

    if now is None:
        now = utc_now()
    reference_utc = ensure_utc(reference_time)
    elapsed = hours_between(reference_utc, now)

    lam = iso.decay_constant_per_hour
    # Difference of logs, the quotient overflows for tiny thresholds
    time_to_minimum = (math.log(initial_activity) - math.log(minimum_usable_activity)) / lam
    try:
        expiry_time = reference_utc + timedelta(hours=time_to_minimum)
    except OverflowError:
        raise InvalidThreshold(
            f"minimum_usable_activity {minimum_usable_activity} puts the expiry instant "
            f"outside the representable date range"
        ) from None
    hours_remaining = round_half_up(max(0.0, time_to_minimum - elapsed), 2)

    # Before calibration the lot is reported at its reference activity
    current = initial_activity * math.exp(-lam * max(0.0, elapsed))
    ratio = current / minimum_usable_activity * 100.0
    if not math.isfinite(ratio):
        raise InvalidThreshold(
            f"minimum_usable_activity {minimum_usable_activity} is too small "
            f"relative to the lot activity {current}"
        )
    ratio_percent = round_half_up(ratio, 2)

    # Expiry follows the rounded value, so 0.00 h always means expired
    activity_exhausted = hours_remaining <= 0
    regulatory_expired = is_past_stated_expiry(stated_expiry_date, now)
    if activity_exhausted:
        reason = "activity"
    elif regulatory_expired:
        reason = "regulatory"
    else:
        reason = None

    logger.debug(
        "usability %s A0=%s Amin=%s elapsed=%.3fh remaining=%sh reason=%s",
        iso.symbol, initial_activity, minimum_usable_activity, elapsed, hours_remaining, reason,
    )
    return UsabilityWindow(
        isotope=iso.symbol,
        expiry_time=expiry_time,
        hours_remaining=hours_remaining,
        is_expired=reason is not None,
        expiry_reason=reason,
        usability_percent=min(100.0, ratio_percent),
        activity_ratio_percent=ratio_percent,
        current_activity=round_half_up(current, 3),
    )
