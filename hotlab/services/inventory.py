"""
inventory.py
------------
Hot-lab bookkeeping helpers built on the decay and expiry services:
- summarize_inventory: lot and preparation counts for a dashboard
- validate_lot: checks a lot record before it enters the inventory
- validate_preparation: checks a dose drawn from a lot before it is recorded
- hot_lab_safety_notices: advisory notices, kept apart from the ranked alerts

Nothing here is stored; the caller owns lots and preparation logs.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError

from hotlab.schemas import NOTICE_LEVEL_RANK, InventorySummary, PreparationLog, SafetyNotice
from hotlab.services.alerts import LotSnapshot, as_tracer_lot, lot_usability
from hotlab.services.catalog import convert_activity, lookup_isotope
from hotlab.services.common import ensure_utc, is_finite_number, round_half_up, utc_now
from hotlab.services.decay import activity_at
from hotlab.services.errors import InvalidInput, UnknownIsotope

logger = logging.getLogger(__name__)

PreparationSnapshot = Union[PreparationLog, Mapping]

EXPIRY_NOTICE_DAYS = 3
HIGH_ACTIVITY_MBQ = 1000.0
LOW_RESIDUAL_PERCENT = 10.0


def as_preparation(snapshot: PreparationSnapshot) -> PreparationLog:
    if isinstance(snapshot, PreparationLog):
        return snapshot
    try:
        return PreparationLog.model_validate(snapshot)
    except ValidationError as e:
        raise InvalidInput(f"Invalid preparation log: {e}") from e


def _prepared_on(prep: PreparationLog, now: datetime) -> bool:
    return ensure_utc(prep.prepared_at).date() == ensure_utc(now).date()


def summarize_inventory(
    lots: Iterable[LotSnapshot],
    preparations: Iterable[PreparationSnapshot] = (),
    now: Optional[datetime] = None,
) -> InventorySummary:
    """
    Count usable and expired lots and today's preparations.

    Lots are judged exactly as the alert engine judges them, stated expiry
    dates included, so both views agree for the same `now`. "Today" for
    preparations is the UTC calendar day of `now`.
    """
    if now is None:
        now = utc_now()

    total = expired = 0
    for snapshot in lots:
        total += 1
        if lot_usability(as_tracer_lot(snapshot), now).is_expired:
            expired += 1

    prep_total = prep_today = 0
    activity_today = 0.0
    for snapshot in preparations:
        prep = as_preparation(snapshot)
        prep_total += 1
        if _prepared_on(prep, now):
            prep_today += 1
            activity_today += convert_activity(prep.activity_prepared, prep.unit, "MBq")

    return InventorySummary(
        total_lots=total,
        available_lots=total - expired,
        expired_lots=expired,
        total_preparations=prep_total,
        preparations_today=prep_today,
        activity_prepared_today_MBq=round_half_up(activity_today, 3),
    )


def validate_lot(lot: LotSnapshot, now: Optional[datetime] = None) -> List[str]:
    """
    Return the problems that forbid adding `lot` to the inventory; empty when valid.

    The stated expiry date may be today but not earlier, using the calendar
    date of `now` in its own timezone.
    """
    tracer_lot = as_tracer_lot(lot)
    if now is None:
        now = utc_now()
    problems: List[str] = []

    if not tracer_lot.isotope.strip():
        problems.append("Isotope is required")
    else:
        try:
            lookup_isotope(tracer_lot.isotope)
        except UnknownIsotope as e:
            problems.append(str(e))

    if not (tracer_lot.lot_number or "").strip():
        problems.append("Lot number is required")

    if tracer_lot.stated_expiry_date is None:
        problems.append("Expiry date is required")
    elif tracer_lot.stated_expiry_date < now.date():
        problems.append("Expiry date cannot be in the past")

    if not is_finite_number(tracer_lot.initial_activity) or tracer_lot.initial_activity <= 0:
        problems.append("Initial activity must be greater than zero")

    received = tracer_lot.quantity_received
    if received is not None and (not is_finite_number(received) or received <= 0):
        problems.append("Quantity received must be greater than zero")

    minimum = tracer_lot.minimum_usable_activity
    if minimum is not None and (not is_finite_number(minimum) or minimum <= 0):
        problems.append("Minimum usable activity must be greater than zero")

    if problems:
        logger.info("lot %s rejected: %s", tracer_lot.id, "; ".join(problems))
    return problems


def validate_preparation(
    preparation: PreparationSnapshot,
    lot: LotSnapshot,
    now: Optional[datetime] = None,
) -> List[str]:
    """
    Return the problems that forbid recording `preparation`; empty when valid.

    Invalid lot data (unknown isotope, non-positive activity) raises instead,
    since the lot itself cannot be evaluated.
    """
    prep = as_preparation(preparation)
    tracer_lot = as_tracer_lot(lot)
    now = utc_now() if now is None else ensure_utc(now)
    label = tracer_lot.lot_number or tracer_lot.id
    problems: List[str] = []

    if prep.tracer_lot_id != tracer_lot.id:
        problems.append(
            f"Preparation references lot '{prep.tracer_lot_id}', not '{tracer_lot.id}'"
        )

    activity_ok = is_finite_number(prep.activity_prepared) and prep.activity_prepared > 0
    if not activity_ok:
        problems.append("Prepared activity must be greater than zero")

    if not prep.prepared_by.strip():
        problems.append("Preparer name is required")

    prepared_at = ensure_utc(prep.prepared_at)
    if prepared_at > now:
        problems.append("Preparation time cannot be in the future")

    # Stated expiry dates are read in the preparer's own timezone
    window = lot_usability(tracer_lot, prep.prepared_at)
    if window.is_expired:
        problems.append(
            f"Lot {label} was not usable at preparation time ({window.expiry_reason})"
        )

    if activity_ok:
        available = convert_activity(
            activity_at(tracer_lot.isotope, tracer_lot.initial_activity,
                        tracer_lot.reference_time, prepared_at),
            tracer_lot.unit,
            "MBq",
        )
        requested = convert_activity(prep.activity_prepared, prep.unit, "MBq")
        if requested > available:
            problems.append(
                f"Prepared activity {requested:.1f} MBq exceeds the {available:.1f} MBq "
                f"left in lot {label} at preparation time"
            )

    if problems:
        logger.info("preparation %s rejected: %s", prep.id, "; ".join(problems))
    return problems


def hot_lab_safety_notices(
    lots: Iterable[LotSnapshot],
    preparations: Iterable[PreparationSnapshot] = (),
    now: Optional[datetime] = None,
) -> List[SafetyNotice]:
    """
    Advisory notices for the hot-lab dashboard.

    - expiring_soon (warning): usable lot whose stated expiry date falls within
      EXPIRY_NOTICE_DAYS calendar days of `now`
    - high_activity_preparation (info): preparation of today (UTC) above
      HIGH_ACTIVITY_MBQ
    - low_residual_activity (warning): lot holding less than
      LOW_RESIDUAL_PERCENT of its initial activity, but not nothing

    Ids are "<kind prefix>_<lot or preparation id>". The list is sorted
    warnings first, then by id. These notices never feed generate_alerts.
    """
    if now is None:
        now = utc_now()
    horizon = now.date() + timedelta(days=EXPIRY_NOTICE_DAYS)
    notices: List[SafetyNotice] = []

    for snapshot in lots:
        lot = as_tracer_lot(snapshot)
        label = lot.lot_number or lot.id
        window = lot_usability(lot, now)

        if (not window.is_expired and lot.stated_expiry_date is not None
                and lot.stated_expiry_date <= horizon):
            notices.append(SafetyNotice(
                id=f"expiring_soon_{lot.id}",
                kind="expiring_soon",
                level="warning",
                message=f"Lot {label} expires within {EXPIRY_NOTICE_DAYS} days "
                        f"({lot.stated_expiry_date})",
                lot_id=lot.id,
            ))

        current = activity_at(lot.isotope, lot.initial_activity, lot.reference_time, now)
        remaining = current / lot.initial_activity * 100.0
        if 0 < remaining < LOW_RESIDUAL_PERCENT:
            notices.append(SafetyNotice(
                id=f"low_residual_{lot.id}",
                kind="low_residual_activity",
                level="warning",
                message=f"Low residual activity for lot {label} ({remaining:.1f}%)",
                lot_id=lot.id,
            ))

    for snapshot in preparations:
        prep = as_preparation(snapshot)
        if not _prepared_on(prep, now):
            continue
        if convert_activity(prep.activity_prepared, prep.unit, "MBq") > HIGH_ACTIVITY_MBQ:
            notices.append(SafetyNotice(
                id=f"high_activity_{prep.id}",
                kind="high_activity_preparation",
                level="info",
                message=f"High activity preparation: {prep.activity_prepared} {prep.unit}",
                preparation_id=prep.id,
            ))

    return sorted(notices, key=lambda n: (-NOTICE_LEVEL_RANK[n.level], n.id))
