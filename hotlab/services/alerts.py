"""
alerts.py
---------
Safety alerts over a snapshot of tracer lots.

Per lot, independently:
- expired (activity exhausted or stated expiry passed) -> critical expiry alert
- otherwise 0 < hours remaining <= near-expiry window -> high expiry alert
- no quality-control record -> medium quality alert

Alert ids are "<condition>_<lot id>", so identical input yields identical ids
across evaluation cycles. The output is sorted by severity (critical first),
then lot id, then condition, which makes the result independent of input order.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError

from hotlab import config
from hotlab.schemas import SEVERITY_RANK, Alert, AlertAction, TracerLot, UsabilityWindow
from hotlab.services.common import utc_now
from hotlab.services.errors import InvalidInput
from hotlab.services.expiry import compute_usability_window

logger = logging.getLogger(__name__)


NEAR_EXPIRY = "near_expiry"
EXPIRED = "expired"
MISSING_QC = "missing_qc"

LotSnapshot = Union[TracerLot, Mapping]


def alert_id(lot_id: str, condition: str) -> str:
    return f"{condition}_{lot_id}"


def as_tracer_lot(snapshot: LotSnapshot) -> TracerLot:
    """Validate a plain mapping into a TracerLot; TracerLot instances pass through."""
    if isinstance(snapshot, TracerLot):
        return snapshot
    try:
        return TracerLot.model_validate(snapshot)
    except ValidationError as e:
        raise InvalidInput(f"Invalid lot snapshot: {e}") from e


def minimum_usable_activity(lot: TracerLot) -> float:
    if lot.minimum_usable_activity is not None:
        return lot.minimum_usable_activity
    return lot.initial_activity * config.DEFAULT_MINIMUM_ACTIVITY_FRACTION


def lot_usability(lot: TracerLot, now: Optional[datetime] = None) -> UsabilityWindow:
    return compute_usability_window(
        lot.isotope,
        lot.initial_activity,
        minimum_usable_activity(lot),
        lot.reference_time,
        now=now,
        stated_expiry_date=lot.stated_expiry_date,
    )


def _expiry_alert(lot: TracerLot, window: UsabilityWindow, near_expiry_hours: float) -> Optional[Alert]:
    label = lot.lot_number or lot.id
    if window.is_expired:
        if window.expiry_reason == "regulatory":
            detail = f"stated expiry date {lot.stated_expiry_date} has passed"
        else:
            detail = "activity below the minimum usable activity"
        return Alert(
            id=alert_id(lot.id, EXPIRED),
            category="expiry",
            severity="critical",
            title="Lot expired",
            message=f"Lot {label} is unusable: {detail}",
            lot_id=lot.id,
            actions=[AlertAction.DISPOSE_ACCORDING_TO_PROTOCOL],
        )
    # hours_remaining is rounded to 2 decimals: 1.004 h left reads 1.0 and alerts
    if 0 < window.hours_remaining <= near_expiry_hours:
        return Alert(
            id=alert_id(lot.id, NEAR_EXPIRY),
            category="expiry",
            severity="high",
            title="Expiry imminent",
            message=f"Lot {label} expires in {window.hours_remaining:.1f} h",
            lot_id=lot.id,
            actions=[AlertAction.USE_IMMEDIATELY, AlertAction.MARK_EXPIRED],
        )
    return None


def evaluate_lot(
    lot: LotSnapshot,
    now: Optional[datetime] = None,
    near_expiry_hours: Optional[float] = None,
) -> List[Alert]:
    """Alerts for a single lot, unsorted. At most one expiry alert is produced."""
    lot = as_tracer_lot(lot)
    if near_expiry_hours is None:
        near_expiry_hours = config.NEAR_EXPIRY_HOURS

    alerts: List[Alert] = []
    expiry = _expiry_alert(lot, lot_usability(lot, now), near_expiry_hours)
    if expiry is not None:
        alerts.append(expiry)

    if not lot.quality_control_records:
        alerts.append(Alert(
            id=alert_id(lot.id, MISSING_QC),
            category="quality",
            severity="medium",
            title="Quality control missing",
            message=f"Lot {lot.lot_number or lot.id}: mandatory quality control not performed",
            lot_id=lot.id,
            actions=[AlertAction.SCHEDULE_QC, AlertAction.BLOCK_USAGE],
        ))
    return alerts


def sort_alerts(alerts: Iterable[Alert]) -> List[Alert]:
    """Severity descending, then lot id and alert id ascending."""
    return sorted(alerts, key=lambda a: (-SEVERITY_RANK[a.severity], a.lot_id, a.id))


def generate_alerts(
    lots: Iterable[LotSnapshot],
    now: Optional[datetime] = None,
    near_expiry_hours: Optional[float] = None,
) -> List[Alert]:
    """
    Evaluate every lot against one clock and return the ranked alert list.

    Raises
    ------
    UnknownIsotope, InvalidActivity, InvalidThreshold, InvalidInput
        If any lot snapshot is invalid; no partial list is returned.
    """
    # One clock for the whole cycle
    if now is None:
        now = utc_now()

    alerts: List[Alert] = []
    count = 0
    for lot in lots:
        alerts.extend(evaluate_lot(lot, now=now, near_expiry_hours=near_expiry_hours))
        count += 1

    ranked = sort_alerts(alerts)
    logger.info("alert cycle: %d lots, %d alerts", count, len(ranked))
    return ranked
