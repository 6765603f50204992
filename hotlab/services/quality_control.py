"""
quality_control.py
------------------
Judgement of quality-control measurements against fixed acceptance criteria.

Criteria
- radiochemical_purity: >= 95 %
- radionuclidic_purity: >= 99 %
- pH: 4.5 <= pH <= 7.5, target 6.0
- sterility: 0 CFU/ml

Bounds are inclusive. A record is created once per evaluation and never changed.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Dict, Optional

from hotlab.schemas import AcceptanceCriteria, QualityControlRecord
from hotlab.services.common import ensure_utc, is_finite_number, utc_now
from hotlab.services.errors import InvalidInput, UnsupportedTest

logger = logging.getLogger(__name__)


QC_CRITERIA: Dict[str, AcceptanceCriteria] = {
    "radiochemical_purity": AcceptanceCriteria(min=95.0, unit="%"),
    "radionuclidic_purity": AcceptanceCriteria(min=99.0, unit="%"),
    "pH": AcceptanceCriteria(min=4.5, max=7.5, target=6.0),
    "sterility": AcceptanceCriteria(min=0.0, max=0.0, unit="CFU/ml"),
}

NOTE_PASSED = "Conforme"
NOTE_FAILED = "Non conforme"


def quality_control_criteria(test_type: str) -> AcceptanceCriteria:
    try:
        return QC_CRITERIA[test_type]
    except (KeyError, TypeError):
        raise UnsupportedTest(
            f"Unsupported quality control test '{test_type}'. Valid tests: {sorted(QC_CRITERIA)}"
        ) from None


def is_within_criteria(result: float, criteria: AcceptanceCriteria) -> bool:
    if criteria.min is not None and result < criteria.min:
        return False
    if criteria.max is not None and result > criteria.max:
        return False
    return True


def evaluate_quality_control(
    test_type: str,
    result: float,
    unit: str,
    performed_by: str,
    lot_id: Optional[str] = None,
    notes: Optional[str] = None,
    timestamp: Optional[datetime] = None,
) -> QualityControlRecord:
    """
    Judge a QC measurement and return the immutable record.

    The record note starts with "Conforme" or "Non conforme"; caller notes are
    appended after it.

    Raises
    ------
    UnsupportedTest
        For an unknown test type.
    InvalidInput
        For a non-finite result or an empty performer.
    """
    criteria = quality_control_criteria(test_type)
    if not is_finite_number(result):
        raise InvalidInput(f"QC result must be a finite number, got {result}")
    if not isinstance(performed_by, str) or not performed_by.strip():
        raise InvalidInput("performed_by must be a non-empty string.")
    if criteria.unit is not None and unit != criteria.unit:
        logger.warning(
            "QC %s reported in '%s', criteria are expressed in '%s'", test_type, unit, criteria.unit
        )

    passed = is_within_criteria(result, criteria)
    note = NOTE_PASSED if passed else NOTE_FAILED
    if notes and notes.strip():
        note = f"{note}; {notes.strip()}"

    record = QualityControlRecord(
        id=f"qc_{uuid.uuid4().hex}",
        lot_id=lot_id,
        test_type=test_type,
        result=result,
        unit=unit,
        acceptance_criteria=criteria,
        passed=passed,
        performed_by=performed_by.strip(),
        timestamp=utc_now() if timestamp is None else ensure_utc(timestamp),
        notes=note,
    )
    logger.info("QC %s on lot %s: %s (%s %s)", test_type, lot_id, note, result, unit)
    return record
