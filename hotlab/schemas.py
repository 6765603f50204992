"""
schemas.py
----------
Pydantic models for the records exchanged with the radioprotection engine and
for the request and response payloads of the HTTP layer.

Key conventions
- Units:
    activities: MBq unless a record carries an explicit `unit`
    time: hours for durations, timezone aware datetimes for instants
      (naive datetimes are read as UTC by the service layer)
    doses: millisievert (mSv)
- Enumerations are constrained to fixed strings via Literal, alert actions via
  a str Enum so callers can route them without parsing labels.
- Numeric plausibility (positive activity, non-negative age, ...) is checked in
  the service layer so that every entry point raises the same error kinds.

These models contain no physics logic.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


ActivityUnit = Literal["MBq", "GBq", "mCi", "Ci"]

QualityControlTestType = Literal[
    "radiochemical_purity",
    "radionuclidic_purity",
    "pH",
    "sterility",
]

AlertCategory = Literal["expiry", "quality"]

AlertSeverity = Literal["low", "medium", "high", "critical"]

# Higher rank sorts first
SEVERITY_RANK: Dict[str, int] = {"critical": 3, "high": 2, "medium": 1, "low": 0}


class AlertAction(str, Enum):
    """Operational follow-up suggested by an alert. Execution belongs to the caller."""
    USE_IMMEDIATELY = "use_immediately"
    MARK_EXPIRED = "mark_expired"
    DISPOSE_ACCORDING_TO_PROTOCOL = "dispose_according_to_protocol"
    SCHEDULE_QC = "schedule_qc"
    BLOCK_USAGE = "block_usage"

    @property
    def label(self) -> str:
        return ACTION_LABELS[self]


ACTION_LABELS: Dict[AlertAction, str] = {
    AlertAction.USE_IMMEDIATELY: "Use immediately",
    AlertAction.MARK_EXPIRED: "Mark as expired",
    AlertAction.DISPOSE_ACCORDING_TO_PROTOCOL: "Dispose according to protocol",
    AlertAction.SCHEDULE_QC: "Schedule quality control",
    AlertAction.BLOCK_USAGE: "Block usage",
}


# -------------------------------
# Decay and expiry
# -------------------------------

class DecayResult(BaseModel):
    """
    Decayed activity of a source after `elapsed_hours`.

    Fields
    - current_activity, decay_factor: rounded to 3 decimals
    - percent_remaining, half_lives_elapsed: rounded to 2 decimals
    """
    isotope: str
    initial_activity: float
    elapsed_hours: float
    current_activity: float
    decay_factor: float
    percent_remaining: float
    half_lives_elapsed: float


class UsabilityWindow(BaseModel):
    """
    Time left before a lot's activity falls under its minimum usable activity.

    Fields
    - expiry_time: instant at which the activity reaches the minimum
    - hours_remaining: never negative, rounded to 2 decimals
    - is_expired: activity exhausted or stated expiry date passed
    - expiry_reason: "activity", "regulatory" or None when usable
    - usability_percent: current / minimum * 100 capped at 100, for display
    - activity_ratio_percent: the same ratio without the cap, for audit
    """
    isotope: str
    expiry_time: datetime
    hours_remaining: float
    is_expired: bool
    expiry_reason: Optional[Literal["activity", "regulatory"]] = None
    usability_percent: float
    activity_ratio_percent: float
    current_activity: float


# -------------------------------
# Dosimetry
# -------------------------------

DosimetryWarningCode = Literal[
    "default_dose_factor_used",
    "pediatric_dose_applied",
    "dose_over_limit",
    "pregnancy_special_review",
]


class DosimetryWarning(BaseModel):
    code: DosimetryWarningCode
    message: str


class DosimetryResult(BaseModel):
    """
    Patient dose estimate for one administration.

    Fields
    - dose_factor: mSv/MBq used for the estimate
    - weight_factor: pediatric correction, 1.0 for adults
    - effective_dose_mSv, organ_doses_mSv: rounded to 3 decimals
    - dose_limit_mSv: limit of the patient category
    - warnings: ordered, see services.dosimetry
    """
    isotope: str
    activity_MBq: float
    exam_type: str
    dose_factor: float
    weight_factor: float
    effective_dose_mSv: float
    organ_doses_mSv: Dict[str, float]
    dose_limit_mSv: float
    is_within_limits: bool
    warnings: List[DosimetryWarning]


class DoseRateResult(BaseModel):
    isotope: str
    activity_MBq: float
    distance_m: float
    dose_rate_mSv_per_h: float


# -------------------------------
# Quality control
# -------------------------------

class AcceptanceCriteria(BaseModel):
    model_config = ConfigDict(frozen=True)

    min: Optional[float] = None
    max: Optional[float] = None
    target: Optional[float] = None
    unit: Optional[str] = None


class QualityControlRecord(BaseModel):
    """
    Outcome of one QC test. Immutable once created.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    lot_id: Optional[str] = None
    test_type: QualityControlTestType
    result: float
    unit: str
    acceptance_criteria: AcceptanceCriteria
    passed: bool
    performed_by: str
    timestamp: datetime
    notes: str


# -------------------------------
# Lots and preparations
# -------------------------------

class TracerLot(BaseModel):
    """
    Snapshot of a received or prepared tracer lot.

    Notes
    - reference_time is the calibration instant of initial_activity.
    - minimum_usable_activity is in the same unit as initial_activity. When
      absent the alert engine uses a configured fraction of initial_activity.
    - stated_expiry_date is the regulatory expiry printed on the lot; the lot is
      usable through the end of that day.
    """
    id: str
    isotope: str
    initial_activity: float
    unit: ActivityUnit = "MBq"
    reference_time: datetime
    minimum_usable_activity: Optional[float] = None
    stated_expiry_date: Optional[date] = None
    lot_number: Optional[str] = None
    quantity_received: Optional[float] = None
    quality_control_records: List[QualityControlRecord] = Field(default_factory=list)

    @field_validator("id")
    @classmethod
    def _strip_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("lot id must be a non-empty string.")
        return v


class PreparationLog(BaseModel):
    """
    One dose drawn from a tracer lot. Append-only on the caller's side.
    """
    id: str
    tracer_lot_id: str
    activity_prepared: float
    unit: ActivityUnit = "MBq"
    prepared_at: datetime
    prepared_by: str
    patient_id: Optional[str] = None
    exam_type: Optional[str] = None
    notes: Optional[str] = None


SafetyNoticeKind = Literal["expiring_soon", "high_activity_preparation", "low_residual_activity"]

# Higher rank sorts first
NOTICE_LEVEL_RANK: Dict[str, int] = {"warning": 1, "info": 0}


class SafetyNotice(BaseModel):
    """
    Advisory hot-lab notice, separate from the ranked safety alerts.

    Exactly one of lot_id / preparation_id is set.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    kind: SafetyNoticeKind
    level: Literal["warning", "info"]
    message: str
    lot_id: Optional[str] = None
    preparation_id: Optional[str] = None


class InventorySummary(BaseModel):
    total_lots: int
    available_lots: int
    expired_lots: int
    total_preparations: int
    preparations_today: int
    activity_prepared_today_MBq: float


# -------------------------------
# Alerts
# -------------------------------

class Alert(BaseModel):
    """
    Derived safety alert. Recomputed every evaluation cycle, never stored here.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    category: AlertCategory
    severity: AlertSeverity
    title: str
    message: str
    lot_id: str
    actions: List[AlertAction]

    @computed_field  # type: ignore[misc]
    @property
    def action_labels(self) -> List[str]:
        return [a.label for a in self.actions]


# -------------------------------
# HTTP payloads
# -------------------------------

class ActivityConversionRequest(BaseModel):
    value: float = Field(..., description="Activity in from_unit.")
    from_unit: ActivityUnit
    to_unit: ActivityUnit


class DecayRequest(BaseModel):
    isotope: str = Field(..., description="Isotope symbol or alias, e.g. 'Tc-99m' or '99mTc'.")
    initial_activity: float = Field(..., description="Activity at the reference time.")
    elapsed_hours: float = Field(..., description="Hours since the reference time.")


class UsabilityWindowRequest(BaseModel):
    isotope: str
    initial_activity: float
    minimum_usable_activity: float
    reference_time: datetime
    now: Optional[datetime] = Field(None, description="Evaluation instant, defaults to server time.")
    stated_expiry_date: Optional[date] = None


class DosimetryRequest(BaseModel):
    isotope: str
    activity_MBq: float
    exam_type: str = Field(..., description="Exam identifier such as 'bone_scintigraphy' or a known alias.")
    weight_kg: float
    age_years: float
    is_pregnant: bool = False


class DoseRateRequest(BaseModel):
    isotope: str
    activity_MBq: float
    distance_m: float = 1.0


class QualityControlRequest(BaseModel):
    test_type: str
    result: float
    unit: str
    performed_by: str
    lot_id: Optional[str] = None
    notes: Optional[str] = None


class AlertsRequest(BaseModel):
    lots: List[TracerLot]
    now: Optional[datetime] = None


class InventoryRequest(BaseModel):
    lots: List[TracerLot]
    preparations: List[PreparationLog] = Field(default_factory=list)
    now: Optional[datetime] = None


class PreparationValidationRequest(BaseModel):
    preparation: PreparationLog
    lot: TracerLot
    now: Optional[datetime] = None


class LotValidationRequest(BaseModel):
    lot: TracerLot
    now: Optional[datetime] = None


class SafetyNoticesRequest(BaseModel):
    lots: List[TracerLot]
    preparations: List[PreparationLog] = Field(default_factory=list)
    now: Optional[datetime] = None


class ValidationResponse(BaseModel):
    valid: bool
    problems: List[str]
