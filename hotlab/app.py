"""
app.py
------
FastAPI entry point for the hot-lab radioprotection engine.

The HTTP layer is stateless: each route validates its payload, calls one pure
service function and returns the result. Nothing is stored between requests.

Routes:
- GET  /health
- GET  /v1/isotopes
- GET  /v1/isotopes/{symbol}
- POST /v1/activity/convert
- POST /v1/decay
- POST /v1/usability-window
- POST /v1/dosimetry
- POST /v1/dose-rate
- POST /v1/quality-control
- POST /v1/alerts
- POST /v1/inventory/summary
- POST /v1/preparations/validate
- POST /v1/lots/validate
- POST /v1/safety-notices

Run locally:
    uvicorn hotlab.app:app --reload

Swagger docs:
    http://127.0.0.1:8000/docs
"""

import argparse
import logging
from typing import List

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from hotlab import config
from hotlab.models import IsotopeDefinition
from hotlab.schemas import (
    ActivityConversionRequest,
    Alert,
    AlertsRequest,
    DecayRequest,
    DecayResult,
    DoseRateRequest,
    DoseRateResult,
    DosimetryRequest,
    DosimetryResult,
    InventoryRequest,
    InventorySummary,
    LotValidationRequest,
    PreparationValidationRequest,
    QualityControlRecord,
    QualityControlRequest,
    SafetyNotice,
    SafetyNoticesRequest,
    UsabilityWindow,
    UsabilityWindowRequest,
    ValidationResponse,
)
from hotlab.services.alerts import generate_alerts
from hotlab.services.catalog import convert_activity, list_isotopes, lookup_isotope
from hotlab.services.decay import compute_decay
from hotlab.services.dosimetry import compute_dose_rate, compute_dosimetry
from hotlab.services.errors import RadioprotectionError, UnknownIsotope
from hotlab.services.expiry import compute_usability_window
from hotlab.services.inventory import (
    hot_lab_safety_notices,
    summarize_inventory,
    validate_lot,
    validate_preparation,
)
from hotlab.services.quality_control import evaluate_quality_control

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Hot-lab Radioprotection API",
    version="0.1.0",
    description="""
Decay, usability window, patient dosimetry, quality control and safety alerts
for radiopharmaceutical tracer lots.

Notes:
- Activities in MBq unless a record carries its own unit; doses in mSv.
- Naive datetimes are interpreted as UTC.
""",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


def _bad_request(e: RadioprotectionError) -> HTTPException:
    logger.info("rejected request: %s", e)
    return HTTPException(status_code=400, detail=str(e))


@app.get("/health")
def health() -> dict:
    """Simple health check to confirm API is alive."""
    return {"status": "ok"}


@app.get("/v1/isotopes", response_model=List[IsotopeDefinition])
def isotopes() -> List[IsotopeDefinition]:
    """Return the isotope catalog in canonical form."""
    return list_isotopes()


@app.get("/v1/isotopes/{symbol}", response_model=IsotopeDefinition)
def isotope(symbol: str) -> IsotopeDefinition:
    """Resolve a symbol or alias to its canonical definition."""
    try:
        return lookup_isotope(symbol)
    except UnknownIsotope as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.post("/v1/activity/convert")
def activity_convert(req: ActivityConversionRequest) -> dict:
    try:
        value = convert_activity(req.value, req.from_unit, req.to_unit)
    except RadioprotectionError as e:
        raise _bad_request(e)
    return {"value": value, "unit": req.to_unit}


@app.post("/v1/decay", response_model=DecayResult)
def decay(req: DecayRequest) -> DecayResult:
    try:
        return compute_decay(req.isotope, req.initial_activity, req.elapsed_hours)
    except RadioprotectionError as e:
        raise _bad_request(e)


@app.post("/v1/usability-window", response_model=UsabilityWindow)
def usability_window(req: UsabilityWindowRequest) -> UsabilityWindow:
    try:
        return compute_usability_window(
            req.isotope,
            req.initial_activity,
            req.minimum_usable_activity,
            req.reference_time,
            now=req.now,
            stated_expiry_date=req.stated_expiry_date,
        )
    except RadioprotectionError as e:
        raise _bad_request(e)


@app.post("/v1/dosimetry", response_model=DosimetryResult)
def dosimetry(req: DosimetryRequest) -> DosimetryResult:
    try:
        return compute_dosimetry(
            req.isotope,
            req.activity_MBq,
            req.exam_type,
            req.weight_kg,
            req.age_years,
            req.is_pregnant,
        )
    except RadioprotectionError as e:
        raise _bad_request(e)


@app.post("/v1/dose-rate", response_model=DoseRateResult)
def dose_rate(req: DoseRateRequest) -> DoseRateResult:
    try:
        return compute_dose_rate(req.isotope, req.activity_MBq, req.distance_m)
    except RadioprotectionError as e:
        raise _bad_request(e)


@app.post("/v1/quality-control", response_model=QualityControlRecord)
def quality_control(req: QualityControlRequest) -> QualityControlRecord:
    try:
        return evaluate_quality_control(
            req.test_type,
            req.result,
            req.unit,
            req.performed_by,
            lot_id=req.lot_id,
            notes=req.notes,
        )
    except RadioprotectionError as e:
        raise _bad_request(e)


@app.post("/v1/alerts", response_model=List[Alert])
def alerts(req: AlertsRequest) -> List[Alert]:
    """
    Evaluate a snapshot of lots and return alerts ranked by severity.
    """
    try:
        return generate_alerts(req.lots, now=req.now)
    except RadioprotectionError as e:
        raise _bad_request(e)


@app.post("/v1/inventory/summary", response_model=InventorySummary)
def inventory_summary(req: InventoryRequest) -> InventorySummary:
    try:
        return summarize_inventory(req.lots, req.preparations, now=req.now)
    except RadioprotectionError as e:
        raise _bad_request(e)


@app.post("/v1/preparations/validate", response_model=ValidationResponse)
def preparations_validate(req: PreparationValidationRequest) -> ValidationResponse:
    try:
        problems = validate_preparation(req.preparation, req.lot, now=req.now)
    except RadioprotectionError as e:
        raise _bad_request(e)
    return ValidationResponse(valid=not problems, problems=problems)


@app.post("/v1/lots/validate", response_model=ValidationResponse)
def lots_validate(req: LotValidationRequest) -> ValidationResponse:
    try:
        problems = validate_lot(req.lot, now=req.now)
    except RadioprotectionError as e:
        raise _bad_request(e)
    return ValidationResponse(valid=not problems, problems=problems)


@app.post("/v1/safety-notices", response_model=List[SafetyNotice])
def safety_notices(req: SafetyNoticesRequest) -> List[SafetyNotice]:
    """
    Advisory hot-lab notices; independent of /v1/alerts.
    """
    try:
        return hot_lab_safety_notices(req.lots, req.preparations, now=req.now)
    except RadioprotectionError as e:
        raise _bad_request(e)


def main() -> None:
    parser = argparse.ArgumentParser(description="Hot-lab radioprotection API")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true")
    args = parser.parse_args()
    uvicorn.run("hotlab.app:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
