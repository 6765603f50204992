"""
test_alerts.py
--------------
Unit tests for the alert engine.

Lots are Tc-99m, 1000 MBq at 08:00 UTC with a 100 MBq threshold, so they run
out of activity 19.998 h after calibration. The evaluation clock is fixed.
"""

import random
from datetime import date, datetime, timedelta, timezone

import pytest

from hotlab.schemas import AlertAction, TracerLot
from hotlab.services.alerts import evaluate_lot, generate_alerts
from hotlab.services.errors import InvalidActivity, InvalidInput, UnknownIsotope
from hotlab.services.quality_control import evaluate_quality_control

NOW = datetime(2026, 3, 3, 12, 0, tzinfo=timezone.utc)
QC = evaluate_quality_control(
    "radiochemical_purity", 98.0, "%", "J. Martin",
    timestamp=datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc),
)


def _lot(lot_id, hours_since_calibration, qc=True, **kwargs):
    fields = dict(
        id=lot_id,
        isotope="Tc-99m",
        initial_activity=1000.0,
        reference_time=NOW - timedelta(hours=hours_since_calibration),
        minimum_usable_activity=100.0,
        quality_control_records=[QC] if qc else [],
    )
    fields.update(kwargs)
    return TracerLot(**fields)


def _snapshot():
    return [
        _lot("lot-c", 2.0, qc=False),    # usable, QC missing
        _lot("lot-a", 21.0),             # expired
        _lot("lot-b", 19.5, qc=False),   # near expiry, QC missing
        _lot("lot-d", 2.0),              # nothing to report
    ]


def test_alert_content_and_order():
    alerts = generate_alerts(_snapshot(), now=NOW)
    assert [(a.id, a.severity) for a in alerts] == [
        ("expired_lot-a", "critical"),
        ("near_expiry_lot-b", "high"),
        ("missing_qc_lot-b", "medium"),
        ("missing_qc_lot-c", "medium"),
    ]

    expired, near, missing_b, _ = alerts
    assert expired.category == "expiry"
    assert expired.actions == [AlertAction.DISPOSE_ACCORDING_TO_PROTOCOL]
    assert near.category == "expiry"
    assert near.actions == [AlertAction.USE_IMMEDIATELY, AlertAction.MARK_EXPIRED]
    assert "0.5 h" in near.message
    assert missing_b.category == "quality"
    assert missing_b.actions == [AlertAction.SCHEDULE_QC, AlertAction.BLOCK_USAGE]
    assert missing_b.action_labels == ["Schedule quality control", "Block usage"]
    assert {a.lot_id for a in alerts} == {"lot-a", "lot-b", "lot-c"}


def test_repeated_cycles_are_identical():
    first = generate_alerts(_snapshot(), now=NOW)
    second = generate_alerts(_snapshot(), now=NOW)
    assert [a.model_dump_json() for a in first] == [a.model_dump_json() for a in second]


def test_input_order_does_not_matter():
    expected = generate_alerts(_snapshot(), now=NOW)
    lots = _snapshot()
    rng = random.Random(7)
    for _ in range(5):
        rng.shuffle(lots)
        assert generate_alerts(lots, now=NOW) == expected


@pytest.mark.parametrize("hours", [0.0, 10.0, 18.9, 19.0, 19.5, 19.99, 19.998, 20.0, 25.0, 500.0])
def test_never_both_expiry_alerts(hours):
    alerts = evaluate_lot(_lot("lot-x", hours), now=NOW)
    expiry = [a for a in alerts if a.category == "expiry"]
    assert len(expiry) <= 1


def test_one_hour_boundary():
    """
    hours_remaining exactly 1.00 is still near expiry; 1.01 is not.
    """
    t_min = 19.998007
    at_one = evaluate_lot(_lot("lot-x", t_min - 1.0), now=NOW)
    above = evaluate_lot(_lot("lot-x", t_min - 1.01), now=NOW)
    assert [a.id for a in at_one] == ["near_expiry_lot-x"]
    assert above == []


def test_near_expiry_compares_rounded_hours():
    # 1.004 h left is reported as 1.0 h and therefore alerts
    t_min = 19.998007
    alerts = evaluate_lot(_lot("lot-x", t_min - 1.004), now=NOW)
    assert [a.id for a in alerts] == ["near_expiry_lot-x"]


def test_near_expiry_window_is_configurable():
    alerts = evaluate_lot(_lot("lot-x", 16.0), now=NOW, near_expiry_hours=6.0)
    assert [a.id for a in alerts] == ["near_expiry_lot-x"]


def test_stated_expiry_date_raises_critical_alert():
    lot = _lot("lot-r", 2.0, stated_expiry_date=date(2026, 3, 2), lot_number="TC-2026-031")
    alerts = generate_alerts([lot], now=NOW)
    assert [(a.id, a.severity) for a in alerts] == [("expired_lot-r", "critical")]
    assert "TC-2026-031" in alerts[0].message
    assert "stated expiry date" in alerts[0].message


def test_plain_mapping_snapshot_and_default_minimum():
    """
    Without a stated minimum, 10 % of the initial activity is used.
    """
    snapshot = {
        "id": "lot-m",
        "isotope": "99mTc",
        "initial_activity": 1000.0,
        "reference_time": (NOW - timedelta(hours=19.5)).isoformat(),
        "stated_expiry_date": "2026-03-10",
        "quality_control_records": [],
    }
    alerts = generate_alerts([snapshot], now=NOW)
    assert [a.id for a in alerts] == ["near_expiry_lot-m", "missing_qc_lot-m"]


def test_empty_snapshot():
    assert generate_alerts([], now=NOW) == []


def test_unknown_isotope_fails_whole_cycle():
    lots = _snapshot() + [_lot("lot-z", 1.0, isotope="Xx-1")]
    with pytest.raises(UnknownIsotope):
        generate_alerts(lots, now=NOW)


def test_invalid_activity_fails():
    with pytest.raises(InvalidActivity):
        generate_alerts([_lot("lot-z", 1.0, initial_activity=0.0)], now=NOW)


def test_malformed_snapshot_fails():
    with pytest.raises(InvalidInput):
        generate_alerts([{"id": "lot-q", "isotope": "Tc-99m"}], now=NOW)
