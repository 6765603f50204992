"""
test_expiry.py
--------------
Unit tests for the usability window.

Reference case used throughout: Tc-99m, 1000 MBq calibrated at 08:00 UTC,
minimum usable activity 100 MBq.
    t_min = ln(1000 / 100) / 0.11514073 = 19.998007 h
"""

import math
from datetime import date, datetime, timedelta, timezone

import pytest

from hotlab.services.errors import InvalidActivity, InvalidThreshold, UnknownIsotope
from hotlab.services.expiry import compute_usability_window, is_past_stated_expiry

REF = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)
T_MIN = math.log(10) / 0.11514073


def _window(hours_after, **kwargs):
    return compute_usability_window("Tc-99m", 1000.0, 100.0, REF, REF + timedelta(hours=hours_after), **kwargs)


def test_expiry_time_and_hours_remaining():
    w = _window(10)
    assert math.isclose(
        (w.expiry_time - REF).total_seconds() / 3600.0, T_MIN, rel_tol=1e-9
    )
    assert w.hours_remaining == 10.0  # 9.998007 rounded to 2 decimals
    assert not w.is_expired
    assert w.expiry_reason is None


def test_usability_percent_is_capped_for_display():
    """
    At 10 h the activity is 316.19 MBq, three times the threshold.
    """
    w = _window(10)
    assert w.usability_percent == 100.0
    assert w.activity_ratio_percent == 316.19
    assert w.current_activity == 316.191


def test_usability_percent_below_threshold():
    w = _window(21)
    assert w.is_expired
    assert w.expiry_reason == "activity"
    assert w.hours_remaining == 0.0
    assert w.usability_percent == 89.1
    assert w.activity_ratio_percent == 89.1


def test_near_expiry_hours():
    w = _window(19.5)
    assert w.hours_remaining == 0.5
    assert not w.is_expired


def test_minimum_equal_to_initial_is_immediately_expired():
    w = compute_usability_window("Tc-99m", 500.0, 500.0, REF, REF)
    assert w.hours_remaining == 0
    assert w.is_expired
    assert w.usability_percent == 100.0


def test_minimum_above_initial_is_expired():
    w = compute_usability_window("Tc-99m", 50.0, 100.0, REF, REF)
    assert w.is_expired
    assert w.expiry_time < REF
    assert w.usability_percent == 50.0


def test_stated_expiry_date_governs_when_stricter():
    """
    Plenty of activity left but the printed expiry date is yesterday.
    """
    w = _window(2, stated_expiry_date=date(2026, 3, 1))
    assert w.hours_remaining > 0
    assert w.is_expired
    assert w.expiry_reason == "regulatory"


def test_stated_expiry_date_valid_through_that_day():
    w = _window(2, stated_expiry_date=date(2026, 3, 2))
    assert not w.is_expired


def test_activity_reason_wins_when_both_apply():
    w = _window(30, stated_expiry_date=date(2026, 3, 1))
    assert w.expiry_reason == "activity"


def test_stated_expiry_as_datetime_is_an_instant():
    now = REF + timedelta(hours=2)
    assert is_past_stated_expiry(now - timedelta(minutes=1), now)
    assert not is_past_stated_expiry(now + timedelta(minutes=1), now)
    assert not is_past_stated_expiry(None, now)


def test_naive_datetimes_are_utc():
    naive_ref = datetime(2026, 3, 2, 8, 0)
    aware = _window(10)
    naive = compute_usability_window("Tc-99m", 1000.0, 100.0, naive_ref, naive_ref + timedelta(hours=10))
    assert aware.hours_remaining == naive.hours_remaining
    assert aware.expiry_time == naive.expiry_time


def test_before_calibration_window_includes_waiting_time():
    w = _window(-2)
    assert w.hours_remaining == round(T_MIN + 2, 2)
    assert w.current_activity == 1000.0


def test_default_now_is_current_time():
    ref = datetime.now(timezone.utc) - timedelta(hours=40)
    w = compute_usability_window("Tc-99m", 1000.0, 100.0, ref)
    assert w.is_expired


@pytest.mark.parametrize("minimum", [0, -1.0])
def test_invalid_threshold(minimum):
    with pytest.raises(InvalidThreshold):
        compute_usability_window("Tc-99m", 1000.0, minimum, REF, REF)


def test_threshold_too_small_to_represent():
    # ln(A0 / Amin) stays finite, the activity ratio does not
    with pytest.raises(InvalidThreshold):
        compute_usability_window("Tc-99m", 1000.0, 1e-310, REF, REF)


def test_tiny_threshold_far_expiry():
    w = compute_usability_window("Tc-99m", 1000.0, 1e-200, REF, REF)
    assert not w.is_expired
    assert w.hours_remaining > 3000


@pytest.mark.parametrize("initial", [0, -100.0])
def test_invalid_initial_activity(initial):
    with pytest.raises(InvalidActivity):
        compute_usability_window("Tc-99m", initial, 100.0, REF, REF)


def test_unknown_isotope():
    with pytest.raises(UnknownIsotope):
        compute_usability_window("Xx-1", 1000.0, 100.0, REF, REF)
