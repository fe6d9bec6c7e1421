from datetime import datetime, timedelta, timezone

from yardgate.models.truck import MaterialType
from yardgate.schemas.settings import TATSettingsData
from yardgate.services.turnaround import TATStatus, classify, evaluate_tat, ideal_tat_minutes

ARRIVED = datetime(2026, 10, 19, 6, 0, tzinfo=timezone.utc)
TAT = TATSettingsData(fg_tat=120, rm_tat=180, pm_tat=240, default_tat=200, warning_threshold=20, critical_threshold=50)


def test_ideal_tat_by_material_type():
    assert ideal_tat_minutes(MaterialType.FG.value, TAT) == 120
    assert ideal_tat_minutes(MaterialType.RM.value, TAT) == 180
    assert ideal_tat_minutes(MaterialType.PM.value, TAT) == 240
    assert ideal_tat_minutes(MaterialType.OTHER.value, TAT) == 200


def test_classification_boundaries():
    assert classify(19.99, TAT) == TATStatus.NORMAL
    assert classify(20, TAT) == TATStatus.WARNING
    assert classify(49.99, TAT) == TATStatus.WARNING
    assert classify(50, TAT) == TATStatus.CRITICAL


def test_fast_truck_is_normal():
    result = evaluate_tat(ARRIVED, ARRIVED + timedelta(minutes=90), MaterialType.FG.value, TAT)
    assert result.actual_minutes == 90
    assert result.percentage_over == -25.0
    assert result.status == TATStatus.NORMAL


def test_slow_truck_is_critical():
    result = evaluate_tat(ARRIVED, ARRIVED + timedelta(minutes=270), MaterialType.RM.value, TAT)
    assert result.ideal_minutes == 180
    assert result.percentage_over == 50.0
    assert result.status == TATStatus.CRITICAL


def test_naive_timestamps_are_treated_as_utc():
    naive_exit = (ARRIVED + timedelta(minutes=150)).replace(tzinfo=None)
    result = evaluate_tat(ARRIVED, naive_exit, MaterialType.FG.value, TAT)
    assert result.percentage_over == 25.0
    assert result.status == TATStatus.WARNING
