"""
Turnaround Time (TAT)

Reporting-only classification of how long an exited truck spent in the
yard compared to the ideal time for its material type. Never gates a
transition.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum

from yardgate.models.truck import MaterialType
from yardgate.schemas.settings import TATSettingsData


class TATStatus(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class TATEvaluation:
    actual_minutes: float
    ideal_minutes: int
    percentage_over: float
    status: TATStatus


def ideal_tat_minutes(material_type: str, tat: TATSettingsData) -> int:
    if material_type == MaterialType.FG.value:
        return tat.fg_tat
    if material_type == MaterialType.RM.value:
        return tat.rm_tat
    if material_type == MaterialType.PM.value:
        return tat.pm_tat
    return tat.default_tat


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def classify(percentage_over: float, tat: TATSettingsData) -> TATStatus:
    if percentage_over >= tat.critical_threshold:
        return TATStatus.CRITICAL
    if percentage_over >= tat.warning_threshold:
        return TATStatus.WARNING
    return TATStatus.NORMAL


def evaluate_tat(
    arrived_at: datetime,
    exited_at: datetime,
    material_type: str,
    tat: TATSettingsData,
) -> TATEvaluation:
    """Minutes in the yard, percentage over ideal and the resulting status."""
    elapsed = (_aware(exited_at) - _aware(arrived_at)).total_seconds() / 60
    ideal = ideal_tat_minutes(material_type, tat)
    percentage = Decimal(str((elapsed - ideal) / ideal * 100)).quantize(
        Decimal("0.01"), rounding=ROUND_HALF_UP
    )
    percentage_over = float(percentage)
    return TATEvaluation(
        actual_minutes=round(elapsed, 2),
        ideal_minutes=ideal,
        percentage_over=percentage_over,
        status=classify(percentage_over, tat),
    )
