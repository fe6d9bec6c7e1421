"""
Weighbridge Discrepancy

Compares the invoice-declared weight with the average of the scale readings.
The percentage is always relative to the invoice weight.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Union

Number = Union[int, float, Decimal]

ONE = Decimal("1")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class WeightSummary:
    weight_count: int
    total_weight: Decimal
    average_weight: Decimal


@dataclass(frozen=True)
class WeightDiscrepancy:
    invoice_weight: Decimal
    actual_weight: Decimal
    difference: Decimal
    percentage_diff: Decimal
    threshold: Decimal
    exceeds_threshold: bool


def summarize(weights: Iterable[Number]) -> WeightSummary:
    """Total and whole-number average (half-up) of the recorded weights."""
    values = [_to_decimal(w) for w in weights]
    if not values:
        return WeightSummary(weight_count=0, total_weight=Decimal("0"), average_weight=Decimal("0"))
    total = sum(values, Decimal("0"))
    average = (total / len(values)).quantize(ONE, rounding=ROUND_HALF_UP)
    return WeightSummary(weight_count=len(values), total_weight=total, average_weight=average)


def compute_discrepancy(
    invoice_weight: Optional[Number],
    actual_weight: Number,
    threshold_percentage: Number,
) -> Optional[WeightDiscrepancy]:
    """
    Difference between invoice and actual (average) weight.

    Returns None when no invoice weight is given or it is zero: no comparison
    is possible and nothing blocks completion.

    ``exceeds_threshold`` compares the unrounded percentage; the reported
    ``percentage_diff`` is rounded half-up to two decimals.
    """
    if invoice_weight is None:
        return None
    invoice = _to_decimal(invoice_weight)
    if invoice == 0:
        return None
    actual = _to_decimal(actual_weight)
    threshold = _to_decimal(threshold_percentage)

    difference = abs(invoice - actual)
    raw_percentage = difference / invoice * HUNDRED
    return WeightDiscrepancy(
        invoice_weight=invoice,
        actual_weight=actual,
        difference=difference,
        percentage_diff=raw_percentage.quantize(CENT, rounding=ROUND_HALF_UP),
        threshold=threshold,
        exceeds_threshold=raw_percentage > threshold,
    )
