from decimal import Decimal

from yardgate.services.weight_discrepancy import compute_discrepancy, summarize


def test_summary_of_weights():
    summary = summarize([Decimal("25000"), Decimal("25200"), Decimal("25100")])
    assert summary.weight_count == 3
    assert summary.total_weight == Decimal("75300")
    assert summary.average_weight == Decimal("25100")


def test_average_rounds_half_up_to_whole_units():
    assert summarize([10, 11]).average_weight == Decimal("11")
    assert summarize([10, 10, 11]).average_weight == Decimal("10")


def test_summary_of_no_weights():
    summary = summarize([])
    assert summary.weight_count == 0
    assert summary.average_weight == 0


def test_percentage_is_relative_to_invoice():
    over = compute_discrepancy(11000, 10000, 5)
    assert over.difference == Decimal("1000")
    assert over.percentage_diff == Decimal("9.09")
    assert over.exceeds_threshold is True

    under = compute_discrepancy(26000, 25000, 5)
    assert under.difference == Decimal("1000")
    assert under.percentage_diff == Decimal("3.85")
    assert under.exceeds_threshold is False


def test_heavier_than_invoice_blocks():
    result = compute_discrepancy(28000, 31000, 5)
    assert result.percentage_diff == Decimal("10.71")
    assert result.exceeds_threshold is True


def test_exactly_at_threshold_does_not_block():
    result = compute_discrepancy(20000, 21000, 5)
    assert result.percentage_diff == Decimal("5.00")
    assert result.exceeds_threshold is False


def test_threshold_uses_unrounded_percentage():
    # 5.004% rounds to 5.00 but is still over a 5% threshold
    result = compute_discrepancy(Decimal("100000"), Decimal("105004"), 5)
    assert result.percentage_diff == Decimal("5.00")
    assert result.exceeds_threshold is True


def test_no_invoice_weight_means_no_comparison():
    assert compute_discrepancy(None, 25000, 5) is None
    assert compute_discrepancy(0, 25000, 5) is None


def test_zero_threshold_blocks_any_difference():
    assert compute_discrepancy(25000, 25001, 0).exceeds_threshold is True
    assert compute_discrepancy(25000, 25000, 0).exceeds_threshold is False


def test_three_readings_against_a_heavier_invoice():
    summary = summarize([100, 102, 98])
    assert summary.average_weight == Decimal("100")
    assert summary.total_weight == Decimal("300")

    result = compute_discrepancy(112, summary.average_weight, 5)
    assert result.difference == Decimal("12")
    assert result.percentage_diff == Decimal("10.71")
    assert result.exceeds_threshold is True
