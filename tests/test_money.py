"""Tests for integer money arithmetic and the tax-inclusive split."""

import pytest

from storefront_core.errors import AmountError
from storefront_core.money import (
    MAX_SAFE_INTEGER, compute_line_total, compute_net_amount, compute_tax_portion, ensure_amount, sum_amounts,
)


class TestComputeTaxPortion:
    def test_example_line_total_with_25_percent(self):
        assert compute_tax_portion(70000, 2500) == 14000

    def test_zero_rate_has_no_tax(self):
        assert compute_tax_portion(12345, 0) == 0

    def test_zero_total_has_no_tax(self):
        assert compute_tax_portion(0, 2500) == 0

    def test_rounds_to_nearest_minor_unit(self):
        # 99 * 2500 / 12500 = 19.8
        assert compute_tax_portion(99, 2500) == 20
        # 101 * 2500 / 12500 = 20.2
        assert compute_tax_portion(101, 2500) == 20

    def test_ties_round_half_up(self):
        # 1 * 10000 / 20000 = 0.5
        assert compute_tax_portion(1, 10000) == 1
        # 3 * 10000 / 20000 = 1.5
        assert compute_tax_portion(3, 10000) == 2

    def test_twelve_percent_rate(self):
        # 11200 * 1200 / 11200 = 1200
        assert compute_tax_portion(11200, 1200) == 1200

    @pytest.mark.parametrize("total", [0, 1, 7, 99, 1000, 35000, 70001, 123456789])
    @pytest.mark.parametrize("rate", [0, 600, 1200, 2500, 10000])
    def test_split_is_within_total_and_sums_back(self, total, rate):
        tax = compute_tax_portion(total, rate)
        net = compute_net_amount(total, rate)
        assert 0 <= tax <= total
        assert tax + net == total

    def test_rejects_float_total(self):
        with pytest.raises(AmountError):
            compute_tax_portion(100.0, 2500)

    def test_rejects_negative_rate(self):
        with pytest.raises(AmountError):
            compute_tax_portion(100, -1)


class TestComputeLineTotal:
    def test_multiplies_unit_price_by_quantity(self):
        assert compute_line_total(35000, 2) == 70000

    def test_overflow_beyond_safe_range_is_rejected(self):
        with pytest.raises(AmountError):
            compute_line_total(MAX_SAFE_INTEGER, 2)

    def test_rejects_bool_quantity(self):
        with pytest.raises(AmountError):
            compute_line_total(100, True)


class TestEnsureAmount:
    def test_accepts_safe_integer(self):
        assert ensure_amount(MAX_SAFE_INTEGER) == MAX_SAFE_INTEGER

    def test_error_carries_field_context(self):
        with pytest.raises(AmountError) as exc_info:
            ensure_amount(-5, "shipping")
        assert exc_info.value.context == {"field": "shipping", "value": -5}

    def test_sum_amounts(self):
        assert sum_amounts([1, 2, 3]) == 6
        assert sum_amounts([]) == 0
