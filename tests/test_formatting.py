"""
Tests for display formatting: utils/formatting.py and the template date filter.
"""
import sys
from datetime import date
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from chanda.templating import format_date
from utils.formatting import (
    MASKED_AMOUNT,
    collection_class,
    collection_label,
    collection_percent,
    format_inr,
    format_percent,
    payment_mode_badge,
    percent_diff_class,
    percent_diff_label,
    round_half_up,
    rounded_axis_max,
)


class TestFormatInr:
    @pytest.mark.parametrize("value,expected", [
        (0, "₹ 0"),
        (500, "₹ 500"),
        (1000, "₹ 1,000"),
        (100000, "₹ 1,00,000"),
        (1234567, "₹ 12,34,567"),
        (500.5, "₹ 500.50"),
        (-2500, "₹ -2,500"),
    ])
    def test_grouping(self, value, expected):
        assert format_inr(value) == expected

    def test_precision(self):
        assert format_inr(2500, precision=2) == "₹ 2,500.00"

    def test_without_symbol(self):
        assert format_inr(1500, symbol=False) == "1,500"

    @pytest.mark.parametrize("value", [None, "abc", float("nan")])
    def test_missing(self, value):
        assert format_inr(value) == "-"

    def test_masked_amount(self):
        assert MASKED_AMOUNT == "₹ *****"


class TestPercent:
    def test_format_percent(self):
        assert format_percent(42.5) == "42.5%"
        assert format_percent(None) == "-"

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(2.4) == 2

    def test_diff_label(self):
        assert percent_diff_label(0) == "✔ Fully Paid"
        assert percent_diff_label(-68.76) == "-68.76 %"
        assert percent_diff_label(None) == "-"

    def test_diff_class(self):
        assert percent_diff_class(0) == "diff-settled"
        assert percent_diff_class(10) == "diff-ahead"
        assert percent_diff_class(-10) == "diff-behind"


class TestCollection:
    def test_percent(self):
        assert collection_percent(500, 1000) == 50
        assert collection_percent(1, 3) == 33
        assert collection_percent(2100, 2100) == 100

    def test_nothing_pledged(self):
        assert collection_percent(500, 0) == 0
        assert collection_percent(500, None) == 0

    def test_class_and_label(self):
        assert collection_class(0) == "progress-none"
        assert collection_class(40) == "progress-partial"
        assert collection_class(120) == "progress-full"
        assert collection_label(100) == "✔ Fully Collected"
        assert collection_label(31) == "31% Collected"


class TestBadgesAndCharts:
    def test_payment_mode_badge(self):
        assert payment_mode_badge("Cash") == "badge-cash"
        assert payment_mode_badge(" upi ") == "badge-upi"
        assert payment_mode_badge("Bank Transfer") == "badge-bank"
        assert payment_mode_badge(None) == "badge-other"

    def test_rounded_axis_max(self):
        assert rounded_axis_max([1600.5, 2100]) == 10000
        assert rounded_axis_max([25000]) == 30000
        assert rounded_axis_max([]) == 0


class TestFormatDate:
    def test_date_object(self):
        assert format_date(date(2025, 9, 30)) == "30 Sep 2025"

    def test_iso_datetime_string(self):
        assert format_date("2025-09-25T00:00:00") == "25 Sep 2025"

    def test_blank_and_unparseable(self):
        assert format_date(None) == "-"
        assert format_date("") == "-"
        assert format_date("soon") == "soon"
