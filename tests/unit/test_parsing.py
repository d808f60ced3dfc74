"""Tests for lenient money/date parsing helpers."""

from __future__ import annotations

from datetime import date

import pytest

from policy_scout.parsing import (
    clamp,
    format_money,
    normalize_name,
    SplitLimits,
    parse_date,
    parse_limits,
    parse_money,
    round_half_up,
    slugify,
)


class TestParseMoney:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("$25,000", 25000.0),
            ("25,000/50,000", 25000.0),
            (" 1,234.50 ", 1234.5),
            (500, 500.0),
            (2.5, 2.5),
        ],
    )
    def test_parses_common_formats(self, raw, expected):
        assert parse_money(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "n/a", "unlimited", True])
    def test_unparseable_defaults_to_zero(self, raw):
        assert parse_money(raw) == 0.0

    def test_custom_default(self):
        assert parse_money("see schedule", default=50000) == 50000


class TestParseLimits:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("100/300/50", SplitLimits(100_000, 300_000, 50_000)),
            ("$25,000/$50,000", SplitLimits(25_000, 50_000, 0)),
            ("250k/500k", SplitLimits(250_000, 500_000, 0)),
            ("$300,000", SplitLimits(300_000, 0, 0)),
            (500, SplitLimits(500, 0, 0)),
        ],
    )
    def test_split_formats(self, raw, expected):
        assert parse_limits(raw) == expected

    def test_single_small_amount_is_not_shorthand(self):
        assert parse_limits("500").per_person == 500

    @pytest.mark.parametrize("raw", [None, "", "see schedule", True])
    def test_unparseable_is_empty(self, raw):
        assert parse_limits(raw) == SplitLimits()


class TestParseDate:
    def test_iso(self):
        assert parse_date("2024-03-15") == date(2024, 3, 15)

    def test_us_format(self):
        assert parse_date("03/15/2024") == date(2024, 3, 15)

    def test_long_format(self):
        assert parse_date("March 15, 2024") == date(2024, 3, 15)

    def test_garbage_is_none(self):
        assert parse_date("sometime last spring") is None
        assert parse_date("") is None
        assert parse_date(None) is None


class TestNumericHelpers:
    def test_round_half_up(self):
        assert round_half_up(63.5) == 64
        assert round_half_up(62.5) == 63
        assert round_half_up(63.49) == 63

    def test_clamp(self):
        assert clamp(-5) == 0
        assert clamp(150) == 100
        assert clamp(0.5, 0.0, 1.0) == 0.5


class TestNames:
    def test_slugify(self):
        assert slugify("Uninsured/Underinsured Motorist") == "uninsured-underinsured-motorist"

    def test_normalize_name_drops_punctuation(self):
        assert normalize_name("Bodily-Injury Liability!") == "bodilyinjuryliability"

    def test_format_money(self):
        assert format_money(25000) == "$25,000"
