"""
FASE Platform
Tests — month / ISO week helpers.
"""

from datetime import date

import pytest

from fase.services.calendar_service import month_state, week_month
from fase.utils.dates import (
    add_months,
    is_past_month,
    is_valid_month,
    is_valid_week,
    iso_week,
    month_bounds,
    month_grid,
    month_label,
    week_bounds,
)


class TestMonths:
    @pytest.mark.parametrize("value", ["2025-01", "2025-12", "1999-07"])
    def test_valid(self, value):
        assert is_valid_month(value)

    @pytest.mark.parametrize("value", ["2025-13", "2025-1", "25-01", "2025/01", "", None])
    def test_invalid(self, value):
        assert not is_valid_month(value)

    def test_add_months_across_year(self):
        assert add_months("2025-11", 3) == "2026-02"
        assert add_months("2025-01", -1) == "2024-12"

    def test_bounds_leap_year(self):
        assert month_bounds("2024-02") == (date(2024, 2, 1), date(2024, 2, 29))

    def test_past_relative_to_today(self):
        today = date(2025, 6, 15)
        assert is_past_month("2025-05", today)
        assert not is_past_month("2025-06", today)

    def test_grid_is_monday_first_and_covers_month(self):
        grid = month_grid("2025-06")
        assert grid[0][0] == date(2025, 5, 26)
        assert grid[-1][-1] == date(2025, 7, 6)
        assert all(len(week) == 7 for week in grid)

    def test_label(self):
        assert month_label("2025-03") == "Marzo 2025"


class TestWeeks:
    def test_week_53_only_in_long_years(self):
        assert is_valid_week("2020-W53")
        assert not is_valid_week("2021-W53")

    def test_bounds(self):
        assert week_bounds("2025-W01") == (date(2024, 12, 30), date(2025, 1, 5))

    def test_iso_week_year_boundary(self):
        assert iso_week(date(2024, 12, 30)) == "2025-W01"

    def test_week_filed_under_thursday_month(self):
        # Mon 2024-12-30 .. Sun 2025-01-05, Thursday is 2025-01-02
        assert week_month("2025-W01") == "2025-01"
        # Mon 2025-03-31 .. Sun 2025-04-06, Thursday is 2025-04-03
        assert week_month("2025-W14") == "2025-04"


class TestMonthState:
    today = date(2025, 6, 10)

    def test_states(self):
        assert month_state("2025-05", [], self.today) == "past"
        assert month_state("2025-06", [], self.today) == "current"
        assert month_state("2025-07", [], self.today) == "future-locked"
        assert month_state("2025-07", ["2025-07"], self.today) == "future-open"
