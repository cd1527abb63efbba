"""
Unit tests for the schedule indexer and date/money helpers.
Validates month offsets, collision rules and rounding discipline.
"""
from datetime import date

import pytest

from waterfall.core.utils import add_months, format_month_label, parse_year_month, round_money
from waterfall.simulation.schedule import (
    build_schedule,
    index_budget_changes,
    index_injections,
    month_offset,
)
from waterfall.simulation.schemas import BudgetChange, LumpSum


@pytest.mark.parametrize("start, event, expected", [
    ("2026-01-15", "2026-01-31", 0),  # Same month, day ignored
    ("2026-01-15", "2026-04-01", 3),
    ("2026-11-10", "2027-02-01", 3),  # Year boundary
    ("2026-05-01", "2025-12-01", 0),  # Before start collapses onto month 0
])
def test_month_offset(start: str, event: str, expected: int):
    """Offsets count whole calendar months and never go negative."""
    assert month_offset(start, event) == expected
    assert month_offset(date.fromisoformat(start), date.fromisoformat(event)) == expected


def test_injections_on_same_month_are_summed():
    """Lump sums sharing an offset are added together."""
    injections = [
        LumpSum(id="a", amount=100.10, date=date(2026, 3, 2)),
        LumpSum(id="b", amount=200.20, date=date(2026, 3, 28)),
        LumpSum(id="c", amount=50.0, date=date(2026, 5, 1)),
    ]

    indexed = index_injections(date(2026, 1, 1), injections)

    assert indexed == {2: 300.30, 4: 50.0}


def test_injections_before_start_land_on_month_zero():
    injections = [
        LumpSum(id="a", amount=1000.0, date=date(2025, 6, 1)),
        LumpSum(id="b", amount=500.0, date=date(2026, 1, 20)),
    ]

    assert index_injections(date(2026, 1, 5), injections) == {0: 1500.0}


def test_budget_change_collision_later_entry_wins():
    """Later list entry overrides an earlier one in the same month, even with an earlier day."""
    changes = [
        BudgetChange(id="a", amount=4000.0, date=date(2026, 4, 1)),
        BudgetChange(id="b", amount=2500.0, date=date(2026, 4, 25)),
        BudgetChange(id="c", amount=3000.0, date=date(2026, 4, 10)),
    ]

    assert index_budget_changes(date(2026, 1, 1), changes) == {3: 3000.0}


def test_minimum_only_schedule_ignores_injections():
    injections = [LumpSum(id="a", amount=1000.0, date=date(2026, 2, 1))]
    changes = [BudgetChange(id="b", amount=800.0, date=date(2026, 3, 1))]

    schedule = build_schedule(date(2026, 1, 1), injections, changes, minimum_only=True)

    assert schedule.injection_at(1) == 0.0
    assert schedule.budget_change_at(2) == 800.0
    assert schedule.budget_change_at(1) is None


@pytest.mark.parametrize("value, expected", [
    (1.005, 1.01),
    (2.675, 2.68),
    (0.125, 0.13),
    (-1.005, -1.01),
    (24.24, 24.24),
    (1112.0, 1112.0),
])
def test_round_money_half_up(value: float, expected: float):
    """Rounding follows the written decimal, half away from zero."""
    assert round_money(value) == expected


@pytest.mark.parametrize("value, months, expected", [
    (date(2026, 11, 15), 3, date(2027, 2, 1)),
    (date(2026, 1, 31), 0, date(2026, 1, 1)),
    (date(2026, 1, 1), -1, date(2025, 12, 1)),
])
def test_add_months(value: date, months: int, expected: date):
    assert add_months(value, months) == expected


def test_parse_year_month():
    assert parse_year_month("2026-06") == date(2026, 6, 1)

    for bad in ["2026-13", "2026-6", "June 2026", ""]:
        with pytest.raises(ValueError):
            parse_year_month(bad)


def test_format_month_label():
    assert format_month_label(date(2029, 3, 1)) == "Mar 2029"
