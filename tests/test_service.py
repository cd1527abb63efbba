"""
Unit tests for the simulation service layer.
Validates plan-vs-baseline comparison and scenario document import/export.
"""
import json
from datetime import date

import pytest

from waterfall.core.config import settings
from waterfall.simulation.schemas import Debt, ScenarioDocument
from waterfall.simulation.service import (
    ScenarioFormatError,
    compare_scenarios,
    default_scenario,
    dump_scenario,
    load_scenario,
    month_label,
    run_scenario,
    total_minimum_payments,
)


def single_debt_document() -> ScenarioDocument:
    return ScenarioDocument.model_validate({
        "debts": [{"id": "1", "name": "Card", "balance": 1200, "apr": 12,
                   "minPaymentPercent": 2, "minPaymentFlat": 25}],
        "startDate": "2026-01-01",
        "injections": [],
        "monthlyBudget": 100,
        "budgetChanges": [],
    })


def test_default_scenario_contents():
    document = default_scenario(date(2026, 1, 1))

    assert len(document.debts) == 15
    assert document.monthly_budget == settings.DEFAULT_MONTHLY_BUDGET
    assert len(document.injections) == 1
    assert document.injections[0].amount == settings.DEFAULT_LUMP_SUM
    assert document.injections[0].date == date(2026, 1, 1)
    assert document.budget_changes == []


def test_dump_uses_export_format():
    exported = json.loads(dump_scenario(default_scenario(date(2026, 1, 1))))

    assert set(exported) == {"debts", "startDate", "injections", "monthlyBudget", "budgetChanges"}
    assert exported["startDate"] == "2026-01-01"
    assert exported["debts"][0]["minPaymentPercent"] == 2
    assert exported["debts"][4]["promoExpiry"] == "2026-06"


def test_exported_scenario_loads_back():
    original = default_scenario(date(2026, 1, 1))

    assert load_scenario(dump_scenario(original)) == original


@pytest.mark.parametrize("raw, message", [
    ("{not json", "not valid JSON"),
    ("[1, 2, 3]", "must be a JSON object"),
    ('{"debts": [], "monthlyBudget": 100}', "startDate"),
    ('{"debts": [{"id": "1", "name": "X", "balance": -5, "apr": 1, "minPaymentPercent": 2, '
     '"minPaymentFlat": 25}], "startDate": "2026-01-01", "monthlyBudget": 100}', "debts.0.balance"),
])
def test_load_rejects_malformed_documents(raw: str, message: str):
    with pytest.raises(ScenarioFormatError) as exc_info:
        load_scenario(raw)

    assert message in str(exc_info.value)


def test_total_minimum_payments():
    debts = [
        Debt(id="1", name="Small", balance=1000, apr=10, min_payment_percent=2, min_payment_flat=25),
        Debt(id="2", name="Large", balance=5000, apr=10, min_payment_percent=2, min_payment_flat=25),
    ]

    assert total_minimum_payments(debts) == 125.0


@pytest.mark.parametrize("start, index, expected", [
    (date(2026, 10, 19), 0, "Oct 2026"),
    (date(2026, 10, 19), 5, "Mar 2027"),
    (date(2026, 1, 31), 12, "Jan 2027"),
])
def test_month_label(start: date, index: int, expected: str):
    assert month_label(start, index) == expected


def test_run_scenario_minimum_only_drops_injections():
    document = default_scenario(date(2026, 1, 1))

    baseline = run_scenario(document, minimum_only=True)

    assert baseline.ledger[0].payments == []


def test_compare_default_scenario():
    """The budgeted plan beats paying minimums on the sample portfolio."""
    comparison = compare_scenarios(default_scenario(date(2026, 1, 1)))
    summary = comparison.summary

    assert summary.converged is True
    assert summary.months_saved > 0
    assert summary.interest_saved > 0
    assert comparison.minimum_only.months_to_debt_free >= comparison.standard.months_to_debt_free
    assert summary.interest_saved == round(
        comparison.minimum_only.total_interest_paid - comparison.standard.total_interest_paid, 2
    )
    assert summary.payoff_month_label == month_label(
        date(2026, 1, 1), comparison.standard.months_to_debt_free
    )


def test_compare_single_debt_summary():
    comparison = compare_scenarios(single_debt_document())

    assert comparison.standard.ledger[1].remaining_total_balance == 1112.0
    assert comparison.summary.total_minimum_payments == 25.0
    assert comparison.summary.baseline_converged is True
