"""
Business logic around the simulation engine.
Runs the plan against its minimum-only baseline and handles the JSON scenario document.
"""
import json
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from waterfall.core.config import settings
from waterfall.core.logger import audit_log, logger
from waterfall.core.utils import add_months, format_month_label, round_money
from waterfall.simulation.engine import run_simulation
from waterfall.simulation.schemas import (
    ComparisonResponse,
    ComparisonSummary,
    Debt,
    LumpSum,
    ScenarioDocument,
    SimulationResults,
)


class ScenarioFormatError(ValueError):
    """Raised when a scenario document cannot be parsed or fails validation."""


SAMPLE_DEBTS: List[Dict[str, Any]] = [
    {"id": "1", "name": "BOA1", "balance": 6500, "apr": 20, "minPaymentPercent": 2, "minPaymentFlat": 25},
    {"id": "2", "name": "P LOAN", "balance": 9743, "apr": 16, "minPaymentPercent": 2, "minPaymentFlat": 25},
    {"id": "3", "name": "A. EXP", "balance": 3000, "apr": 28, "minPaymentPercent": 2, "minPaymentFlat": 25},
    {"id": "4", "name": "DCU2", "balance": 23000, "apr": 12.5, "minPaymentPercent": 2, "minPaymentFlat": 25},
    {"id": "5", "name": "US B", "balance": 4800, "apr": 24.9, "minPaymentPercent": 2, "minPaymentFlat": 25,
     "promoApr": 0, "promoExpiry": "2026-06"},
    {"id": "6", "name": "Sap1", "balance": 8500, "apr": 26, "minPaymentPercent": 2, "minPaymentFlat": 25},
    {"id": "7", "name": "CITI", "balance": 1500, "apr": 21.24, "minPaymentPercent": 2, "minPaymentFlat": 25},
    {"id": "8", "name": "Sap2", "balance": 1500, "apr": 26, "minPaymentPercent": 2, "minPaymentFlat": 25},
    {"id": "9", "name": "W FARGO", "balance": 5500, "apr": 24.9, "minPaymentPercent": 2, "minPaymentFlat": 25,
     "promoApr": 0, "promoExpiry": "2027-07"},
    {"id": "10", "name": "Disco", "balance": 28300, "apr": 14.74, "minPaymentPercent": 2, "minPaymentFlat": 25},
    {"id": "11", "name": "BOA2", "balance": 10100, "apr": 20, "minPaymentPercent": 2, "minPaymentFlat": 25},
    {"id": "12", "name": "Fidel", "balance": 12200, "apr": 18, "minPaymentPercent": 2, "minPaymentFlat": 25,
     "promoApr": 0, "promoExpiry": "2026-07"},
    {"id": "13", "name": "DCU1", "balance": 19000, "apr": 12.5, "minPaymentPercent": 2, "minPaymentFlat": 25},
    {"id": "14", "name": "RED", "balance": 2000, "apr": 12.5, "minPaymentPercent": 2, "minPaymentFlat": 25},
    {"id": "15", "name": "New Disco", "balance": 7700, "apr": 24.9, "minPaymentPercent": 2, "minPaymentFlat": 25,
     "promoApr": 0, "promoExpiry": "2026-12"},
]


def default_scenario(start_date: Optional[date] = None) -> ScenarioDocument:
    """Sample portfolio with a single lump sum on the start date."""
    start = start_date or date.today()
    return ScenarioDocument(
        debts=[Debt.model_validate(d) for d in SAMPLE_DEBTS],
        start_date=start,
        injections=[LumpSum(id="initial-1", amount=settings.DEFAULT_LUMP_SUM, date=start)],
        monthly_budget=settings.DEFAULT_MONTHLY_BUDGET,
        budget_changes=[],
    )


def load_scenario(raw: str) -> ScenarioDocument:
    """
    Parses an exported scenario document.
    Raises ScenarioFormatError with a readable message on malformed JSON or invalid fields.
    """
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ScenarioFormatError(f"Scenario is not valid JSON: {e.msg}") from e

    if not isinstance(payload, dict):
        raise ScenarioFormatError("Scenario must be a JSON object")

    try:
        return ScenarioDocument.model_validate(payload)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ScenarioFormatError(f"Invalid scenario: {errors}") from e


def dump_scenario(document: ScenarioDocument) -> str:
    """Serializes a scenario in the export format (camelCase keys, 2-space indent)."""
    return json.dumps(document.model_dump(mode="json", by_alias=True), indent=2)


def month_label(start_date: date, month_index: int) -> str:
    """Calendar label of ledger month `month_index` (month 0 is the start month)."""
    return format_month_label(add_months(start_date, month_index))


def total_minimum_payments(debts: Sequence[Debt]) -> float:
    """Sum of the minimums currently due, before any interest accrues."""
    return round_money(sum(
        max(d.min_payment_flat, d.balance * d.min_payment_percent / 100) for d in debts
    ))


def run_scenario(document: ScenarioDocument, minimum_only: bool = False) -> SimulationResults:
    """Runs the engine on a validated document."""
    return run_simulation(
        document.debts,
        [] if minimum_only else document.injections,
        document.monthly_budget,
        document.budget_changes,
        document.start_date,
        minimum_only,
    )


def _converged(results: SimulationResults) -> bool:
    return results.ledger[-1].remaining_total_balance <= 0


def compare_scenarios(document: ScenarioDocument, correlation_id: Optional[str] = None) -> ComparisonResponse:
    """
    Runs the budgeted plan and the minimum-only baseline on the same inputs.
    The summary reports what the plan saves relative to the baseline.
    """
    standard = run_scenario(document)
    baseline = run_scenario(document, minimum_only=True)

    summary = ComparisonSummary(
        interest_saved=round_money(baseline.total_interest_paid - standard.total_interest_paid),
        months_saved=baseline.months_to_debt_free - standard.months_to_debt_free,
        total_minimum_payments=total_minimum_payments(document.debts),
        payoff_month_label=month_label(document.start_date, standard.ledger[-1].month),
        converged=_converged(standard),
        baseline_converged=_converged(baseline),
    )

    logger.info(
        f"Scenario compared: months={standard.months_to_debt_free} vs {baseline.months_to_debt_free}, "
        f"interest_saved={summary.interest_saved}"
    )

    audit_log(
        action="scenario_comparison",
        user="system",
        resource="simulation",
        details={
            "correlation_id": correlation_id,
            "debts": len(document.debts),
            "initial_balance": standard.initial_balance,
            "months_to_debt_free": standard.months_to_debt_free,
            "interest_saved": summary.interest_saved,
        }
    )

    return ComparisonResponse(standard=standard, minimum_only=baseline, summary=summary)
