"""
FastAPI Router for debt payoff simulation endpoints.
Exposes the engine, the plan-vs-minimums comparison and scenario import.
"""
from datetime import date
from typing import Annotated, Optional
from uuid import uuid4

from fastapi import APIRouter, Header, HTTPException, Query, Request

from waterfall.core.logger import audit_log, get_logger_with_correlation
from waterfall.simulation.schemas import ComparisonResponse, ScenarioDocument, SimulationResults
from waterfall.simulation.service import (
    ScenarioFormatError,
    compare_scenarios,
    default_scenario,
    load_scenario,
    run_scenario,
)

router = APIRouter(tags=["Simulation"])


@router.post("/run", response_model=SimulationResults)
def run(
    document: ScenarioDocument,
    minimum_only: bool = Query(default=False, description="Pay contractual minimums only"),
    x_correlation_id: Annotated[Optional[str], Header()] = None
) -> SimulationResults:
    """
    Month-by-month payoff ledger for a scenario.

    - **debts**: Portfolio with APR, minimum rule and optional promo window
    - **injections**: One-time extra payments by date
    - **monthlyBudget** / **budgetChanges**: Recurring budget and its schedule
    - **startDate**: Month 0 of the ledger

    **Returns:** months to debt free, total interest and the full ledger.
    """
    correlation_id = x_correlation_id or str(uuid4())
    logger = get_logger_with_correlation(correlation_id)

    logger.info(
        f"Starting simulation: debts={len(document.debts)}, budget={document.monthly_budget}, "
        f"minimum_only={minimum_only}"
    )

    results = run_scenario(document, minimum_only=minimum_only)

    audit_log(
        action="debt_simulation",
        user="system",
        resource="simulation",
        details={
            "correlation_id": correlation_id,
            "minimum_only": minimum_only,
            "months_to_debt_free": results.months_to_debt_free,
            "total_interest_paid": results.total_interest_paid
        }
    )

    return results


@router.post("/compare", response_model=ComparisonResponse)
def compare(
    document: ScenarioDocument,
    x_correlation_id: Annotated[Optional[str], Header()] = None
) -> ComparisonResponse:
    """
    Runs the budgeted plan and the minimum-only baseline side by side.
    The summary reports interest and months saved by the plan.
    """
    correlation_id = x_correlation_id or str(uuid4())
    logger = get_logger_with_correlation(correlation_id)
    logger.info(f"Starting comparison: debts={len(document.debts)}")

    return compare_scenarios(document, correlation_id=correlation_id)


@router.get("/default", response_model=ScenarioDocument)
def default(start_date: Optional[date] = Query(default=None, description="Defaults to today")) -> ScenarioDocument:
    """Sample scenario, ready to be edited and posted back."""
    return default_scenario(start_date)


@router.post(
    "/import",
    response_model=ScenarioDocument,
    openapi_extra={"requestBody": {"required": True, "content": {
        "application/json": {"schema": {"type": "object"}},
        "text/plain": {"schema": {"type": "string"}},
    }}},
)
async def import_scenario(
    request: Request,
    x_correlation_id: Annotated[Optional[str], Header()] = None
) -> ScenarioDocument:
    """
    Validates a previously exported scenario document.
    The exported file is accepted as sent, whether labelled application/json or text/plain.
    Malformed documents are rejected with 422 and a readable reason.
    """
    logger = get_logger_with_correlation(x_correlation_id)
    body = await request.body()
    try:
        document = load_scenario(body.decode("utf-8"))
    except UnicodeDecodeError:
        logger.warning("Scenario import rejected: body is not UTF-8 text")
        raise HTTPException(status_code=422, detail="Scenario must be UTF-8 encoded JSON text")
    except ScenarioFormatError as e:
        logger.warning(f"Scenario import rejected: {e}")
        raise HTTPException(status_code=422, detail=str(e))

    logger.info(f"Scenario imported: debts={len(document.debts)}")
    return document
