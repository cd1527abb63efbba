"""
Pydantic schemas for debt portfolios, payment schedules and simulation ledgers.
Acts as the validation boundary in front of the simulation engine.
"""
import datetime
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from waterfall.core.utils import parse_year_month


class Debt(BaseModel):
    """A single interest-bearing account."""
    id: str = Field(..., min_length=1, description="Stable identifier")
    name: str = Field(..., min_length=1, description="Display name")
    balance: float = Field(..., ge=0, description="Current balance")
    apr: float = Field(..., ge=0, description="Annual percentage rate (20 = 20%)")
    min_payment_percent: float = Field(
        ..., ge=0, le=100, alias="minPaymentPercent", description="Minimum due as percent of balance"
    )
    min_payment_flat: float = Field(..., ge=0, alias="minPaymentFlat", description="Minimum due floor")
    promo_apr: Optional[float] = Field(None, ge=0, alias="promoApr", description="Promotional APR")
    promo_expiry: Optional[str] = Field(None, alias="promoExpiry", description="Last promo month (YYYY-MM)")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator('promo_expiry')
    @classmethod
    def validate_promo_expiry(cls, v: Optional[str]) -> Optional[str]:
        """Empty strings mean no promo window; anything else must be a real year-month."""
        if v is None or not v.strip():
            return None
        parse_year_month(v)
        return v.strip()


class LumpSum(BaseModel):
    """One-time extra payment."""
    id: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0, description="Payment amount")
    date: datetime.date = Field(..., description="Effective date (YYYY-MM-DD)")


class BudgetChange(BaseModel):
    """New recurring monthly budget from a given date."""
    id: str = Field(..., min_length=1)
    amount: float = Field(..., ge=0, description="New monthly budget")
    date: datetime.date = Field(..., description="Effective date (YYYY-MM-DD)")


class ScenarioDocument(BaseModel):
    """
    Flat document holding the five simulation inputs.
    Matches the JSON export format: camelCase keys on the wire.
    """
    debts: List[Debt] = Field(default_factory=list)
    start_date: datetime.date = Field(..., alias="startDate")
    injections: List[LumpSum] = Field(default_factory=list)
    monthly_budget: float = Field(..., ge=0, alias="monthlyBudget")
    budget_changes: List[BudgetChange] = Field(default_factory=list, alias="budgetChanges")

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def validate_unique_debt_ids(self) -> "ScenarioDocument":
        seen = set()
        for debt in self.debts:
            if debt.id in seen:
                raise ValueError(f"Duplicate debt id '{debt.id}'")
            seen.add(debt.id)
        return self


class PaymentBreakdown(BaseModel):
    """Everything paid to one debt during one month."""
    debt_name: str
    principal: float = 0.0
    interest: float = 0.0
    total: float = 0.0


class MonthResult(BaseModel):
    """One ledger row. Month 0 is the start date, before any accrual."""
    month: int = Field(..., ge=0)
    total_interest: float
    total_principal: float
    remaining_total_balance: float
    payments: List[PaymentBreakdown] = Field(default_factory=list)
    # (debt name, balance) pairs in input debt order
    balances: List[Tuple[str, float]] = Field(default_factory=list)


class SimulationResults(BaseModel):
    """Full outcome of a simulation run."""
    months_to_debt_free: int
    total_interest_paid: float
    ledger: List[MonthResult]
    initial_balance: float


class ComparisonSummary(BaseModel):
    """Standard plan measured against the minimum-only baseline."""
    interest_saved: float = Field(..., description="Baseline interest minus plan interest")
    months_saved: int = Field(..., description="Baseline months minus plan months")
    total_minimum_payments: float = Field(..., description="Sum of current minimums due")
    payoff_month_label: str = Field(..., description="Calendar month of the last plan row")
    converged: bool = Field(..., description="Plan reaches zero within the horizon")
    baseline_converged: bool = Field(..., description="Baseline reaches zero within the horizon")


class ComparisonResponse(BaseModel):
    """Standard and minimum-only runs of the same scenario."""
    standard: SimulationResults
    minimum_only: SimulationResults
    summary: ComparisonSummary
