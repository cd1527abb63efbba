"""
Debt payoff simulation engine.
Implements month-by-month interest accrual with avalanche (highest effective APR first)
allocation of lump sums and leftover budget, on top of always-paid contractual minimums.

Pipeline: schedule indexing -> month-0 lump allocation -> monthly loop -> ledger totals.
"""
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

from waterfall.core.config import settings
from waterfall.core.logger import logger
from waterfall.core.utils import add_months, parse_year_month, round_money
from waterfall.simulation.schedule import DateLike, as_date, build_schedule
from waterfall.simulation.schemas import (
    BudgetChange,
    Debt,
    LumpSum,
    MonthResult,
    PaymentBreakdown,
    SimulationResults,
)


@dataclass
class DebtState:
    """Mutable working copy of a caller's debt, owned by a single run."""
    id: str
    name: str
    balance: float
    apr: float
    min_payment_percent: float
    min_payment_flat: float
    promo_apr: Optional[float] = None
    promo_cutoff: Optional[date] = None  # first day of the last promo month

    @classmethod
    def from_debt(cls, debt: Debt) -> "DebtState":
        return cls(
            id=debt.id,
            name=debt.name,
            balance=debt.balance,
            apr=debt.apr,
            min_payment_percent=debt.min_payment_percent,
            min_payment_flat=debt.min_payment_flat,
            promo_apr=debt.promo_apr,
            promo_cutoff=_promo_cutoff(debt),
        )

    def effective_apr(self, on: date) -> float:
        """Promo rate while `on` is not past the first day of the expiry month."""
        if self.promo_cutoff is not None and on <= self.promo_cutoff:
            return self.promo_apr or 0.0
        return self.apr

    def minimum_due(self) -> float:
        return max(self.min_payment_flat, self.balance * self.min_payment_percent / 100)

    def pay(self, amount: float) -> float:
        """Pays up to `amount`, never below a zero balance. Returns what was applied."""
        paid = round_money(min(self.balance, amount))
        self.balance = round_money(self.balance - paid)
        return paid


def _promo_cutoff(debt: Debt) -> Optional[date]:
    if not debt.promo_expiry:
        return None
    try:
        return parse_year_month(debt.promo_expiry)
    except ValueError:
        logger.warning(f"Ignoring unparseable promo expiry for debt {debt.id}: {debt.promo_expiry!r}")
        return None


class DebtBook:
    """
    Indexed working set of debts for one run.
    Debts are addressed by their position in declaration order, so two records
    sharing an id still get separate balances.
    """

    def __init__(self, debts: Sequence[Debt]):
        self._states: List[DebtState] = [DebtState.from_debt(d) for d in debts]

    def __len__(self) -> int:
        return len(self._states)

    def __getitem__(self, position: int) -> DebtState:
        return self._states[position]

    def find_by_name(self, name: str) -> Optional[int]:
        return next((i for i, s in enumerate(self._states) if s.name == name), None)

    def has_outstanding(self) -> bool:
        return any(s.balance > 0 for s in self._states)

    def total_balance(self) -> float:
        return round_money(sum(s.balance for s in self._states))

    def snapshot(self) -> List[Tuple[str, float]]:
        return [(s.name, s.balance) for s in self._states]

    def priority_order(self, on: date) -> List[int]:
        """Positions by effective APR descending; ties keep declaration order."""
        rates = [s.effective_apr(on) for s in self._states]
        return sorted(range(len(rates)), key=lambda i: rates[i], reverse=True)


class PaymentTally:
    """Merges every payment made to a debt within one ledger row."""

    def __init__(self, book: DebtBook) -> None:
        self._book = book
        self._entries: Dict[int, PaymentBreakdown] = {}

    def record(self, position: int, principal: float = 0.0, interest: float = 0.0) -> None:
        entry = self._entries.get(position)
        if entry is None:
            entry = PaymentBreakdown(debt_name=self._book[position].name)
            self._entries[position] = entry
        entry.principal = round_money(entry.principal + principal)
        entry.interest = round_money(entry.interest + interest)
        entry.total = round_money(entry.principal + entry.interest)

    def payments(self) -> List[PaymentBreakdown]:
        return [p for p in self._entries.values() if p.total > 0]

    def total_principal(self) -> float:
        return round_money(sum(p.principal for p in self.payments()))


def allocate_greedy(
    book: DebtBook,
    order: Sequence[int],
    amount: float,
    tally: PaymentTally,
    per_debt_cap: Optional[float] = None
) -> float:
    """
    Pays debts in `order`, clearing each before moving to the next.
    Returns the unspent remainder.
    """
    remaining = amount
    for position in order:
        if remaining <= 0:
            break
        state = book[position]
        if state.balance <= 0:
            continue
        ceiling = remaining if per_debt_cap is None else min(remaining, per_debt_cap)
        paid = state.pay(ceiling)
        remaining = round_money(remaining - paid)
        if paid > 0:
            tally.record(position, principal=paid)
    return remaining


def allocate_initial_lump(
    book: DebtBook,
    lump: float,
    start: date,
    forced_targets: Sequence[str],
    forced_target_cap: float
) -> MonthResult:
    """
    Month-0 allocation of a lump sum dated on (or before) the start month.

    Phase A pays the forced targets in list order, each up to `forced_target_cap`.
    Phase B pours the rest into debts by effective APR at the start date.
    """
    tally = PaymentTally(book)

    forced = [book.find_by_name(name) for name in forced_targets]
    forced = [position for position in forced if position is not None]
    remaining = allocate_greedy(book, forced, lump, tally, per_debt_cap=forced_target_cap)

    if remaining > 0:
        remaining = allocate_greedy(book, book.priority_order(start), remaining, tally)

    if remaining > 0:
        logger.info(f"Month-0 lump sum exceeds total debt, {remaining} left unallocated")

    return MonthResult(
        month=0,
        total_interest=0.0,
        total_principal=tally.total_principal(),
        remaining_total_balance=book.total_balance(),
        payments=tally.payments(),
        balances=book.snapshot(),
    )


def _accrue_and_pay_minimums(
    book: DebtBook,
    order: Sequence[int],
    on: date,
    tally: PaymentTally
) -> Tuple[float, float]:
    """
    Capitalizes this month's interest on every open debt and pays its minimum.
    Returns (interest accrued, amount paid as minimums).
    """
    interest_total = 0.0
    paid_total = 0.0
    for position in order:
        state = book[position]
        if state.balance <= 0:
            continue
        interest = round_money(state.balance * state.effective_apr(on) / 100 / 12)
        interest_total = round_money(interest_total + interest)
        state.balance = round_money(state.balance + interest)

        paid = state.pay(state.minimum_due())
        interest_part = round_money(min(paid, interest))
        tally.record(position, principal=round_money(paid - interest_part), interest=interest_part)
        paid_total = round_money(paid_total + paid)
    return interest_total, paid_total


def run_simulation(
    debts: Sequence[Debt],
    injections: Sequence[LumpSum],
    monthly_budget: float,
    budget_changes: Sequence[BudgetChange],
    start_date: DateLike,
    minimum_only: bool = False,
    *,
    forced_targets: Optional[Sequence[str]] = None,
    forced_target_cap: Optional[float] = None
) -> SimulationResults:
    """
    Simulates payoff of `debts` month by month until every balance is zero
    or the configured horizon (600 months by default) is reached.

    `minimum_only` models paying contractual minimums and nothing else: injections
    and leftover budget are never applied. Caller-owned debts are not modified.
    """
    start = as_date(start_date)
    if forced_targets is None:
        forced_targets = settings.FORCED_TARGETS
    if forced_target_cap is None:
        forced_target_cap = settings.FORCED_TARGET_CAP

    book = DebtBook(debts)
    schedule = build_schedule(start, injections, budget_changes, minimum_only)
    initial_balance = book.total_balance()

    ledger: List[MonthResult] = []
    if schedule.injection_at(0) > 0:
        ledger.append(allocate_initial_lump(book, schedule.injection_at(0), start, forced_targets, forced_target_cap))
    else:
        ledger.append(MonthResult(
            month=0,
            total_interest=0.0,
            total_principal=0.0,
            remaining_total_balance=initial_balance,
            balances=book.snapshot(),
        ))

    budget = monthly_budget
    total_interest_paid = 0.0
    months = 0

    while book.has_outstanding() and months < settings.MAX_SIMULATION_MONTHS:
        months += 1

        change = schedule.budget_change_at(months)
        if change is not None:
            budget = change

        simulated_month = add_months(start, months - 1)
        order = book.priority_order(simulated_month)
        tally = PaymentTally(book)

        interest, minimums_paid = _accrue_and_pay_minimums(book, order, simulated_month, tally)
        total_interest_paid = round_money(total_interest_paid + interest)
        remaining_budget = round_money(budget - minimums_paid)

        if not minimum_only:
            lump = schedule.injection_at(months)
            if lump > 0:
                allocate_greedy(book, order, lump, tally)
            if remaining_budget > 0:
                allocate_greedy(book, order, remaining_budget, tally)

        remaining_total = book.total_balance()
        ledger.append(MonthResult(
            month=months,
            total_interest=interest,
            total_principal=tally.total_principal(),
            remaining_total_balance=remaining_total,
            payments=tally.payments(),
            balances=book.snapshot(),
        ))

        if remaining_total <= 0:
            break

    if months >= settings.MAX_SIMULATION_MONTHS and book.has_outstanding():
        logger.warning(
            f"Simulation stopped at the {settings.MAX_SIMULATION_MONTHS}-month horizon "
            f"with {book.total_balance()} outstanding"
        )

    logger.info(
        f"Simulation calculated: debts={len(book)}, minimum_only={minimum_only}, "
        f"months={months}, interest={total_interest_paid}"
    )

    return SimulationResults(
        months_to_debt_free=months,
        total_interest_paid=total_interest_paid,
        ledger=ledger,
        initial_balance=initial_balance,
    )
