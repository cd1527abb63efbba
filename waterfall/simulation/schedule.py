"""
Maps calendar-dated events onto integer month offsets from the simulation start.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, Optional, Union

from waterfall.core.utils import round_money
from waterfall.simulation.schemas import BudgetChange, LumpSum

DateLike = Union[date, str]


def as_date(value: DateLike) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def month_offset(start: DateLike, event: DateLike) -> int:
    """
    Whole calendar months between start and event, ignoring the day.
    Events before the start month collapse onto month 0.
    """
    start, event = as_date(start), as_date(event)
    offset = (event.year - start.year) * 12 + (event.month - start.month)
    return max(0, offset)


def index_injections(start: DateLike, injections: Iterable[LumpSum]) -> Dict[int, float]:
    """Sums every lump sum landing on the same month offset."""
    indexed: Dict[int, float] = {}
    for injection in injections:
        offset = month_offset(start, injection.date)
        indexed[offset] = round_money(indexed.get(offset, 0.0) + injection.amount)
    return indexed


def index_budget_changes(start: DateLike, changes: Iterable[BudgetChange]) -> Dict[int, float]:
    """
    One budget per month offset. When several changes share a month,
    the one appearing later in the input list wins regardless of its day.
    """
    indexed: Dict[int, float] = {}
    for change in changes:
        indexed[month_offset(start, change.date)] = change.amount
    return indexed


@dataclass(frozen=True)
class ScheduleIndex:
    """Month-offset lookup tables consumed by the allocation loop."""
    injections: Dict[int, float] = field(default_factory=dict)
    budget_changes: Dict[int, float] = field(default_factory=dict)

    def injection_at(self, month: int) -> float:
        return self.injections.get(month, 0.0)

    def budget_change_at(self, month: int) -> Optional[float]:
        return self.budget_changes.get(month)


def build_schedule(
    start: DateLike,
    injections: Iterable[LumpSum],
    budget_changes: Iterable[BudgetChange],
    minimum_only: bool = False
) -> ScheduleIndex:
    """Indexes both schedules. Minimum-only runs never see injections."""
    return ScheduleIndex(
        injections={} if minimum_only else index_injections(start, injections),
        budget_changes=index_budget_changes(start, budget_changes),
    )
