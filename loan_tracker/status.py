"""
Loan Status Engine

Derives a loan's lifecycle label from its schedule. Status is a view over
the schedule and is recomputed after every mutation, never stored as
independent truth.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Sequence

from .models import Installment, LoanStatus


@dataclass(frozen=True)
class LoanStatusView:
    """Result of a status evaluation"""
    status: LoanStatus
    next_due_date: Optional[date]

    def __iter__(self):
        # Allows `status, next_due = evaluate_status(...)`
        yield self.status
        yield self.next_due_date


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def next_due_date(schedule: Sequence[Installment], paid_installments: int) -> Optional[date]:
    """Due date of installment paid_installments+1 when it is still pending"""
    index = paid_installments
    if 0 <= index < len(schedule) and not schedule[index].is_paid:
        return schedule[index].due_date
    return None


def evaluate_status(
    schedule: Sequence[Installment],
    paid_installments: int,
    today: date
) -> LoanStatusView:
    """
    Compute (status, next_due_date)

    Args:
        schedule: Installments ordered by number
        paid_installments: Count of installments settled in order
        today: Current date (time of day is ignored)

    Returns:
        LoanStatusView
    """
    upcoming = next_due_date(schedule, paid_installments)

    if paid_installments >= len(schedule):
        return LoanStatusView(LoanStatus.COMPLETED, upcoming)

    if upcoming is not None and _as_date(upcoming) < _as_date(today):
        return LoanStatusView(LoanStatus.OVERDUE, upcoming)

    return LoanStatusView(LoanStatus.ACTIVE, upcoming)


def days_overdue(next_due: Optional[date], today: date) -> int:
    """Whole days past the next due date (0 when not overdue)"""
    if next_due is None:
        return 0
    return max(0, (_as_date(today) - _as_date(next_due)).days)
