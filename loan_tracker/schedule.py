"""
Schedule Builder

Builds the monthly payment schedule for a loan: one installment per month,
due on the start date's day-of-month (clamped to month end), with the
principal/interest split for each period.

Each installment is rounded on its own. The final installment does not
absorb accumulated rounding drift, so the last remaining balance may differ
from zero by a few cents.
"""

from decimal import Decimal
from datetime import date
from typing import List
import calendar

from .calculator import monthly_rate
from .currency import ZERO, round_money
from .models import AmortizationResult, Installment, InterestType, LoanTerms


def add_months(start_date: date, months: int) -> date:
    """Add months to a date, handling month-end edge cases"""
    month = start_date.month - 1 + months
    year = start_date.year + month // 12
    month = month % 12 + 1
    day = min(start_date.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def due_dates(start_date: date, periods: int) -> List[date]:
    """Due dates one month apart, the first one month after start_date"""
    # Always offset from the start date so a short month does not pull
    # every later due date back (Jan 31 -> Feb 29 -> Mar 31)
    return [add_months(start_date, offset) for offset in range(1, periods + 1)]


def build_schedule(terms: LoanTerms, result: AmortizationResult) -> List[Installment]:
    """
    Generate the installment schedule

    Args:
        terms: Loan terms
        result: Totals from calculate_amortization for the same terms

    Returns:
        Installments ordered by installment_number, all pending
    """
    periods = terms.periods
    installment_amount = result.installment_amount
    rate = monthly_rate(terms)
    flat_interest = round_money(result.total_interest / Decimal(periods))

    schedule = []
    remaining = round_money(terms.principal)

    for number, due_date in enumerate(due_dates(terms.start_date, periods), start=1):
        if terms.interest_type == InterestType.SIMPLE:
            interest = flat_interest
        else:
            # Declining balance at the monthly rate
            interest = round_money(remaining * rate)

        principal_part = round_money(installment_amount - interest)
        remaining = max(ZERO, round_money(remaining - principal_part))

        schedule.append(Installment(
            installment_number=number,
            due_date=due_date,
            installment_amount=installment_amount,
            principal_component=principal_part,
            interest_component=interest,
            remaining_principal_after=remaining,
        ))

    return schedule


def maturity_date(terms: LoanTerms) -> date:
    """Due date of the final installment"""
    return add_months(terms.start_date, terms.periods)
