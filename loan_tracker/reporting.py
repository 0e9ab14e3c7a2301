"""
Portfolio Reporting Module

Aggregate views over a set of loan records: portfolio summary, interest
analysis, recent payment history and due-date reminders. Functions here only read records;
the caller is expected to pass records whose status is current.
"""

from decimal import Decimal
from datetime import date, timedelta
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .currency import ZERO, round_money
from .models import InterestType, LoanRecord, LoanStatus
from .status import days_overdue


@dataclass
class PortfolioSummary:
    """Totals across a set of loans"""
    total_loans: int = 0
    active_loans: int = 0
    overdue_loans: int = 0
    completed_loans: int = 0
    total_principal: Decimal = ZERO
    total_interest: Decimal = ZERO
    total_remaining: Decimal = ZERO
    total_paid: Decimal = ZERO
    average_rate_percent: Decimal = ZERO
    next_due_date: Optional[date] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_loans': self.total_loans,
            'active_loans': self.active_loans,
            'overdue_loans': self.overdue_loans,
            'completed_loans': self.completed_loans,
            'total_principal': str(self.total_principal),
            'total_interest': str(self.total_interest),
            'total_remaining': str(self.total_remaining),
            'total_paid': str(self.total_paid),
            'average_rate_percent': str(self.average_rate_percent),
            'next_due_date': self.next_due_date.isoformat() if self.next_due_date else None,
        }


@dataclass
class PaymentHistoryEntry:
    """One paid installment, flattened for history listings"""
    loan_id: str
    loan_name: str
    installment_number: int
    due_date: date
    paid_date: date
    paid_amount: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            'loan_id': self.loan_id,
            'loan_name': self.loan_name,
            'installment_number': self.installment_number,
            'due_date': self.due_date.isoformat(),
            'paid_date': self.paid_date.isoformat(),
            'paid_amount': str(self.paid_amount),
        }


@dataclass
class DueReminders:
    """Loans grouped by how urgently the next installment is due"""
    due_today: List[LoanRecord] = field(default_factory=list)
    due_soon: List[LoanRecord] = field(default_factory=list)
    overdue: List[LoanRecord] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.due_today or self.due_soon or self.overdue)

    def to_dict(self, today: date) -> Dict[str, Any]:
        def brief(loan: LoanRecord) -> Dict[str, Any]:
            return {
                'loan_id': loan.id,
                'loan_name': loan.details.loan_name,
                'next_due_date': loan.next_due_date.isoformat() if loan.next_due_date else None,
                'installment_amount': str(loan.amortization.installment_amount),
                'days_overdue': days_overdue(loan.next_due_date, today),
            }

        return {
            'due_today': [brief(loan) for loan in self.due_today],
            'due_soon': [brief(loan) for loan in self.due_soon],
            'overdue': [brief(loan) for loan in self.overdue],
        }


@dataclass
class InterestAnalysis:
    """Interest split by calculation method, with the rate range"""
    simple_loans: int = 0
    compound_loans: int = 0
    highest_rate_percent: Decimal = ZERO
    lowest_rate_percent: Decimal = ZERO
    total_interest: Decimal = ZERO
    simple_interest: Decimal = ZERO
    compound_interest: Decimal = ZERO

    def to_dict(self) -> Dict[str, Any]:
        return {
            'simple_loans': self.simple_loans,
            'compound_loans': self.compound_loans,
            'highest_rate_percent': str(self.highest_rate_percent),
            'lowest_rate_percent': str(self.lowest_rate_percent),
            'total_interest': str(self.total_interest),
            'interest_by_type': {
                'simple': str(self.simple_interest),
                'compound': str(self.compound_interest),
            },
        }


def summarize_portfolio(loans: Iterable[LoanRecord]) -> PortfolioSummary:
    """Count loans by status and total their amounts"""
    summary = PortfolioSummary()
    rate_total = ZERO

    for loan in loans:
        summary.total_loans += 1
        if loan.status == LoanStatus.COMPLETED:
            summary.completed_loans += 1
        elif loan.status == LoanStatus.OVERDUE:
            summary.overdue_loans += 1
        else:
            summary.active_loans += 1

        summary.total_principal += loan.terms.principal
        summary.total_interest += loan.amortization.total_interest
        summary.total_remaining += loan.remaining_amount
        summary.total_paid += loan.total_paid
        rate_total += loan.terms.annual_rate_percent

        if loan.next_due_date and (
            summary.next_due_date is None or loan.next_due_date < summary.next_due_date
        ):
            summary.next_due_date = loan.next_due_date

    summary.total_principal = round_money(summary.total_principal)
    summary.total_interest = round_money(summary.total_interest)
    summary.total_remaining = round_money(summary.total_remaining)
    summary.total_paid = round_money(summary.total_paid)
    if summary.total_loans:
        summary.average_rate_percent = round_money(rate_total / Decimal(summary.total_loans))
    return summary


def interest_analysis(loans: Iterable[LoanRecord]) -> InterestAnalysis:
    """
    Count loans per interest type and total their scheduled interest

    Both rate bounds are zero for an empty portfolio.
    """
    analysis = InterestAnalysis()
    rates = []

    for loan in loans:
        interest = loan.amortization.total_interest
        if loan.terms.interest_type == InterestType.SIMPLE:
            analysis.simple_loans += 1
            analysis.simple_interest += interest
        else:
            analysis.compound_loans += 1
            analysis.compound_interest += interest
        rates.append(loan.terms.annual_rate_percent)

    if rates:
        analysis.highest_rate_percent = max(rates)
        analysis.lowest_rate_percent = min(rates)
    analysis.simple_interest = round_money(analysis.simple_interest)
    analysis.compound_interest = round_money(analysis.compound_interest)
    analysis.total_interest = round_money(analysis.simple_interest + analysis.compound_interest)
    return analysis


def payment_history(loans: Iterable[LoanRecord], limit: Optional[int] = None) -> List[PaymentHistoryEntry]:
    """Paid installments across all loans, most recent first"""
    entries = []
    for loan in loans:
        for installment in loan.schedule:
            if not installment.is_paid:
                continue
            entries.append(PaymentHistoryEntry(
                loan_id=loan.id,
                loan_name=loan.details.loan_name,
                installment_number=installment.installment_number,
                due_date=installment.due_date,
                paid_date=installment.paid_date,
                paid_amount=installment.paid_amount,
            ))

    entries.sort(key=lambda e: (e.paid_date, e.installment_number), reverse=True)
    if limit is not None:
        entries = entries[:limit]
    return entries


def due_reminders(loans: Iterable[LoanRecord], today: date, due_soon_days: int = 1) -> DueReminders:
    """
    Group loans whose next installment needs attention

    Args:
        loans: Loan records with current status
        today: Reference date
        due_soon_days: Days after today that count as "due soon"

    Returns:
        DueReminders; completed loans never appear
    """
    reminders = DueReminders()
    horizon = today + timedelta(days=due_soon_days)

    for loan in loans:
        if loan.status == LoanStatus.COMPLETED or loan.next_due_date is None:
            continue
        if loan.status == LoanStatus.OVERDUE:
            reminders.overdue.append(loan)
        elif loan.next_due_date == today:
            reminders.due_today.append(loan)
        elif today < loan.next_due_date <= horizon:
            reminders.due_soon.append(loan)

    reminders.overdue.sort(key=lambda loan: loan.next_due_date)
    reminders.due_soon.sort(key=lambda loan: loan.next_due_date)
    return reminders
