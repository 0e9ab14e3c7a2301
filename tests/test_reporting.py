"""
Test suite for portfolio reporting

Summary totals, payment history and due-date reminders over a small
fixed portfolio.
"""

from decimal import Decimal
from datetime import date

from loan_tracker.builder import LoanRecordBuilder
from loan_tracker.clock import FixedClock
from loan_tracker.ledger import apply_payment
from loan_tracker.models import (
    CompoundingFrequency, DurationUnit, InterestType, LoanDetails, LoanStatus, LoanTerms
)
from loan_tracker.reporting import (
    due_reminders, interest_analysis, payment_history, summarize_portfolio
)


def make_terms(principal, rate, start, interest_type=InterestType.SIMPLE, frequency=None,
               duration=12, unit=DurationUnit.MONTHS):
    return LoanTerms(
        principal=Decimal(principal),
        annual_rate_percent=Decimal(rate),
        duration=duration,
        duration_unit=unit,
        interest_type=interest_type,
        start_date=start,
        compounding_frequency=frequency,
    )


class TestPortfolio:
    """Reports as of 2024-02-01"""

    def setup_method(self):
        self.today = date(2024, 2, 1)
        self.clock = FixedClock(self.today)
        builder = LoanRecordBuilder(self.clock)

        # Due today (2024-02-01)
        self.due_today = builder.build(
            make_terms('100000', '12', date(2024, 1, 1)), LoanDetails(loan_name="Car"))
        # Due 2024-02-20
        self.due_later = builder.build(
            make_terms('50000', '10', date(2024, 1, 20), duration=2, unit=DurationUnit.YEARS),
            LoanDetails(loan_name="Bike"))
        # Paid off
        self.completed = builder.build(
            make_terms('12000', '12', date(2023, 1, 1), InterestType.COMPOUND,
                       CompoundingFrequency.MONTHLY),
            LoanDetails(loan_name="Laptop"))
        for installment in list(self.completed.schedule):
            apply_payment(self.completed, installment.installment_number,
                          paid_date=installment.due_date, clock=self.clock)
        # First installment 2024-01-01 missed
        self.overdue = builder.build(
            make_terms('20000', '9', date(2023, 12, 1)), LoanDetails(loan_name="Phone"))

        self.loans = [self.due_today, self.due_later, self.completed, self.overdue]

    def test_statuses(self):
        assert self.due_today.status == LoanStatus.ACTIVE
        assert self.due_later.status == LoanStatus.ACTIVE
        assert self.completed.status == LoanStatus.COMPLETED
        assert self.overdue.status == LoanStatus.OVERDUE

    def test_summary(self):
        summary = summarize_portfolio(self.loans)

        assert summary.total_loans == 4
        assert summary.active_loans == 2
        assert summary.overdue_loans == 1
        assert summary.completed_loans == 1
        assert summary.total_principal == Decimal('182000.00')
        assert summary.total_interest == Decimal('25321.90')
        assert summary.total_paid == Decimal('12794.28')
        assert summary.total_remaining == Decimal('193800.00')
        assert summary.average_rate_percent == Decimal('10.75')
        assert summary.next_due_date == date(2024, 1, 1)

    def test_summary_to_dict(self):
        data = summarize_portfolio(self.loans).to_dict()
        assert data['total_principal'] == '182000.00'
        assert data['next_due_date'] == '2024-01-01'

    def test_empty_summary(self):
        summary = summarize_portfolio([])
        assert summary.total_loans == 0
        assert summary.average_rate_percent == Decimal('0')
        assert summary.next_due_date is None

    def test_payment_history_most_recent_first(self):
        history = payment_history(self.loans, limit=3)

        assert [entry.installment_number for entry in history] == [12, 11, 10]
        assert history[0].paid_date == date(2024, 1, 1)
        assert history[0].loan_name == "Laptop"
        assert history[0].paid_amount == Decimal('1066.19')
        assert len(payment_history(self.loans)) == 12

    def test_due_reminders(self):
        reminders = due_reminders(self.loans, self.today)

        assert [loan.id for loan in reminders.due_today] == [self.due_today.id]
        assert reminders.due_soon == []
        assert [loan.id for loan in reminders.overdue] == [self.overdue.id]
        assert not reminders.is_empty

    def test_due_soon_window(self):
        reminders = due_reminders(self.loans, self.today, due_soon_days=19)
        assert [loan.id for loan in reminders.due_soon] == [self.due_later.id]

        reminders = due_reminders(self.loans, self.today, due_soon_days=18)
        assert reminders.due_soon == []

    def test_reminders_to_dict(self):
        data = due_reminders(self.loans, self.today).to_dict(self.today)

        assert data['overdue'][0]['loan_name'] == "Phone"
        assert data['overdue'][0]['days_overdue'] == 31
        assert data['due_today'][0]['installment_amount'] == '9333.33'

    def test_completed_loans_never_remind(self):
        reminders = due_reminders([self.completed], date(2030, 1, 1), due_soon_days=365)
        assert reminders.is_empty

    def test_interest_analysis(self):
        analysis = interest_analysis(self.loans)

        assert analysis.simple_loans == 3
        assert analysis.compound_loans == 1
        assert analysis.simple_interest == Decimal('23800.00')
        assert analysis.compound_interest == Decimal('1521.90')
        assert analysis.total_interest == Decimal('25321.90')
        assert analysis.highest_rate_percent == Decimal('12')
        assert analysis.lowest_rate_percent == Decimal('9')

    def test_interest_analysis_to_dict(self):
        data = interest_analysis(self.loans).to_dict()
        assert data['interest_by_type'] == {'simple': '23800.00', 'compound': '1521.90'}
        assert data['total_interest'] == '25321.90'

    def test_empty_interest_analysis(self):
        analysis = interest_analysis([])

        assert analysis.simple_loans == analysis.compound_loans == 0
        assert analysis.highest_rate_percent == Decimal('0')
        assert analysis.lowest_rate_percent == Decimal('0')
        assert analysis.total_interest == Decimal('0.00')
