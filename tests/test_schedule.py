"""
Test suite for the schedule builder

Checks due dates, per-installment principal/interest splits for both
interest types and the running balance.
"""

import pytest
from decimal import Decimal
from datetime import date

from loan_tracker.calculator import calculate_amortization
from loan_tracker.models import (
    CompoundingFrequency, DurationUnit, InstallmentStatus, InterestType, LoanTerms
)
from loan_tracker.schedule import add_months, build_schedule, due_dates, maturity_date


def schedule_for(**overrides):
    values = dict(
        principal=Decimal('100000'),
        annual_rate_percent=Decimal('12'),
        duration=12,
        duration_unit=DurationUnit.MONTHS,
        interest_type=InterestType.SIMPLE,
        start_date=date(2024, 1, 15),
        compounding_frequency=None,
    )
    values.update(overrides)
    terms = LoanTerms(**values)
    result = calculate_amortization(terms)
    return terms, result, build_schedule(terms, result)


class TestDueDates:
    """Monthly due dates"""

    def test_add_months_clamps_to_month_end(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
        assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)
        assert add_months(date(2024, 11, 30), 3) == date(2025, 2, 28)

    def test_due_dates_offset_from_start(self):
        """Short months do not drag later due dates back"""
        assert due_dates(date(2024, 1, 31), 3) == [
            date(2024, 2, 29), date(2024, 3, 31), date(2024, 4, 30)
        ]

    def test_first_due_date_is_one_month_after_start(self):
        _, _, schedule = schedule_for()
        assert schedule[0].due_date == date(2024, 2, 15)
        assert schedule[-1].due_date == date(2025, 1, 15)

    def test_due_dates_strictly_increase(self):
        _, _, schedule = schedule_for(duration=3, duration_unit=DurationUnit.YEARS)
        dates = [installment.due_date for installment in schedule]
        assert all(earlier < later for earlier, later in zip(dates, dates[1:]))

    def test_maturity_date(self):
        terms, _, schedule = schedule_for()
        assert maturity_date(terms) == schedule[-1].due_date


class TestScheduleShape:
    """Length, numbering and initial state"""

    @pytest.mark.parametrize("duration,unit,expected", [
        (12, DurationUnit.MONTHS, 12),
        (7, DurationUnit.MONTHS, 7),
        (5, DurationUnit.YEARS, 60),
    ])
    def test_length_matches_periods(self, duration, unit, expected):
        _, _, schedule = schedule_for(duration=duration, duration_unit=unit)
        assert len(schedule) == expected

    def test_numbering_and_initial_state(self):
        _, result, schedule = schedule_for()

        assert [i.installment_number for i in schedule] == list(range(1, 13))
        for installment in schedule:
            assert installment.status == InstallmentStatus.PENDING
            assert installment.paid_date is None
            assert installment.paid_amount == Decimal('0')
            assert installment.installment_amount == result.installment_amount


class TestSimpleSplit:
    """Simple interest spreads interest evenly"""

    def test_constant_interest_component(self):
        _, _, schedule = schedule_for()

        assert {i.interest_component for i in schedule} == {Decimal('1000.00')}
        assert {i.principal_component for i in schedule} == {Decimal('8333.33')}

    def test_running_balance_declines_to_rounding_residue(self):
        _, _, schedule = schedule_for()

        assert schedule[0].remaining_principal_after == Decimal('91666.67')
        # 12 x 8333.33 leaves four cents; the last installment is not adjusted
        assert schedule[-1].remaining_principal_after == Decimal('0.04')


class TestCompoundSplit:
    """Compound loans amortize on a declining balance"""

    def test_declining_balance_interest(self):
        _, _, schedule = schedule_for(
            principal=Decimal('12000'), interest_type=InterestType.COMPOUND,
            compounding_frequency=CompoundingFrequency.MONTHLY
        )

        first, second = schedule[0], schedule[1]
        assert first.interest_component == Decimal('120.00')
        assert first.principal_component == Decimal('946.19')
        assert first.remaining_principal_after == Decimal('11053.81')
        assert second.interest_component == Decimal('110.54')
        assert second.principal_component == Decimal('955.65')
        assert second.remaining_principal_after == Decimal('10098.16')

    def test_interest_decreases_and_principal_increases(self):
        _, _, schedule = schedule_for(
            principal=Decimal('500000'), annual_rate_percent=Decimal('8.5'),
            duration=5, duration_unit=DurationUnit.YEARS,
            interest_type=InterestType.COMPOUND,
            compounding_frequency=CompoundingFrequency.QUARTERLY
        )

        interests = [i.interest_component for i in schedule]
        principals = [i.principal_component for i in schedule]
        assert all(a >= b for a, b in zip(interests, interests[1:]))
        assert all(a <= b for a, b in zip(principals, principals[1:]))


class TestScheduleProperties:
    """Invariants that hold for every schedule"""

    CASES = [
        dict(),
        dict(principal=Decimal('75000.50'), annual_rate_percent=Decimal('9.75'),
             duration=3, duration_unit=DurationUnit.YEARS),
        dict(principal=Decimal('12000'), interest_type=InterestType.COMPOUND,
             compounding_frequency=CompoundingFrequency.MONTHLY),
        dict(principal=Decimal('500000'), annual_rate_percent=Decimal('8.5'),
             duration=5, duration_unit=DurationUnit.YEARS,
             interest_type=InterestType.COMPOUND,
             compounding_frequency=CompoundingFrequency.MONTHLY),
        dict(principal=Decimal('3000'), annual_rate_percent=Decimal('0'), duration=9,
             interest_type=InterestType.COMPOUND,
             compounding_frequency=CompoundingFrequency.YEARLY),
    ]

    @pytest.mark.parametrize("overrides", CASES)
    def test_components_add_up(self, overrides):
        _, _, schedule = schedule_for(**overrides)
        for installment in schedule:
            total = installment.principal_component + installment.interest_component
            assert abs(total - installment.installment_amount) <= Decimal('0.01')

    @pytest.mark.parametrize("overrides", CASES)
    def test_principal_components_sum_to_principal(self, overrides):
        terms, _, schedule = schedule_for(**overrides)
        tolerance = Decimal('0.01') * len(schedule)
        total_principal = sum(i.principal_component for i in schedule)
        assert abs(total_principal - terms.principal) <= tolerance

    @pytest.mark.parametrize("overrides", CASES)
    def test_remaining_principal_is_non_increasing(self, overrides):
        _, _, schedule = schedule_for(**overrides)
        balances = [i.remaining_principal_after for i in schedule]
        assert all(balance >= 0 for balance in balances)
        assert all(a >= b for a, b in zip(balances, balances[1:]))
        assert balances[-1] <= Decimal('0.01') * len(schedule)
