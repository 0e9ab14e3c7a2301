"""
Amortization Calculator

Pure functions turning loan terms into aggregate totals: total interest,
total payable, the monthly installment (EMI) and an informational effective
annual rate. All financial math uses Decimal.

Note on compound loans: the compounding frequency drives total_amount and
total_interest only. The EMI is always the standard monthly annuity payment
at annual_rate/12, whatever the compounding frequency. This mirrors the
behaviour loans have always been recorded with and must not be changed
without product sign-off.
"""

from decimal import Decimal

from .currency import round_money
from .exceptions import InvalidTermsError
from .models import AmortizationResult, InterestType, LoanTerms

HUNDRED = Decimal('100')
MONTHS_PER_YEAR = Decimal('12')


def validate_terms(terms: LoanTerms) -> None:
    """
    Check that terms describe a computable loan

    Raises:
        InvalidTermsError: naming the first offending field
    """
    if terms.principal <= 0:
        raise InvalidTermsError('principal', terms.principal, "Principal must be positive")
    if terms.annual_rate_percent < 0:
        raise InvalidTermsError('annual_rate_percent', terms.annual_rate_percent,
                                "Interest rate cannot be negative")
    if terms.duration <= 0:
        raise InvalidTermsError('duration', terms.duration, "Duration must be positive")
    if terms.interest_type == InterestType.COMPOUND and terms.compounding_frequency is None:
        raise InvalidTermsError('compounding_frequency', None,
                                "Compound interest requires a compounding frequency")


def monthly_rate(terms: LoanTerms) -> Decimal:
    """Monthly periodic rate used for EMI and declining-balance interest"""
    return terms.annual_rate_percent / HUNDRED / MONTHS_PER_YEAR


def annuity_payment(principal: Decimal, rate: Decimal, periods: int) -> Decimal:
    """
    Standard level payment: P * r(1+r)^n / ((1+r)^n - 1)

    Falls back to straight-line repayment when the rate is zero. The result
    is not rounded.
    """
    if rate == 0:
        return principal / Decimal(periods)
    factor = (Decimal('1') + rate) ** periods
    return principal * (rate * factor) / (factor - Decimal('1'))


def _simple_totals(terms: LoanTerms):
    total_interest = terms.principal * (terms.annual_rate_percent / HUNDRED) * terms.years
    total_amount = terms.principal + total_interest
    installment = total_amount / Decimal(terms.periods)
    return total_interest, total_amount, installment


def _compound_totals(terms: LoanTerms):
    per_year = Decimal(terms.compounding_frequency.periods_per_year)
    period_rate = terms.annual_rate_percent / HUNDRED / per_year
    compound_periods = per_year * terms.years

    growth = Decimal('1') + period_rate
    if compound_periods == compound_periods.to_integral_value():
        total_amount = terms.principal * growth ** int(compound_periods)
    else:
        # e.g. quarterly compounding over a 5-month term
        total_amount = terms.principal * growth ** compound_periods
    total_interest = total_amount - terms.principal
    installment = annuity_payment(terms.principal, monthly_rate(terms), terms.periods)
    return total_interest, total_amount, installment


def calculate_amortization(terms: LoanTerms) -> AmortizationResult:
    """
    Compute aggregate totals for a loan

    Args:
        terms: Loan terms

    Returns:
        AmortizationResult with monetary values rounded half-up to 2 places

    Raises:
        InvalidTermsError: if the terms fail validation
    """
    validate_terms(terms)

    if terms.interest_type == InterestType.SIMPLE:
        total_interest, total_amount, installment = _simple_totals(terms)
    else:
        total_interest, total_amount, installment = _compound_totals(terms)

    effective_rate = (total_amount / terms.principal - Decimal('1')) / terms.years * HUNDRED

    return AmortizationResult(
        total_interest=round_money(total_interest),
        total_amount=round_money(total_amount),
        installment_amount=round_money(installment),
        effective_annual_rate_percent=round_money(effective_rate),
    )
