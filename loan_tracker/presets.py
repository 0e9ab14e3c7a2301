"""
Loan Presets

Quick-fill term templates for common loan products. A preset supplies the
rate, duration and interest type; the borrower supplies principal and start
date.
"""

from decimal import Decimal
from datetime import date
from dataclasses import dataclass
from typing import Dict, Optional

from .exceptions import UnknownPresetError
from .models import CompoundingFrequency, DurationUnit, InterestType, LoanTerms


@dataclass(frozen=True)
class LoanPreset:
    """Template for LoanTerms without principal or start date"""
    name: str
    annual_rate_percent: Decimal
    duration: int
    duration_unit: DurationUnit
    interest_type: InterestType
    compounding_frequency: Optional[CompoundingFrequency] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            'name': self.name,
            'annual_rate_percent': str(self.annual_rate_percent),
            'duration': self.duration,
            'duration_unit': self.duration_unit.value,
            'interest_type': self.interest_type.value,
            'compounding_frequency': (
                self.compounding_frequency.value if self.compounding_frequency else None
            ),
        }


PRESETS: Dict[str, LoanPreset] = {
    'personal_loan': LoanPreset(
        'personal_loan', Decimal('12'), 3, DurationUnit.YEARS, InterestType.SIMPLE
    ),
    'home_loan': LoanPreset(
        'home_loan', Decimal('8.5'), 20, DurationUnit.YEARS, InterestType.COMPOUND,
        CompoundingFrequency.MONTHLY
    ),
    'agriculture_loan': LoanPreset(
        'agriculture_loan', Decimal('7'), 5, DurationUnit.YEARS, InterestType.SIMPLE
    ),
    'gold_loan': LoanPreset(
        'gold_loan', Decimal('10'), 12, DurationUnit.MONTHS, InterestType.SIMPLE
    ),
}


def get_preset(name: str) -> LoanPreset:
    try:
        return PRESETS[name]
    except KeyError:
        raise UnknownPresetError(name)


def terms_from_preset(name: str, principal, start_date: date) -> LoanTerms:
    """Build LoanTerms from a named preset"""
    preset = get_preset(name)
    return LoanTerms(
        principal=principal,
        annual_rate_percent=preset.annual_rate_percent,
        duration=preset.duration,
        duration_unit=preset.duration_unit,
        interest_type=preset.interest_type,
        start_date=start_date,
        compounding_frequency=preset.compounding_frequency,
    )
