"""
Loan Data Model

Loan terms, derived amortization totals, installments and the persisted
loan record. Records serialize to plain JSON dictionaries for storage;
Decimals are written as strings and dates as ISO-8601.
"""

from decimal import Decimal
from datetime import date, datetime
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum

from .currency import ZERO, round_money, to_decimal, money_to_str, sum_money
from .exceptions import InvalidTermsError, RecordFormatError
from .storage import StorageRecord


class DurationUnit(Enum):
    """Unit of the loan duration"""
    MONTHS = "months"
    YEARS = "years"


class InterestType(Enum):
    """How interest accrues over the term"""
    SIMPLE = "simple"
    COMPOUND = "compound"


class CompoundingFrequency(Enum):
    """Compounding periods per year for compound interest"""
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"

    @property
    def periods_per_year(self) -> int:
        return {
            CompoundingFrequency.MONTHLY: 12,
            CompoundingFrequency.QUARTERLY: 4,
            CompoundingFrequency.YEARLY: 1,
        }[self]


class InstallmentStatus(Enum):
    """Settlement state of a single installment"""
    PENDING = "pending"
    PAID = "paid"


class LoanStatus(Enum):
    """Derived lifecycle label of a loan"""
    ACTIVE = "active"
    OVERDUE = "overdue"
    COMPLETED = "completed"


def _coerce_enum(enum_cls, value, field_name: str):
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidTermsError(field_name, value, f"Unsupported {field_name}: {value!r}")


def _parse_date(value) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(value)


def _require(data: Dict[str, Any], key: str, record_type: str) -> Any:
    if key not in data or data[key] is None:
        raise RecordFormatError(record_type, key)
    return data[key]


@dataclass(frozen=True)
class LoanTerms:
    """
    Loan terms as entered by the borrower.

    Values are coerced to their canonical types (Decimal, enums, date) on
    construction. Range checks are left to the calculator so that every
    entry point reports them the same way.
    """
    principal: Decimal
    annual_rate_percent: Decimal
    duration: int
    duration_unit: DurationUnit
    interest_type: InterestType
    start_date: date
    compounding_frequency: Optional[CompoundingFrequency] = None

    def __post_init__(self):
        for name in ('principal', 'annual_rate_percent'):
            value = getattr(self, name)
            try:
                object.__setattr__(self, name, to_decimal(value))
            except ValueError:
                raise InvalidTermsError(name, value)

        if isinstance(self.duration, bool) or not isinstance(self.duration, int):
            try:
                duration = int(str(self.duration))
            except ValueError:
                raise InvalidTermsError('duration', self.duration, "Duration must be a whole number")
            object.__setattr__(self, 'duration', duration)

        object.__setattr__(self, 'duration_unit',
                           _coerce_enum(DurationUnit, self.duration_unit, 'duration_unit'))
        object.__setattr__(self, 'interest_type',
                           _coerce_enum(InterestType, self.interest_type, 'interest_type'))
        object.__setattr__(self, 'compounding_frequency',
                           _coerce_enum(CompoundingFrequency, self.compounding_frequency,
                                        'compounding_frequency'))
        try:
            object.__setattr__(self, 'start_date', _parse_date(self.start_date))
        except (TypeError, ValueError):
            raise InvalidTermsError('start_date', self.start_date)
        if self.start_date is None:
            raise InvalidTermsError('start_date', None, "Start date is required")

    @property
    def periods(self) -> int:
        """Number of monthly installments"""
        if self.duration_unit == DurationUnit.MONTHS:
            return self.duration
        return self.duration * 12

    @property
    def years(self) -> Decimal:
        """Term length in years"""
        if self.duration_unit == DurationUnit.MONTHS:
            return Decimal(self.duration) / Decimal('12')
        return Decimal(self.duration)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'principal': str(self.principal),
            'annual_rate_percent': str(self.annual_rate_percent),
            'duration': self.duration,
            'duration_unit': self.duration_unit.value,
            'interest_type': self.interest_type.value,
            'compounding_frequency': (
                self.compounding_frequency.value if self.compounding_frequency else None
            ),
            'start_date': self.start_date.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LoanTerms':
        """Build terms from a dictionary, rejecting unknown and missing keys"""
        allowed = {
            'principal', 'annual_rate_percent', 'duration', 'duration_unit',
            'interest_type', 'compounding_frequency', 'start_date',
        }
        unknown = sorted(set(data) - allowed)
        if unknown:
            raise InvalidTermsError(unknown[0], data[unknown[0]], f"Unknown loan term: {unknown[0]}")
        for key in allowed - {'compounding_frequency'}:
            if data.get(key) is None:
                raise InvalidTermsError(key, None, f"Missing required loan term: {key}")
        return cls(**data)


@dataclass(frozen=True)
class AmortizationResult:
    """Aggregate totals derived from loan terms"""
    total_interest: Decimal
    total_amount: Decimal
    installment_amount: Decimal
    effective_annual_rate_percent: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_interest': money_to_str(self.total_interest),
            'total_amount': money_to_str(self.total_amount),
            'installment_amount': money_to_str(self.installment_amount),
            'effective_annual_rate_percent': str(self.effective_annual_rate_percent),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AmortizationResult':
        return cls(
            total_interest=Decimal(_require(data, 'total_interest', 'AmortizationResult')),
            total_amount=Decimal(_require(data, 'total_amount', 'AmortizationResult')),
            installment_amount=Decimal(_require(data, 'installment_amount', 'AmortizationResult')),
            effective_annual_rate_percent=Decimal(data.get('effective_annual_rate_percent', '0')),
        )


@dataclass
class Installment:
    """Single entry in the payment schedule"""
    installment_number: int
    due_date: date
    installment_amount: Decimal
    principal_component: Decimal
    interest_component: Decimal
    remaining_principal_after: Decimal
    status: InstallmentStatus = InstallmentStatus.PENDING
    paid_date: Optional[date] = None
    paid_amount: Decimal = ZERO

    @property
    def is_paid(self) -> bool:
        return self.status == InstallmentStatus.PAID

    def to_dict(self) -> Dict[str, Any]:
        return {
            'installment_number': self.installment_number,
            'due_date': self.due_date.isoformat(),
            'installment_amount': money_to_str(self.installment_amount),
            'principal_component': money_to_str(self.principal_component),
            'interest_component': money_to_str(self.interest_component),
            'remaining_principal_after': money_to_str(self.remaining_principal_after),
            'status': self.status.value,
            'paid_date': self.paid_date.isoformat() if self.paid_date else None,
            'paid_amount': money_to_str(self.paid_amount),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Installment':
        return cls(
            installment_number=int(_require(data, 'installment_number', 'Installment')),
            due_date=date.fromisoformat(_require(data, 'due_date', 'Installment')),
            installment_amount=Decimal(_require(data, 'installment_amount', 'Installment')),
            principal_component=Decimal(_require(data, 'principal_component', 'Installment')),
            interest_component=Decimal(_require(data, 'interest_component', 'Installment')),
            remaining_principal_after=Decimal(_require(data, 'remaining_principal_after', 'Installment')),
            status=InstallmentStatus(data.get('status', InstallmentStatus.PENDING.value)),
            paid_date=_parse_date(data.get('paid_date')),
            paid_amount=round_money(data.get('paid_amount') or ZERO),
        )


@dataclass
class LoanDetails:
    """Descriptive fields that never affect the loan math"""
    loan_name: str = ""
    category: str = "personal"
    lender_name: str = ""
    guarantor: str = ""
    collateral: str = ""
    purpose: str = ""
    notes: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'loan_name': self.loan_name,
            'category': self.category,
            'lender_name': self.lender_name,
            'guarantor': self.guarantor,
            'collateral': self.collateral,
            'purpose': self.purpose,
            'notes': self.notes,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'LoanDetails':
        if not data:
            return cls()
        known = cls().to_dict().keys()
        return cls(**{key: value for key, value in data.items() if key in known and value is not None})


@dataclass
class LoanRecord(StorageRecord):
    """
    Persisted loan aggregate.

    `paid_installments`, `remaining_amount`, `next_due_date` and `status` are
    derived from the schedule. Only the builder and the payment ledger
    assign them.
    """
    terms: LoanTerms
    amortization: AmortizationResult
    schedule: List[Installment]
    paid_installments: int = 0
    remaining_amount: Decimal = ZERO
    next_due_date: Optional[date] = None
    status: LoanStatus = LoanStatus.ACTIVE
    maturity_date: Optional[date] = None
    details: LoanDetails = field(default_factory=LoanDetails)

    @property
    def total_paid(self) -> Decimal:
        """Sum of recorded payments across the schedule"""
        return sum_money(i.paid_amount for i in self.schedule if i.is_paid)

    @property
    def is_completed(self) -> bool:
        return self.status == LoanStatus.COMPLETED

    @property
    def next_installment(self) -> Optional[Installment]:
        """The installment that the next payment must settle"""
        for installment in self.schedule:
            if installment.installment_number > self.paid_installments and not installment.is_paid:
                return installment
        return None

    def get_installment(self, installment_number: int) -> Optional[Installment]:
        index = installment_number - 1
        if 0 <= index < len(self.schedule):
            return self.schedule[index]
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        return {
            'id': self.id,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
            'terms': self.terms.to_dict(),
            'amortization': self.amortization.to_dict(),
            'schedule': [installment.to_dict() for installment in self.schedule],
            'paid_installments': self.paid_installments,
            'remaining_amount': money_to_str(self.remaining_amount),
            'next_due_date': self.next_due_date.isoformat() if self.next_due_date else None,
            'status': self.status.value,
            'maturity_date': self.maturity_date.isoformat() if self.maturity_date else None,
            'details': self.details.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LoanRecord':
        """Rebuild a record from its stored dictionary"""
        return cls(
            id=_require(data, 'id', 'LoanRecord'),
            created_at=datetime.fromisoformat(_require(data, 'created_at', 'LoanRecord')),
            updated_at=datetime.fromisoformat(_require(data, 'updated_at', 'LoanRecord')),
            terms=LoanTerms.from_dict(_require(data, 'terms', 'LoanRecord')),
            amortization=AmortizationResult.from_dict(_require(data, 'amortization', 'LoanRecord')),
            schedule=[Installment.from_dict(item) for item in _require(data, 'schedule', 'LoanRecord')],
            paid_installments=int(data.get('paid_installments', 0)),
            remaining_amount=Decimal(_require(data, 'remaining_amount', 'LoanRecord')),
            next_due_date=_parse_date(data.get('next_due_date')),
            status=LoanStatus(data.get('status', LoanStatus.ACTIVE.value)),
            maturity_date=_parse_date(data.get('maturity_date')),
            details=LoanDetails.from_dict(data.get('details')),
        )
