"""
Request models for the loan tracker API
"""

from decimal import Decimal
from datetime import date
from typing import Optional
from pydantic import BaseModel, Field

from ..currency import to_decimal
from ..exceptions import InvalidPaymentError, InvalidTermsError
from ..models import LoanDetails, LoanTerms


def _parse_iso_date(value: str, field_name: str, error_cls) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise error_cls(field_name, value, f"{field_name} must be an ISO date (YYYY-MM-DD)")


class LoanTermsModel(BaseModel):
    principal: str = Field(..., description="Decimal amount as string")
    annual_rate_percent: str = Field(..., description="Annual rate in percent, e.g. '8.5'")
    duration: int
    duration_unit: str = Field("years", description="months or years")
    interest_type: str = Field("simple", description="simple or compound")
    compounding_frequency: Optional[str] = Field(None, description="monthly, quarterly or yearly")
    start_date: str = Field(..., description="ISO date string")

    def to_loan_terms(self) -> LoanTerms:
        return LoanTerms(
            principal=self.principal,
            annual_rate_percent=self.annual_rate_percent,
            duration=self.duration,
            duration_unit=self.duration_unit,
            interest_type=self.interest_type,
            compounding_frequency=self.compounding_frequency,
            start_date=_parse_iso_date(self.start_date, 'start_date', InvalidTermsError),
        )


class LoanDetailsModel(BaseModel):
    loan_name: Optional[str] = None
    category: Optional[str] = None
    lender_name: Optional[str] = None
    guarantor: Optional[str] = None
    collateral: Optional[str] = None
    purpose: Optional[str] = None
    notes: Optional[str] = None

    def changes(self) -> dict:
        """Only the fields the client actually sent"""
        return {k: v for k, v in self.__dict__.items() if v is not None}

    def to_loan_details(self) -> LoanDetails:
        return LoanDetails.from_dict(self.changes())


class CreateLoanRequest(BaseModel):
    terms: LoanTermsModel
    details: Optional[LoanDetailsModel] = None


class PresetLoanRequest(BaseModel):
    preset: str
    principal: str
    start_date: str
    details: Optional[LoanDetailsModel] = None

    def parsed_start_date(self) -> date:
        return _parse_iso_date(self.start_date, 'start_date', InvalidTermsError)


class NextPaymentRequest(BaseModel):
    paid_amount: Optional[str] = None
    paid_date: Optional[str] = None

    def parsed_amount(self) -> Optional[Decimal]:
        if self.paid_amount is None:
            return None
        try:
            return to_decimal(self.paid_amount)
        except ValueError:
            raise InvalidPaymentError('paid_amount', self.paid_amount)

    def parsed_date(self) -> Optional[date]:
        if self.paid_date is None:
            return None
        return _parse_iso_date(self.paid_date, 'paid_date', InvalidPaymentError)


class PaymentRequest(NextPaymentRequest):
    installment_number: int
