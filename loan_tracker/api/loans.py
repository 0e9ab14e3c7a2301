"""
Loan endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status

from .deps import get_loan_manager, http_error
from .schemas import (
    CreateLoanRequest, LoanDetailsModel, LoanTermsModel, NextPaymentRequest,
    PaymentRequest, PresetLoanRequest
)
from ..exceptions import LoanTrackerError
from ..loans import LoanManager
from ..models import LoanStatus
from ..presets import terms_from_preset


router = APIRouter()


def _parse_status(value: Optional[str]) -> Optional[LoanStatus]:
    if value is None or value == "all":
        return None
    return LoanStatus(value)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_loan(
    request: CreateLoanRequest,
    manager: LoanManager = Depends(get_loan_manager)
):
    """Create a loan from terms"""
    try:
        details = request.details.to_loan_details() if request.details else None
        loan = manager.create_loan(request.terms.to_loan_terms(), details)
    except (LoanTrackerError, ValueError) as e:
        raise http_error(e)
    return loan.to_dict()


@router.post("/from-preset", status_code=status.HTTP_201_CREATED)
async def create_loan_from_preset(
    request: PresetLoanRequest,
    manager: LoanManager = Depends(get_loan_manager)
):
    """Create a loan using a named preset's rate and duration"""
    try:
        terms = terms_from_preset(request.preset, request.principal, request.parsed_start_date())
        details = request.details.to_loan_details() if request.details else None
        loan = manager.create_loan(terms, details)
    except (LoanTrackerError, ValueError) as e:
        raise http_error(e)
    return loan.to_dict()


@router.get("")
async def list_loans(
    status_filter: Optional[str] = Query(None, alias="status"),
    sort_by: str = "next_due_date",
    order: str = Query("asc", pattern="^(asc|desc)$"),
    manager: LoanManager = Depends(get_loan_manager)
):
    """List loans with optional status filter"""
    try:
        loans = manager.list_loans(
            status=_parse_status(status_filter),
            sort_by=sort_by,
            descending=(order == "desc")
        )
    except ValueError as e:
        raise http_error(e)
    return {"loans": [loan.to_dict() for loan in loans], "count": len(loans)}


@router.get("/{loan_id}")
async def get_loan(loan_id: str, manager: LoanManager = Depends(get_loan_manager)):
    """Get loan details with current status"""
    try:
        return manager.get_loan(loan_id).to_dict()
    except LoanTrackerError as e:
        raise http_error(e)


@router.get("/{loan_id}/schedule")
async def get_loan_schedule(loan_id: str, manager: LoanManager = Depends(get_loan_manager)):
    """Get the installment schedule"""
    try:
        schedule = manager.get_schedule(loan_id)
    except LoanTrackerError as e:
        raise http_error(e)
    return {"schedule": [installment.to_dict() for installment in schedule]}


@router.put("/{loan_id}/terms")
async def update_loan_terms(
    loan_id: str,
    terms: LoanTermsModel,
    manager: LoanManager = Depends(get_loan_manager)
):
    """Replace terms; rebuilds the schedule and discards recorded payments"""
    try:
        return manager.update_loan_terms(loan_id, terms.to_loan_terms()).to_dict()
    except (LoanTrackerError, ValueError) as e:
        raise http_error(e)


@router.patch("/{loan_id}/details")
async def update_loan_details(
    loan_id: str,
    details: LoanDetailsModel,
    manager: LoanManager = Depends(get_loan_manager)
):
    """Update descriptive fields"""
    try:
        return manager.update_loan_details(loan_id, **details.changes()).to_dict()
    except (LoanTrackerError, ValueError) as e:
        raise http_error(e)


@router.delete("/{loan_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_loan(loan_id: str, manager: LoanManager = Depends(get_loan_manager)):
    """Delete a loan"""
    try:
        manager.delete_loan(loan_id)
    except LoanTrackerError as e:
        raise http_error(e)


@router.post("/{loan_id}/payments")
async def record_payment(
    loan_id: str,
    request: PaymentRequest,
    manager: LoanManager = Depends(get_loan_manager)
):
    """Record payment of an installment"""
    try:
        loan = manager.record_payment(
            loan_id,
            request.installment_number,
            paid_amount=request.parsed_amount(),
            paid_date=request.parsed_date()
        )
    except (LoanTrackerError, ValueError) as e:
        raise http_error(e)
    return loan.to_dict()


@router.post("/{loan_id}/payments/next")
async def pay_next_installment(
    loan_id: str,
    request: Optional[NextPaymentRequest] = None,
    manager: LoanManager = Depends(get_loan_manager)
):
    """Record payment of the next payable installment"""
    request = request or NextPaymentRequest()
    try:
        loan = manager.pay_next_installment(
            loan_id,
            paid_amount=request.parsed_amount(),
            paid_date=request.parsed_date()
        )
    except (LoanTrackerError, ValueError) as e:
        raise http_error(e)
    return loan.to_dict()
