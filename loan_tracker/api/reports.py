"""
Reporting endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query

from .deps import get_loan_manager
from ..loans import LoanManager


router = APIRouter()


@router.get("/summary")
async def portfolio_summary(manager: LoanManager = Depends(get_loan_manager)):
    """Counts and totals across all loans"""
    return manager.portfolio_summary().to_dict()


@router.get("/interest")
async def interest_analysis(manager: LoanManager = Depends(get_loan_manager)):
    """Loan counts and interest totals by interest type"""
    return manager.interest_analysis().to_dict()


@router.get("/payments")
async def payment_history(
    limit: Optional[int] = Query(None, ge=1),
    manager: LoanManager = Depends(get_loan_manager)
):
    """Recorded payments, most recent first"""
    entries = manager.payment_history(limit)
    return {"payments": [entry.to_dict() for entry in entries]}


@router.get("/due")
async def due_reminders(
    days: Optional[int] = Query(None, ge=0),
    manager: LoanManager = Depends(get_loan_manager)
):
    """Loans due today, due soon, or overdue"""
    reminders = manager.due_reminders(days)
    return reminders.to_dict(manager.clock.today())
