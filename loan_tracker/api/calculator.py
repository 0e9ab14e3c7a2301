"""
Calculator and preset endpoints
"""

from fastapi import APIRouter

from .deps import http_error
from .schemas import LoanTermsModel
from ..calculator import calculate_amortization
from ..exceptions import LoanTrackerError
from ..presets import PRESETS
from ..schedule import build_schedule


router = APIRouter()


@router.post("/calculator")
async def calculate(terms: LoanTermsModel, include_schedule: bool = False):
    """Compute totals (and optionally the schedule) without storing a loan"""
    try:
        loan_terms = terms.to_loan_terms()
        result = calculate_amortization(loan_terms)
    except (LoanTrackerError, ValueError) as e:
        raise http_error(e)

    response = {
        "terms": loan_terms.to_dict(),
        "amortization": result.to_dict(),
        "installments": loan_terms.periods,
    }
    if include_schedule:
        response["schedule"] = [i.to_dict() for i in build_schedule(loan_terms, result)]
    return response


@router.get("/presets")
async def list_presets():
    """Available quick-fill loan presets"""
    return {"presets": [preset.to_dict() for preset in PRESETS.values()]}
