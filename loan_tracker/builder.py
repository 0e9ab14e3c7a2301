"""
Loan Record Builder

Turns loan terms into a complete, persistable loan record by running the
calculator, the schedule builder and the status engine. Also rebuilds a
record after a terms edit and refreshes the derived status of a loaded one.
"""

from typing import Optional
import uuid

from .calculator import calculate_amortization
from .clock import Clock, SystemClock
from .ledger import remaining_amount
from .models import LoanDetails, LoanRecord, LoanTerms
from .schedule import build_schedule, maturity_date
from .status import evaluate_status


class LoanRecordBuilder:
    """Builds and refreshes loan records against an injected clock"""

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or SystemClock()

    def build(
        self,
        terms: LoanTerms,
        details: Optional[LoanDetails] = None,
        loan_id: Optional[str] = None
    ) -> LoanRecord:
        """
        Create a brand-new loan record

        Raises:
            InvalidTermsError: if the terms fail validation
        """
        result = calculate_amortization(terms)
        schedule = build_schedule(terms, result)
        view = evaluate_status(schedule, 0, self.clock.today())
        now = self.clock.now()

        return LoanRecord(
            id=loan_id or str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            terms=terms,
            amortization=result,
            schedule=schedule,
            paid_installments=0,
            remaining_amount=result.total_amount,
            next_due_date=view.next_due_date,
            status=view.status,
            maturity_date=maturity_date(terms),
            details=details or LoanDetails(),
        )

    def rebuild_from_terms(self, existing: LoanRecord, new_terms: LoanTerms) -> LoanRecord:
        """
        Rebuild a record for edited terms

        Keeps identity, creation time and details. All payment history is
        discarded because the old schedule no longer matches the new math.
        """
        rebuilt = self.build(new_terms, details=existing.details, loan_id=existing.id)
        rebuilt.created_at = existing.created_at
        return rebuilt

    def refresh(self, record: LoanRecord) -> LoanRecord:
        """Re-derive aggregate fields from the schedule as of today"""
        view = evaluate_status(record.schedule, record.paid_installments, self.clock.today())
        record.status = view.status
        record.next_due_date = view.next_due_date
        record.remaining_amount = remaining_amount(record.amortization.total_amount, record.schedule)
        return record
