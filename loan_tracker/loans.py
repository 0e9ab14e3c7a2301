"""
Loan Module

LoanManager is the service the outer layers (API, scripts) talk to. It
wires the pure core (builder, ledger, status engine) to a storage backend,
a clock and the audit trail, and serializes mutations per loan.
"""

from decimal import Decimal
from datetime import date
from typing import Any, Dict, List, Optional
import logging
import threading

from .audit import AuditTrail, AuditEventType
from .builder import LoanRecordBuilder
from .clock import Clock, SystemClock
from .config import LoanTrackerConfig, get_config
from .exceptions import InvalidTermsError, LoanNotFoundError
from .ledger import apply_payment
from .logging_config import log_action
from .models import Installment, LoanDetails, LoanRecord, LoanStatus, LoanTerms
from .reporting import (
    DueReminders, InterestAnalysis, PaymentHistoryEntry, PortfolioSummary,
    due_reminders, interest_analysis, payment_history, summarize_portfolio
)
from .storage import StorageInterface


logger = logging.getLogger("loan_tracker.loans")

# Loans without a next due date (completed) sort after every dated loan
_FAR_FUTURE = date.max

SORT_KEYS = {
    'next_due_date': lambda loan: loan.next_due_date or _FAR_FUTURE,
    'created_at': lambda loan: loan.created_at,
    'principal': lambda loan: loan.terms.principal,
    'remaining_amount': lambda loan: loan.remaining_amount,
    'annual_rate_percent': lambda loan: loan.terms.annual_rate_percent,
}


class LoanManager:
    """
    Manages loan records from creation through completion
    """

    def __init__(
        self,
        storage: StorageInterface,
        clock: Optional[Clock] = None,
        audit_trail: Optional[AuditTrail] = None,
        config: Optional[LoanTrackerConfig] = None
    ):
        self.storage = storage
        self.clock = clock or SystemClock()
        self.config = config or get_config()
        if audit_trail is None and self.config.enable_audit_logging:
            audit_trail = AuditTrail(storage, self.clock)
        self.audit_trail = audit_trail
        self.builder = LoanRecordBuilder(self.clock)

        self.loans_table = "loans"
        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, loan_id: str) -> threading.RLock:
        with self._locks_guard:
            return self._locks.setdefault(loan_id, threading.RLock())

    def _check_ceilings(self, terms: LoanTerms) -> None:
        """Reject terms above the configured input ceilings"""
        max_principal = Decimal(self.config.max_principal)
        if terms.principal > max_principal:
            raise InvalidTermsError('principal', terms.principal,
                                    f"Principal exceeds the maximum of {max_principal}")
        max_rate = Decimal(self.config.max_annual_rate_percent)
        if terms.annual_rate_percent > max_rate:
            raise InvalidTermsError('annual_rate_percent', terms.annual_rate_percent,
                                    f"Interest rate exceeds the maximum of {max_rate}%")
        if terms.years > self.config.max_duration_years:
            raise InvalidTermsError('duration', terms.duration,
                                    f"Duration exceeds {self.config.max_duration_years} years")

    def _audit(self, event_type: AuditEventType, loan: LoanRecord, metadata: Dict[str, Any]) -> None:
        if self.audit_trail is not None:
            self.audit_trail.log_event(
                event_type=event_type,
                loan_id=loan.id,
                metadata=metadata
            )

    def _save_loan(self, loan: LoanRecord) -> None:
        self.storage.save(self.loans_table, loan.id, loan.to_dict())

    def _load_loan(self, loan_id: str) -> LoanRecord:
        data = self.storage.load(self.loans_table, loan_id)
        if not data:
            raise LoanNotFoundError(loan_id)
        return LoanRecord.from_dict(data)

    def create_loan(self, terms: LoanTerms, details: Optional[LoanDetails] = None) -> LoanRecord:
        """
        Create and store a new loan

        Args:
            terms: Loan terms
            details: Optional descriptive fields

        Returns:
            Created LoanRecord

        Raises:
            InvalidTermsError: invalid terms or above configured ceilings
        """
        self._check_ceilings(terms)
        loan = self.builder.build(terms, details)

        with self.storage.atomic():
            self._save_loan(loan)
            self._audit(AuditEventType.LOAN_CREATED, loan, {
                'principal': terms.principal,
                'annual_rate_percent': terms.annual_rate_percent,
                'duration': terms.duration,
                'duration_unit': terms.duration_unit,
                'interest_type': terms.interest_type,
                'total_amount': loan.amortization.total_amount,
                'installments': len(loan.schedule),
            })

        log_action(logger, "info", "Loan created", loan_id=loan.id, action="create",
                   extra={'total_amount': str(loan.amortization.total_amount)})
        return loan

    def get_loan(self, loan_id: str) -> LoanRecord:
        """
        Load a loan with its status refreshed against today

        Raises:
            LoanNotFoundError: no record with that id
        """
        return self.builder.refresh(self._load_loan(loan_id))

    def find_loan(self, loan_id: str) -> Optional[LoanRecord]:
        """Like get_loan, but returns None when the loan does not exist"""
        try:
            return self.get_loan(loan_id)
        except LoanNotFoundError:
            return None

    def get_schedule(self, loan_id: str) -> List[Installment]:
        return self.get_loan(loan_id).schedule

    def list_loans(
        self,
        status: Optional[LoanStatus] = None,
        sort_by: str = "next_due_date",
        descending: bool = False
    ) -> List[LoanRecord]:
        """
        List loans, optionally filtered by derived status

        Args:
            status: Only loans currently in this status
            sort_by: One of SORT_KEYS
            descending: Reverse the sort order

        Returns:
            Loan records with refreshed status
        """
        if sort_by not in SORT_KEYS:
            raise ValueError(f"Unsupported sort key: {sort_by}")

        loans = [
            self.builder.refresh(LoanRecord.from_dict(data))
            for data in self.storage.load_all(self.loans_table)
        ]
        if status is not None:
            loans = [loan for loan in loans if loan.status == status]

        loans.sort(key=SORT_KEYS[sort_by], reverse=descending)
        return loans

    def update_loan_terms(self, loan_id: str, new_terms: LoanTerms) -> LoanRecord:
        """
        Replace a loan's terms, rebuilding its schedule from scratch

        All recorded payments are discarded. Callers should warn the user
        before invoking this on a loan with payments.
        """
        self._check_ceilings(new_terms)
        with self._lock_for(loan_id):
            with self.storage.atomic():
                existing = self._load_loan(loan_id)
                discarded = existing.paid_installments
                loan = self.builder.rebuild_from_terms(existing, new_terms)
                self._save_loan(loan)
                self._audit(AuditEventType.LOAN_TERMS_UPDATED, loan, {
                    'previous_terms': existing.terms.to_dict(),
                    'new_terms': new_terms.to_dict(),
                    'discarded_payments': discarded,
                })

        if discarded:
            logger.warning("Terms edit on loan %s discarded %d recorded payments", loan_id, discarded)
        log_action(logger, "info", "Loan terms updated", loan_id=loan_id, action="update_terms")
        return loan

    def update_loan_details(self, loan_id: str, **changes: Any) -> LoanRecord:
        """Update descriptive fields; the schedule is untouched"""
        known = set(LoanDetails().to_dict())
        unknown = sorted(set(changes) - known)
        if unknown:
            raise ValueError(f"Unknown loan detail: {unknown[0]}")

        with self._lock_for(loan_id):
            with self.storage.atomic():
                loan = self._load_loan(loan_id)
                merged = loan.details.to_dict()
                merged.update({k: v for k, v in changes.items() if v is not None})
                loan.details = LoanDetails.from_dict(merged)
                loan.touch(self.clock.now())
                self._save_loan(loan)
                self._audit(AuditEventType.LOAN_DETAILS_UPDATED, loan, {'changes': changes})

        return self.builder.refresh(loan)

    def delete_loan(self, loan_id: str) -> None:
        """
        Delete a loan

        Raises:
            LoanNotFoundError: no record with that id
        """
        with self._lock_for(loan_id):
            with self.storage.atomic():
                loan = self._load_loan(loan_id)
                self.storage.delete(self.loans_table, loan_id)
                self._audit(AuditEventType.LOAN_DELETED, loan, {
                    'paid_installments': loan.paid_installments,
                    'remaining_amount': loan.remaining_amount,
                })

        with self._locks_guard:
            self._locks.pop(loan_id, None)
        log_action(logger, "info", "Loan deleted", loan_id=loan_id, action="delete")

    def record_payment(
        self,
        loan_id: str,
        installment_number: int,
        paid_amount: Optional[Decimal] = None,
        paid_date: Optional[date] = None
    ) -> LoanRecord:
        """
        Record payment of an installment and persist the result

        Raises:
            LoanNotFoundError: no record with that id
            InstallmentNotFoundError: number outside the schedule
            OutOfOrderPaymentError: number beyond the next payable installment
            InvalidPaymentError: explicit amount that is not positive
        """
        with self._lock_for(loan_id):
            with self.storage.atomic():
                loan = self._load_loan(loan_id)
                was_completed = loan.paid_installments >= len(loan.schedule)
                apply_payment(loan, installment_number, paid_amount, paid_date, self.clock)
                self._save_loan(loan)

                installment = loan.schedule[installment_number - 1]
                self._audit(AuditEventType.LOAN_PAYMENT_RECORDED, loan, {
                    'installment_number': installment_number,
                    'paid_amount': installment.paid_amount,
                    'paid_date': installment.paid_date,
                    'remaining_amount': loan.remaining_amount,
                    'status': loan.status,
                })
                if loan.is_completed and not was_completed:
                    self._audit(AuditEventType.LOAN_COMPLETED, loan, {
                        'total_paid': loan.total_paid,
                    })

        log_action(logger, "info", "Payment recorded", loan_id=loan_id, action="payment",
                   extra={'installment_number': installment_number, 'status': loan.status.value})
        return loan

    def pay_next_installment(
        self,
        loan_id: str,
        paid_amount: Optional[Decimal] = None,
        paid_date: Optional[date] = None
    ) -> LoanRecord:
        """Record payment of the next payable installment"""
        with self._lock_for(loan_id):
            loan = self._load_loan(loan_id)
            return self.record_payment(loan_id, loan.paid_installments + 1, paid_amount, paid_date)

    def refresh_statuses(self) -> int:
        """
        Re-derive and persist status for every stored loan

        Returns:
            Number of loans whose stored status or next due date changed
        """
        changed = 0
        loan_ids = [data['id'] for data in self.storage.load_all(self.loans_table)]
        for loan_id in loan_ids:
            with self._lock_for(loan_id):
                try:
                    with self.storage.atomic():
                        # Re-read under the lock; a payment may have landed since the listing
                        loan = self._load_loan(loan_id)
                        before = (loan.status, loan.next_due_date, loan.remaining_amount)
                        self.builder.refresh(loan)
                        if (loan.status, loan.next_due_date, loan.remaining_amount) != before:
                            self._save_loan(loan)
                            changed += 1
                except LoanNotFoundError:
                    logger.debug("Loan %s deleted during status refresh", loan_id)
        if changed:
            logger.info("Refreshed status on %d loans", changed)
        return changed

    def portfolio_summary(self) -> PortfolioSummary:
        return summarize_portfolio(self.list_loans())

    def interest_analysis(self) -> InterestAnalysis:
        return interest_analysis(self.list_loans())

    def payment_history(self, limit: Optional[int] = None) -> List[PaymentHistoryEntry]:
        return payment_history(self.list_loans(), limit)

    def due_reminders(self, due_soon_days: Optional[int] = None) -> DueReminders:
        """Loans due today, due soon, or overdue as of the clock's today"""
        if due_soon_days is None:
            due_soon_days = self.config.due_soon_days
        return due_reminders(self.list_loans(), self.clock.today(), due_soon_days)
