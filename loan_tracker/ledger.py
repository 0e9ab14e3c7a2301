"""
Payment Ledger

Applies installment payments to a loan record. Installments are settled
strictly in order. Every derived field (paid_installments, remaining_amount,
status, next_due_date) is computed before anything on the record changes,
so a rejected payment leaves the record exactly as it was.

The ledger does not lock. Callers that share a record between threads must
serialize apply_payment calls per loan (LoanManager does this).
"""

from decimal import Decimal
from datetime import date
from dataclasses import replace
from typing import List, Optional
import logging

from .clock import Clock, SystemClock
from .currency import ZERO, round_money, to_decimal
from .exceptions import (
    InstallmentNotFoundError, InvalidPaymentError, OutOfOrderPaymentError
)
from .models import Installment, InstallmentStatus, LoanRecord
from .status import evaluate_status


logger = logging.getLogger("loan_tracker.ledger")


def remaining_amount(total_amount: Decimal, schedule: List[Installment]) -> Decimal:
    """
    Outstanding amount: total payable less everything recorded as paid

    Clamped at zero. Once every installment is paid the loan owes nothing,
    whatever per-installment rounding or over/under payments left behind.
    """
    if schedule and all(installment.is_paid for installment in schedule):
        return ZERO
    paid = sum((i.paid_amount for i in schedule if i.is_paid), ZERO)
    return max(ZERO, round_money(total_amount - paid))


def _validate(record: LoanRecord, installment_number: int,
              paid_amount: Optional[Decimal]) -> Optional[Decimal]:
    if record.get_installment(installment_number) is None:
        raise InstallmentNotFoundError(installment_number, len(record.schedule))

    next_payable = record.paid_installments + 1
    if installment_number > next_payable:
        raise OutOfOrderPaymentError(installment_number, next_payable)

    if paid_amount is None:
        return None
    try:
        amount = round_money(to_decimal(paid_amount))
    except ValueError:
        raise InvalidPaymentError('paid_amount', paid_amount)
    if amount <= 0:
        raise InvalidPaymentError('paid_amount', paid_amount, "Paid amount must be positive")
    return amount


def apply_payment(
    record: LoanRecord,
    installment_number: int,
    paid_amount: Optional[Decimal] = None,
    paid_date: Optional[date] = None,
    clock: Optional[Clock] = None
) -> LoanRecord:
    """
    Record payment of one installment

    Args:
        record: Loan record to update in place
        installment_number: 1-based installment to settle
        paid_amount: Amount received (defaults to the nominal installment)
        paid_date: Payment date (defaults to today)
        clock: Source of the current date and update timestamp

    Returns:
        The same record, updated

    Raises:
        InstallmentNotFoundError: number outside the schedule
        OutOfOrderPaymentError: number beyond the next payable installment
        InvalidPaymentError: explicit amount that is not positive
    """
    clock = clock or SystemClock()
    try:
        amount = _validate(record, installment_number, paid_amount)
    except (InstallmentNotFoundError, OutOfOrderPaymentError, InvalidPaymentError) as e:
        logger.warning("Payment rejected for loan %s: %s", record.id, e)
        raise

    target = record.get_installment(installment_number)
    settled = replace(
        target,
        status=InstallmentStatus.PAID,
        paid_date=paid_date or clock.today(),
        paid_amount=amount if amount is not None else target.installment_amount,
    )

    schedule = list(record.schedule)
    schedule[installment_number - 1] = settled
    paid_installments = max(record.paid_installments, installment_number)
    remaining = remaining_amount(record.amortization.total_amount, schedule)
    view = evaluate_status(schedule, paid_installments, clock.today())

    # All checks passed; publish the new state together
    record.schedule = schedule
    record.paid_installments = paid_installments
    record.remaining_amount = remaining
    record.status = view.status
    record.next_due_date = view.next_due_date
    record.touch(clock.now())

    logger.info(
        "Installment %d of loan %s paid (%s); status=%s remaining=%s",
        installment_number, record.id, settled.paid_amount,
        record.status.value, record.remaining_amount
    )
    return record


def pay_next_installment(
    record: LoanRecord,
    paid_amount: Optional[Decimal] = None,
    paid_date: Optional[date] = None,
    clock: Optional[Clock] = None
) -> LoanRecord:
    """Settle the next payable installment (paid_installments + 1)"""
    return apply_payment(record, record.paid_installments + 1, paid_amount, paid_date, clock)
