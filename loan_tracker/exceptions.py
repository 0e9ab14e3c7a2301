"""
Loan Tracker Exceptions

Typed validation failures raised synchronously by the core. Each carries
enough context (the offending field or installment) for a caller to show
a corrective message.
"""

from typing import Any, Optional


class LoanTrackerError(Exception):
    """Base exception for all loan tracker errors"""


class InvalidTermsError(LoanTrackerError, ValueError):
    """Raised when loan terms cannot be used for a calculation"""

    def __init__(self, field: str, value: Any, message: Optional[str] = None):
        self.field = field
        self.value = value
        super().__init__(message or f"Invalid loan terms: {field}={value!r}")


class InstallmentNotFoundError(LoanTrackerError, LookupError):
    """Raised when a payment targets an installment outside the schedule"""

    def __init__(self, installment_number: int, schedule_length: int):
        self.installment_number = installment_number
        self.schedule_length = schedule_length
        super().__init__(
            f"Installment {installment_number} not found "
            f"(schedule has {schedule_length} installments)"
        )


class OutOfOrderPaymentError(LoanTrackerError, ValueError):
    """Raised when a payment skips ahead of the next payable installment"""

    def __init__(self, installment_number: int, next_payable: int):
        self.installment_number = installment_number
        self.next_payable = next_payable
        super().__init__(
            f"Installment {installment_number} cannot be paid before "
            f"installment {next_payable}"
        )


class InvalidPaymentError(LoanTrackerError, ValueError):
    """Raised when a payment amount is not usable"""

    def __init__(self, field: str, value: Any, message: Optional[str] = None):
        self.field = field
        self.value = value
        super().__init__(message or f"Invalid payment: {field}={value!r}")


class LoanNotFoundError(LoanTrackerError, LookupError):
    """Raised when a loan id has no stored record"""

    def __init__(self, loan_id: str):
        self.loan_id = loan_id
        super().__init__(f"Loan {loan_id} not found")


class UnknownPresetError(LoanTrackerError, KeyError):
    """Raised when a loan preset name is not defined"""

    def __init__(self, name: str):
        self.name = name
        super().__init__(name)

    def __str__(self) -> str:
        return f"Unknown loan preset: {self.name}"


class RecordFormatError(LoanTrackerError, ValueError):
    """Raised when a stored loan dictionary is missing required fields"""

    def __init__(self, record_type: str, field: str):
        self.record_type = record_type
        self.field = field
        super().__init__(f"{record_type} is missing required field '{field}'")
