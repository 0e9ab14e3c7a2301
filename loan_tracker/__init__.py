"""
Loan Tracker

Personal loan tracking core: interest and EMI calculation, amortization
schedules, and a derived payment ledger. All money is handled as Decimal.
"""

__version__ = "1.0.0"
