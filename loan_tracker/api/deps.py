"""
Service dependencies for the API
"""

from typing import Optional

from fastapi import HTTPException

from ..config import get_config
from ..exceptions import (
    LoanNotFoundError, InstallmentNotFoundError, OutOfOrderPaymentError,
    UnknownPresetError
)
from ..loans import LoanManager
from ..logging_config import get_logger
from ..storage import InMemoryStorage, SQLiteStorage


logger = get_logger("loan_tracker.api")

_loan_manager: Optional[LoanManager] = None


def build_loan_manager() -> LoanManager:
    """Create a LoanManager from configuration"""
    config = get_config()
    if config.use_sqlite:
        storage = SQLiteStorage(config.database_path)
        logger.info("Using SQLite storage at %s", config.database_path)
    else:
        storage = InMemoryStorage()
        logger.warning("Using in-memory storage; loans will not survive a restart")
    return LoanManager(storage, config=config)


def get_loan_manager() -> LoanManager:
    global _loan_manager
    if _loan_manager is None:
        _loan_manager = build_loan_manager()
    return _loan_manager


def http_error(error: Exception) -> HTTPException:
    """Map a loan tracker error to an HTTP error response"""
    detail = {"error": type(error).__name__, "message": str(error)}
    if hasattr(error, 'field'):
        detail["field"] = error.field

    if isinstance(error, OutOfOrderPaymentError):
        detail["next_payable"] = error.next_payable
        return HTTPException(status_code=409, detail=detail)
    if isinstance(error, (LoanNotFoundError, InstallmentNotFoundError, UnknownPresetError)):
        return HTTPException(status_code=404, detail=detail)
    return HTTPException(status_code=400, detail=detail)
