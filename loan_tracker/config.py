"""
Loan Tracker Settings

Every field can be overridden by a LOAN_TRACKER_<FIELD> environment variable
or a .env file in the working directory.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class LoanTrackerConfig(BaseSettings):
    """Loan tracker configuration"""

    # Storage configuration
    database_path: str = "loan_tracker.db"  # ":memory:" for an ephemeral store
    use_sqlite: bool = True

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stderr

    # Input ceilings for new or edited loans
    max_principal: str = "10000000"  # 1 crore
    max_annual_rate_percent: str = "50"
    max_duration_years: int = 30

    # Reminders: how many days ahead counts as "due soon"
    due_soon_days: int = 1

    # Feature flags
    enable_audit_logging: bool = True

    class Config:
        env_prefix = "LOAN_TRACKER_"
        env_file = ".env"
        case_sensitive = False


config = LoanTrackerConfig()


def get_config() -> LoanTrackerConfig:
    """Process-wide settings loaded at import time"""
    return config


def reload_config() -> LoanTrackerConfig:
    """Re-read the environment and replace the process-wide settings"""
    global config
    config = LoanTrackerConfig()
    return config
