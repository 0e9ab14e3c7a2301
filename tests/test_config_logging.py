"""
Tests for configuration and structured logging
"""

import json
import logging
from datetime import date
from decimal import Decimal

import pytest

from loan_tracker import config as config_module
from loan_tracker.builder import LoanRecordBuilder
from loan_tracker.clock import FixedClock
from loan_tracker.config import LoanTrackerConfig, get_config, reload_config
from loan_tracker.exceptions import OutOfOrderPaymentError
from loan_tracker.ledger import apply_payment
from loan_tracker.logging_config import JSONFormatter, get_logger, log_action, setup_logging
from loan_tracker.models import LoanTerms


class TestConfig:
    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("LOAN_TRACKER_MAX_DURATION_YEARS", "10")
        monkeypatch.setenv("LOAN_TRACKER_USE_SQLITE", "false")

        config = LoanTrackerConfig()

        assert config.max_duration_years == 10
        assert config.use_sqlite is False

    def test_reload_config(self, monkeypatch):
        monkeypatch.setenv("LOAN_TRACKER_DUE_SOON_DAYS", "7")
        try:
            reloaded = reload_config()
            assert reloaded.due_soon_days == 7
            assert get_config() is reloaded
            assert config_module.config is reloaded
        finally:
            monkeypatch.delenv("LOAN_TRACKER_DUE_SOON_DAYS")
            reload_config()

    def test_explicit_values(self):
        config = LoanTrackerConfig(max_principal="2500", log_format="text")
        assert Decimal(config.max_principal) == Decimal('2500')
        assert config.log_format == "text"


class TestJSONFormatter:
    def test_structured_fields(self):
        record = logging.LogRecord(
            "loan_tracker.loans", logging.INFO, __file__, 10, "Loan %s created", ("L1",), None
        )
        record.loan_id = "L1"
        record.action = "create"

        entry = json.loads(JSONFormatter().format(record))

        assert entry["message"] == "Loan L1 created"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "loan_tracker.loans"
        assert entry["loan_id"] == "L1"
        assert entry["action"] == "create"
        assert "extra" not in entry


class TestSetupLogging:
    def setup_method(self):
        self.logger_name = "loan_tracker.test_logging"

    def teardown_method(self):
        logger = logging.getLogger(self.logger_name)
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)

    def test_json_file_output(self, tmp_path):
        log_file = tmp_path / "tracker.log"
        logger = setup_logging("DEBUG", logger_name=self.logger_name, log_file=str(log_file))

        log_action(logger, "info", "Payment recorded", loan_id="L9", action="payment",
                   extra={"installment_number": 2})

        entry = json.loads(log_file.read_text().strip())
        assert entry["loan_id"] == "L9"
        assert entry["action"] == "payment"
        assert entry["extra"] == {"installment_number": 2}
        assert logger.level == logging.DEBUG
        assert get_logger(self.logger_name) is logger

    def test_text_format(self, tmp_path):
        log_file = tmp_path / "tracker.log"
        logger = setup_logging("warning", logger_name=self.logger_name,
                               log_format="text", log_file=str(log_file))

        logger.info("hidden")
        logger.warning("visible")

        content = log_file.read_text()
        assert "visible" in content
        assert "hidden" not in content
        assert len(logger.handlers) == 1

    def test_text_format_appends_loan_fields(self, tmp_path):
        log_file = tmp_path / "tracker.log"
        logger = setup_logging("INFO", logger_name=self.logger_name,
                               log_format="text", log_file=str(log_file))

        log_action(logger, "info", "Loan deleted", loan_id="L3", action="delete")

        line = log_file.read_text().strip()
        assert line.endswith("Loan deleted | loan_id=L3 action=delete")


class TestLedgerLogging:
    def test_rejected_payment_is_logged(self, caplog):
        clock = FixedClock(date(2024, 1, 10))
        loan = LoanRecordBuilder(clock).build(LoanTerms(
            principal='1000', annual_rate_percent='10', duration=6,
            duration_unit='months', interest_type='simple', start_date=date(2024, 1, 1)
        ))

        with caplog.at_level(logging.WARNING, logger="loan_tracker.ledger"):
            with pytest.raises(OutOfOrderPaymentError):
                apply_payment(loan, 4, clock=clock)

        assert any("Payment rejected" in message for message in caplog.messages)
