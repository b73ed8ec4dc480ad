#!/usr/bin/env python3
"""Tests for setup_logging."""
import logging

from fleet.logging_config import setup_logging


class TestSetupLogging:
    def test_standard(self):
        setup_logging("DEBUG")
        assert logging.getLogger().level == logging.DEBUG

    def test_json_with_file(self, tmp_path):
        log_file = tmp_path / "logs" / "fleet.log"
        setup_logging("INFO", log_format="json", log_file=str(log_file))
        logging.getLogger("fleet.test").info("hello")
        for handler in logging.getLogger().handlers:
            handler.flush()
        assert "hello" in log_file.read_text()
        setup_logging("WARNING")
