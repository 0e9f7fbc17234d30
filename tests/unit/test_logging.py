# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for logging setup."""

import logging

import pytest
import structlog

from school_admin.core.config.settings import Settings
from school_admin.utils.logging import bind_context, clear_context, get_logger, setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()
    clear_context()


class TestSetupLogging:
    def test_levels_applied(self) -> None:
        setup_logging(Settings(log_level="WARNING"))

        assert logging.getLogger().level == logging.WARNING
        assert logging.getLogger("school_admin").level == logging.WARNING
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    def test_single_handler_installed(self) -> None:
        setup_logging(Settings())
        setup_logging(Settings())

        assert len(logging.getLogger().handlers) == 1

    def test_json_output(self, capsys) -> None:
        setup_logging(Settings(log_level="INFO", log_format="json"))

        bind_context(actor_id="admin-1")
        get_logger("school_admin.tests").info("Payment approved", exam_id="123")

        out = capsys.readouterr().out
        assert '"event": "Payment approved"' in out
        assert '"exam_id": "123"' in out
        assert '"actor_id": "admin-1"' in out

    def test_stdlib_records_formatted(self, capsys) -> None:
        setup_logging(Settings(log_level="INFO", log_format="json"))

        logging.getLogger("school_admin.tests").info("Exam created: %s", "EXA-00000001")

        assert "Exam created: EXA-00000001" in capsys.readouterr().out
