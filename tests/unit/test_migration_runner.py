# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the migration runner's revision selection."""

import importlib

import pytest

from school_admin.infrastructure.database.migrations import runner
from school_admin.infrastructure.database.migrations.runner import (
    MIGRATIONS,
    get_pending_migrations,
)


class TestPendingMigrations:
    def test_fresh_database_gets_everything(self) -> None:
        assert get_pending_migrations(None) == MIGRATIONS

    def test_up_to_date(self) -> None:
        assert get_pending_migrations(MIGRATIONS[-1]) == []

    def test_unknown_current_version(self, caplog) -> None:
        assert get_pending_migrations("999_unknown") == []
        assert "not in known migrations list" in caplog.text

    def test_unknown_target(self) -> None:
        assert get_pending_migrations(None, "999_unknown") == []

    def test_target_revision(self, monkeypatch) -> None:
        monkeypatch.setattr(runner, "MIGRATIONS", ["001_a", "002_b", "003_c"])

        assert get_pending_migrations("001_a", "002_b") == ["002_b"]


@pytest.mark.parametrize("revision", MIGRATIONS)
def test_revisions_define_upgrade_and_downgrade(revision) -> None:
    module = importlib.import_module(
        f"school_admin.infrastructure.database.migrations.versions.{revision}"
    )

    assert callable(module.upgrade)
    assert callable(module.downgrade)
