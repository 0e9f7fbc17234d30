# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database migrations package.

Alembic revisions live in ``versions``. They can be applied with the alembic
CLI or programmatically through ``runner.run_migrations``.
"""
