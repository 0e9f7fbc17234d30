# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pydantic schemas for requests and responses of the domain services.

Shared enums and pagination schemas live in ``common``; each domain has
its own module.
"""
