# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Subject schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class SubjectCreateRequest(BaseModel):
    code: str = Field(min_length=1, max_length=30, description="Stored upper-cased")
    name: str = Field(min_length=1, max_length=200)
    credits: int = Field(default=0, ge=0, le=30)
    description: str | None = None


class SubjectUpdateRequest(BaseModel):
    """Partial subject update.

    code is accepted only so that attempts to change it can be rejected
    with a clear error.
    """

    code: str | None = None
    name: str | None = Field(default=None, min_length=1, max_length=200)
    credits: int | None = Field(default=None, ge=0, le=30)
    description: str | None = None


class SubjectResponse(BaseModel):
    id: str
    code: str
    name: str
    credits: int
    description: str | None = None
    is_english: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None
