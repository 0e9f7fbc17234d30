# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Base exceptions raised by domain services.

Each domain subclasses these kinds so an outer layer can map them to a
response status without knowing the individual error classes:

- NotFoundError: 404
- ConflictError: 409
- ValidationError: 422
- BusinessRuleError: 400
- PermissionDeniedError: 403
"""


class DomainError(Exception):
    """Base exception for domain service errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(DomainError):
    """Raised when a referenced entity does not exist."""

    pass


class ConflictError(DomainError):
    """Raised when an operation would violate uniqueness or a dependency."""

    pass


class ValidationError(DomainError):
    """Raised when input values are out of range or malformed."""

    pass


class BusinessRuleError(DomainError):
    """Raised when a business rule forbids the operation in the current state."""

    pass


class PermissionDeniedError(DomainError):
    """Raised when the caller's role does not allow the operation."""

    pass
