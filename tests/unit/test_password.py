# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for password hashing of login accounts."""

import pytest

from school_admin.domains.common.password import PasswordHasher


@pytest.fixture
def hasher() -> PasswordHasher:
    """Low cost factor keeps the tests fast."""
    return PasswordHasher(rounds=4)


class TestPasswordHasher:
    """Tests for PasswordHasher class."""

    def test_hash_password_returns_bcrypt_hash(self, hasher) -> None:
        hashed = hasher.hash("test_password_123")

        assert hashed.startswith("$2b$")
        assert len(hashed) == 60

    def test_hash_produces_different_hashes_for_same_password(self, hasher) -> None:
        """Salting makes every hash unique."""
        assert hasher.hash("same") != hasher.hash("same")

    def test_hash_empty_password_raises(self, hasher) -> None:
        with pytest.raises(ValueError, match="Password cannot be empty"):
            hasher.hash("")

    def test_verify_correct_password(self, hasher) -> None:
        hashed = hasher.hash("correct_password")

        assert hasher.verify("correct_password", hashed) is True

    def test_verify_incorrect_password(self, hasher) -> None:
        hashed = hasher.hash("correct_password")

        assert hasher.verify("wrong_password", hashed) is False

    def test_verify_empty_inputs_return_false(self, hasher) -> None:
        hashed = hasher.hash("valid_password")

        assert hasher.verify("", hashed) is False
        assert hasher.verify("password", "") is False

    def test_verify_invalid_hash_returns_false(self, hasher) -> None:
        assert hasher.verify("password", "not-a-bcrypt-hash") is False
