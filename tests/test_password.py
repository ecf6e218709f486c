"""Tests for the password policy and hashing."""

import pytest

from marketplace.errors import WeakPasswordError
from marketplace.services.password import hash_password, validate_password, verify_password


class TestPasswordPolicy:
    @pytest.mark.parametrize("password", ["Aa@1234", "Str0ng!Pass", "xY#abc"])
    def test_accepts_strong_passwords(self, password: str):
        validate_password(password)

    @pytest.mark.parametrize(
        ("password", "message"),
        [
            ("Aa@1", "at least 6 characters"),
            ("aa@1234", "uppercase"),
            ("AA@1234", "lowercase"),
            ("Aa12345", "special character"),
            ("Aa@" + "x" * 80, "at most 72 bytes"),
        ],
    )
    def test_rejects_weak_passwords(self, password: str, message: str):
        with pytest.raises(WeakPasswordError) as exc_info:
            validate_password(password)
        assert message in exc_info.value.message
        assert exc_info.value.status_code == 400


class TestHashing:
    def test_hash_verifies(self):
        hashed = hash_password("Aa@1234")
        assert hashed != "Aa@1234"
        assert verify_password("Aa@1234", hashed)
        assert not verify_password("Aa@12345", hashed)

    def test_malformed_hash_does_not_verify(self):
        assert not verify_password("Aa@1234", "not-a-bcrypt-hash")
