"""
Unit tests for tliauth.core.types module.

Tests core type definitions, validators, and invariants.
"""

import pytest

from tliauth.core.types import (
    AuthOutcome,
    Credentials,
    ExchangeCode,
    ResultCode,
    TransactionId,
)


class TestResultCode:
    """Tests for ResultCode."""

    def test_code_values(self):
        assert [int(c) for c in ResultCode] == [0, 1, 10, 20, 30, 40, 42, 50, 60, 65, 70, 75]

    def test_definitive_codes(self):
        assert ResultCode.AUTHENTICATED.is_definitive
        assert ResultCode.NOT_AUTHENTICATED.is_definitive
        assert not ResultCode.CONNECT_FAILED.is_definitive

    def test_every_code_has_description(self):
        for code in ResultCode:
            assert code.description

    def test_compares_to_int(self):
        assert ResultCode.ADDRESS_RESOLUTION_FAILED == 40


class TestExchangeCode:
    """Tests for ExchangeCode."""

    def test_values(self):
        assert ExchangeCode.HANDSHAKE.value == "0"
        assert ExchangeCode.AUTHENTICATE.value == "3"


class TestTransactionId:
    """Tests for TransactionId."""

    def test_generated_id_is_six_digits(self):
        txid = TransactionId()
        assert len(txid.value) == 6
        assert txid.value.isdigit()

    def test_generated_digits_below_nine(self):
        for _ in range(50):
            assert all(c in "012345678" for c in TransactionId().value)

    def test_explicit_value(self):
        assert str(TransactionId("000042")) == "000042"

    def test_wrong_length_rejected(self):
        with pytest.raises(ValueError):
            TransactionId("123")

    def test_frozen(self):
        txid = TransactionId("123456")
        with pytest.raises(AttributeError):
            txid.value = "654321"  # type: ignore[misc]


class TestCredentials:
    """Tests for Credentials."""

    def test_creation(self, credentials):
        assert credentials.application_id == "APP1"
        assert credentials.user_id == "alice"
        assert credentials.token_value == "123456"

    def test_token_hidden_from_repr(self, credentials):
        assert "123456" not in repr(credentials)

    def test_field_longer_than_prefix_rejected(self):
        with pytest.raises(ValueError):
            Credentials(application_id="APP1", user_id="u" * 65536, token_value="1")

    def test_non_string_rejected(self):
        with pytest.raises(TypeError):
            Credentials(application_id="APP1", user_id="alice", token_value=123456)


class TestAuthOutcome:
    """Tests for AuthOutcome."""

    def test_accepted(self):
        outcome = AuthOutcome.accepted("012345")
        assert outcome.authenticated
        assert not outcome.is_failure
        assert outcome.code == 0

    def test_rejected(self):
        outcome = AuthOutcome.rejected()
        assert not outcome.authenticated
        assert not outcome.is_failure
        assert outcome.code == ResultCode.NOT_AUTHENTICATED

    def test_failure(self):
        outcome = AuthOutcome.failure(50, "connection refused")
        assert outcome.code is ResultCode.CONNECT_FAILED
        assert outcome.is_failure
        assert outcome.error_message == "connection refused"

    def test_failure_with_definitive_code_rejected(self):
        with pytest.raises(ValueError):
            AuthOutcome.failure(ResultCode.AUTHENTICATED, "not a failure")

    def test_unknown_code_rejected(self):
        with pytest.raises(ValueError):
            AuthOutcome(code=99)
