"""
TLIAuth Core Types

Fundamental type definitions shared by the TLI codec, the session client
and the gateway authenticator.

Design Principles:
- Immutable: All types use frozen attrs for safety
- Validated: Type constraints enforced at construction
- Result codes are stable integers returned to embedding hosts
"""

from __future__ import annotations

import secrets
from enum import Enum, IntEnum
from typing import Optional

import attrs
from attrs import field, validators


# Largest value a 2-byte big-endian length prefix can carry
MAX_FIELD_LENGTH = 0xFFFF

TRANSACTION_ID_LENGTH = 6


# =============================================================================
# ENUMS
# =============================================================================


class ResultCode(IntEnum):
    """
    Result of one authentication invocation.

    Values are the codes returned to callers of ``authenticate``.
    """

    AUTHENTICATED = 0
    NOT_AUTHENTICATED = 1
    NETWORK_UNAVAILABLE = 10
    NETWORK_VERSION_UNSUPPORTED = 20
    SOCKET_CREATION_FAILED = 30
    ADDRESS_RESOLUTION_FAILED = 40
    BIND_FAILED = 42
    CONNECT_FAILED = 50
    HANDSHAKE_SEND_FAILED = 60
    HANDSHAKE_RECEIVE_FAILED = 65
    AUTH_SEND_FAILED = 70
    AUTH_RECEIVE_FAILED = 75

    @property
    def is_definitive(self) -> bool:
        """True for accept/reject, False for transport and configuration failures."""
        return self in (ResultCode.AUTHENTICATED, ResultCode.NOT_AUTHENTICATED)

    @property
    def description(self) -> str:
        return _RESULT_DESCRIPTIONS[self]


_RESULT_DESCRIPTIONS = {
    ResultCode.AUTHENTICATED: "Authenticated",
    ResultCode.NOT_AUTHENTICATED: "Not authenticated",
    ResultCode.NETWORK_UNAVAILABLE: "Network subsystem unavailable",
    ResultCode.NETWORK_VERSION_UNSUPPORTED: "Network subsystem version unsupported",
    ResultCode.SOCKET_CREATION_FAILED: "Socket creation failed",
    ResultCode.ADDRESS_RESOLUTION_FAILED: "Gateway address failed to resolve",
    ResultCode.BIND_FAILED: "Local bind failed",
    ResultCode.CONNECT_FAILED: "Connect to gateway failed",
    ResultCode.HANDSHAKE_SEND_FAILED: "Handshake send failed",
    ResultCode.HANDSHAKE_RECEIVE_FAILED: "Handshake receive failed",
    ResultCode.AUTH_SEND_FAILED: "Authentication-request send failed",
    ResultCode.AUTH_RECEIVE_FAILED: "Authentication-request receive failed",
}


class ExchangeCode(Enum):
    """
    Request shape discriminator stamped into byte 13 of the envelope.
    """

    HANDSHAKE = "0"
    AUTHENTICATE = "3"


# =============================================================================
# IDENTITY TYPES
# =============================================================================


@attrs.define(frozen=True, slots=True)
class TransactionId:
    """
    Per-invocation transaction token carried in every request envelope.

    The gateway attaches no meaning to the value; it only has to be present.

    INVARIANT: value is exactly 6 characters
    """

    value: str = field(validator=validators.instance_of(str))

    @value.default
    def _generate(self) -> str:
        return "".join(str(secrets.randbelow(9)) for _ in range(TRANSACTION_ID_LENGTH))

    def __attrs_post_init__(self) -> None:
        if len(self.value) != TRANSACTION_ID_LENGTH:
            raise ValueError(
                f"Transaction id must be {TRANSACTION_ID_LENGTH} characters, got {len(self.value)}"
            )

    def __str__(self) -> str:
        return self.value


def _check_field_length(instance: object, attribute: attrs.Attribute, value: str) -> None:
    if len(value) > MAX_FIELD_LENGTH:
        raise ValueError(f"{attribute.name} exceeds {MAX_FIELD_LENGTH} characters")


@attrs.define(frozen=True, slots=True)
class Credentials:
    """
    Caller-supplied identity presented to the gateway.

    INVARIANT: each field fits a 2-byte length prefix
    """

    application_id: str = field(validator=[validators.instance_of(str), _check_field_length])
    user_id: str = field(validator=[validators.instance_of(str), _check_field_length])
    token_value: str = field(
        validator=[validators.instance_of(str), _check_field_length], repr=False
    )


# =============================================================================
# RESULT TYPES
# =============================================================================


@attrs.define(frozen=True, slots=True)
class AuthOutcome:
    """
    Outcome of one authentication invocation.

    Attributes:
        code: Result code returned to the caller
        error_message: Human-readable failure detail (empty on accept/reject)
        transaction_id: Transaction id used for the exchange, if one started
    """

    code: ResultCode = field(converter=ResultCode)
    error_message: str = ""
    transaction_id: Optional[str] = None

    @property
    def authenticated(self) -> bool:
        return self.code == ResultCode.AUTHENTICATED

    @property
    def is_failure(self) -> bool:
        """True when the exchange aborted before a definitive answer."""
        return not self.code.is_definitive

    @classmethod
    def accepted(cls, transaction_id: Optional[str] = None) -> AuthOutcome:
        return cls(code=ResultCode.AUTHENTICATED, transaction_id=transaction_id)

    @classmethod
    def rejected(cls, transaction_id: Optional[str] = None) -> AuthOutcome:
        return cls(code=ResultCode.NOT_AUTHENTICATED, transaction_id=transaction_id)

    @classmethod
    def failure(
        cls,
        code: int,
        error_message: str,
        transaction_id: Optional[str] = None,
    ) -> AuthOutcome:
        """Create an outcome for an aborted exchange."""
        outcome = cls(code=code, error_message=error_message, transaction_id=transaction_id)
        if outcome.code.is_definitive:
            raise ValueError(f"{outcome.code.name} is not a failure code")
        return outcome
