"""
TLIAuth Core Module

Provides foundational types and abstractions used across the package.

Components:
- types: Result codes, credentials, transaction ids, outcomes
- state_machine: Base state machine with invariant checking
- exceptions: Custom exception types
"""

from tliauth.core.types import (
    AuthOutcome,
    Credentials,
    ExchangeCode,
    ResultCode,
    TransactionId,
)
from tliauth.core.state_machine import StateMachineBase, Transition
from tliauth.core.exceptions import (
    BufferOverflow,
    ConfigurationError,
    EncodingError,
    ResourceError,
    TLIAuthError,
    TransportError,
)

__all__ = [
    # Types
    "AuthOutcome",
    "Credentials",
    "ExchangeCode",
    "ResultCode",
    "TransactionId",
    # State Machine
    "StateMachineBase",
    "Transition",
    # Exceptions
    "TLIAuthError",
    "ConfigurationError",
    "ResourceError",
    "TransportError",
    "EncodingError",
    "BufferOverflow",
]
