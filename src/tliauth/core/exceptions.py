"""
TLIAuth Exception Types

Custom exceptions for gateway transport and TLI protocol errors.

Every failure that can end an invocation carries the result code the
public entry point reports for it.
"""

from typing import Optional


class TLIAuthError(Exception):
    """Base exception for all TLIAuth errors."""

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class ConfigurationError(TLIAuthError):
    """
    Gateway configuration is unusable.

    Raised when the gateway address does not resolve or the port is not
    a valid number. Not retried.
    """

    def __init__(self, message: str, code: int = 40) -> None:
        super().__init__(message, code)


class ResourceError(TLIAuthError):
    """
    Local network resources are unavailable.

    Covers the network subsystem, socket creation and local bind.
    """

    NETWORK_UNAVAILABLE = 10
    VERSION_UNSUPPORTED = 20
    SOCKET_FAILED = 30
    BIND_FAILED = 42


class TransportError(TLIAuthError):
    """
    I/O with the gateway failed.

    A single failed connect, send or receive aborts the whole exchange.
    """

    CONNECT_FAILED = 50
    HANDSHAKE_SEND_FAILED = 60
    HANDSHAKE_RECEIVE_FAILED = 65
    AUTH_SEND_FAILED = 70
    AUTH_RECEIVE_FAILED = 75


class EncodingError(TLIAuthError):
    """A TLI packet could not be encoded."""

    pass


class BufferOverflow(EncodingError):
    """
    Packet buffer capacity exceeded.

    Raised before any byte of the offending field is written.
    """

    def __init__(self, needed: int, available: int) -> None:
        super().__init__(
            f"Packet buffer overflow: field needs {needed} bytes, {available} available"
        )
        self.needed = needed
        self.available = available


class StateError(TLIAuthError):
    """
    Invalid state transition.

    An operation was attempted that is not valid in the current
    session state.
    """

    pass


class InvariantViolation(TLIAuthError):
    """
    Session invariant was violated.

    Indicates the session state machine reached a state that its
    registered invariants forbid.
    """

    pass
