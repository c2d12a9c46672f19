"""
TLIAuth Session Types

States, context and events of the TLI session state machine.

    IDLE -> CONNECTED -> HANDSHAKE_SENT -> HANDSHAKE_ACKED
         -> AUTH_SENT -> AUTH_ACKED -> DONE

FAILED is absorbing and reachable from every non-terminal state.
"""

from __future__ import annotations

from enum import Enum, auto
from typing import Optional, Tuple

import attrs


# =============================================================================
# TLI STATE MACHINE
# =============================================================================


class TLIState(Enum):
    """TLI session states."""

    IDLE = auto()
    CONNECTED = auto()
    HANDSHAKE_SENT = auto()
    HANDSHAKE_ACKED = auto()
    AUTH_SENT = auto()
    AUTH_ACKED = auto()
    DONE = auto()
    FAILED = auto()


@attrs.define
class TLIContext:
    """
    TLI session context.

    Only lengths of packets and replies are kept, plus the transaction id
    read back from each request actually sent; payloads are not.
    """

    transaction_id: str = ""
    address: str = ""
    port: int = 0

    handshake_length: int = 0
    handshake_reply_length: int = 0
    auth_length: int = 0
    auth_reply_length: int = 0

    sent_transaction_ids: Tuple[str, ...] = ()

    result_code: Optional[int] = None
    error_message: str = ""


# =============================================================================
# TLI EVENTS (for state machine)
# =============================================================================


@attrs.define(frozen=True, slots=True)
class GatewayConnected:
    """Event: TCP connection to the gateway is established."""

    transaction_id: str
    address: str
    port: int


@attrs.define(frozen=True, slots=True)
class HandshakeSent:
    """Event: Exchange-code '0' request was sent."""

    length: int
    transaction_id: str


@attrs.define(frozen=True, slots=True)
class HandshakeAcknowledged:
    """Event: Gateway answered the handshake (content is not interpreted)."""

    length: int


@attrs.define(frozen=True, slots=True)
class AuthRequestSent:
    """Event: Exchange-code '3' request was sent."""

    length: int
    transaction_id: str


@attrs.define(frozen=True, slots=True)
class AuthReplyReceived:
    """Event: Gateway answered the authentication request."""

    length: int


@attrs.define(frozen=True, slots=True)
class ResultDecoded:
    """Event: Reply classified as accepted or rejected."""

    code: int


@attrs.define(frozen=True, slots=True)
class ExchangeFailed:
    """Event: A step failed and the exchange is abandoned."""

    code: Optional[int]
    error_message: str
