"""
TLIAuth Session Client

Drives one two-phase TLI exchange against the gateway:

1. Handshake (exchange code '0'): application id and system id. The
   reply is read but not interpreted.
2. Authentication (exchange code '3'): user id and token response. The
   reply's result byte decides accept or reject.

The protocol is strictly request/reply with a single attempt. Any failed
step aborts the invocation, and the connection is closed exactly once on
every exit path.
"""

from __future__ import annotations

import socket
from typing import Any, Callable, Dict, List, Optional, Tuple

import attrs
import structlog
from returns.result import Failure

from tliauth.core.exceptions import (
    ConfigurationError,
    EncodingError,
    ResourceError,
    StateError,
    TransportError,
)
from tliauth.core.state_machine import StateMachineBase, TransitionEntry
from tliauth.core.types import AuthOutcome, Credentials, ResultCode, TransactionId
from tliauth.tli.envelope import (
    build_auth_packet,
    build_handshake_packet,
    packet_transaction_id,
)
from tliauth.tli.fields import FILL_BYTE, PACKET_CAPACITY, PacketBuffer
from tliauth.tli.result import RESULT_OFFSET, decode_result
from tliauth.tli.types import (
    AuthReplyReceived,
    AuthRequestSent,
    ExchangeFailed,
    GatewayConnected,
    HandshakeAcknowledged,
    HandshakeSent,
    ResultDecoded,
    TLIContext,
    TLIState,
)
from tliauth.transport.gateway_transport import GatewayConnection, SystemResolver

logger = structlog.get_logger()


_NON_TERMINAL_STATES = (
    TLIState.IDLE,
    TLIState.CONNECTED,
    TLIState.HANDSHAKE_SENT,
    TLIState.HANDSHAKE_ACKED,
    TLIState.AUTH_SENT,
    TLIState.AUTH_ACKED,
)


# =============================================================================
# STATE MACHINE
# =============================================================================


@attrs.define
class TLISessionStateMachine(
    StateMachineBase[TLIState, TLIContext]
):
    """
    State machine for one TLI exchange.

    States:
    - IDLE: Nothing sent
    - CONNECTED: TCP connection open
    - HANDSHAKE_SENT / HANDSHAKE_ACKED: Exchange '0' in flight / answered
    - AUTH_SENT / AUTH_ACKED: Exchange '3' in flight / answered
    - DONE: Reply classified
    - FAILED: Exchange abandoned
    """

    def initial_state(self) -> TLIState:
        return TLIState.IDLE

    def initial_context(self) -> TLIContext:
        return TLIContext()

    def transition_table(
        self,
    ) -> Dict[Tuple[TLIState, type], TransitionEntry]:
        table: Dict[Tuple[TLIState, type], TransitionEntry] = {
            (TLIState.IDLE, GatewayConnected): (
                TLIState.CONNECTED,
                self._handle_connected,
            ),
            (TLIState.CONNECTED, HandshakeSent): (
                TLIState.HANDSHAKE_SENT,
                self._handle_handshake_sent,
            ),
            (TLIState.HANDSHAKE_SENT, HandshakeAcknowledged): (
                TLIState.HANDSHAKE_ACKED,
                self._handle_handshake_acked,
            ),
            (TLIState.HANDSHAKE_ACKED, AuthRequestSent): (
                TLIState.AUTH_SENT,
                self._handle_auth_sent,
            ),
            (TLIState.AUTH_SENT, AuthReplyReceived): (
                TLIState.AUTH_ACKED,
                self._handle_auth_reply,
            ),
            (TLIState.AUTH_ACKED, ResultDecoded): (
                TLIState.DONE,
                self._handle_result,
            ),
        }
        for state in _NON_TERMINAL_STATES:
            table[(state, ExchangeFailed)] = (TLIState.FAILED, self._handle_failure)
        return table

    @staticmethod
    def _handle_connected(event: GatewayConnected, ctx: TLIContext) -> TLIContext:
        return attrs.evolve(
            ctx,
            transaction_id=event.transaction_id,
            address=event.address,
            port=event.port,
        )

    @staticmethod
    def _handle_handshake_sent(event: HandshakeSent, ctx: TLIContext) -> TLIContext:
        return attrs.evolve(
            ctx,
            handshake_length=event.length,
            sent_transaction_ids=ctx.sent_transaction_ids + (event.transaction_id,),
        )

    @staticmethod
    def _handle_handshake_acked(
        event: HandshakeAcknowledged, ctx: TLIContext
    ) -> TLIContext:
        return attrs.evolve(ctx, handshake_reply_length=event.length)

    @staticmethod
    def _handle_auth_sent(event: AuthRequestSent, ctx: TLIContext) -> TLIContext:
        return attrs.evolve(
            ctx,
            auth_length=event.length,
            sent_transaction_ids=ctx.sent_transaction_ids + (event.transaction_id,),
        )

    @staticmethod
    def _handle_auth_reply(event: AuthReplyReceived, ctx: TLIContext) -> TLIContext:
        return attrs.evolve(ctx, auth_reply_length=event.length)

    @staticmethod
    def _handle_result(event: ResultDecoded, ctx: TLIContext) -> TLIContext:
        return attrs.evolve(ctx, result_code=event.code)

    @staticmethod
    def _handle_failure(event: ExchangeFailed, ctx: TLIContext) -> TLIContext:
        return attrs.evolve(
            ctx,
            result_code=event.code,
            error_message=event.error_message,
        )


# =============================================================================
# SESSION CLIENT
# =============================================================================


@attrs.define
class TLISessionClient:
    """
    Single-use TLI client for one authentication invocation.

    The packet buffer and transaction id belong to this invocation only;
    create a new client for every call.

    Example:
        client = TLISessionClient(host="gateway.example.edu", port=7001)
        outcome = client.authenticate(
            Credentials(application_id="APP1", user_id="alice", token_value="123456")
        )
        if outcome.authenticated:
            ...
    """

    host: str
    port: int
    timeout: Optional[float] = 10.0
    bind_address: Optional[str] = None
    resolver: Any = attrs.Factory(SystemResolver)
    socket_factory: Callable[..., Any] = socket.socket
    transaction_id: TransactionId = attrs.Factory(TransactionId)

    _buffer: PacketBuffer = attrs.Factory(PacketBuffer)
    _state_machine: TLISessionStateMachine = attrs.Factory(TLISessionStateMachine)
    _logger: Any = attrs.Factory(lambda: structlog.get_logger())

    def __attrs_post_init__(self) -> None:
        self._state_machine.add_invariant(
            "sent_transaction_ids_match",
            self._sent_transaction_ids_match,
        )
        self._state_machine.add_invariant(
            "done_has_definitive_result",
            self._done_has_definitive_result,
        )

    def _sent_transaction_ids_match(self, state: TLIState, ctx: TLIContext) -> bool:
        """Invariant: every request on the wire carried this session's id."""
        expected = self.transaction_id.value
        return all(sent == expected for sent in ctx.sent_transaction_ids)

    @staticmethod
    def _done_has_definitive_result(state: TLIState, ctx: TLIContext) -> bool:
        """Invariant: DONE carries accept or reject, nothing else."""
        if state == TLIState.DONE:
            return ctx.result_code in (
                ResultCode.AUTHENTICATED,
                ResultCode.NOT_AUTHENTICATED,
            )
        return True

    @property
    def state(self) -> TLIState:
        """Current session state."""
        return self._state_machine.state

    @property
    def context(self) -> TLIContext:
        """Current context (read-only)."""
        return self._state_machine.context

    def authenticate(self, credentials: Credentials) -> AuthOutcome:
        """
        Run the handshake and authentication exchanges.

        Returns:
            AuthOutcome with the result code for the invocation

        Raises:
            StateError: If this client was already used
            EncodingError: If the credentials do not fit a TLI packet; raised
                before any connection is opened
        """
        if self.state != TLIState.IDLE:
            raise StateError(f"Session already used (state {self.state.name})")

        txid = self.transaction_id.value
        self._logger.info(
            "tli_auth_start",
            host=self.host,
            port=self.port,
            transaction_id=txid,
        )

        connection: Optional[GatewayConnection] = None
        try:
            # Both requests are encoded before any I/O
            handshake = build_handshake_packet(
                self._buffer, self.transaction_id, credentials.application_id
            )
            auth_request = build_auth_packet(self._buffer, self.transaction_id, credentials)

            address = self.resolver.resolve(self.host)
            connection = GatewayConnection(
                address=address,
                port=self.port,
                timeout=self.timeout,
                bind_address=self.bind_address,
                socket_factory=self.socket_factory,
            )
            connection.open()
            self._advance(GatewayConnected(transaction_id=txid, address=address, port=self.port))

            self._run_handshake(connection, handshake)
            code = self._run_authentication(connection, auth_request)

        except (ConfigurationError, ResourceError, TransportError) as e:
            self._advance(ExchangeFailed(code=e.code, error_message=e.message))
            self._logger.warning(
                "tli_auth_aborted",
                code=e.code,
                state=self.state.name,
                error=e.message,
                transaction_id=txid,
            )
            return AuthOutcome.failure(e.code, e.message, transaction_id=txid)

        except EncodingError as e:
            self._advance(ExchangeFailed(code=None, error_message=e.message))
            self._logger.error("tli_encoding_failed", error=e.message, transaction_id=txid)
            raise

        finally:
            if connection is not None:
                connection.close()

        self._logger.info(
            "tli_auth_complete",
            result=code.name,
            transaction_id=txid,
        )
        return AuthOutcome(code=code, transaction_id=txid)

    def _run_handshake(self, connection: GatewayConnection, packet: bytes) -> None:
        connection.send(packet, TransportError.HANDSHAKE_SEND_FAILED)
        self._advance(
            HandshakeSent(length=len(packet), transaction_id=packet_transaction_id(packet))
        )

        reply = connection.receive(PACKET_CAPACITY, TransportError.HANDSHAKE_RECEIVE_FAILED)
        self._advance(HandshakeAcknowledged(length=len(reply)))

    def _run_authentication(self, connection: GatewayConnection, packet: bytes) -> ResultCode:
        connection.send(packet, TransportError.AUTH_SEND_FAILED)
        self._advance(
            AuthRequestSent(length=len(packet), transaction_id=packet_transaction_id(packet))
        )

        reply = connection.receive(
            PACKET_CAPACITY,
            TransportError.AUTH_RECEIVE_FAILED,
            min_bytes=RESULT_OFFSET + 1,
        )
        self._advance(AuthReplyReceived(length=len(reply)))

        code = decode_result(reply.ljust(PACKET_CAPACITY, bytes([FILL_BYTE])))
        self._advance(ResultDecoded(code=code))
        return code

    def _advance(self, event: Any) -> None:
        result = self._state_machine.process_event(event)
        if isinstance(result, Failure):
            raise StateError(result.failure())

    def get_trace(self) -> List[Dict[str, Any]]:
        """Get the session's transition history."""
        return [t.to_dict() for t in self._state_machine.get_trace()]

    def export_trace_json(self) -> str:
        return self._state_machine.export_trace_json()
