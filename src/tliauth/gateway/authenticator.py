"""
TLIAuth Gateway Authenticator

High-level interface for two-factor token authentication against a TLI
gateway.

Each call opens its own connection and runs one handshake plus one
authentication exchange. Calls share no mutable state and may run
concurrently. Hosts that cannot tolerate concurrent calls enable
``serialize`` (or use the module-level ``authenticate``), which holds a
single process-wide lock for the whole call.
"""

from __future__ import annotations

import socket
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

import attrs
import structlog
from attrs import field, validators

from tliauth.core.types import AuthOutcome, Credentials, ResultCode
from tliauth.tli.client import TLISessionClient
from tliauth.transport.gateway_transport import ResolverMode, create_resolver

logger = structlog.get_logger()


DEFAULT_TIMEOUT = 10.0


# =============================================================================
# CONFIGURATION
# =============================================================================


def _valid_port(instance: object, attribute: attrs.Attribute, value: int) -> None:
    if not 0 < value <= 0xFFFF:
        raise ValueError(f"{attribute.name} must be in 1..65535, got {value}")


@attrs.define
class GatewayConfig:
    """
    Gateway configuration.

    Attributes:
        host: Gateway host name or IPv4 address
        port: Gateway TCP port
        application_id: Application identifier sent in the handshake
        timeout: Seconds allowed for connect and each send/receive (None blocks)
        bind_address: Local address to bind before connecting
        resolver_mode: How ``host`` is resolved
        nameservers: Nameservers for ``ResolverMode.DNS``
    """

    host: str = field(validator=[validators.instance_of(str), validators.min_len(1)])
    port: int = field(validator=[validators.instance_of(int), _valid_port])
    application_id: str = field(validator=validators.instance_of(str))
    timeout: Optional[float] = DEFAULT_TIMEOUT
    bind_address: Optional[str] = None
    resolver_mode: ResolverMode = ResolverMode.SYSTEM
    nameservers: List[str] = attrs.Factory(list)


# =============================================================================
# REENTRANCY GUARD
# =============================================================================


@attrs.define
class ReentrancyGuard:
    """
    Single critical section around whole authentication calls.

    Only needed by embedding hosts that are not thread-safe; the protocol
    logic itself does not require it.
    """

    _lock: threading.Lock = attrs.Factory(threading.Lock)

    @contextmanager
    def held(self) -> Iterator[None]:
        self._lock.acquire()
        try:
            yield
        finally:
            self._lock.release()

    @property
    def locked(self) -> bool:
        return self._lock.locked()


_PROCESS_GUARD = ReentrancyGuard()


# =============================================================================
# GATEWAY AUTHENTICATOR
# =============================================================================


@attrs.define
class GatewayAuthenticator:
    """
    Two-factor authenticator for a TLI gateway.

    Example:
        config = GatewayConfig(
            host="gateway.example.edu",
            port=7001,
            application_id="APP1",
        )
        auth = GatewayAuthenticator(config)

        outcome = auth.authenticate("alice", "123456")
        if outcome.authenticated:
            print("Token accepted")
        elif outcome.is_failure:
            print(f"Gateway unreachable: {outcome.code.description}")
    """

    config: GatewayConfig
    serialize: bool = False
    guard: ReentrancyGuard = _PROCESS_GUARD
    socket_factory: Callable[..., Any] = socket.socket

    _resolver: Any = None
    _auth_traces: List[Dict[str, Any]] = attrs.Factory(list)
    _logger: Any = attrs.Factory(lambda: structlog.get_logger())

    def __attrs_post_init__(self) -> None:
        if self._resolver is None:
            self._resolver = create_resolver(
                self.config.resolver_mode,
                self.config.nameservers,
            )

    def authenticate(self, user_id: str, token_value: str) -> AuthOutcome:
        """
        Validate a one-time token for a user.

        Args:
            user_id: User identifier
            token_value: Current token code

        Returns:
            AuthOutcome; transport and configuration failures are reported
            through its code, never raised
        """
        credentials = Credentials(
            application_id=self.config.application_id,
            user_id=user_id,
            token_value=token_value,
        )

        if not self.serialize:
            return self._run(credentials)

        with self.guard.held():
            return self._run(credentials)

    def validate_token(self, user_id: str, token_value: str) -> bool:
        """Return True only when the gateway accepted the token."""
        return self.authenticate(user_id, token_value).authenticated

    def _run(self, credentials: Credentials) -> AuthOutcome:
        session = TLISessionClient(
            host=self.config.host,
            port=self.config.port,
            timeout=self.config.timeout,
            bind_address=self.config.bind_address,
            resolver=self._resolver,
            socket_factory=self.socket_factory,
        )
        outcome = session.authenticate(credentials)
        self._record_trace(credentials.user_id, outcome, session.get_trace())
        return outcome

    def get_traces(self) -> List[Dict[str, Any]]:
        """Get a record of every invocation made through this authenticator."""
        return list(self._auth_traces)

    def _record_trace(
        self,
        user_id: str,
        outcome: AuthOutcome,
        transitions: List[Dict[str, Any]],
    ) -> None:
        self._auth_traces.append({
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "user_id": user_id,
            "transaction_id": outcome.transaction_id,
            "result": outcome.code.name,
            "transitions": transitions,
        })


# =============================================================================
# FACTORY FUNCTIONS
# =============================================================================


def create_gateway_authenticator(
    host: str,
    port: int,
    application_id: str,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
    use_dns: bool = False,
    serialize: bool = False,
) -> GatewayAuthenticator:
    """
    Create a gateway authenticator.

    Args:
        host: Gateway host name or IPv4 address
        port: Gateway TCP port
        application_id: Application identifier
        timeout: Connect/read deadline in seconds
        use_dns: Resolve with a direct DNS query instead of the system resolver
        serialize: Hold the process-wide lock for each call
    """
    config = GatewayConfig(
        host=host,
        port=port,
        application_id=application_id,
        timeout=timeout,
        resolver_mode=ResolverMode.DNS if use_dns else ResolverMode.SYSTEM,
    )
    return GatewayAuthenticator(config=config, serialize=serialize)


def authenticate(
    server_address: str,
    server_port: Union[int, str],
    application_id: str,
    user_id: str,
    token_value: str,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
) -> ResultCode:
    """
    Authenticate a token and return its result code.

    Calls are serialized through the process-wide guard, so hosts that are
    not thread-safe can call this directly.

    Returns:
        ResultCode (0 authenticated, 1 not authenticated, otherwise a failure)
    """
    try:
        port = int(server_port)
        config = GatewayConfig(
            host=server_address,
            port=port,
            application_id=application_id,
            timeout=timeout,
        )
    except (TypeError, ValueError) as e:
        logger.warning(
            "gateway_config_invalid",
            host=server_address,
            port=server_port,
            error=str(e),
        )
        return ResultCode.ADDRESS_RESOLUTION_FAILED

    auth = GatewayAuthenticator(config=config, serialize=True)
    return auth.authenticate(user_id, token_value).code
