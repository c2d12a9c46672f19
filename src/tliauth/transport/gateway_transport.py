"""
TLIAuth Gateway Transport Layer

Network transport for the two-factor authentication gateway.

Provides:
- Gateway address resolution (system resolver or DNS A-record lookup)
- A single platform-neutral TCP connection: open / send / receive / close

Every failure is raised as a typed exception carrying the result code of
the step that failed. The connection is closed at most once.
"""

from __future__ import annotations

import errno
import socket
from enum import Enum, auto
from typing import Any, Callable, List, Optional

import attrs
import structlog

from tliauth.core.exceptions import ConfigurationError, ResourceError, TransportError

logger = structlog.get_logger()


# =============================================================================
# ADDRESS RESOLUTION
# =============================================================================


class ResolverMode(Enum):
    """How the gateway host name is turned into an IPv4 address."""

    SYSTEM = auto()
    DNS = auto()


@attrs.define
class SystemResolver:
    """Resolve through the platform resolver (hosts file, then DNS)."""

    _logger: Any = attrs.Factory(lambda: structlog.get_logger())

    def resolve(self, host: str) -> str:
        try:
            infos = socket.getaddrinfo(host, None, socket.AF_INET, socket.SOCK_STREAM)
        except (socket.gaierror, UnicodeError) as e:
            self._logger.warning("gateway_resolve_failed", host=host, error=str(e))
            raise ConfigurationError(f"Gateway address {host!r} failed to resolve: {e}") from e

        if not infos:
            raise ConfigurationError(f"Gateway address {host!r} has no IPv4 address")

        address = infos[0][4][0]
        self._logger.debug("gateway_resolved", host=host, address=address)
        return address


@attrs.define
class DNSResolver:
    """
    Resolve with a direct DNS A-record query.

    Bypasses the hosts file; useful when the gateway must be looked up
    against specific nameservers.
    """

    nameservers: List[str] = attrs.Factory(list)
    lifetime: float = 5.0

    _logger: Any = attrs.Factory(lambda: structlog.get_logger())

    def resolve(self, host: str) -> str:
        import dns.exception
        import dns.resolver

        if _is_ipv4_literal(host):
            return host

        resolver = dns.resolver.Resolver()
        if self.nameservers:
            resolver.nameservers = list(self.nameservers)

        try:
            answers = resolver.resolve(host, "A", lifetime=self.lifetime)
        except dns.exception.DNSException as e:
            self._logger.warning("gateway_dns_lookup_failed", host=host, error=str(e))
            raise ConfigurationError(f"Gateway address {host!r} failed to resolve: {e}") from e

        address = str(answers[0].address)
        self._logger.debug("gateway_resolved", host=host, address=address, resolver="dns")
        return address


def _is_ipv4_literal(host: str) -> bool:
    try:
        socket.inet_aton(host)
    except OSError:
        return False
    return host.count(".") == 3


def create_resolver(
    mode: ResolverMode = ResolverMode.SYSTEM,
    nameservers: Optional[List[str]] = None,
) -> Any:
    """Create the resolver for a resolver mode."""
    if mode == ResolverMode.DNS:
        return DNSResolver(nameservers=list(nameservers or []))
    return SystemResolver()


# =============================================================================
# GATEWAY CONNECTION
# =============================================================================


# Socket creation errors meaning the network subsystem itself is missing
_SUBSYSTEM_UNAVAILABLE_ERRNOS = {
    errno.ENETDOWN,
    10091,  # WSASYSNOTREADY
    10093,  # WSANOTINITIALISED
}

# Socket creation errors meaning the stack does not support what we ask of it
_SUBSYSTEM_UNSUPPORTED_ERRNOS = {
    errno.EAFNOSUPPORT,
    errno.EPROTONOSUPPORT,
    10047,  # WSAEAFNOSUPPORT
    10092,  # WSAVERNOTSUPPORTED
}


@attrs.define
class GatewayConnection:
    """
    TCP connection to the authentication gateway.

    A connection is single-use: open it, run one exchange, close it.
    ``timeout`` bounds connect and every send and receive.
    """

    address: str
    port: int
    timeout: Optional[float] = 10.0
    bind_address: Optional[str] = None
    socket_factory: Callable[..., Any] = socket.socket

    _socket: Optional[Any] = None
    _logger: Any = attrs.Factory(lambda: structlog.get_logger())

    @property
    def is_open(self) -> bool:
        return self._socket is not None

    def open(self) -> None:
        """
        Create the socket, optionally bind it, and connect.

        Raises:
            ResourceError: Socket could not be created or bound
            TransportError: Connect failed or timed out
        """
        if self._socket is not None:
            return

        try:
            sock = self.socket_factory(socket.AF_INET, socket.SOCK_STREAM)
        except OSError as e:
            code = _socket_creation_code(e)
            self._logger.error("gateway_socket_failed", error=str(e), code=code)
            raise ResourceError(f"Socket creation failed: {e}", code=code) from e

        self._socket = sock

        try:
            sock.settimeout(self.timeout)
        except OSError as e:
            self.close()
            raise ResourceError(
                f"Socket configuration failed: {e}", code=ResourceError.SOCKET_FAILED
            ) from e

        if self.bind_address is not None:
            try:
                sock.bind((self.bind_address, 0))
            except OSError as e:
                self._logger.error(
                    "gateway_bind_failed",
                    bind_address=self.bind_address,
                    error=str(e),
                )
                self.close()
                raise ResourceError(
                    f"Local bind to {self.bind_address} failed: {e}",
                    code=ResourceError.BIND_FAILED,
                ) from e

        try:
            sock.connect((self.address, self.port))
        except OSError as e:
            self._logger.error(
                "gateway_connect_failed",
                address=self.address,
                port=self.port,
                error=str(e),
            )
            self.close()
            raise TransportError(
                f"Failed to connect to gateway {self.address}:{self.port}: {e}",
                code=TransportError.CONNECT_FAILED,
            ) from e

        self._logger.debug("gateway_connected", address=self.address, port=self.port)

    def send(self, data: bytes, failure_code: int) -> None:
        """Send a whole packet; any error aborts with ``failure_code``."""
        if self._socket is None:
            raise TransportError("Gateway connection is not open", code=failure_code)

        try:
            self._socket.sendall(data)
        except OSError as e:
            self._logger.error("gateway_send_failed", length=len(data), error=str(e))
            raise TransportError(f"Gateway send failed: {e}", code=failure_code) from e

        self._logger.debug("gateway_sent", length=len(data))

    def receive(self, capacity: int, failure_code: int, min_bytes: int = 1) -> bytes:
        """
        Read up to ``capacity`` bytes.

        Keeps reading until at least ``min_bytes`` have arrived or the peer
        closes. A closed peer is not itself an error; the bytes read so far
        are returned.
        """
        if self._socket is None:
            raise TransportError("Gateway connection is not open", code=failure_code)

        data = bytearray()
        try:
            while len(data) < capacity:
                chunk = self._socket.recv(capacity - len(data))
                if not chunk:
                    self._logger.debug("gateway_peer_closed", received=len(data))
                    break
                data += chunk
                if len(data) >= min_bytes:
                    break
        except OSError as e:
            self._logger.error("gateway_receive_failed", received=len(data), error=str(e))
            raise TransportError(f"Gateway receive failed: {e}", code=failure_code) from e

        self._logger.debug("gateway_received", length=len(data))
        return bytes(data)

    def close(self) -> None:
        """Shut down and close the socket. Safe to call more than once."""
        sock, self._socket = self._socket, None
        if sock is None:
            return
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            # Not connected, or the peer already went away
            pass
        try:
            sock.close()
        finally:
            self._logger.debug("gateway_connection_closed", address=self.address)

    def __enter__(self) -> "GatewayConnection":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def _socket_creation_code(error: OSError) -> int:
    if error.errno in _SUBSYSTEM_UNAVAILABLE_ERRNOS:
        return ResourceError.NETWORK_UNAVAILABLE
    if error.errno in _SUBSYSTEM_UNSUPPORTED_ERRNOS:
        return ResourceError.VERSION_UNSUPPORTED
    return ResourceError.SOCKET_FAILED
