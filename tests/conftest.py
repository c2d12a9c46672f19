"""
Pytest configuration and shared fixtures for TLIAuth tests.
"""

from typing import List, Optional

import pytest

from tliauth.core.exceptions import ConfigurationError
from tliauth.core.types import Credentials, TransactionId
from tliauth.tli.fields import PacketBuffer
from tliauth.tli.result import RESULT_OFFSET


GATEWAY_ADDRESS = "192.0.2.10"
GATEWAY_PORT = 7001


# =============================================================================
# SCRIPTED GATEWAY
# =============================================================================


class ScriptedSocket:
    """
    Stand-in for a connected TCP socket.

    Plays back scripted replies and records everything sent to it.
    """

    def __init__(
        self,
        replies: Optional[List[bytes]] = None,
        connect_error: Optional[OSError] = None,
        bind_error: Optional[OSError] = None,
        send_errors: Optional[dict] = None,
        recv_errors: Optional[dict] = None,
    ) -> None:
        self.replies = list(replies or [])
        self.connect_error = connect_error
        self.bind_error = bind_error
        # Keyed by 0-based call number
        self.send_errors = send_errors or {}
        self.recv_errors = recv_errors or {}

        self.sent: List[bytes] = []
        self.recv_calls = 0
        self.timeout = None
        self.bound_to = None
        self.connected_to = None
        self.shutdown_calls = 0
        self.close_calls = 0

    def settimeout(self, timeout):
        self.timeout = timeout

    def bind(self, address):
        if self.bind_error is not None:
            raise self.bind_error
        self.bound_to = address

    def connect(self, address):
        if self.connect_error is not None:
            raise self.connect_error
        self.connected_to = address

    def sendall(self, data):
        call = len(self.sent)
        if call in self.send_errors:
            raise self.send_errors[call]
        self.sent.append(bytes(data))

    def recv(self, size):
        call = self.recv_calls
        self.recv_calls += 1
        if call in self.recv_errors:
            raise self.recv_errors[call]
        if not self.replies:
            return b""
        reply = self.replies.pop(0)
        if len(reply) > size:
            self.replies.insert(0, reply[size:])
        return reply[:size]

    def shutdown(self, how):
        self.shutdown_calls += 1

    def close(self):
        self.close_calls += 1


class ScriptedSocketFactory:
    """Socket factory handing out ScriptedSocket instances."""

    def __init__(self, create_error: Optional[OSError] = None, **socket_kwargs) -> None:
        self.create_error = create_error
        self.socket_kwargs = socket_kwargs
        self.sockets: List[ScriptedSocket] = []

    def __call__(self, family, type_):
        if self.create_error is not None:
            raise self.create_error
        sock = ScriptedSocket(**self.socket_kwargs)
        self.sockets.append(sock)
        return sock

    @property
    def socket(self) -> ScriptedSocket:
        return self.sockets[0]


class StaticResolver:
    """Resolver returning a fixed address, or failing."""

    def __init__(self, address: str = GATEWAY_ADDRESS, fail: bool = False) -> None:
        self.address = address
        self.fail = fail
        self.lookups: List[str] = []

    def resolve(self, host: str) -> str:
        self.lookups.append(host)
        if self.fail:
            raise ConfigurationError(f"Gateway address {host!r} failed to resolve")
        return self.address


def make_reply(result_byte: int = 0, length: int = 30) -> bytes:
    """Build a gateway reply with the given byte at the result offset."""
    reply = bytearray(b"\x00" * length)
    if length > RESULT_OFFSET:
        reply[RESULT_OFFSET] = result_byte
    return bytes(reply)


HANDSHAKE_ACK = make_reply(0x40, length=24)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def transaction_id() -> TransactionId:
    """Fixed transaction id."""
    return TransactionId("012345")


@pytest.fixture
def credentials() -> Credentials:
    """Credentials used throughout the end-to-end scenarios."""
    return Credentials(application_id="APP1", user_id="alice", token_value="123456")


@pytest.fixture
def packet_buffer() -> PacketBuffer:
    """Empty 100-byte packet buffer."""
    return PacketBuffer()


@pytest.fixture
def resolver() -> StaticResolver:
    return StaticResolver()


@pytest.fixture
def accepting_gateway() -> ScriptedSocketFactory:
    """Gateway that acknowledges the handshake and accepts the token."""
    return ScriptedSocketFactory(replies=[HANDSHAKE_ACK, make_reply(0)])


@pytest.fixture
def rejecting_gateway() -> ScriptedSocketFactory:
    """Gateway that acknowledges the handshake and rejects the token."""
    return ScriptedSocketFactory(replies=[HANDSHAKE_ACK, make_reply(7)])


# =============================================================================
# PYTEST MARKERS
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "loopback: marks tests that open sockets on 127.0.0.1"
    )
