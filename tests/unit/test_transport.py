"""
Unit tests for tliauth.transport.gateway_transport module.

Tests address resolution, connection setup and failure mapping.
"""

import errno
import socket

import pytest

from tliauth.core.exceptions import ConfigurationError, ResourceError, TransportError
from tliauth.transport.gateway_transport import (
    DNSResolver,
    GatewayConnection,
    ResolverMode,
    SystemResolver,
    create_resolver,
)

from tests.conftest import GATEWAY_ADDRESS, GATEWAY_PORT, ScriptedSocketFactory


def _connection(factory, **kwargs) -> GatewayConnection:
    return GatewayConnection(
        address=GATEWAY_ADDRESS,
        port=GATEWAY_PORT,
        socket_factory=factory,
        **kwargs,
    )


class TestResolvers:
    """Tests for gateway address resolution."""

    def test_system_resolver_ipv4_literal(self):
        assert SystemResolver().resolve("127.0.0.1") == "127.0.0.1"

    def test_system_resolver_unresolvable(self):
        with pytest.raises(ConfigurationError) as exc_info:
            SystemResolver().resolve("gateway.invalid")
        assert exc_info.value.code == 40

    def test_dns_resolver_passes_literals_through(self):
        assert DNSResolver().resolve("192.0.2.1") == "192.0.2.1"

    def test_create_resolver(self):
        assert isinstance(create_resolver(), SystemResolver)
        resolver = create_resolver(ResolverMode.DNS, ["198.51.100.53"])
        assert isinstance(resolver, DNSResolver)
        assert resolver.nameservers == ["198.51.100.53"]


class TestGatewayConnectionOpen:
    """Tests for connection setup."""

    def test_open_connects(self):
        factory = ScriptedSocketFactory()
        conn = _connection(factory, timeout=3.0)
        conn.open()
        assert conn.is_open
        assert factory.socket.connected_to == (GATEWAY_ADDRESS, GATEWAY_PORT)
        assert factory.socket.timeout == 3.0

    def test_open_twice_is_noop(self):
        factory = ScriptedSocketFactory()
        conn = _connection(factory)
        conn.open()
        conn.open()
        assert len(factory.sockets) == 1

    def test_bind_address(self):
        factory = ScriptedSocketFactory()
        conn = _connection(factory, bind_address="0.0.0.0")
        conn.open()
        assert factory.socket.bound_to == ("0.0.0.0", 0)

    def test_no_bind_by_default(self):
        factory = ScriptedSocketFactory()
        _connection(factory).open()
        assert factory.socket.bound_to is None

    def test_bind_failure(self):
        factory = ScriptedSocketFactory(bind_error=OSError(errno.EADDRNOTAVAIL, "bad address"))
        conn = _connection(factory, bind_address="203.0.113.9")
        with pytest.raises(ResourceError) as exc_info:
            conn.open()
        assert exc_info.value.code == 42
        assert factory.socket.close_calls == 1
        assert not conn.is_open

    def test_connect_refused(self):
        factory = ScriptedSocketFactory(connect_error=ConnectionRefusedError(errno.ECONNREFUSED, "refused"))
        conn = _connection(factory)
        with pytest.raises(TransportError) as exc_info:
            conn.open()
        assert exc_info.value.code == 50
        assert factory.socket.close_calls == 1

    def test_connect_timeout(self):
        factory = ScriptedSocketFactory(connect_error=socket.timeout("timed out"))
        with pytest.raises(TransportError) as exc_info:
            _connection(factory).open()
        assert exc_info.value.code == 50

    @pytest.mark.parametrize(
        "err,code",
        [
            (errno.ENETDOWN, 10),
            (10091, 10),
            (errno.EAFNOSUPPORT, 20),
            (10092, 20),
            (errno.EMFILE, 30),
        ],
    )
    def test_socket_creation_failures(self, err, code):
        factory = ScriptedSocketFactory(create_error=OSError(err, "socket failed"))
        with pytest.raises(ResourceError) as exc_info:
            _connection(factory).open()
        assert exc_info.value.code == code


class TestGatewayConnectionIO:
    """Tests for send and receive."""

    def test_send(self):
        factory = ScriptedSocketFactory()
        conn = _connection(factory)
        conn.open()
        conn.send(b"\x00\x04abcd", failure_code=60)
        assert factory.socket.sent == [b"\x00\x04abcd"]

    def test_send_failure_uses_given_code(self):
        factory = ScriptedSocketFactory(send_errors={0: BrokenPipeError(errno.EPIPE, "broken pipe")})
        conn = _connection(factory)
        conn.open()
        with pytest.raises(TransportError) as exc_info:
            conn.send(b"data", failure_code=70)
        assert exc_info.value.code == 70

    def test_send_without_open(self):
        with pytest.raises(TransportError):
            _connection(ScriptedSocketFactory()).send(b"data", failure_code=60)

    def test_receive_single_read(self):
        factory = ScriptedSocketFactory(replies=[b"\x01" * 10, b"\x02" * 10])
        conn = _connection(factory)
        conn.open()
        assert conn.receive(100, failure_code=65) == b"\x01" * 10

    def test_receive_until_min_bytes(self):
        factory = ScriptedSocketFactory(replies=[b"\x01" * 10, b"\x02" * 20])
        conn = _connection(factory)
        conn.open()
        assert conn.receive(100, failure_code=75, min_bytes=22) == b"\x01" * 10 + b"\x02" * 20

    def test_receive_capped_at_capacity(self):
        factory = ScriptedSocketFactory(replies=[b"\x01" * 150])
        conn = _connection(factory)
        conn.open()
        assert len(conn.receive(100, failure_code=65)) == 100

    def test_receive_peer_closed(self):
        factory = ScriptedSocketFactory(replies=[b"\x01" * 5])
        conn = _connection(factory)
        conn.open()
        assert conn.receive(100, failure_code=75, min_bytes=22) == b"\x01" * 5

    def test_receive_failure_uses_given_code(self):
        factory = ScriptedSocketFactory(recv_errors={0: socket.timeout("timed out")})
        conn = _connection(factory)
        conn.open()
        with pytest.raises(TransportError) as exc_info:
            conn.receive(100, failure_code=65)
        assert exc_info.value.code == 65


class TestGatewayConnectionClose:
    """Tests for connection release."""

    def test_close_once(self):
        factory = ScriptedSocketFactory()
        conn = _connection(factory)
        conn.open()
        conn.close()
        conn.close()
        assert factory.socket.close_calls == 1
        assert factory.socket.shutdown_calls == 1
        assert not conn.is_open

    def test_close_tolerates_shutdown_error(self):
        factory = ScriptedSocketFactory()
        conn = _connection(factory)
        conn.open()

        def failing_shutdown(how):
            raise OSError(errno.ENOTCONN, "not connected")

        factory.socket.shutdown = failing_shutdown
        conn.close()
        assert factory.socket.close_calls == 1

    def test_context_manager(self):
        factory = ScriptedSocketFactory()
        with _connection(factory) as conn:
            assert conn.is_open
        assert factory.socket.close_calls == 1
