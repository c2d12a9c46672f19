#!/usr/bin/env python3
"""
Two-Factor Gateway Authentication Example

Demonstrates how to use TLIAuth to validate one-time tokens against a TLI
gateway.

Features:
1. Packet construction for the handshake and authentication exchanges
2. Token validation through GatewayAuthenticator
3. The integer-returning authenticate() entry point
4. Failure reporting through result codes
5. State machine trace export

A small in-process gateway on 127.0.0.1 stands in for the real one. It
accepts the token "123456" and rejects everything else.
"""

import socket
import threading

from tliauth import GatewayAuthenticator, GatewayConfig, ResultCode, authenticate
from tliauth.core.types import Credentials, TransactionId
from tliauth.tli import PacketBuffer, build_auth_packet, build_handshake_packet
from tliauth.tli.charset import decode_text
from tliauth.tli.result import RESULT_OFFSET


ACCEPTED_TOKEN = "123456"


# =============================================================================
# DEMO GATEWAY
# =============================================================================


def _serve(listener: socket.socket, exchanges: int) -> None:
    """Answer ``exchanges`` invocations, then stop."""
    for _ in range(exchanges):
        conn, _ = listener.accept()
        with conn:
            conn.recv(100)
            conn.sendall(b"\x00" * 24)

            request = conn.recv(100)
            reply = bytearray(30)
            reply[RESULT_OFFSET] = 0 if _token_of(request) == ACCEPTED_TOKEN else 1
            conn.sendall(bytes(reply))


def _token_of(request: bytes) -> str:
    """Pull the token response out of an authentication request."""
    offset = 14
    user_len = int.from_bytes(request[offset : offset + 2], "big")
    offset += 2 + user_len + 6
    token_len = int.from_bytes(request[offset : offset + 2], "big")
    return decode_text(request[offset + 2 : offset + 2 + token_len])


def start_demo_gateway(exchanges: int) -> int:
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(("127.0.0.1", 0))
    listener.listen(1)
    port = listener.getsockname()[1]

    def run() -> None:
        with listener:
            _serve(listener, exchanges)

    threading.Thread(target=run, daemon=True).start()
    return port


def main():
    """Demonstrate two-factor token authentication."""

    print("=" * 70)
    print("TLIAuth - Two-Factor Gateway Authentication")
    print("=" * 70)
    print()

    port = start_demo_gateway(exchanges=3)

    # ==========================================================================
    # EXAMPLE 1: Build Request Packets
    # ==========================================================================
    print("1. Build Request Packets")
    print("-" * 40)

    txid = TransactionId()
    creds = Credentials(application_id="APP1", user_id="alice", token_value=ACCEPTED_TOKEN)
    buffer = PacketBuffer()

    handshake = build_handshake_packet(buffer, txid, creds.application_id)
    print(f"   Transaction ID: {txid.value}")
    print(f"   Handshake: {len(handshake)} bytes, {handshake[:16].hex()}...")

    auth = build_auth_packet(buffer, txid, creds)
    print(f"   Auth Request: {len(auth)} bytes")
    print()

    # ==========================================================================
    # EXAMPLE 2: Validate Tokens
    # ==========================================================================
    print("2. Validate Tokens")
    print("-" * 40)

    config = GatewayConfig(host="127.0.0.1", port=port, application_id="APP1", timeout=5.0)
    authenticator = GatewayAuthenticator(config)

    for token in (ACCEPTED_TOKEN, "000000"):
        outcome = authenticator.authenticate("alice", token)
        print(f"   Token {token}: {outcome.code.name} (code {int(outcome.code)})")
    print()

    # ==========================================================================
    # EXAMPLE 3: Integer Entry Point
    # ==========================================================================
    print("3. Integer Entry Point")
    print("-" * 40)

    code = authenticate("127.0.0.1", str(port), "APP1", "alice", ACCEPTED_TOKEN)
    print(f"   authenticate() -> {int(code)} ({code.description})")

    code = authenticate("127.0.0.1", "not-a-port", "APP1", "alice", ACCEPTED_TOKEN)
    print(f"   Bad port -> {int(code)} ({code.description})")
    print()

    # ==========================================================================
    # EXAMPLE 4: Unreachable Gateway
    # ==========================================================================
    print("4. Unreachable Gateway")
    print("-" * 40)

    # The demo gateway has stopped listening by now
    outcome = authenticator.authenticate("alice", ACCEPTED_TOKEN)
    print(f"   Result: {outcome.code.name} (code {int(outcome.code)})")
    print(f"   Failure: {outcome.is_failure}")
    print(f"   Error: {outcome.error_message}")
    assert outcome.code == ResultCode.CONNECT_FAILED
    print()

    # ==========================================================================
    # EXAMPLE 5: Trace Export
    # ==========================================================================
    print("5. Trace Export")
    print("-" * 40)

    for trace in authenticator.get_traces():
        states = " -> ".join(t["to_state"] for t in trace["transitions"])
        print(f"   [{trace['transaction_id']}] {trace['result']}: {states}")
    print()

    print("=" * 70)
    print("Done")
    print("=" * 70)


if __name__ == "__main__":
    main()
