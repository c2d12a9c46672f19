"""
TLIAuth Envelope Builder

Lays out the two TLI request packets.

Envelope (shared by every request):
    [0, 2)   total packet length, big-endian, patched last
    [2, 4)   "OS"
    [4, 10)  transaction id
    [10, 12) "SE"
    12       "0"
    13       exchange code ("0" handshake, "3" authenticate)

All text is wire-encoded. Fields after the envelope depend on the
exchange code; every field not carrying caller data is a constant the
gateway requires.
"""

from __future__ import annotations

import struct

from tliauth.core.types import (
    TRANSACTION_ID_LENGTH,
    Credentials,
    ExchangeCode,
    TransactionId,
)
from tliauth.tli.charset import decode_text, encode_text, to_wire
from tliauth.tli.fields import (
    PacketBuffer,
    patch_length,
    write_length_prefixed_text,
    write_raw,
    write_zero_field,
)


HEADER_SIZE = 14
TRANSACTION_ID_OFFSET = 4

SESSION_TAG = "OS"
ENVELOPE_TAG = "SE"
PROCESS_PREFIX = "0"

SYSTEM_ID = "NCTLI"
REQUESTOR_ID = "TCP"
TERMINAL_ID = "WEBTERM"
TARGET_SUPPLEMENT = "TLI"

# 0, 1, then a wire-encoded '1'
DIRECTION_MARKER = bytes([0, 1, to_wire(ord("1"))])

# SecurID standard token
TOKEN_TYPE_SECURID = 11


def build_header(
    buffer: PacketBuffer,
    transaction_id: TransactionId,
    exchange_code: ExchangeCode,
) -> int:
    """
    Write the common envelope at the start of the buffer.

    Returns:
        Cursor at which exchange-specific fields begin
    """
    write_raw(buffer, b"\x00\x00")
    write_raw(buffer, encode_text(SESSION_TAG))
    write_raw(buffer, encode_text(transaction_id.value))
    write_raw(buffer, encode_text(ENVELOPE_TAG))
    write_raw(buffer, encode_text(PROCESS_PREFIX))
    return write_raw(buffer, encode_text(exchange_code.value))


def build_handshake_packet(
    buffer: PacketBuffer,
    transaction_id: TransactionId,
    application_id: str,
) -> bytes:
    """Build the exchange-code '0' handshake request."""
    buffer.reset()
    build_header(buffer, transaction_id, ExchangeCode.HANDSHAKE)
    write_length_prefixed_text(buffer, application_id)
    write_length_prefixed_text(buffer, SYSTEM_ID)
    write_zero_field(buffer)  # password, unused
    write_raw(buffer, DIRECTION_MARKER)
    patch_length(buffer)
    return buffer.to_bytes()


def build_auth_packet(
    buffer: PacketBuffer,
    transaction_id: TransactionId,
    credentials: Credentials,
) -> bytes:
    """Build the exchange-code '3' authentication request."""
    buffer.reset()
    build_header(buffer, transaction_id, ExchangeCode.AUTHENTICATE)
    write_length_prefixed_text(buffer, credentials.user_id)
    write_zero_field(buffer)  # remote user
    write_zero_field(buffer)  # current password
    write_zero_field(buffer)  # token challenge
    write_length_prefixed_text(buffer, credentials.token_value)
    write_zero_field(buffer)  # token serial number
    write_raw(buffer, struct.pack(">HH", 2, TOKEN_TYPE_SECURID))
    write_zero_field(buffer)  # new token challenge
    write_zero_field(buffer)  # new token response
    write_zero_field(buffer)  # PIN
    write_length_prefixed_text(buffer, REQUESTOR_ID)
    write_length_prefixed_text(buffer, TERMINAL_ID)
    write_zero_field(buffer)  # target
    write_length_prefixed_text(buffer, TARGET_SUPPLEMENT)
    write_raw(buffer, b"\x00")
    patch_length(buffer)
    return buffer.to_bytes()


def packet_transaction_id(packet: bytes) -> str:
    """Read the transaction id back out of a built request."""
    start = TRANSACTION_ID_OFFSET
    return decode_text(packet[start : start + TRANSACTION_ID_LENGTH])
