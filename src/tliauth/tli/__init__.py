"""
TLIAuth TLI Protocol Module

Wire codec and session client for the Transaction Logic Interface.

Components:
- charset: ASCII <-> EBCDIC translation tables
- fields: Bounds-checked packet buffer and field writers
- envelope: Request envelope and packet layouts
- result: Authentication reply classification
- client: Two-exchange session state machine
"""

from tliauth.tli.charset import decode_text, encode_text, to_host, to_wire
from tliauth.tli.client import TLISessionClient, TLISessionStateMachine
from tliauth.tli.envelope import build_auth_packet, build_handshake_packet, build_header
from tliauth.tli.fields import (
    PacketBuffer,
    patch_length,
    write_length_prefixed_text,
    write_raw,
)
from tliauth.tli.result import RESULT_OFFSET, decode_result
from tliauth.tli.types import TLIContext, TLIState

__all__ = [
    # Codec
    "to_wire",
    "to_host",
    "encode_text",
    "decode_text",
    # Packets
    "PacketBuffer",
    "write_length_prefixed_text",
    "write_raw",
    "patch_length",
    "build_header",
    "build_handshake_packet",
    "build_auth_packet",
    # Result
    "RESULT_OFFSET",
    "decode_result",
    # Session
    "TLISessionClient",
    "TLISessionStateMachine",
    "TLIState",
    "TLIContext",
]
