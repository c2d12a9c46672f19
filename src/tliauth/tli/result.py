"""
TLIAuth Result Decoder

Classifies the gateway's authentication reply.

The gateway signals its decision with a single byte at offset 21 of the
reply: zero accepts the credential, anything else rejects it. It gives
no reason for a rejection.
"""

from __future__ import annotations

from tliauth.core.types import ResultCode


RESULT_OFFSET = 21


def decode_result(reply: bytes) -> ResultCode:
    """
    Classify an authentication reply buffer.

    A reply too short to hold the result byte is a rejection.
    """
    if len(reply) <= RESULT_OFFSET:
        return ResultCode.NOT_AUTHENTICATED
    if reply[RESULT_OFFSET] == 0:
        return ResultCode.AUTHENTICATED
    return ResultCode.NOT_AUTHENTICATED
