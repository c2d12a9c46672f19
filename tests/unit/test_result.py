"""
Unit tests for tliauth.tli.result module.
"""

import pytest

from tliauth.core.types import ResultCode
from tliauth.tli.result import RESULT_OFFSET, decode_result


def _reply(value: int) -> bytes:
    reply = bytearray(b"\xff" * 100)
    reply[RESULT_OFFSET] = value
    return bytes(reply)


class TestDecodeResult:
    """Tests for decode_result."""

    def test_result_offset(self):
        assert RESULT_OFFSET == 21

    def test_zero_is_authenticated(self):
        assert decode_result(_reply(0)) == ResultCode.AUTHENTICATED

    def test_seven_is_not_authenticated(self):
        assert decode_result(_reply(7)) == ResultCode.NOT_AUTHENTICATED

    def test_all_values(self):
        """Only a zero result byte authenticates."""
        for value in range(256):
            expected = ResultCode.AUTHENTICATED if value == 0 else ResultCode.NOT_AUTHENTICATED
            assert decode_result(_reply(value)) == expected

    def test_other_bytes_ignored(self):
        reply = bytearray(100)
        reply[20] = 1
        reply[22] = 1
        assert decode_result(bytes(reply)) == ResultCode.AUTHENTICATED

    @pytest.mark.parametrize("length", [0, 1, RESULT_OFFSET])
    def test_short_reply_is_not_authenticated(self, length):
        assert decode_result(b"\x00" * length) == ResultCode.NOT_AUTHENTICATED
