"""
LEB128 varint codec for runestone payloads.

Decoding never raises: on-chain payloads are untrusted, so a malformed
integer ends decoding and the integers read so far are returned.
"""

from typing import List, Optional, Tuple

import varint

from runescan.utils.exceptions import RuneErrorCodes

U128_MAX = (1 << 128) - 1
# 18 bytes carry 126 bits, so every accepted value fits in a u128
MAX_VARINT_LENGTH = 18


def decode_with_status(buffer: bytes) -> Tuple[List[int], Optional[str]]:
    """
    Decode a buffer into a sequence of unsigned integers.

    Returns:
        Tuple of (integers, error_code). error_code is None when the whole
        buffer was consumed, otherwise the reason decoding stopped early.
    """
    integers: List[int] = []
    offset = 0
    length = len(buffer)

    while offset < length:
        result = 0
        shift = 0
        bytes_read = 0

        while True:
            if offset >= length:
                return integers, RuneErrorCodes.TRUNCATED_VARINT

            byte = buffer[offset]
            offset += 1
            bytes_read += 1

            if bytes_read > MAX_VARINT_LENGTH:
                return integers, RuneErrorCodes.VARINT_TOO_LONG

            result |= (byte & 0x7F) << shift
            shift += 7

            if not byte & 0x80:
                break

        integers.append(result)

    return integers, None


def decode(buffer: bytes) -> List[int]:
    """Decode a buffer into integers, dropping anything after a malformed one."""
    integers, _ = decode_with_status(buffer)
    return integers


def encode(values: List[int]) -> bytes:
    """Encode integers as concatenated LEB128 varints."""
    out = bytearray()
    for value in values:
        if value < 0 or value > U128_MAX:
            raise ValueError(f"Value out of u128 range: {value}")
        out += varint.encode(value)
    return bytes(out)
