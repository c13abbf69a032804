"""
OP_RETURN payload extraction.

Format:
- OP_RETURN (0x6a)
- optional OP_13 (0x5d) runestone marker
- Push bytes (0x01 - 0x4b for 1-75 bytes, or OP_PUSHDATA1/2/4)
- Data bytes
"""

from runescan.utils.exceptions import InvalidScript, NoPayload, UnsupportedPushOpcode

OP_RETURN = 0x6A
OP_13 = 0x5D
OP_PUSHDATA1 = 0x4C
OP_PUSHDATA2 = 0x4D
OP_PUSHDATA4 = 0x4E

RUNESTONE_PREFIX_HEX = "6a5d"


def is_runestone_script(script_hex: str) -> bool:
    """Check if a script carries the OP_RETURN OP_13 runestone marker"""
    return bool(script_hex) and script_hex.lower().startswith(RUNESTONE_PREFIX_HEX)


def extract_payload(script_hex: str) -> bytes:
    """
    Extract the first data push following OP_RETURN.

    Raises:
        InvalidScript: script is not hex or does not start with OP_RETURN
        UnsupportedPushOpcode: the opcode after OP_RETURN is not a data push
        NoPayload: the script ends early or the push overruns the script
    """
    try:
        script_bytes = bytes.fromhex(script_hex)
    except (TypeError, ValueError):
        raise InvalidScript("Script is not valid hex")

    if not script_bytes or script_bytes[0] != OP_RETURN:
        raise InvalidScript()

    pos = 1
    if pos < len(script_bytes) and script_bytes[pos] == OP_13:
        pos += 1

    if pos >= len(script_bytes):
        raise NoPayload()

    push_byte = script_bytes[pos]
    pos += 1

    if 0x01 <= push_byte <= 0x4B:
        data_length = push_byte
    elif push_byte == OP_PUSHDATA1:
        width = 1
        if pos + width > len(script_bytes):
            raise NoPayload("Truncated OP_PUSHDATA1 length")
        data_length = script_bytes[pos]
        pos += width
    elif push_byte == OP_PUSHDATA2:
        width = 2
        if pos + width > len(script_bytes):
            raise NoPayload("Truncated OP_PUSHDATA2 length")
        data_length = int.from_bytes(script_bytes[pos : pos + width], byteorder="little")
        pos += width
    elif push_byte == OP_PUSHDATA4:
        width = 4
        if pos + width > len(script_bytes):
            raise NoPayload("Truncated OP_PUSHDATA4 length")
        data_length = int.from_bytes(script_bytes[pos : pos + width], byteorder="little")
        pos += width
    else:
        raise UnsupportedPushOpcode(push_byte)

    if pos + data_length > len(script_bytes):
        raise NoPayload(
            f"Declared push length {data_length} exceeds remaining {len(script_bytes) - pos} bytes"
        )

    return script_bytes[pos : pos + data_length]


def build_script(payload: bytes, marker: bool = True) -> str:
    """Build an OP_RETURN script hex carrying payload in a single push"""
    if not payload:
        raise ValueError("Payload must not be empty")

    script = bytearray([OP_RETURN])
    if marker:
        script.append(OP_13)

    length = len(payload)
    if length <= 0x4B:
        script.append(length)
    elif length <= 0xFF:
        script += bytes([OP_PUSHDATA1]) + length.to_bytes(1, "little")
    elif length <= 0xFFFF:
        script += bytes([OP_PUSHDATA2]) + length.to_bytes(2, "little")
    else:
        script += bytes([OP_PUSHDATA4]) + length.to_bytes(4, "little")

    script += payload
    return script.hex()
