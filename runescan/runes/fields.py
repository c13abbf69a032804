"""
Runestone field extraction and rune name formatting.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Callable, Dict, List, Optional

from .message import FieldMap

ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
SPACER = "•"
MAX_SAFE_INTEGER = (1 << 53) - 1
MAX_CODE_POINT = 0x10FFFF


class Tag(IntEnum):
    FLAGS = 2
    SPACERS = 3
    RUNE = 4
    SYMBOL = 5
    PREMINE = 6
    CAP = 8
    AMOUNT = 10
    HEIGHT_START = 12
    HEIGHT_END = 14
    OFFSET_START = 16
    OFFSET_END = 18
    VERSION = 19
    MINT = 20
    POINTER = 22


class Flag(IntEnum):
    ETCHING = 1
    TERMS = 2
    TURBO = 4


@dataclass
class MintId:
    block: int
    tx: int


@dataclass
class EtchingFields:
    flags: Optional[int] = None
    spacers: Optional[int] = None
    rune: Optional[int] = None
    symbol: Optional[str] = None
    premine: Optional[int] = None
    cap: Optional[int] = None
    amount: Optional[int] = None
    height_start: Optional[int] = None
    height_end: Optional[int] = None
    offset_start: Optional[int] = None
    offset_end: Optional[int] = None
    version: Optional[int] = None
    mint: Optional[MintId] = None
    pointer: Optional[int] = None
    unknown: Dict[str, List[str]] = field(default_factory=dict)


def decode_symbol(value: int) -> Optional[str]:
    """Interpret a value as a Unicode code point, None when it cannot be one"""
    if value < 0 or value > MAX_SAFE_INTEGER or value > MAX_CODE_POINT:
        return None
    if 0xD800 <= value <= 0xDFFF:
        return None
    return chr(value)


def _set_flags(fields: EtchingFields, values: List[int]) -> None:
    fields.flags = values[0]


def _set_spacers(fields: EtchingFields, values: List[int]) -> None:
    fields.spacers = values[0]


def _set_rune(fields: EtchingFields, values: List[int]) -> None:
    fields.rune = values[0]


def _set_symbol(fields: EtchingFields, values: List[int]) -> None:
    fields.symbol = decode_symbol(values[0])


def _set_premine(fields: EtchingFields, values: List[int]) -> None:
    fields.premine = values[0]


def _set_cap(fields: EtchingFields, values: List[int]) -> None:
    fields.cap = values[0]


def _set_amount(fields: EtchingFields, values: List[int]) -> None:
    fields.amount = values[0]


def _set_height_start(fields: EtchingFields, values: List[int]) -> None:
    fields.height_start = values[0]


def _set_height_end(fields: EtchingFields, values: List[int]) -> None:
    fields.height_end = values[0]


def _set_offset_start(fields: EtchingFields, values: List[int]) -> None:
    fields.offset_start = values[0]


def _set_offset_end(fields: EtchingFields, values: List[int]) -> None:
    fields.offset_end = values[0]


def _set_version(fields: EtchingFields, values: List[int]) -> None:
    fields.version = values[0]


def _set_mint(fields: EtchingFields, values: List[int]) -> None:
    # Second value is optional, tx defaults to 0
    fields.mint = MintId(block=values[0], tx=values[1] if len(values) > 1 else 0)


def _set_pointer(fields: EtchingFields, values: List[int]) -> None:
    fields.pointer = values[0]


TAG_SETTERS: Dict[Tag, Callable[[EtchingFields, List[int]], None]] = {
    Tag.FLAGS: _set_flags,
    Tag.SPACERS: _set_spacers,
    Tag.RUNE: _set_rune,
    Tag.SYMBOL: _set_symbol,
    Tag.PREMINE: _set_premine,
    Tag.CAP: _set_cap,
    Tag.AMOUNT: _set_amount,
    Tag.HEIGHT_START: _set_height_start,
    Tag.HEIGHT_END: _set_height_end,
    Tag.OFFSET_START: _set_offset_start,
    Tag.OFFSET_END: _set_offset_end,
    Tag.VERSION: _set_version,
    Tag.MINT: _set_mint,
    Tag.POINTER: _set_pointer,
}


def extract_fields(fields: FieldMap) -> EtchingFields:
    """Map tagged values onto etching fields, keeping unknown tags verbatim"""
    result = EtchingFields()
    for tag, values in fields.items():
        if not values:
            continue
        try:
            setter = TAG_SETTERS[Tag(tag)]
        except ValueError:
            result.unknown[str(tag)] = [str(v) for v in values]
            continue
        setter(result, values)
    return result


def decode_rune_name(value: Optional[int]) -> Optional[str]:
    """
    Decode a rune's numeric identifier as a bijective base-26 name.

    1 -> "A", 26 -> "Z", 27 -> "AA". Zero and negatives have no name.
    """
    if value is None or value <= 0:
        return None

    letters = []
    n = value
    while n > 0:
        n -= 1
        letters.append(ALPHABET[n % 26])
        n //= 26
    return "".join(reversed(letters))


def encode_rune_name(name: str) -> int:
    """Inverse of decode_rune_name"""
    if not name:
        raise ValueError("Rune name must not be empty")

    value = 0
    for char in name:
        index = ALPHABET.find(char)
        if index < 0:
            raise ValueError(f"Invalid rune name character: {char!r}")
        value = value * 26 + index + 1
    return value


def format_spaced_name(name: Optional[str], spacers: int = 0) -> Optional[str]:
    """Insert spacers between letters where the matching spacer bit is set"""
    if not name:
        return name

    formatted = [name[0]]
    for i in range(1, len(name)):
        if (spacers >> (i - 1)) & 1:
            formatted.append(SPACER)
        formatted.append(name[i])
    return "".join(formatted)


def interpret_flags(flags: int) -> Dict[str, bool]:
    return {
        "isEtching": bool(flags & Flag.ETCHING),
        "hasOpenTerms": bool(flags & Flag.TERMS),
        "isTurbo": bool(flags & Flag.TURBO),
    }
