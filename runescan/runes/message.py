"""
Runestone message parsing: tag/value fields followed by delta-encoded edicts.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from runescan.utils.exceptions import RuneErrorCodes

TAG_BODY = 0
EDICT_STRIDE = 4

FieldMap = Dict[int, List[int]]


@dataclass(frozen=True)
class RuneId:
    block: int
    tx: int


@dataclass(frozen=True)
class Edict:
    id: RuneId
    amount: int
    output: int


@dataclass
class ParsedMessage:
    fields: FieldMap = field(default_factory=dict)
    edicts: List[Edict] = field(default_factory=list)
    error: Optional[str] = None


def parse_message(integers: List[int]) -> ParsedMessage:
    """
    Split an integer sequence into a field map and an edict list.

    Fields are (tag, value) pairs until a body tag (0); everything after the
    body tag is read as edicts in strides of (block delta, tx delta, amount,
    output). A dangling tag stops field parsing with what was accumulated.
    """
    message = ParsedMessage()
    index = 0
    reading_edicts = False

    while index < len(integers):
        tag = integers[index]
        index += 1

        if tag == TAG_BODY:
            reading_edicts = True
            break

        if index >= len(integers):
            message.error = RuneErrorCodes.TAG_WITHOUT_VALUE
            return message

        message.fields.setdefault(tag, []).append(integers[index])
        index += 1

    if not reading_edicts:
        return message

    current_block = 0
    current_tx = 0
    while index + EDICT_STRIDE <= len(integers):
        block_delta, tx_delta, amount, output = integers[index : index + EDICT_STRIDE]
        if block_delta > 0:
            current_block += block_delta
            current_tx = tx_delta
        else:
            current_tx += tx_delta

        message.edicts.append(
            Edict(id=RuneId(block=current_block, tx=current_tx), amount=amount, output=output)
        )
        index += EDICT_STRIDE

    return message


def encode_edicts(edicts: List[Edict]) -> List[int]:
    """Delta-encode edicts sorted by rune id into a flat integer stream"""
    integers: List[int] = []
    previous_block = 0
    previous_tx = 0

    for edict in sorted(edicts, key=lambda e: (e.id.block, e.id.tx)):
        block_delta = edict.id.block - previous_block
        if block_delta > 0:
            tx_delta = edict.id.tx
        else:
            tx_delta = edict.id.tx - previous_tx

        integers.extend([block_delta, tx_delta, edict.amount, edict.output])
        previous_block = edict.id.block
        previous_tx = edict.id.tx

    return integers


def encode_message(fields: FieldMap, edicts: Optional[List[Edict]] = None) -> List[int]:
    """Flatten fields and edicts back into the integer sequence parse_message reads"""
    integers: List[int] = []
    for tag, values in fields.items():
        for value in values:
            integers.extend([tag, value])

    if edicts:
        integers.append(TAG_BODY)
        integers.extend(encode_edicts(edicts))

    return integers
