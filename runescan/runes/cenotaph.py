"""
Cenotaph classification.

A runestone is a cenotaph when it carries an even tag beyond the known table,
an edict whose rune id has block 0 and a non-zero tx, or flag bits outside
the recognised set. Odd unknown tags are tolerated.
"""

from typing import List

from .fields import Flag, Tag
from .message import Edict, FieldMap

# Highest tag the field table understands; raise when the protocol adds tags
KNOWN_TAG_CEILING = int(max(Tag))
FLAG_MASK = Flag.ETCHING | Flag.TERMS | Flag.TURBO


def has_unrecognized_even_tag(fields: FieldMap) -> bool:
    return any(tag % 2 == 0 and tag > KNOWN_TAG_CEILING for tag in fields)


def has_invalid_edict(edicts: List[Edict]) -> bool:
    return any(edict.id.block == 0 and edict.id.tx != 0 for edict in edicts)


def has_unrecognized_flags(fields: FieldMap) -> bool:
    return any(value & ~FLAG_MASK for value in fields.get(Tag.FLAGS, []))


def is_cenotaph(fields: FieldMap, edicts: List[Edict]) -> bool:
    """
    Classify a parsed message as a cenotaph.

    Odd unknown tags are ignorable; even unknown tags must be understood,
    so any even tag above the known ceiling voids the message.
    """
    return has_unrecognized_even_tag(fields) or has_invalid_edict(edicts) or has_unrecognized_flags(fields)
