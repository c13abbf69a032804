from .cenotaph import KNOWN_TAG_CEILING, is_cenotaph
from .fields import Tag, decode_rune_name, encode_rune_name, extract_fields, format_spaced_name
from .message import Edict, RuneId, parse_message
from .runestone import Runestone, decode_rune_data, decode_runestone
from .script import extract_payload, is_runestone_script

__all__ = [
    "KNOWN_TAG_CEILING",
    "is_cenotaph",
    "Tag",
    "decode_rune_name",
    "encode_rune_name",
    "extract_fields",
    "format_spaced_name",
    "Edict",
    "RuneId",
    "parse_message",
    "Runestone",
    "decode_rune_data",
    "decode_runestone",
    "extract_payload",
    "is_runestone_script",
]
