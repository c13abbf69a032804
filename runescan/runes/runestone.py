"""
Runestone decoding entry point.

decode_rune_data never raises for malformed on-chain input: every failure is
reported as a cenotaph with an error string.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import structlog

from runescan.utils.exceptions import RuneErrorCodes, RunestoneDecodeError

from . import leb128
from .cenotaph import is_cenotaph
from .fields import (
    MAX_SAFE_INTEGER,
    EtchingFields,
    decode_rune_name,
    extract_fields,
    format_spaced_name,
    interpret_flags,
)
from .message import Edict, parse_message
from .script import extract_payload

logger = structlog.get_logger()

ERROR_MESSAGES = {
    RuneErrorCodes.TRUNCATED_VARINT: "LEB128 varint is truncated",
    RuneErrorCodes.VARINT_TOO_LONG: "LEB128 varint is too long",
    RuneErrorCodes.TAG_WITHOUT_VALUE: "Tag without a following value",
}


@dataclass
class Runestone:
    fields: EtchingFields = field(default_factory=EtchingFields)
    edicts: List[Edict] = field(default_factory=list)
    rune_name: Optional[str] = None
    formatted_rune_name: Optional[str] = None
    cenotaph: bool = False
    error: Optional[str] = None

    @property
    def flag_interpretation(self) -> Dict[str, bool]:
        return interpret_flags(self.fields.flags or 0)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe representation, u128 quantities rendered as strings"""
        if self.error:
            return {"error": self.error, "cenotaph": True}

        f = self.fields
        result: Dict[str, Any] = {
            "runeName": self.rune_name,
            "formattedRuneName": self.formatted_rune_name,
        }
        optional = {
            "version": _safe_int(f.version),
            "flags": _safe_int(f.flags),
            "rune": _as_str(f.rune),
            "spacers": _safe_int(f.spacers),
            "symbol": f.symbol,
            "premine": _as_str(f.premine),
            "cap": _as_str(f.cap),
            "amount": _as_str(f.amount),
            "heightStart": _safe_int(f.height_start),
            "heightEnd": _safe_int(f.height_end),
            "offsetStart": _safe_int(f.offset_start),
            "offsetEnd": _safe_int(f.offset_end),
            "mint": (
                {"block": _safe_int(f.mint.block), "tx": _safe_int(f.mint.tx)} if f.mint is not None else None
            ),
            "pointer": _safe_int(f.pointer),
        }
        result.update({key: value for key, value in optional.items() if value is not None})
        result.update(f.unknown)
        result["flagInterpretation"] = self.flag_interpretation
        result["edicts"] = [
            {
                "id": {"block": _safe_int(e.id.block), "tx": _safe_int(e.id.tx)},
                "amount": str(e.amount),
                "output": _safe_int(e.output),
            }
            for e in self.edicts
        ]
        result["cenotaph"] = self.cenotaph
        return result


def _as_str(value: Optional[int]) -> Optional[str]:
    return str(value) if value is not None else None


def _safe_int(value: Optional[int]):
    if value is None:
        return None
    return value if value <= MAX_SAFE_INTEGER else str(value)


def decode_runestone(script_hex: str) -> Runestone:
    """Decode a script into a Runestone record"""
    try:
        payload = extract_payload(script_hex)
    except RunestoneDecodeError as e:
        return Runestone(cenotaph=True, error=e.message)

    integers, varint_error = leb128.decode_with_status(payload)
    message = parse_message(integers)
    etching = extract_fields(message.fields)

    rune_name = decode_rune_name(etching.rune)
    runestone = Runestone(
        fields=etching,
        edicts=message.edicts,
        rune_name=rune_name,
        formatted_rune_name=format_spaced_name(rune_name, etching.spacers or 0),
        cenotaph=is_cenotaph(message.fields, message.edicts),
    )

    error_code = varint_error or message.error
    if error_code:
        runestone.cenotaph = True
        runestone.error = ERROR_MESSAGES.get(error_code, error_code)

    return runestone


def decode_rune_data(script_pub_key: Dict[str, Any]) -> Dict[str, Any]:
    """
    Decode the runestone carried by a scriptPubKey.

    Args:
        script_pub_key: node-style scriptPubKey object with a "hex" entry

    Returns:
        Decoded runestone dict, or {"error": ..., "cenotaph": True}
    """
    try:
        script_hex = script_pub_key.get("hex") if isinstance(script_pub_key, dict) else None
        if not script_hex:
            return {"error": "scriptPubKey has no hex", "cenotaph": True}

        runestone = decode_runestone(script_hex)
        logger.debug(
            "Decoded runestone",
            rune_name=runestone.rune_name,
            edicts=len(runestone.edicts),
            cenotaph=runestone.cenotaph,
            error=runestone.error,
        )
        return runestone.to_dict()
    except Exception as e:
        logger.error("Unexpected runestone decode failure", error=str(e))
        return {"error": f"{RuneErrorCodes.UNKNOWN_DECODE_ERROR}: {e}", "cenotaph": True}
