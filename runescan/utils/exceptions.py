"""
Runestone and indexer exception handling with standardized error codes
"""

from typing import Any, Dict, Optional


class RuneErrorCodes:
    """Standardized error codes for runestone decoding"""

    # Script errors
    INVALID_SCRIPT = "INVALID_SCRIPT"
    UNSUPPORTED_PUSH_OPCODE = "UNSUPPORTED_PUSH_OPCODE"
    NO_PAYLOAD = "NO_PAYLOAD"

    # Varint errors
    TRUNCATED_VARINT = "TRUNCATED_VARINT"
    VARINT_TOO_LONG = "VARINT_TOO_LONG"

    # Message errors
    TAG_WITHOUT_VALUE = "TAG_WITHOUT_VALUE"

    # System/Generic errors
    UNKNOWN_DECODE_ERROR = "UNKNOWN_DECODE_ERROR"


class RunestoneDecodeError(Exception):

    def __init__(self, error_code: str, message: str):
        self.error_code = error_code
        self.message = message
        super().__init__(message)


class InvalidScript(RunestoneDecodeError):

    def __init__(self, message: str = "Script does not start with OP_RETURN"):
        super().__init__(RuneErrorCodes.INVALID_SCRIPT, message)


class UnsupportedPushOpcode(RunestoneDecodeError):

    def __init__(self, opcode: int):
        self.opcode = opcode
        super().__init__(
            RuneErrorCodes.UNSUPPORTED_PUSH_OPCODE,
            f"Unsupported push opcode 0x{opcode:02x}",
        )


class NoPayload(RunestoneDecodeError):

    def __init__(self, message: str = "Script contains no data push"):
        super().__init__(RuneErrorCodes.NO_PAYLOAD, message)


class RPCError(Exception):
    """Error returned by the Bitcoin node for a JSON-RPC call"""

    # Node is still loading the block index
    WARMING_UP = -28
    # No such mempool or blockchain transaction
    INVALID_ADDRESS_OR_KEY = -5

    def __init__(self, method: str, code: Optional[int], message: str):
        self.method = method
        self.code = code
        self.message = message
        super().__init__(f"RPC {method} failed: code={code}, message={message}")

    @property
    def is_transient(self) -> bool:
        return self.code == self.WARMING_UP

    @classmethod
    def from_payload(cls, method: str, error: Dict[str, Any]) -> "RPCError":
        code = error.get("code")
        message = error.get("message", "")
        if code == cls.INVALID_ADDRESS_OR_KEY and method == "getrawtransaction":
            return TransactionNotFound(method, code, message)
        return cls(method, code, message)


class TransactionNotFound(RPCError):
    pass


class IndexerError(Exception):

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)
