from .base import Base
from .block import Block
from .runestone import RunestoneRecord
from .transaction import Input, Output, Transaction, TransactionReplacement, TransactionTiming

__all__ = [
    "Base",
    "Block",
    "RunestoneRecord",
    "Transaction",
    "Input",
    "Output",
    "TransactionTiming",
    "TransactionReplacement",
]
