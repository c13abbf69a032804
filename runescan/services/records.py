"""
Plain records produced by the ingestion pipeline and written by the persistence layer.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class OutputRecord:
    output_index: int
    value: int  # satoshis
    script_pub_key: Optional[str]
    address: Optional[str]


@dataclass
class InputRecord:
    input_index: int
    previous_txid: Optional[str]
    previous_output_index: Optional[int]
    script_sig: Optional[str]
    sequence: Optional[int]
    value: int  # satoshis
    address: Optional[str]


@dataclass
class RunestoneOutputRecord:
    output_index: int
    rune_name: Optional[str]
    formatted_rune_name: Optional[str]
    cenotaph: bool
    error: Optional[str]
    decoded_json: str


@dataclass
class TransactionRecord:
    txid: str
    block_height: Optional[int]
    total_input_value: int
    total_output_value: int
    fee: Optional[int]  # None while inputs are unresolved
    size: Optional[int]
    weight: Optional[int]
    is_coinbase: bool = False
    block_time: Optional[datetime] = None
    seen_in_mempool: bool = False
    skipped_inputs: int = 0
    inputs: List[InputRecord] = field(default_factory=list)
    outputs: List[OutputRecord] = field(default_factory=list)
    runestones: List[RunestoneOutputRecord] = field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        return self.skipped_inputs > 0


@dataclass
class ResolvedOutput:
    """Value and address of a previous output spent by an input"""

    value: int
    address: Optional[str]
