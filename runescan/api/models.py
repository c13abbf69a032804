from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_serializer


class OrmConfig(BaseModel):
    class Config:
        from_attributes = True


class DecodeRequest(BaseModel):
    hex: str = Field(description="Hex encoded scriptPubKey")


class InputItem(OrmConfig):
    input_index: int = Field(description="Position of the input in the transaction")
    previous_txid: Optional[str] = Field(None, description="Spent transaction id, null for coinbase")
    previous_output_index: Optional[int] = Field(None, description="Spent output index")
    script_sig: Optional[str] = Field(None, description="scriptSig hex, coinbase data for coinbase inputs")
    sequence: Optional[int] = Field(None, description="Input sequence number")
    value: int = Field(description="Spent value in satoshis")
    address: Optional[str] = Field(None, description="Address of the spent output")


class OutputItem(OrmConfig):
    output_index: int = Field(description="Position of the output in the transaction")
    value: int = Field(description="Value in satoshis")
    script_pub_key: Optional[str] = Field(None, description="scriptPubKey hex")
    address: Optional[str] = Field(None, description="Receiving address or OP_Return")


class RunestoneItem(BaseModel):
    output_index: int
    rune_name: Optional[str] = None
    formatted_rune_name: Optional[str] = None
    cenotaph: bool
    error: Optional[str] = None
    decoded: Dict[str, Any]


class TransactionDetail(OrmConfig):
    txid: str = Field(description="Transaction id")
    block_height: Optional[int] = Field(None, description="Confirmation height, null while unconfirmed")
    total_input_value: int = Field(description="Sum of resolved input values in satoshis")
    total_output_value: int = Field(description="Sum of output values in satoshis")
    fee: Optional[int] = Field(None, description="Fee in satoshis, 0 for coinbase, null while inputs are unresolved")
    size: Optional[int] = None
    weight: Optional[int] = None
    created_at: Optional[datetime] = None
    inputs: List[InputItem] = []
    outputs: List[OutputItem] = []
    runestones: List[RunestoneItem] = []


class BlockItem(OrmConfig):
    height: int
    block_hash: str
    tx_count: int
    timestamp: Optional[datetime] = None
    mining_pool: Optional[str] = None
    fees_estimate: Optional[Decimal] = Field(None, description="Average template fee rate in sat/vB")
    min_fee: Optional[Decimal] = None
    max_fee: Optional[Decimal] = None
    processed_at: Optional[datetime] = None

    @field_serializer("fees_estimate", "min_fee", "max_fee")
    def serialize_dec_to_str(self, v: Optional[Decimal], _info):
        return str(v) if v is not None else None
