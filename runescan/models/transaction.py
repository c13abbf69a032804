from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from .base import Base


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    txid = Column(String(64), unique=True, nullable=False)
    block_height = Column(Integer, index=True, nullable=True)  # null while unconfirmed

    # satoshis
    total_input_value = Column(BigInteger, nullable=False, default=0)
    total_output_value = Column(BigInteger, nullable=False, default=0)
    fee = Column(BigInteger, nullable=True)  # null while inputs are unresolved

    size = Column(Integer, nullable=True)
    weight = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    inputs = relationship("Input", back_populates="transaction", order_by="Input.input_index")
    outputs = relationship("Output", back_populates="transaction", order_by="Output.output_index")


class Input(Base):
    __tablename__ = "inputs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = Column(Integer, ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False)
    input_index = Column(Integer, nullable=False)
    previous_txid = Column(String(64), nullable=True, index=True)  # null for coinbase
    # Lookup-only reference, the previous transaction may not be stored yet
    previous_transaction_id = Column(Integer, nullable=True, index=True)
    previous_output_index = Column(Integer, nullable=True)
    script_sig = Column(Text, nullable=True)
    sequence = Column(BigInteger, nullable=True)
    value = Column(BigInteger, nullable=False, default=0)
    address = Column(String, nullable=True, index=True)

    transaction = relationship("Transaction", back_populates="inputs")

    __table_args__ = (UniqueConstraint("transaction_id", "input_index", name="uq_inputs_transaction_index"),)


class Output(Base):
    __tablename__ = "outputs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = Column(Integer, ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False)
    output_index = Column(Integer, nullable=False)
    value = Column(BigInteger, nullable=False, default=0)
    script_pub_key = Column(Text, nullable=True)
    address = Column(String, nullable=True, index=True)

    transaction = relationship("Transaction", back_populates="outputs")

    __table_args__ = (UniqueConstraint("transaction_id", "output_index", name="uq_outputs_transaction_index"),)


class TransactionTiming(Base):
    __tablename__ = "transaction_timing"

    txid = Column(String(64), primary_key=True)
    mempool_time = Column(DateTime, nullable=True)
    confirmation_time = Column(DateTime, nullable=True)


class TransactionReplacement(Base):
    __tablename__ = "transaction_replacements"

    txid = Column(String(64), primary_key=True)
    replaced_by_txid = Column(String(64), nullable=False, index=True)
    detected_at = Column(DateTime, default=func.now())
