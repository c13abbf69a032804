from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.sql import func
from .base import Base


class RunestoneRecord(Base):
    __tablename__ = "runestones"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = Column(Integer, ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False)
    output_index = Column(Integer, nullable=False)
    txid = Column(String(64), index=True, nullable=False)

    rune_name = Column(String, index=True, nullable=True)
    formatted_rune_name = Column(String, nullable=True)
    cenotaph = Column(Boolean, index=True, nullable=False, default=False)
    error = Column(String, nullable=True)
    decoded_json = Column(Text, nullable=False)

    created_at = Column(DateTime, default=func.now())

    __table_args__ = (UniqueConstraint("transaction_id", "output_index", name="uq_runestones_transaction_output"),)
