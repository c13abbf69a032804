from sqlalchemy import Column, Integer, String, DateTime, Numeric
from sqlalchemy.sql import func
from .base import Base


class Block(Base):
    __tablename__ = "blocks"

    height = Column(Integer, primary_key=True)
    block_hash = Column(String, nullable=False, unique=True)
    tx_count = Column(Integer, nullable=False)
    timestamp = Column(DateTime, nullable=True)  # Bitcoin block timestamp
    mining_pool = Column(String, nullable=True, index=True)

    # sat/vB, filled from the block template after the block is stored
    fees_estimate = Column(Numeric(precision=18, scale=2), nullable=True)
    min_fee = Column(Numeric(precision=18, scale=2), nullable=True)
    max_fee = Column(Numeric(precision=18, scale=2), nullable=True)

    processed_at = Column(DateTime, default=func.now())
