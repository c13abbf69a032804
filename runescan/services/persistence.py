"""
Persistence layer for ingested transactions and block metadata.

Every transaction is written as one unit of work: the transaction row, its
outputs, its inputs, decoded runestones and timing either all commit or all
roll back. Writes are idempotent: the transaction row is upserted on txid,
while inputs, outputs and runestones are insert-ignore on their
(transaction_id, index) keys. A record with unresolved inputs leaves stored
input totals and fee untouched.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker
from sqlalchemy.orm import selectinload

from runescan.models import (
    Block,
    Input,
    Output,
    RunestoneRecord,
    Transaction,
    TransactionReplacement,
    TransactionTiming,
)

from .records import TransactionRecord

logger = structlog.get_logger()

# Keeps multi-row inserts below driver bind parameter limits
INSERT_BATCH_SIZE = 500


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the timezone-less DateTime columns"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _batches(rows: List[dict], size: int = INSERT_BATCH_SIZE) -> Iterable[List[dict]]:
    for start in range(0, len(rows), size):
        yield rows[start : start + size]


class PersistenceService:
    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.session_factory = async_sessionmaker(engine, expire_on_commit=False)
        self.dialect = engine.dialect.name

        if self.dialect == "postgresql":
            self._insert = postgresql.insert
        elif self.dialect == "sqlite":
            self._insert = sqlite.insert
        else:
            raise ValueError(f"Unsupported database dialect: {self.dialect}")

    async def save_transaction(self, record: TransactionRecord) -> int:
        """
        Persist a transaction with its inputs, outputs, runestones and timing.

        Returns:
            Internal id of the transaction row

        Raises:
            SQLAlchemyError: the unit of work was rolled back
        """
        async with self.session_factory() as session:
            async with session.begin():
                transaction_id = await self._upsert_transaction(session, record)

                if record.outputs:
                    rows = [
                        {
                            "transaction_id": transaction_id,
                            "output_index": output.output_index,
                            "value": output.value,
                            "script_pub_key": output.script_pub_key,
                            "address": output.address,
                        }
                        for output in record.outputs
                    ]
                    for batch in _batches(rows):
                        stmt = self._insert(Output).values(batch)
                        await session.execute(
                            stmt.on_conflict_do_nothing(index_elements=["transaction_id", "output_index"])
                        )

                if record.inputs:
                    previous_ids = await self._lookup_transaction_ids(
                        session, {i.previous_txid for i in record.inputs if i.previous_txid}
                    )
                    rows = [
                        {
                            "transaction_id": transaction_id,
                            "input_index": item.input_index,
                            "previous_txid": item.previous_txid,
                            "previous_transaction_id": previous_ids.get(item.previous_txid),
                            "previous_output_index": item.previous_output_index,
                            "script_sig": item.script_sig,
                            "sequence": item.sequence,
                            "value": item.value,
                            "address": item.address,
                        }
                        for item in record.inputs
                    ]
                    for batch in _batches(rows):
                        stmt = self._insert(Input).values(batch)
                        await session.execute(
                            stmt.on_conflict_do_nothing(index_elements=["transaction_id", "input_index"])
                        )

                if record.runestones:
                    rows = [
                        {
                            "transaction_id": transaction_id,
                            "output_index": runestone.output_index,
                            "txid": record.txid,
                            "rune_name": runestone.rune_name,
                            "formatted_rune_name": runestone.formatted_rune_name,
                            "cenotaph": runestone.cenotaph,
                            "error": runestone.error,
                            "decoded_json": runestone.decoded_json,
                        }
                        for runestone in record.runestones
                    ]
                    stmt = self._insert(RunestoneRecord).values(rows)
                    await session.execute(
                        stmt.on_conflict_do_nothing(index_elements=["transaction_id", "output_index"])
                    )

                await self._upsert_timing(session, record)

        return transaction_id

    async def _upsert_transaction(self, session, record: TransactionRecord) -> int:
        stmt = self._insert(Transaction).values(
            txid=record.txid,
            block_height=record.block_height,
            total_input_value=record.total_input_value,
            total_output_value=record.total_output_value,
            fee=record.fee,
            size=record.size,
            weight=record.weight,
        )
        set_ = {
            # A confirmed height is never reset by a later mempool sighting
            "block_height": func.coalesce(stmt.excluded.block_height, Transaction.block_height),
            "total_output_value": stmt.excluded.total_output_value,
            "size": stmt.excluded.size,
            "weight": stmt.excluded.weight,
            "updated_at": utcnow(),
        }
        if not record.is_partial:
            # Input totals from a run with unresolved inputs never replace stored ones
            set_["total_input_value"] = stmt.excluded.total_input_value
            set_["fee"] = stmt.excluded.fee

        stmt = stmt.on_conflict_do_update(index_elements=["txid"], set_=set_).returning(Transaction.id)
        result = await session.execute(stmt)
        return result.scalar_one()

    async def _lookup_transaction_ids(self, session, txids: set) -> Dict[str, int]:
        if not txids:
            return {}
        ids: Dict[str, int] = {}
        txid_list = list(txids)
        for start in range(0, len(txid_list), INSERT_BATCH_SIZE):
            chunk = txid_list[start : start + INSERT_BATCH_SIZE]
            result = await session.execute(
                select(Transaction.txid, Transaction.id).where(Transaction.txid.in_(chunk))
            )
            ids.update({txid: id_ for txid, id_ in result.all()})
        return ids

    async def _upsert_timing(self, session, record: TransactionRecord):
        now = utcnow()
        mempool_time = now if record.seen_in_mempool else None
        confirmation_time = None
        if record.block_height is not None:
            confirmation_time = record.block_time or now

        if mempool_time is None and confirmation_time is None:
            return

        stmt = self._insert(TransactionTiming).values(
            txid=record.txid,
            mempool_time=mempool_time,
            confirmation_time=confirmation_time,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["txid"],
            set_={
                "mempool_time": func.coalesce(TransactionTiming.mempool_time, stmt.excluded.mempool_time),
                "confirmation_time": func.coalesce(
                    TransactionTiming.confirmation_time, stmt.excluded.confirmation_time
                ),
            },
        )
        await session.execute(stmt)

    async def save_replacement(self, txid: str, replaced_by_txid: str):
        async with self.session_factory() as session:
            async with session.begin():
                stmt = self._insert(TransactionReplacement).values(
                    txid=txid, replaced_by_txid=replaced_by_txid, detected_at=utcnow()
                )
                await session.execute(
                    stmt.on_conflict_do_update(
                        index_elements=["txid"],
                        set_={"replaced_by_txid": stmt.excluded.replaced_by_txid},
                    )
                )

    async def upsert_block(
        self,
        height: int,
        block_hash: str,
        tx_count: int,
        timestamp: Optional[datetime],
        mining_pool: Optional[str],
    ):
        async with self.session_factory() as session:
            async with session.begin():
                stmt = self._insert(Block).values(
                    height=height,
                    block_hash=block_hash,
                    tx_count=tx_count,
                    timestamp=timestamp,
                    mining_pool=mining_pool,
                    processed_at=utcnow(),
                )
                await session.execute(
                    stmt.on_conflict_do_update(
                        index_elements=["height"],
                        set_={
                            "block_hash": stmt.excluded.block_hash,
                            "tx_count": stmt.excluded.tx_count,
                            "timestamp": stmt.excluded.timestamp,
                            "mining_pool": func.coalesce(stmt.excluded.mining_pool, Block.mining_pool),
                            "processed_at": stmt.excluded.processed_at,
                        },
                    )
                )

    async def update_fee_estimates(self, average: Decimal, minimum: Decimal, maximum: Decimal) -> Optional[int]:
        """Store fee estimates on the newest block still lacking them, returns its height"""
        async with self.session_factory() as session:
            async with session.begin():
                height = (
                    await session.execute(
                        select(Block.height)
                        .where(Block.fees_estimate.is_(None))
                        .order_by(Block.height.desc())
                        .limit(1)
                    )
                ).scalar_one_or_none()
                if height is None:
                    return None

                await session.execute(
                    update(Block)
                    .where(Block.height == height)
                    .values(fees_estimate=average, min_fee=minimum, max_fee=maximum)
                )
        return height

    async def get_last_processed_height(self) -> Optional[int]:
        async with self.session_factory() as session:
            return (await session.execute(select(func.max(Block.height)))).scalar_one_or_none()

    async def find_missing_heights(self) -> List[int]:
        """Heights between the lowest and highest stored block that have no block row"""
        async with self.session_factory() as session:
            heights = set((await session.execute(select(Block.height))).scalars().all())
        if not heights:
            return []
        return [height for height in range(min(heights), max(heights) + 1) if height not in heights]

    async def get_transaction_detail(self, txid: str) -> Optional[Transaction]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Transaction)
                .where(Transaction.txid == txid)
                .options(selectinload(Transaction.inputs), selectinload(Transaction.outputs))
            )
            return result.scalar_one_or_none()

    async def get_runestones(self, txid: str) -> List[RunestoneRecord]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(RunestoneRecord).where(RunestoneRecord.txid == txid).order_by(RunestoneRecord.output_index)
            )
            return list(result.scalars().all())

    async def list_blocks(self, limit: int = 20) -> List[Block]:
        async with self.session_factory() as session:
            result = await session.execute(select(Block).order_by(Block.height.desc()).limit(limit))
            return list(result.scalars().all())
