"""Indexer orchestration: sync to the node tip, backfill gaps, continuous mode."""

import asyncio
import time
from dataclasses import dataclass, field
from typing import List, Optional

import structlog

from runescan.config import settings
from runescan.utils.exceptions import IndexerError

from .bitcoin_rpc import BitcoinRPCService
from .block_service import BlockService
from .ingestion import IngestionService
from .persistence import PersistenceService
from .scheduler import JobOutcome, JobRunner


@dataclass
class SyncResult:
    start_height: Optional[int]
    end_height: Optional[int]
    processed: List[int] = field(default_factory=list)
    failed: List[int] = field(default_factory=list)
    processing_time: float = 0.0


class IndexerService:
    """Main Bitcoin indexation orchestrator."""

    def __init__(
        self,
        bitcoin_rpc: BitcoinRPCService,
        persistence: PersistenceService,
        ingestion: Optional[IngestionService] = None,
        block_service: Optional[BlockService] = None,
        job_runner: Optional[JobRunner] = None,
    ):
        self.rpc = bitcoin_rpc
        self.persistence = persistence
        self.block_service = block_service or BlockService(bitcoin_rpc, persistence)
        self.ingestion = ingestion or IngestionService(bitcoin_rpc, persistence, block_service=self.block_service)
        self.job_runner = job_runner or JobRunner()
        self.logger = structlog.get_logger()
        self._running = False

    async def determine_start_height(self, tip: int) -> int:
        last = await self.persistence.get_last_processed_height()
        if last is not None:
            return last + 1
        if settings.START_BLOCK_HEIGHT is not None:
            return settings.START_BLOCK_HEIGHT
        return max(0, tip - settings.INITIAL_LOOKBACK_BLOCKS + 1)

    async def sync(self, max_blocks: Optional[int] = None) -> SyncResult:
        """Process every block from the next unprocessed height up to the node tip"""
        started = time.time()
        tip = await self.rpc.get_block_count()
        start_height = await self.determine_start_height(tip)

        end_height = tip
        if max_blocks is not None:
            end_height = min(tip, start_height + max_blocks - 1)

        result = SyncResult(start_height=start_height, end_height=end_height)

        if start_height > end_height:
            self.logger.info("Indexer is up to date", tip=tip)
        else:
            self.logger.info(
                "Starting sync",
                start_height=start_height,
                end_height=end_height,
                blocks_to_process=end_height - start_height + 1,
            )
            await self._process_heights(list(range(start_height, end_height + 1)), result)

        await self.block_service.update_fee_estimates()

        if settings.PROCESS_MEMPOOL:
            await self.ingestion.process_mempool_transactions()

        result.processing_time = time.time() - started
        self.logger.info(
            "Sync finished",
            processed=len(result.processed),
            failed=len(result.failed),
            processing_time=round(result.processing_time, 2),
        )
        return result

    async def backfill_missing_blocks(self) -> SyncResult:
        """Process every gap between the lowest and highest stored block"""
        started = time.time()
        missing = await self.persistence.find_missing_heights()
        result = SyncResult(
            start_height=missing[0] if missing else None,
            end_height=missing[-1] if missing else None,
        )

        if not missing:
            self.logger.info("No missing blocks")
            return result

        self.logger.info("Backfilling missing blocks", count=len(missing), first=missing[0], last=missing[-1])
        await self._process_heights(missing, result)

        result.processing_time = time.time() - started
        self.logger.info(
            "Backfill finished",
            processed=len(result.processed),
            failed=len(result.failed),
            processing_time=round(result.processing_time, 2),
        )
        return result

    async def _process_heights(self, heights: List[int], result: SyncResult):
        chunk_size = max(1, settings.BLOCK_CHUNK_SIZE)
        for offset in range(0, len(heights), chunk_size):
            chunk = heights[offset : offset + chunk_size]
            for height in chunk:
                if await self.ingestion.process_block(height):
                    result.processed.append(height)
                    continue

                result.failed.append(height)
                self.logger.error("Block processing failed", height=height)
                if settings.STOP_ON_ERROR:
                    raise IndexerError(f"Failed to process block {height}")

            self.logger.info("Chunk processed", first=chunk[0], last=chunk[-1])

    async def run_continuous(self, max_blocks: Optional[int] = None):
        """Run sync through the job runner every UPDATE_INTERVAL seconds until stopped"""
        self._running = True
        self.logger.info("Starting continuous indexing", interval=settings.UPDATE_INTERVAL)

        while self._running:
            outcome = await self.job_runner.run(
                "blockchain_update",
                lambda: self.sync(max_blocks=max_blocks),
                timeout=settings.BLOCKCHAIN_UPDATE_TIMEOUT,
            )
            if outcome == JobOutcome.FAILED and settings.STOP_ON_ERROR:
                raise IndexerError("Blockchain update failed")
            await asyncio.sleep(settings.UPDATE_INTERVAL)

    async def run_backfill(self) -> JobOutcome:
        return await self.job_runner.run(
            "backfill_missing_blocks", self.backfill_missing_blocks, timeout=settings.BACKFILL_TIMEOUT
        )

    def stop(self):
        self._running = False
