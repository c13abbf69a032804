from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from runescan.services.indexer import IndexerService
from runescan.services.scheduler import JobOutcome
from runescan.utils.exceptions import IndexerError


@pytest.fixture
def mock_settings():
    with patch("runescan.services.indexer.settings") as settings:
        settings.START_BLOCK_HEIGHT = None
        settings.INITIAL_LOOKBACK_BLOCKS = 100
        settings.BLOCK_CHUNK_SIZE = 10
        settings.PROCESS_MEMPOOL = False
        settings.STOP_ON_ERROR = False
        settings.BACKFILL_TIMEOUT = 5
        yield settings


@pytest.fixture
def indexer():
    rpc = MagicMock()
    rpc.get_block_count = AsyncMock(return_value=110)
    persistence = MagicMock()
    persistence.get_last_processed_height = AsyncMock(return_value=105)
    persistence.find_missing_heights = AsyncMock(return_value=[])
    ingestion = MagicMock()
    ingestion.process_block = AsyncMock(return_value=True)
    ingestion.process_mempool_transactions = AsyncMock(return_value=True)
    block_service = MagicMock()
    block_service.update_fee_estimates = AsyncMock(return_value=None)
    return IndexerService(rpc, persistence, ingestion=ingestion, block_service=block_service)


async def test_sync_from_last_processed(indexer, mock_settings):
    result = await indexer.sync()

    assert result.processed == [106, 107, 108, 109, 110]
    assert [c.args[0] for c in indexer.ingestion.process_block.await_args_list] == [106, 107, 108, 109, 110]
    indexer.block_service.update_fee_estimates.assert_awaited_once()
    indexer.ingestion.process_mempool_transactions.assert_not_awaited()


async def test_sync_empty_store_uses_lookback(indexer, mock_settings):
    indexer.persistence.get_last_processed_height.return_value = None
    indexer.rpc.get_block_count.return_value = 1000

    result = await indexer.sync()

    assert result.start_height == 901
    assert result.processed[0] == 901
    assert result.processed[-1] == 1000
    assert len(result.processed) == 100


async def test_sync_configured_start_height(indexer, mock_settings):
    indexer.persistence.get_last_processed_height.return_value = None
    mock_settings.START_BLOCK_HEIGHT = 108
    result = await indexer.sync()
    assert result.processed == [108, 109, 110]


async def test_sync_max_blocks_and_mempool(indexer, mock_settings):
    mock_settings.PROCESS_MEMPOOL = True
    result = await indexer.sync(max_blocks=2)
    assert result.processed == [106, 107]
    indexer.ingestion.process_mempool_transactions.assert_awaited_once()


async def test_sync_up_to_date(indexer, mock_settings):
    indexer.persistence.get_last_processed_height.return_value = 110
    result = await indexer.sync()
    assert result.processed == []
    indexer.ingestion.process_block.assert_not_awaited()


async def test_sync_records_failures(indexer, mock_settings):
    indexer.ingestion.process_block.side_effect = lambda height: height != 107
    result = await indexer.sync()
    assert result.failed == [107]
    assert 108 in result.processed


async def test_sync_stop_on_error(indexer, mock_settings):
    mock_settings.STOP_ON_ERROR = True
    indexer.ingestion.process_block.return_value = False
    with pytest.raises(IndexerError):
        await indexer.sync()


async def test_backfill_missing_blocks(indexer, mock_settings):
    indexer.persistence.find_missing_heights.return_value = [3, 5, 6]
    result = await indexer.backfill_missing_blocks()
    assert result.processed == [3, 5, 6]
    assert (result.start_height, result.end_height) == (3, 6)


async def test_backfill_nothing_missing(indexer, mock_settings):
    result = await indexer.backfill_missing_blocks()
    assert result.processed == []
    indexer.ingestion.process_block.assert_not_awaited()


async def test_run_backfill_through_job_runner(indexer, mock_settings):
    indexer.persistence.find_missing_heights.return_value = [4]
    assert await indexer.run_backfill() == JobOutcome.COMPLETED
    indexer.ingestion.process_block.assert_awaited_once_with(4)
