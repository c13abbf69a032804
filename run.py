"""
Runnable script for the runescan indexer and API.
"""

import argparse
import multiprocessing
import time

import structlog
import uvicorn

from runescan.config import settings
from runescan.main import main as run_indexer

logger = structlog.get_logger()


def start_indexer_process(max_blocks=None, continuous=False):
    """Starts the indexer in a separate process."""
    logger.info("Starting indexer process...", continuous=continuous)
    run_indexer(max_blocks=max_blocks, continuous=continuous)


def start_api_server():
    """Starts the FastAPI server."""
    logger.info("Starting API server...")
    uvicorn.run("runescan.api.main:app", host=settings.API_HOST, port=settings.API_PORT)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="runescan indexer")
    parser.add_argument("--max-blocks", type=int, help="Maximum number of blocks to process")
    parser.add_argument(
        "--indexer-only",
        action="store_true",
        help="Run only the indexer (no API server)",
    )
    parser.add_argument(
        "--continuous",
        action="store_true",
        help="Run in continuous mode (sync every UPDATE_INTERVAL seconds)",
    )
    parser.add_argument("--block", type=int, help="Process a single block height and exit")
    parser.add_argument("--mempool", action="store_true", help="Process the current mempool and exit")
    parser.add_argument("--backfill", action="store_true", help="Process missing stored heights and exit")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    one_shot = args.block is not None or args.mempool or args.backfill

    if args.indexer_only or one_shot:
        run_indexer(
            max_blocks=args.max_blocks,
            continuous=args.continuous,
            debug=args.debug,
            block=args.block,
            mempool=args.mempool,
            backfill=args.backfill,
        )
    else:
        indexer_process = multiprocessing.Process(
            target=start_indexer_process, args=(args.max_blocks, args.continuous)
        )
        indexer_process.start()

        time.sleep(5)

        start_api_server()

        indexer_process.join()
