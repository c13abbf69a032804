"""
Main entry point for the runescan indexer.
"""

import asyncio
from typing import Optional

import structlog

from .config import settings
from .database.connection import check_connection, create_engine_from_settings, init_db
from .services.bitcoin_rpc import BitcoinRPCService
from .services.indexer import IndexerService
from .services.persistence import PersistenceService
from .utils.exceptions import IndexerError
from .utils.logging import setup_logging


# getblockchaininfo chain names mapped to BITCOIN_NETWORK values
NODE_CHAINS = {"main": "mainnet", "test": "testnet", "testnet4": "testnet", "signet": "testnet", "regtest": "regtest"}


async def verify_dependencies(bitcoin_rpc: BitcoinRPCService, engine) -> int:
    """Fail fast when the node or the database is unreachable, returns the node height"""
    try:
        info = await bitcoin_rpc.get_blockchain_info()
    except Exception as e:
        raise IndexerError(f"Cannot connect to Bitcoin node: {e}")

    chain = info.get("chain")
    if NODE_CHAINS.get(chain, chain) != settings.BITCOIN_NETWORK:
        raise IndexerError(f"Node is on chain {chain}, configured network is {settings.BITCOIN_NETWORK}")

    if not await check_connection(engine):
        raise IndexerError("Cannot connect to database")

    return info.get("blocks")


async def run(
    max_blocks: Optional[int] = None,
    continuous: bool = False,
    block: Optional[int] = None,
    mempool: bool = False,
    backfill: bool = False,
):
    logger = structlog.get_logger()
    engine = create_engine_from_settings()
    bitcoin_rpc = BitcoinRPCService()

    try:
        height = await verify_dependencies(bitcoin_rpc, engine)
        logger.info("Dependencies reachable", node_height=height, network=settings.BITCOIN_NETWORK)

        if engine.dialect.name == "sqlite":
            await init_db(engine)

        indexer = IndexerService(bitcoin_rpc, PersistenceService(engine))

        if block is not None:
            if not await indexer.ingestion.process_block(block):
                raise IndexerError(f"Failed to process block {block}")
        elif mempool:
            await indexer.ingestion.process_mempool_transactions()
        elif backfill:
            await indexer.backfill_missing_blocks()
        elif continuous:
            await indexer.run_continuous(max_blocks=max_blocks)
        else:
            await indexer.sync(max_blocks=max_blocks)
    finally:
        await bitcoin_rpc.close()
        await engine.dispose()


def main(max_blocks=None, continuous=False, debug=False, block=None, mempool=False, backfill=False):
    """Main application entry point"""
    setup_logging("DEBUG" if debug else settings.LOG_LEVEL)

    logger = structlog.get_logger()
    logger.info("Starting runescan indexer", version=settings.INDEXER_VERSION, network=settings.BITCOIN_NETWORK)

    try:
        asyncio.run(
            run(max_blocks=max_blocks, continuous=continuous, block=block, mempool=mempool, backfill=backfill)
        )
    except IndexerError as e:
        logger.error("Fatal indexer error", error=e.message)
        raise SystemExit(1)
    except Exception as e:
        logger.error("Unhandled exception", error=str(e))
        raise


if __name__ == "__main__":
    main()
