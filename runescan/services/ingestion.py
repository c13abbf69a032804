"""
Transaction ingestion pipeline.

Walks a block or the mempool, resolves the value and address behind every
input, computes fees and hands the result to the persistence layer. A single
failing transaction is logged and skipped, it never aborts its batch.
"""

import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

import structlog

from runescan.config import settings
from runescan.runes import decode_runestone, is_runestone_script
from runescan.utils.amounts import btc_to_sats
from runescan.utils.bitcoin import OP_RETURN_ADDRESS, get_node_address, is_op_return_script
from runescan.utils.exceptions import TransactionNotFound

from .bitcoin_rpc import BitcoinRPCService
from .block_service import BlockService
from .error_handler import ErrorHandler
from .persistence import PersistenceService
from .records import InputRecord, OutputRecord, RunestoneOutputRecord, TransactionRecord
from .utxo_service import UTXOResolutionService

logger = structlog.get_logger()


async def run_bounded(items: List[Any], limit: int, worker: Callable[[Any], Awaitable[Any]]) -> List[Any]:
    """Run worker over items with at most `limit` in flight, results keep item order"""
    semaphore = asyncio.Semaphore(max(1, limit))

    async def bounded(item):
        async with semaphore:
            return await worker(item)

    return await asyncio.gather(*(bounded(item) for item in items))


def block_datetime(timestamp: Optional[int]) -> Optional[datetime]:
    if timestamp is None:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).replace(tzinfo=None)


class IngestionService:
    def __init__(
        self,
        bitcoin_rpc: BitcoinRPCService,
        persistence: PersistenceService,
        block_service: Optional[BlockService] = None,
        error_handler: Optional[ErrorHandler] = None,
        block_concurrency: int = None,
        mempool_concurrency: int = None,
        decode_runestones: bool = None,
        network: str = None,
    ):
        self.rpc = bitcoin_rpc
        self.persistence = persistence
        self.block_service = block_service or BlockService(bitcoin_rpc, persistence)
        self.error_handler = error_handler or ErrorHandler()
        self.block_concurrency = block_concurrency or settings.BLOCK_CONCURRENCY
        self.mempool_concurrency = mempool_concurrency or settings.MEMPOOL_CONCURRENCY
        self.decode_runestones = settings.DECODE_RUNESTONES if decode_runestones is None else decode_runestones
        self.network = network or settings.BITCOIN_NETWORK

    def _new_resolver(self) -> UTXOResolutionService:
        return UTXOResolutionService(self.rpc, network=self.network)

    async def process_block(self, height: int) -> bool:
        """
        Ingest every transaction of the block at `height`.

        Returns:
            False when the block itself could not be fetched or recorded,
            True otherwise (individual transaction failures are logged)
        """
        try:
            block_hash = await self.rpc.get_block_hash(height)
            block = await self.rpc.get_block(block_hash, 1)
        except Exception as e:
            self.error_handler.handle_rpc_error(e, {"operation": "process_block", "height": height})
            return False

        txids = [tx["txid"] if isinstance(tx, dict) else tx for tx in block.get("tx", [])]
        block_time = block_datetime(block.get("time"))
        resolver = self._new_resolver()

        logger.info("Processing block", height=height, block_hash=block_hash, tx_count=len(txids))

        records = await run_bounded(
            txids,
            self.block_concurrency,
            lambda txid: self._process_safely(txid, resolver, block_height=height, block_time=block_time),
        )

        coinbase = records[0] if records and records[0] is not None and records[0].is_coinbase else None
        mining_pool = self.block_service.identify_pool(coinbase.inputs[0].script_sig) if coinbase else None

        try:
            await self.persistence.upsert_block(height, block_hash, len(txids), block_time, mining_pool)
        except Exception as e:
            self.error_handler.handle_database_error(e, {"operation": "upsert_block", "height": height})
            return False

        stored = sum(1 for record in records if record is not None)
        logger.info(
            "Block processed",
            height=height,
            tx_count=len(txids),
            stored=stored,
            skipped=len(txids) - stored,
            mining_pool=mining_pool,
            rpc_calls=resolver.rpc_calls,
        )
        return True

    async def process_mempool_transactions(self) -> bool:
        """Ingest the current mempool snapshot, unconfirmed rows keep a null height"""
        try:
            txids = await self.rpc.get_raw_mempool()
        except Exception as e:
            self.error_handler.handle_rpc_error(e, {"operation": "getrawmempool"})
            return False

        resolver = self._new_resolver()
        logger.info("Processing mempool", tx_count=len(txids))

        records = await run_bounded(
            list(txids),
            self.mempool_concurrency,
            lambda txid: self._process_safely(txid, resolver, from_mempool=True),
        )

        stored = sum(1 for record in records if record is not None)
        logger.info("Mempool processed", tx_count=len(txids), stored=stored, rpc_calls=resolver.rpc_calls)
        return True

    async def _process_safely(self, txid: str, resolver: UTXOResolutionService, **kwargs) -> Optional[TransactionRecord]:
        try:
            return await self.process_transaction(txid, resolver, **kwargs)
        except Exception as e:
            self.error_handler.handle_database_error(e, {"operation": "save_transaction", "txid": txid})
            return None

    async def process_transaction(
        self,
        txid: str,
        resolver: UTXOResolutionService,
        block_height: Optional[int] = None,
        block_time: Optional[datetime] = None,
        from_mempool: bool = False,
    ) -> Optional[TransactionRecord]:
        """
        Fetch, resolve and persist one transaction.

        Returns:
            The stored record, or None when the transaction was skipped

        Raises:
            SQLAlchemyError: persisting the transaction failed and was rolled back
        """
        try:
            tx = await self.rpc.get_raw_transaction(txid, True)
        except TransactionNotFound as e:
            self.error_handler.handle_rpc_error(e, {"txid": txid})
            return None
        except Exception as e:
            self.error_handler.handle_rpc_error(e, {"operation": "getrawtransaction", "txid": txid})
            return None

        replaced_by = tx.get("replaced_by_txid")
        if replaced_by:
            logger.info("Transaction was replaced, skipping", txid=txid, replaced_by_txid=replaced_by)
            await self.persistence.save_replacement(txid, replaced_by)
            return None

        record = await self.build_transaction_record(
            tx, resolver, block_height=block_height, block_time=block_time, from_mempool=from_mempool
        )
        await self.persistence.save_transaction(record)
        return record

    async def build_transaction_record(
        self,
        tx: Dict[str, Any],
        resolver: UTXOResolutionService,
        block_height: Optional[int] = None,
        block_time: Optional[datetime] = None,
        from_mempool: bool = False,
    ) -> TransactionRecord:
        txid = tx["txid"]
        outputs, runestones = self._build_outputs(txid, tx.get("vout", []))
        total_output_value = sum(output.value for output in outputs)

        inputs: List[InputRecord] = []
        is_coinbase = False
        skipped_inputs = 0
        for index, vin in enumerate(tx.get("vin", [])):
            if "coinbase" in vin:
                is_coinbase = True
                inputs.append(
                    InputRecord(
                        input_index=index,
                        previous_txid=None,
                        previous_output_index=None,
                        script_sig=vin["coinbase"],
                        sequence=vin.get("sequence"),
                        value=0,
                        address=None,
                    )
                )
                continue

            resolved = await resolver.resolve_output(vin.get("txid"), vin.get("vout"))
            if resolved is None:
                skipped_inputs += 1
                logger.warning(
                    "Previous output unavailable, skipping input",
                    txid=txid,
                    input_index=index,
                    previous_txid=vin.get("txid"),
                    previous_output_index=vin.get("vout"),
                )
                continue

            inputs.append(
                InputRecord(
                    input_index=index,
                    previous_txid=vin.get("txid"),
                    previous_output_index=vin.get("vout"),
                    script_sig=vin.get("scriptSig", {}).get("hex"),
                    sequence=vin.get("sequence"),
                    value=resolved.value,
                    address=resolved.address,
                )
            )

        total_input_value = sum(item.value for item in inputs)
        if is_coinbase:
            fee = 0
        elif skipped_inputs:
            fee = None
            logger.warning(
                "Inputs unresolved, fee unknown",
                txid=txid,
                skipped_inputs=skipped_inputs,
                partial_input_value=total_input_value,
            )
        else:
            fee = total_input_value - total_output_value

        return TransactionRecord(
            txid=txid,
            block_height=block_height,
            total_input_value=total_input_value,
            total_output_value=total_output_value,
            fee=fee,
            size=tx.get("size"),
            weight=tx.get("weight"),
            is_coinbase=is_coinbase,
            block_time=block_time,
            seen_in_mempool=from_mempool,
            skipped_inputs=skipped_inputs,
            inputs=inputs,
            outputs=outputs,
            runestones=runestones,
        )

    def _build_outputs(self, txid: str, vouts: List[Dict[str, Any]]):
        outputs: List[OutputRecord] = []
        runestones: List[RunestoneOutputRecord] = []

        for position, vout in enumerate(vouts):
            index = vout.get("n", position)
            script_pub_key = vout.get("scriptPubKey", {})
            script_hex = script_pub_key.get("hex")

            if is_op_return_script(script_hex):
                address = OP_RETURN_ADDRESS
            else:
                address = get_node_address(script_pub_key)
                if address is None:
                    logger.warning(
                        "Output address not available",
                        txid=txid,
                        output_index=index,
                        script_type=script_pub_key.get("type"),
                    )

            outputs.append(
                OutputRecord(
                    output_index=index,
                    value=btc_to_sats(vout.get("value")),
                    script_pub_key=script_hex,
                    address=address,
                )
            )

            if self.decode_runestones and script_hex and is_runestone_script(script_hex):
                runestone = decode_runestone(script_hex)
                if runestone.error:
                    self.error_handler.handle_decode_error(
                        runestone.error, {"txid": txid, "output_index": index}
                    )
                runestones.append(
                    RunestoneOutputRecord(
                        output_index=index,
                        rune_name=runestone.rune_name,
                        formatted_rune_name=runestone.formatted_rune_name,
                        cenotaph=runestone.cenotaph,
                        error=runestone.error,
                        decoded_json=json.dumps(runestone.to_dict()),
                    )
                )

        return outputs, runestones
