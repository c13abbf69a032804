import asyncio
from collections import OrderedDict
from typing import Any, Dict, Optional

import structlog

from runescan.config import settings
from runescan.utils.amounts import btc_to_sats
from runescan.utils.bitcoin import extract_address_from_script, get_node_address

from .bitcoin_rpc import BitcoinRPCService
from .records import ResolvedOutput

logger = structlog.get_logger()


class UTXOResolutionService:
    """
    Resolves transaction inputs to the value and address of the output they spend.

    One instance belongs to one processing run: previous transactions are kept in
    a bounded LRU cache and concurrent lookups of the same txid share one RPC call.
    """

    def __init__(self, bitcoin_rpc: BitcoinRPCService, tx_cache_size: int = None, network: str = None):
        self.rpc = bitcoin_rpc
        self.network = network or settings.BITCOIN_NETWORK
        self.tx_cache_size = tx_cache_size or settings.TX_CACHE_SIZE
        self.tx_cache: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        self._pending: Dict[str, asyncio.Future] = {}
        self.rpc_calls = 0

    async def resolve_output(self, txid: str, vout: int) -> Optional[ResolvedOutput]:
        """Value (satoshis) and address of output `vout` of `txid`, None when unavailable"""
        tx_data = await self._get_transaction(txid)
        if not tx_data or "vout" not in tx_data:
            return None

        outputs = tx_data["vout"]
        if vout is None or vout < 0 or vout >= len(outputs):
            logger.warning("Previous output index out of range", txid=txid, vout=vout, outputs=len(outputs))
            return None

        output = outputs[vout]
        script_pub_key = output.get("scriptPubKey", {})
        return ResolvedOutput(
            value=btc_to_sats(output.get("value")),
            address=self._resolve_address(script_pub_key),
        )

    def _resolve_address(self, script_pub_key: Dict[str, Any]) -> Optional[str]:
        address = get_node_address(script_pub_key)
        if address:
            return address

        script_hex = script_pub_key.get("hex")
        if script_hex:
            return extract_address_from_script(script_hex, self.network)

        return None

    async def _get_transaction(self, txid: str) -> Optional[Dict[str, Any]]:
        """Get transaction data with caching"""
        if txid in self.tx_cache:
            self.tx_cache.move_to_end(txid)
            return self.tx_cache[txid]

        pending = self._pending.get(txid)
        if pending is not None:
            return await pending

        future = asyncio.get_running_loop().create_future()
        self._pending[txid] = future
        try:
            tx_data = await self._fetch(txid)
            if tx_data is not None:
                self._remember(txid, tx_data)
            future.set_result(tx_data)
            return tx_data
        finally:
            if not future.done():
                future.cancel()
            del self._pending[txid]

    async def _fetch(self, txid: str) -> Optional[Dict[str, Any]]:
        self.rpc_calls += 1
        try:
            return await self.rpc.get_raw_transaction(txid, True)
        except Exception as e:
            logger.warning("Failed to get previous transaction", txid=txid, error=str(e))
            return None

    def _remember(self, txid: str, tx_data: Dict[str, Any]):
        self.tx_cache[txid] = tx_data
        if len(self.tx_cache) > self.tx_cache_size:
            self.tx_cache.popitem(last=False)
