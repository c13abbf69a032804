"""
Block metadata: mining pool attribution and fee estimates.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

import structlog

from runescan.utils.amounts import fee_rate
from runescan.utils.mining_pool import identify_mining_pool

from .bitcoin_rpc import BitcoinRPCService
from .error_handler import ErrorHandler
from .persistence import PersistenceService

logger = structlog.get_logger()


@dataclass
class FeeEstimate:
    average: Decimal
    minimum: Decimal
    maximum: Decimal
    sample_size: int
    block_height: Optional[int] = None


def summarize_fee_rates(rates: List[Decimal]) -> Optional[FeeEstimate]:
    if not rates:
        return None
    average = (sum(rates) / len(rates)).quantize(Decimal("0.01"))
    return FeeEstimate(average=average, minimum=min(rates), maximum=max(rates), sample_size=len(rates))


class BlockService:
    def __init__(self, bitcoin_rpc: BitcoinRPCService, persistence: PersistenceService, error_handler=None):
        self.rpc = bitcoin_rpc
        self.persistence = persistence
        self.error_handler = error_handler or ErrorHandler()

    def identify_pool(self, coinbase_hex: Optional[str]) -> Optional[str]:
        if not coinbase_hex:
            return None
        return identify_mining_pool(coinbase_hex)

    async def update_fee_estimates(self) -> Optional[FeeEstimate]:
        """
        Estimate fee rates from the node's block template and store them on the
        newest block that has no estimate yet.
        """
        try:
            template = await self.rpc.get_block_template({"rules": ["segwit"]})
        except Exception as e:
            self.error_handler.handle_rpc_error(e, {"operation": "getblocktemplate"})
            return None

        rates = []
        for tx in template.get("transactions", []):
            weight = tx.get("weight")
            if not weight or tx.get("fee") is None:
                continue
            rates.append(fee_rate(tx["fee"], weight))

        estimate = summarize_fee_rates(rates)
        if estimate is None:
            logger.info("Block template has no transactions, skipping fee estimates")
            return None

        estimate.block_height = await self.persistence.update_fee_estimates(
            estimate.average, estimate.minimum, estimate.maximum
        )
        logger.info(
            "Fee estimates updated",
            block_height=estimate.block_height,
            average=str(estimate.average),
            minimum=str(estimate.minimum),
            maximum=str(estimate.maximum),
            sample_size=estimate.sample_size,
        )
        return estimate
