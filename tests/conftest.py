import asyncio
import copy
from collections import Counter
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from runescan.database.connection import init_db
from runescan.services.persistence import PersistenceService
from runescan.utils.exceptions import RPCError, TransactionNotFound

GENESIS_P2PKH_SCRIPT = "76a91462e907b15cbf27d5425399ebf6f0fb50ebb88f1888ac"
GENESIS_P2PKH_ADDRESS = "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa"


@pytest.fixture(autouse=True, scope="session")
def configure_logging():
    import logging
    import structlog

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        logger_factory=structlog.PrintLoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
        cache_logger_on_first_use=False,
    )


def make_output(n, value, address=None, script_hex=None, script_type="witness_v0_keyhash"):
    script_pub_key = {"hex": script_hex or "0014" + "11" * 20, "type": script_type}
    if address is not None:
        script_pub_key["address"] = address
    return {"value": Decimal(value), "n": n, "scriptPubKey": script_pub_key}


def make_op_return_output(n, script_hex):
    return {"value": Decimal("0"), "n": n, "scriptPubKey": {"hex": script_hex, "type": "nulldata"}}


def make_tx(txid, vin, vout, size=250, weight=1000, **extra):
    tx = {"txid": txid, "size": size, "weight": weight, "vin": vin, "vout": vout}
    tx.update(extra)
    return tx


def make_coinbase_tx(txid, value="6.25", coinbase_hex="03a0bb0d", address="bc1qminer"):
    return make_tx(
        txid,
        vin=[{"coinbase": coinbase_hex, "sequence": 4294967295}],
        vout=[make_output(0, value, address=address)],
    )


def spend(txid, vout, sequence=4294967293):
    return {"txid": txid, "vout": vout, "scriptSig": {"hex": ""}, "sequence": sequence}


class FakeBitcoinRPC:
    """In-memory stand-in for BitcoinRPCService"""

    def __init__(self):
        self.blocks = {}
        self.transactions = {}
        self.mempool = []
        self.template = {"transactions": []}
        self.calls = Counter()
        self.in_flight = 0
        self.max_in_flight = 0
        self.fail_block_hash = set()
        self.reachable = True

    def add_transaction(self, tx):
        self.transactions[tx["txid"]] = tx
        return tx

    def add_block(self, height, txs, time=1700000000):
        for tx in txs:
            self.add_transaction(tx)
        block_hash = f"{height:064x}"
        self.blocks[height] = {
            "hash": block_hash,
            "height": height,
            "time": time + height,
            "tx": [tx["txid"] for tx in txs],
        }
        return block_hash

    async def get_block_count(self):
        self.calls["getblockcount"] += 1
        return max(self.blocks) if self.blocks else 0

    async def get_block_hash(self, height):
        self.calls["getblockhash"] += 1
        if height not in self.blocks or height in self.fail_block_hash:
            raise RPCError("getblockhash", -8, "Block height out of range")
        return self.blocks[height]["hash"]

    async def get_block(self, block_hash, verbosity=1):
        self.calls["getblock"] += 1
        for block in self.blocks.values():
            if block["hash"] == block_hash:
                return copy.deepcopy(block)
        raise RPCError("getblock", -5, "Block not found")

    async def get_raw_transaction(self, txid, verbose=True):
        self.calls[txid] += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            if txid not in self.transactions:
                raise TransactionNotFound("getrawtransaction", -5, "No such mempool or blockchain transaction")
            return copy.deepcopy(self.transactions[txid])
        finally:
            self.in_flight -= 1

    async def get_raw_mempool(self):
        self.calls["getrawmempool"] += 1
        return list(self.mempool)

    async def get_block_template(self, template_request=None):
        self.calls["getblocktemplate"] += 1
        return copy.deepcopy(self.template)

    async def get_blockchain_info(self):
        self.calls["getblockchaininfo"] += 1
        return {"chain": "main", "blocks": max(self.blocks) if self.blocks else 0}

    async def test_connection(self):
        return self.reachable

    def get_connection_status(self):
        return {"state": "healthy" if self.reachable else "failed", "healthy": self.reachable}


@pytest.fixture
def fake_rpc():
    return FakeBitcoinRPC()


@pytest.fixture
async def db_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'runescan_test.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def persistence(db_engine):
    return PersistenceService(db_engine)
