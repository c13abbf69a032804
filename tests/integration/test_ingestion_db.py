import json

import pytest
from conftest import make_coinbase_tx, make_op_return_output, make_output, make_tx, spend
from sqlalchemy import func, select

from runescan.models import Block, Input, RunestoneRecord, Transaction, TransactionTiming
from runescan.services.ingestion import IngestionService

RUNESTONE_SCRIPT = "6a5d0a04aafac60205520201"
CB100 = "a0" * 32
CB101 = "a1" * 32
SPENDER = "b1" * 32


@pytest.fixture
def ingestion(fake_rpc, persistence):
    return IngestionService(
        fake_rpc,
        persistence,
        block_concurrency=1,
        mempool_concurrency=1,
        decode_runestones=True,
        network="mainnet",
    )


def spender_tx():
    return make_tx(
        SPENDER,
        vin=[spend(CB100, 0)],
        vout=[
            make_output(0, "6.0", address="bc1qreceiver"),
            make_op_return_output(1, RUNESTONE_SCRIPT),
        ],
    )


def build_chain(fake_rpc):
    fake_rpc.add_block(100, [make_coinbase_tx(CB100, coinbase_hex=b"/ViaBTC/".hex())])
    fake_rpc.add_block(101, [make_coinbase_tx(CB101), spender_tx()])


async def count(persistence, model):
    async with persistence.session_factory() as session:
        return (await session.execute(select(func.count()).select_from(model))).scalar_one()


async def test_process_blocks_end_to_end(fake_rpc, persistence, ingestion):
    build_chain(fake_rpc)

    assert await ingestion.process_block(100)
    assert await ingestion.process_block(101)

    [block_101, block_100] = await persistence.list_blocks(2)
    assert block_100.mining_pool == "ViaBTC"
    assert block_101.tx_count == 2

    coinbase = await persistence.get_transaction_detail(CB100)
    assert coinbase.fee == 0
    assert coinbase.total_output_value == 625_000_000
    assert coinbase.inputs[0].value == 0
    assert coinbase.inputs[0].address is None

    spender = await persistence.get_transaction_detail(SPENDER)
    assert spender.block_height == 101
    assert spender.total_input_value == 625_000_000
    assert spender.fee == 25_000_000
    assert spender.inputs[0].address == "bc1qminer"
    assert spender.inputs[0].previous_transaction_id == coinbase.id
    assert spender.outputs[1].address == "OP_Return"

    [runestone] = await persistence.get_runestones(SPENDER)
    assert runestone.output_index == 1
    assert runestone.rune_name == "KRTHJ"
    assert runestone.cenotaph is False
    assert json.loads(runestone.decoded_json)["symbol"] == "R"


async def test_process_block_twice_is_idempotent(fake_rpc, persistence, ingestion):
    build_chain(fake_rpc)

    for _ in range(2):
        assert await ingestion.process_block(100)
        assert await ingestion.process_block(101)

    assert await count(persistence, Block) == 2
    assert await count(persistence, Transaction) == 3
    assert await count(persistence, Input) == 3
    assert await count(persistence, RunestoneRecord) == 1


async def test_mempool_then_confirmation(fake_rpc, persistence, ingestion):
    fake_rpc.add_block(100, [make_coinbase_tx(CB100)])
    assert await ingestion.process_block(100)

    fake_rpc.add_transaction(spender_tx())
    fake_rpc.mempool = [SPENDER]
    assert await ingestion.process_mempool_transactions()

    unconfirmed = await persistence.get_transaction_detail(SPENDER)
    assert unconfirmed.block_height is None

    fake_rpc.mempool = []
    fake_rpc.add_block(101, [make_coinbase_tx(CB101), spender_tx()])
    assert await ingestion.process_block(101)

    confirmed = await persistence.get_transaction_detail(SPENDER)
    assert confirmed.block_height == 101
    assert confirmed.id == unconfirmed.id

    async with persistence.session_factory() as session:
        timing = (
            await session.execute(select(TransactionTiming).where(TransactionTiming.txid == SPENDER))
        ).scalar_one()
    assert timing.mempool_time is not None
    assert timing.confirmation_time is not None


async def test_replaced_mempool_transaction_not_stored(fake_rpc, persistence, ingestion):
    fake_rpc.add_transaction(make_tx("c1" * 32, vin=[], vout=[], replaced_by_txid="c2" * 32))
    fake_rpc.mempool = ["c1" * 32]

    assert await ingestion.process_mempool_transactions()
    assert await persistence.get_transaction_detail("c1" * 32) is None


async def test_rerun_with_unavailable_previous_transaction_keeps_totals(fake_rpc, persistence, ingestion):
    build_chain(fake_rpc)
    assert await ingestion.process_block(100)
    assert await ingestion.process_block(101)

    fake_rpc.transactions.pop(CB100)
    assert await ingestion.process_block(101)

    spender = await persistence.get_transaction_detail(SPENDER)
    assert (spender.total_input_value, spender.fee) == (625_000_000, 25_000_000)
    assert spender.total_output_value == 600_000_000
    assert len(spender.inputs) == 1


async def test_unresolved_fee_filled_by_later_complete_run(fake_rpc, persistence, ingestion):
    build_chain(fake_rpc)
    cb100 = fake_rpc.transactions.pop(CB100)
    assert await ingestion.process_block(101)

    partial = await persistence.get_transaction_detail(SPENDER)
    assert partial.fee is None
    assert partial.total_input_value == 0
    assert partial.inputs == []

    fake_rpc.add_transaction(cb100)
    assert await ingestion.process_block(101)

    complete = await persistence.get_transaction_detail(SPENDER)
    assert complete.id == partial.id
    assert (complete.total_input_value, complete.fee) == (625_000_000, 25_000_000)
    assert complete.inputs[0].address == "bc1qminer"
