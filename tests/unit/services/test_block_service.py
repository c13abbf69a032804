from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from runescan.services.block_service import BlockService, summarize_fee_rates


@pytest.fixture
def persistence_mock():
    persistence = MagicMock()
    persistence.update_fee_estimates = AsyncMock(return_value=840000)
    return persistence


async def test_update_fee_estimates(fake_rpc, persistence_mock):
    fake_rpc.template = {
        "transactions": [
            {"fee": 1000, "weight": 400},
            {"fee": 500, "weight": 1000},
            {"fee": 700, "weight": 0},
        ]
    }
    service = BlockService(fake_rpc, persistence_mock)

    estimate = await service.update_fee_estimates()

    assert estimate.average == Decimal("6.00")
    assert estimate.minimum == Decimal("2.00")
    assert estimate.maximum == Decimal("10.00")
    assert estimate.sample_size == 2
    assert estimate.block_height == 840000
    persistence_mock.update_fee_estimates.assert_awaited_once_with(
        Decimal("6.00"), Decimal("2.00"), Decimal("10.00")
    )


async def test_empty_template(fake_rpc, persistence_mock):
    service = BlockService(fake_rpc, persistence_mock)
    assert await service.update_fee_estimates() is None
    persistence_mock.update_fee_estimates.assert_not_awaited()


async def test_template_failure(persistence_mock):
    rpc = MagicMock()
    rpc.get_block_template = AsyncMock(side_effect=RuntimeError("not connected"))
    service = BlockService(rpc, persistence_mock)
    assert await service.update_fee_estimates() is None


def test_identify_pool(fake_rpc, persistence_mock):
    service = BlockService(fake_rpc, persistence_mock)
    assert service.identify_pool(b"Mined by AntPool".hex()) == "AntPool"
    assert service.identify_pool(None) is None


def test_summarize_fee_rates():
    assert summarize_fee_rates([]) is None
    estimate = summarize_fee_rates([Decimal("1.00"), Decimal("2.00"), Decimal("2.00")])
    assert estimate.average == Decimal("1.67")
