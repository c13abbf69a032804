from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from runescan.main import main, verify_dependencies
from runescan.utils.exceptions import IndexerError


def node(chain="main", blocks=840000):
    rpc = MagicMock()
    rpc.get_blockchain_info = AsyncMock(return_value={"chain": chain, "blocks": blocks})
    return rpc


@pytest.fixture
def mock_settings():
    with patch("runescan.main.settings") as settings:
        settings.BITCOIN_NETWORK = "mainnet"
        yield settings


async def test_verify_dependencies_returns_node_height(mock_settings):
    with patch("runescan.main.check_connection", AsyncMock(return_value=True)):
        assert await verify_dependencies(node(), MagicMock()) == 840000


async def test_verify_dependencies_maps_test_chains(mock_settings):
    mock_settings.BITCOIN_NETWORK = "testnet"
    with patch("runescan.main.check_connection", AsyncMock(return_value=True)):
        assert await verify_dependencies(node(chain="testnet4", blocks=5), MagicMock()) == 5


async def test_verify_dependencies_node_unreachable(mock_settings):
    rpc = MagicMock()
    rpc.get_blockchain_info = AsyncMock(side_effect=ConnectionError("refused"))
    with pytest.raises(IndexerError, match="Bitcoin node"):
        await verify_dependencies(rpc, MagicMock())


async def test_verify_dependencies_network_mismatch(mock_settings):
    with patch("runescan.main.check_connection", AsyncMock(return_value=True)):
        with pytest.raises(IndexerError, match="regtest"):
            await verify_dependencies(node(chain="regtest"), MagicMock())


async def test_verify_dependencies_database_unreachable(mock_settings):
    with patch("runescan.main.check_connection", AsyncMock(return_value=False)):
        with pytest.raises(IndexerError, match="database"):
            await verify_dependencies(node(), MagicMock())


def test_main_exits_non_zero_on_fatal_error():
    with patch("runescan.main.setup_logging"), patch(
        "runescan.main.run", AsyncMock(side_effect=IndexerError("Cannot connect to database"))
    ):
        with pytest.raises(SystemExit) as exc:
            main()
    assert exc.value.code == 1
