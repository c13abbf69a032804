import pytest

from runescan.utils.mining_pool import UNKNOWN_POOL, decode_coinbase_text, identify_mining_pool


def coinbase(text: str) -> str:
    return ("03a0bb0d" + text.encode().hex() + "ff00").lower()


@pytest.mark.parametrize(
    "text, pool",
    [
        ("Mined by AntPool", "AntPool"),
        ("/Foundry USA Pool #dropgold/", "Foundry USA"),
        ("/ViaBTC/Mined by user/", "ViaBTC"),
        ("F2Pool", "F2Pool"),
        ("ocean.xyz", "Ocean.XYZ"),
        ("/SpiderPool/", "SpiderPool"),
        ("binance/", "Binance Pool"),
    ],
)
def test_identify_mining_pool(text, pool):
    assert identify_mining_pool(coinbase(text)) == pool


def test_unknown_pool():
    assert identify_mining_pool(coinbase("solo miner")) == UNKNOWN_POOL
    assert identify_mining_pool("") == UNKNOWN_POOL
    assert identify_mining_pool("not hex") == UNKNOWN_POOL


def test_decode_coinbase_text_masks_binary():
    assert decode_coinbase_text("41ff42") == "A.B"
