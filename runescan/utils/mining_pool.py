"""
Mining pool identification from coinbase input scripts.
"""

import re
from typing import List, Tuple

UNKNOWN_POOL = "Unknown"

# Order matters: first match wins
POOL_PATTERNS: List[Tuple[str, re.Pattern]] = [
    ("F2Pool", re.compile(r"f2pool|鱼池", re.IGNORECASE)),
    ("AntPool", re.compile(r"antpool|蚂蚁", re.IGNORECASE)),
    ("SlushPool", re.compile(r"slush|braiinspool", re.IGNORECASE)),
    ("BTC.com", re.compile(r"btc\.com|btccom", re.IGNORECASE)),
    ("Foundry USA", re.compile(r"foundry", re.IGNORECASE)),
    ("Binance Pool", re.compile(r"binance|bnpool", re.IGNORECASE)),
    ("ViaBTC", re.compile(r"viabtc", re.IGNORECASE)),
    ("Poolin", re.compile(r"poolin", re.IGNORECASE)),
    ("Luxor", re.compile(r"luxor", re.IGNORECASE)),
    ("MARA Pool", re.compile(r"mara pool|made in usa", re.IGNORECASE)),
    ("SpiderPool", re.compile(r"spiderpool", re.IGNORECASE)),
    ("WhitePool", re.compile(r"whitepool", re.IGNORECASE)),
    ("SBI Crypto", re.compile(r"sbicrypto", re.IGNORECASE)),
    ("SecPool", re.compile(r"secpool", re.IGNORECASE)),
    ("Ocean.XYZ", re.compile(r"ocean\.xyz", re.IGNORECASE)),
    ("Neopool", re.compile(r"neopool", re.IGNORECASE)),
    ("1THash", re.compile(r"1thash", re.IGNORECASE)),
    ("NovaBlock", re.compile(r"novablock", re.IGNORECASE)),
    ("Huobi Pool", re.compile(r"huobi", re.IGNORECASE)),
    ("OKEX", re.compile(r"okex", re.IGNORECASE)),
    ("KuCoin", re.compile(r"kucoin", re.IGNORECASE)),
]


def decode_coinbase_text(coinbase_hex: str) -> str:
    """Render a coinbase script as printable ASCII, other bytes become dots"""
    try:
        data = bytes.fromhex(coinbase_hex or "")
    except ValueError:
        return ""
    return "".join(chr(b) if 32 <= b <= 126 else "." for b in data)


def identify_mining_pool(coinbase_hex: str) -> str:
    """Identify the mining pool that produced a coinbase input"""
    text = decode_coinbase_text(coinbase_hex)
    for pool, pattern in POOL_PATTERNS:
        if pattern.search(text):
            return pool
    return UNKNOWN_POOL
