"""Token classification: majors vs memes.

A token is "major" when its symbol is in MAJOR_SYMBOLS or its name contains
one of MAJOR_NAME_PARTS. A token is "meme" when it is not major and its
symbol or name contains a MEME_KEYWORDS entry. The major check always runs
first, so "DOGE" is a meme but "WBTC" never is.
"""

from __future__ import annotations

MAJOR_SYMBOLS: frozenset[str] = frozenset(
    {
        "BTC", "WBTC", "ETH", "WETH", "STETH", "SOL", "BNB", "XRP", "ADA", "AVAX",
        "DOT", "LINK", "MATIC", "POL", "ATOM", "LTC", "TRX", "TON", "NEAR", "ARB",
        "OP", "APT", "SUI", "UNI", "AAVE", "FIL", "ICP", "XLM", "HBAR", "ETC",
        "USDT", "USDC", "DAI", "BUSD", "TUSD", "FDUSD", "USDE", "PYUSD",
    }
)  # fmt: skip

MAJOR_NAME_PARTS: tuple[str, ...] = (
    "bitcoin",
    "ethereum",
    "solana",
    "binance",
    "cardano",
    "avalanche",
    "polkadot",
    "chainlink",
    "polygon",
    "tether",
    "usd coin",
    "wrapped",
    "staked",
)

MEME_KEYWORDS: tuple[str, ...] = (
    "pepe", "doge", "shib", "wif", "bonk", "floki", "meme", "inu",
    "elon", "moon", "wojak", "chad", "frog", "cat", "dog", "pump",
    "brett", "popcat", "mog", "turbo", "neiro", "goat", "pnut",
    "act", "bome", "myro", "slerf", "wen", "book", "samo", "corgiai",
)  # fmt: skip


def is_major_token(symbol: str | None, name: str | None = None) -> bool:
    sym = (symbol or "").strip().upper()
    if sym in MAJOR_SYMBOLS:
        return True
    lowered = (name or "").lower()
    return any(part in lowered for part in MAJOR_NAME_PARTS)


def is_meme_token(symbol: str | None, name: str | None = None) -> bool:
    if is_major_token(symbol, name):
        return False
    sym = (symbol or "").lower()
    lowered = (name or "").lower()
    return any(kw in sym or kw in lowered for kw in MEME_KEYWORDS)
