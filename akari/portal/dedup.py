"""Best-pair selection over venue snapshots.

Several snapshot rows can describe one logical market (same token on the
same chain via different pools, or one symbol on several exchanges). These
reducers keep one representative row per key.

  - DEX: key = token_address + chain, or SYMBOL + chain without an address.
    Highest liquidity wins, then highest volume; a full tie keeps the row
    seen first.
  - CEX: key = SYMBOL. Highest volume wins.

Output is sorted by the same comparison, so a fixed input order always
gives the same result.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import asdict, dataclass
from typing import Any, TypeVar

R = TypeVar("R")

UNKNOWN = "unknown"


@dataclass(frozen=True)
class DexLiquidityRow:
    symbol: str | None
    name: str | None
    chain: str | None
    dex: str | None
    price_usd: float | None
    liquidity_usd: float | None
    volume_24h_usd: float | None
    txns_24h: int | None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CexMarketRow:
    symbol: str
    pair: str | None
    exchange: str
    price_usd: float | None
    volume_24h_usd: float | None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _num(value: float | None) -> float:
    return value or 0.0


def dex_pair_key(row: Any) -> str:
    chain = row.chain or UNKNOWN
    if row.token_address:
        return f"{row.token_address}-{chain}"
    return f"{(row.symbol or UNKNOWN).upper()}-{chain}"


def _dex_rank(row: Any) -> tuple[float, float]:
    return (_num(row.liquidity_usd), _num(row.volume_24h_usd))


def _volume_rank(row: Any) -> float:
    return _num(row.volume_24h_usd)


def select_best(
    rows: Iterable[R],
    key: Callable[[R], str],
    rank: Callable[[R], Any],
) -> list[R]:
    """One row per key; a row replaces the kept one only if it ranks strictly higher.

    Returned rows are ordered by rank, descending.
    """
    best: dict[str, R] = {}
    for row in rows:
        k = key(row)
        current = best.get(k)
        if current is None or rank(row) > rank(current):
            best[k] = row
    # sorted() is stable, so equal ranks keep first-seen order
    return sorted(best.values(), key=rank, reverse=True)


def select_best_dex_pairs(rows: Iterable[R], limit: int | None = None) -> list[R]:
    selected = select_best(rows, dex_pair_key, _dex_rank)
    return selected if limit is None else selected[:limit]


def select_best_cex_by_symbol(rows: Iterable[R], limit: int | None = None) -> list[R]:
    selected = select_best(rows, lambda r: r.symbol.upper(), _volume_rank)
    return selected if limit is None else selected[:limit]


def select_best_dex_by_symbol_volume(rows: Iterable[R], limit: int | None = None) -> list[R]:
    selected = select_best(rows, lambda r: (r.symbol or UNKNOWN).upper(), _volume_rank)
    return selected if limit is None else selected[:limit]


def to_dex_liquidity_row(row: Any) -> DexLiquidityRow:
    return DexLiquidityRow(
        symbol=row.symbol,
        name=row.name,
        chain=row.chain,
        dex=row.dex,
        price_usd=row.price_usd,
        liquidity_usd=row.liquidity_usd,
        volume_24h_usd=row.volume_24h_usd,
        txns_24h=row.txns_24h,
    )


def exchange_label(source: str) -> str:
    return source.upper().replace("CEX_AGGREGATOR_V1", "CEX")


def to_cex_market_row(row: Any) -> CexMarketRow:
    pair = f"{row.base_asset}/{row.quote_asset}" if row.base_asset and row.quote_asset else None
    return CexMarketRow(
        symbol=row.symbol,
        pair=pair,
        exchange=exchange_label(row.source),
        price_usd=row.price_usd,
        volume_24h_usd=row.volume_24h_usd,
    )
