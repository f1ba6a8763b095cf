"""Time windows and symbol filters of the market queries, run against a real engine."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from akari.portal.markets import (
    get_cex_snapshots_for_symbols,
    get_dex_snapshots_for_symbols,
    get_latest_market_snapshots,
    get_liquidity_signals_with_fallback,
    get_recent_whale_entries,
    get_whale_entries_with_fallback,
)
from akari.utils.db import (
    Base,
    CexMarketSnapshot,
    DexMarketSnapshot,
    LiquiditySignal,
    MarketSnapshot,
    PortalStore,
    WhaleEntry,
)

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


@pytest.fixture
async def store():
    """In-memory SQLite store with the snapshot tables the market queries read."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(
            Base.metadata.create_all,
            tables=[
                MarketSnapshot.__table__,
                DexMarketSnapshot.__table__,
                CexMarketSnapshot.__table__,
                WhaleEntry.__table__,
                LiquiditySignal.__table__,
            ],
        )

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    with patch("akari.portal.markets._now", return_value=NOW):
        yield PortalStore(engine=engine, session_factory=factory)

    await engine.dispose()


async def _seed(store: PortalStore, *rows) -> None:
    async with store.session() as session:
        session.add_all(rows)
        await session.commit()


def _whale(id_: int, age: timedelta) -> WhaleEntry:
    return WhaleEntry(
        id=id_,
        token_symbol="AKR",
        chain="solana",
        wallet=f"wallet-{id_}",
        amount_usd=150_000,
        occurred_at=NOW - age,
        created_at=NOW - age,
    )


def _signal(id_: int, age: timedelta) -> LiquiditySignal:
    return LiquiditySignal(
        id=id_,
        type="ETH_RISK_OFF",
        title=f"signal {id_}",
        severity=2,
        triggered_at=NOW - age,
    )


def _dex(id_: int, symbol: str, liquidity: float) -> DexMarketSnapshot:
    return DexMarketSnapshot(
        id=id_, symbol=symbol, source="dexscreener", liquidity_usd=liquidity, created_at=NOW
    )


def _cex(id_: int, symbol: str, source: str, volume: float) -> CexMarketSnapshot:
    return CexMarketSnapshot(
        id=id_, symbol=symbol, source=source, volume_24h_usd=volume, created_at=NOW
    )


class TestLatestBatch:
    async def test_rows_within_five_minutes_of_newest(self, store) -> None:
        """The batch is anchored on the newest row, not on the clock."""
        newest = NOW - timedelta(hours=3)
        await _seed(
            store,
            MarketSnapshot(id=1, symbol="BTC", created_at=newest),
            MarketSnapshot(id=2, symbol="ETH", created_at=newest - timedelta(minutes=4)),
            MarketSnapshot(id=3, symbol="SOL", created_at=newest - timedelta(minutes=6)),
            MarketSnapshot(id=4, symbol="OLD", created_at=newest - timedelta(days=1)),
        )

        rows = await get_latest_market_snapshots(store)

        assert [r.symbol for r in rows] == ["BTC", "ETH"]

    async def test_limit(self, store) -> None:
        rows = [
            MarketSnapshot(id=i, symbol=f"T{i}", created_at=NOW - timedelta(seconds=i))
            for i in range(1, 6)
        ]
        await _seed(store, *rows)

        latest = await get_latest_market_snapshots(store, limit=2)

        assert [r.symbol for r in latest] == ["T1", "T2"]

    async def test_empty_table(self, store) -> None:
        assert await get_latest_market_snapshots(store) == []


class TestWhaleWindows:
    async def test_recent_rows_inside_24h(self, store) -> None:
        await _seed(
            store,
            _whale(1, timedelta(hours=2)),
            _whale(2, timedelta(hours=20)),
            _whale(3, timedelta(hours=30)),
        )

        result = await get_whale_entries_with_fallback(store)

        assert [w.id for w in result.recent] == [1, 2]
        assert result.last_any.id == 1

    async def test_three_day_old_row_is_last_any(self, store) -> None:
        await _seed(store, _whale(1, timedelta(days=3)), _whale(2, timedelta(days=5)))

        result = await get_whale_entries_with_fallback(store)

        assert result.recent == []
        assert result.last_any.id == 1

    async def test_nothing_inside_seven_days(self, store) -> None:
        await _seed(store, _whale(1, timedelta(days=8)))

        result = await get_whale_entries_with_fallback(store)

        assert result.recent == []
        assert result.last_any is None

    async def test_recent_entries_cover_seven_days(self, store) -> None:
        await _seed(store, _whale(1, timedelta(days=6)), _whale(2, timedelta(days=8)))

        assert [w.id for w in await get_recent_whale_entries(store)] == [1]


class TestLiquiditySignalWindows:
    async def test_recent_signals(self, store) -> None:
        await _seed(store, _signal(1, timedelta(hours=1)), _signal(2, timedelta(days=2)))

        result = await get_liquidity_signals_with_fallback(store)

        assert [s.id for s in result.recent] == [1]

    async def test_falls_back_three_days(self, store) -> None:
        await _seed(store, _signal(1, timedelta(days=2)), _signal(2, timedelta(days=2, hours=12)))

        result = await get_liquidity_signals_with_fallback(store)

        assert result.recent == []
        assert result.last_any.id == 1

    async def test_older_than_three_days_ignored(self, store) -> None:
        await _seed(store, _signal(1, timedelta(days=4)))

        result = await get_liquidity_signals_with_fallback(store)

        assert result.last_any is None


class TestSymbolFilters:
    async def test_dex_symbols_case_insensitive(self, store) -> None:
        await _seed(
            store,
            _dex(1, "wif", liquidity=10),
            _dex(2, "WIF", liquidity=90),
            _dex(3, "BONK", liquidity=50),
        )

        rows = await get_dex_snapshots_for_symbols(store, ["Wif"])

        assert [r.id for r in rows] == [2, 1]

    async def test_cex_symbols_case_insensitive(self, store) -> None:
        await _seed(
            store,
            _cex(1, "eth", "binance", volume=5),
            _cex(2, "ETH", "okx", volume=50),
            _cex(3, "BTC", "okx", volume=500),
        )

        rows = await get_cex_snapshots_for_symbols(store, ["eth"])

        assert [r.source for r in rows] == ["okx", "binance"]
