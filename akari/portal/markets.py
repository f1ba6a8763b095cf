"""Market data aggregation over snapshot tables.

Interface contract:
  - every query takes a PortalStore first and opens its own session
  - "no data" is an empty result, never an error
  - any other failure degrades to the documented fallback and logs
    portal_query_failed (see degrade_on_error)

Latest batch: an ingestion run writes many rows within a few seconds, so
"latest" means every row created within LATEST_BATCH_WINDOW of the newest
created_at, newest first.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

import sqlalchemy as sa

from akari.config.settings import PortalConfig
from akari.portal.common import WindowedResult, degrade_on_error
from akari.portal.dedup import (
    CexMarketRow,
    DexLiquidityRow,
    select_best_cex_by_symbol,
    select_best_dex_by_symbol_volume,
    select_best_dex_pairs,
    to_cex_market_row,
    to_dex_liquidity_row,
)
from akari.portal.metrics import (
    ChainFlow,
    FlowSignal,
    aggregate_chain_flows,
    classify_whale_entry,
    compute_roi_percent,
    derive_flow_signals,
    whale_size_tier,
)
from akari.utils.db import (
    CexMarketSnapshot,
    DexMarketSnapshot,
    LaunchPlatform,
    LaunchPriceSnapshot,
    LeadInvestor,
    LiquiditySignal,
    MarketSnapshot,
    MemeTokenSnapshot,
    NewLaunch,
    PortalStore,
    StablecoinFlowSnapshot,
    WhaleEntry,
)
from akari.utils.logger import get_logger

logger = get_logger("portal.markets")

LATEST_BATCH_WINDOW = timedelta(minutes=5)
WHALE_HISTORY = timedelta(days=7)
FALLBACK_QUERY_LIMIT = 50


def _now() -> datetime:
    return datetime.now(UTC)


# ================================================================
# Data models
# ================================================================


@dataclass(frozen=True)
class DexAggregate:
    max_liquidity_usd: float | None
    total_volume_24h_usd: float | None
    sources: list[str]
    chains: list[str]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TradingVenuesSummary:
    dex_sources: list[str] = field(default_factory=list)
    dex_chains: list[str] = field(default_factory=list)
    cex_sources: list[str] = field(default_factory=list)
    has_dex: bool = False
    has_cex: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class LaunchWithMetrics:
    """A launch with its platforms, newest price snapshot and ROI."""

    launch: NewLaunch
    platform: dict[str, Any] | None
    primary_platform: dict[str, Any] | None
    listing_platform: dict[str, Any] | None
    lead_investor: dict[str, Any] | None
    latest_snapshot: dict[str, Any] | None
    roi_percent: float | None

    def to_dict(self) -> dict[str, Any]:
        data = self.launch.to_dict()
        data.update(
            platform=self.platform,
            primary_platform=self.primary_platform,
            listing_platform=self.listing_platform,
            lead_investor=self.lead_investor,
            latest_snapshot=self.latest_snapshot,
            roi_percent=self.roi_percent,
        )
        return data


@dataclass(frozen=True)
class ChainFlowSummary:
    flows: list[ChainFlow] = field(default_factory=list)
    signals: list[FlowSignal] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "flows": [f.to_dict() for f in self.flows],
            "signals": [s.to_dict() for s in self.signals],
        }


@dataclass(frozen=True)
class MarketOverview:
    """Everything the market page shows, gathered in one call."""

    market_snapshots: list[MarketSnapshot] = field(default_factory=list)
    meme_snapshots: list[MemeTokenSnapshot] = field(default_factory=list)
    whales: WindowedResult[WhaleEntry] = field(default_factory=WindowedResult)
    liquidity_signals: WindowedResult[LiquiditySignal] = field(default_factory=WindowedResult)
    dex_liquidity: list[DexLiquidityRow] = field(default_factory=list)
    cex_markets: list[CexMarketRow] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "market_snapshots": [r.to_dict() for r in self.market_snapshots],
            "meme_snapshots": [r.to_dict() for r in self.meme_snapshots],
            "whales": {
                "recent": [describe_whale_entry(w) for w in self.whales.recent],
                "last_any": (
                    describe_whale_entry(self.whales.last_any) if self.whales.last_any else None
                ),
            },
            "liquidity_signals": {
                "recent": [s.to_dict() for s in self.liquidity_signals.recent],
                "last_any": (
                    self.liquidity_signals.last_any.to_dict()
                    if self.liquidity_signals.last_any
                    else None
                ),
            },
            "dex_liquidity": [r.to_dict() for r in self.dex_liquidity],
            "cex_markets": [r.to_dict() for r in self.cex_markets],
        }


def describe_whale_entry(entry: WhaleEntry) -> dict[str, Any]:
    data = entry.to_dict()
    data["direction"] = classify_whale_entry(entry.amount_usd)
    data["tier"] = whale_size_tier(entry.amount_usd)
    return data


def _upper_symbols(symbols: Sequence[str]) -> list[str]:
    return [s.upper() for s in symbols if s]


# ================================================================
# Latest batches
# ================================================================


async def _latest_batch(
    store: PortalStore, model: Any, limit: int, window: timedelta
) -> list[Any]:
    async with store.session() as session:
        result = await session.execute(sa.select(sa.func.max(model.created_at)))
        newest = result.scalar()
        if newest is None:
            return []

        result = await session.execute(
            sa.select(model)
            .where(model.created_at >= newest - window)
            .order_by(model.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())


@degrade_on_error(list)
async def get_latest_market_snapshots(
    store: PortalStore, limit: int = 50, window: timedelta = LATEST_BATCH_WINDOW
) -> list[MarketSnapshot]:
    return await _latest_batch(store, MarketSnapshot, limit, window)


@degrade_on_error(list)
async def get_latest_meme_token_snapshots(
    store: PortalStore, limit: int = 50, window: timedelta = LATEST_BATCH_WINDOW
) -> list[MemeTokenSnapshot]:
    return await _latest_batch(store, MemeTokenSnapshot, limit, window)


@degrade_on_error(list)
async def get_meme_snapshots(
    store: PortalStore, limit: int = 30, lookback: timedelta = timedelta(hours=24)
) -> list[MemeTokenSnapshot]:
    """Meme snapshots from the lookback window, biggest market cap first."""
    async with store.session() as session:
        result = await session.execute(
            sa.select(MemeTokenSnapshot)
            .where(MemeTokenSnapshot.created_at >= _now() - lookback)
            .order_by(
                MemeTokenSnapshot.market_cap_usd.desc().nulls_last(),
                MemeTokenSnapshot.price_usd.desc().nulls_last(),
            )
            .limit(limit)
        )
        return list(result.scalars().all())


# ================================================================
# Whales and liquidity signals
# ================================================================


@degrade_on_error(list)
async def get_recent_whale_entries(
    store: PortalStore, limit: int = 50, history: timedelta = WHALE_HISTORY
) -> list[WhaleEntry]:
    async with store.session() as session:
        result = await session.execute(
            sa.select(WhaleEntry)
            .where(WhaleEntry.occurred_at >= _now() - history)
            .order_by(WhaleEntry.occurred_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())


@degrade_on_error(list)
async def get_recent_liquidity_signals(store: PortalStore, limit: int = 10) -> list[LiquiditySignal]:
    async with store.session() as session:
        result = await session.execute(
            sa.select(LiquiditySignal).order_by(LiquiditySignal.triggered_at.desc()).limit(limit)
        )
        return list(result.scalars().all())


async def _windowed(
    store: PortalStore,
    model: Any,
    column: Any,
    recent: timedelta,
    fallback: timedelta,
    limit: int,
) -> WindowedResult[Any]:
    """Rows inside ``recent``; when there are none, only the newest row inside ``fallback``."""
    now = _now()
    async with store.session() as session:
        result = await session.execute(
            sa.select(model).where(column >= now - recent).order_by(column.desc()).limit(limit)
        )
        rows = list(result.scalars().all())
        if rows:
            return WindowedResult(recent=rows, last_any=rows[0])

        result = await session.execute(
            sa.select(model).where(column >= now - fallback).order_by(column.desc()).limit(limit)
        )
        older = list(result.scalars().all())
        return WindowedResult(recent=[], last_any=older[0] if older else None)


@degrade_on_error(WindowedResult)
async def get_whale_entries_with_fallback(
    store: PortalStore, recent_hours: int = 24, fallback_days: int = 7
) -> WindowedResult[WhaleEntry]:
    return await _windowed(
        store,
        WhaleEntry,
        WhaleEntry.occurred_at,
        recent=timedelta(hours=recent_hours),
        fallback=timedelta(days=fallback_days),
        limit=FALLBACK_QUERY_LIMIT,
    )


@degrade_on_error(WindowedResult)
async def get_liquidity_signals_with_fallback(
    store: PortalStore, recent_hours: int = 24, fallback_days: int = 3, limit: int = 10
) -> WindowedResult[LiquiditySignal]:
    return await _windowed(
        store,
        LiquiditySignal,
        LiquiditySignal.triggered_at,
        recent=timedelta(hours=recent_hours),
        fallback=timedelta(days=fallback_days),
        limit=limit,
    )


# ================================================================
# DEX / CEX venues
# ================================================================


@degrade_on_error(list)
async def get_dex_snapshots_for_symbols(
    store: PortalStore, symbols: Sequence[str]
) -> list[DexMarketSnapshot]:
    wanted = _upper_symbols(symbols)
    if not wanted:
        return []
    async with store.session() as session:
        result = await session.execute(
            sa.select(DexMarketSnapshot)
            .where(sa.func.upper(DexMarketSnapshot.symbol).in_(wanted))
            .order_by(
                DexMarketSnapshot.liquidity_usd.desc().nulls_last(),
                DexMarketSnapshot.created_at.desc(),
            )
        )
        return list(result.scalars().all())


@degrade_on_error(list)
async def get_cex_snapshots_for_symbols(
    store: PortalStore, symbols: Sequence[str]
) -> list[CexMarketSnapshot]:
    wanted = _upper_symbols(symbols)
    if not wanted:
        return []
    async with store.session() as session:
        result = await session.execute(
            sa.select(CexMarketSnapshot)
            .where(sa.func.upper(CexMarketSnapshot.symbol).in_(wanted))
            .order_by(
                CexMarketSnapshot.volume_24h_usd.desc().nulls_last(),
                CexMarketSnapshot.created_at.desc(),
            )
        )
        return list(result.scalars().all())


async def _top_dex_by(store: PortalStore, column: Any, limit: int) -> list[DexMarketSnapshot]:
    async with store.session() as session:
        result = await session.execute(
            sa.select(DexMarketSnapshot)
            .where(column.is_not(None), column > 0)
            .order_by(column.desc())
            .limit(limit)
        )
        return list(result.scalars().all())


@degrade_on_error(list)
async def get_top_dex_by_liquidity(store: PortalStore, limit: int = 10) -> list[DexMarketSnapshot]:
    return await _top_dex_by(store, DexMarketSnapshot.liquidity_usd, limit)


@degrade_on_error(list)
async def get_top_dex_by_volume(store: PortalStore, limit: int = 10) -> list[DexMarketSnapshot]:
    return await _top_dex_by(store, DexMarketSnapshot.volume_24h_usd, limit)


@degrade_on_error(list)
async def get_latest_dex_snapshots(store: PortalStore, limit: int = 30) -> list[DexMarketSnapshot]:
    async with store.session() as session:
        result = await session.execute(
            sa.select(DexMarketSnapshot).order_by(DexMarketSnapshot.created_at.desc()).limit(limit)
        )
        return list(result.scalars().all())


@degrade_on_error(list)
async def get_latest_cex_snapshots(store: PortalStore, limit: int = 30) -> list[CexMarketSnapshot]:
    async with store.session() as session:
        result = await session.execute(
            sa.select(CexMarketSnapshot).order_by(CexMarketSnapshot.created_at.desc()).limit(limit)
        )
        return list(result.scalars().all())


def _distinct(values: Sequence[str | None]) -> list[str]:
    """Non-empty values, first occurrence order."""
    return list(dict.fromkeys(v for v in values if v))


@degrade_on_error(lambda: None)
async def get_dex_aggregate_for_symbol(store: PortalStore, symbol: str) -> DexAggregate | None:
    """Best liquidity and summed volume across every DEX pool of ``symbol``."""
    async with store.session() as session:
        result = await session.execute(
            sa.select(DexMarketSnapshot).where(
                sa.func.upper(DexMarketSnapshot.symbol) == symbol.upper()
            )
        )
        rows = list(result.scalars().all())

    if not rows:
        return None

    max_liquidity = max(r.liquidity_usd or 0.0 for r in rows)
    total_volume = sum(r.volume_24h_usd or 0.0 for r in rows)
    return DexAggregate(
        max_liquidity_usd=max_liquidity if max_liquidity > 0 else None,
        total_volume_24h_usd=total_volume if total_volume > 0 else None,
        sources=_distinct([r.dex for r in rows]),
        chains=_distinct([r.chain for r in rows]),
    )


@degrade_on_error(list)
async def get_cex_sources_for_symbol(store: PortalStore, symbol: str) -> list[str]:
    async with store.session() as session:
        result = await session.execute(
            sa.select(CexMarketSnapshot.source)
            .where(sa.func.upper(CexMarketSnapshot.symbol) == symbol.upper())
            .distinct()
        )
        return list(result.scalars().all())


async def _dex_venues(store: PortalStore, symbol: str) -> list[Any]:
    async with store.session() as session:
        result = await session.execute(
            sa.select(DexMarketSnapshot.dex, DexMarketSnapshot.chain).where(
                sa.func.upper(DexMarketSnapshot.symbol) == symbol.upper()
            )
        )
        return list(result.all())


async def _cex_venues(store: PortalStore, symbol: str) -> list[str]:
    async with store.session() as session:
        result = await session.execute(
            sa.select(CexMarketSnapshot.source).where(
                sa.func.upper(CexMarketSnapshot.symbol) == symbol.upper()
            )
        )
        return list(result.scalars().all())


@degrade_on_error(TradingVenuesSummary)
async def get_trading_venues_summary(store: PortalStore, symbol: str) -> TradingVenuesSummary:
    """Where ``symbol`` trades. The DEX and CEX reads run concurrently."""
    dex_rows, cex_sources = await asyncio.gather(
        _dex_venues(store, symbol), _cex_venues(store, symbol)
    )
    return TradingVenuesSummary(
        dex_sources=_distinct([r.dex for r in dex_rows]),
        dex_chains=_distinct([r.chain for r in dex_rows]),
        cex_sources=_distinct(cex_sources),
        has_dex=bool(dex_rows),
        has_cex=bool(cex_sources),
    )


@degrade_on_error(list)
async def get_dex_liquidity_snapshots(store: PortalStore, limit: int = 20) -> list[DexLiquidityRow]:
    """Best pool per (token, chain), deepest liquidity first."""
    async with store.session() as session:
        result = await session.execute(
            sa.select(DexMarketSnapshot)
            .where(DexMarketSnapshot.liquidity_usd > 0)
            .order_by(
                DexMarketSnapshot.liquidity_usd.desc(),
                DexMarketSnapshot.volume_24h_usd.desc().nulls_last(),
            )
        )
        rows = list(result.scalars().all())
    return [to_dex_liquidity_row(r) for r in select_best_dex_pairs(rows, limit)]


@degrade_on_error(list)
async def get_cex_market_snapshots(store: PortalStore, limit: int = 20) -> list[CexMarketRow]:
    """Highest-volume listing per symbol."""
    async with store.session() as session:
        result = await session.execute(
            sa.select(CexMarketSnapshot)
            .where(CexMarketSnapshot.volume_24h_usd > 0)
            .order_by(CexMarketSnapshot.volume_24h_usd.desc())
        )
        rows = list(result.scalars().all())
    return [to_cex_market_row(r) for r in select_best_cex_by_symbol(rows, limit)]


@degrade_on_error(list)
async def get_solana_dex_tokens_by_volume(
    store: PortalStore, limit: int = 20
) -> list[DexLiquidityRow]:
    """Highest-volume Solana pool per symbol; feeds the meme board when CoinGecko is empty."""
    async with store.session() as session:
        result = await session.execute(
            sa.select(DexMarketSnapshot)
            .where(
                DexMarketSnapshot.chain.ilike("%sol%"),
                DexMarketSnapshot.volume_24h_usd > 0,
            )
            .order_by(DexMarketSnapshot.volume_24h_usd.desc())
        )
        rows = list(result.scalars().all())
    return [to_dex_liquidity_row(r) for r in select_best_dex_by_symbol_volume(rows, limit)]


# ================================================================
# Launches
# ================================================================


def _platform_dict(platform: LaunchPlatform | None, with_kind: bool) -> dict[str, Any] | None:
    if platform is None:
        return None
    data: dict[str, Any] = {"id": platform.id, "name": platform.name, "slug": platform.slug}
    if with_kind:
        data["kind"] = platform.kind
    return data


def _snapshot_dict(snapshot: LaunchPriceSnapshot | None) -> dict[str, Any] | None:
    if snapshot is None:
        return None
    return {
        "price_usd": snapshot.price_usd,
        "volume_24h": snapshot.volume_24h,
        "liquidity": snapshot.liquidity,
        "source": snapshot.source,
        "fetched_at": snapshot.fetched_at,
    }


async def _launch_metrics(session: Any, launches: list[NewLaunch]) -> list[LaunchWithMetrics]:
    """Attach platforms, investor and newest price snapshot to each launch."""
    if not launches:
        return []

    launch_ids = [launch.id for launch in launches]
    platform_ids = {
        pid
        for launch in launches
        for pid in (launch.platform_id, launch.primary_platform_id, launch.listing_platform_id)
        if pid
    }
    investor_ids = {launch.lead_investor_id for launch in launches if launch.lead_investor_id}

    result = await session.execute(
        sa.select(LaunchPriceSnapshot)
        .where(LaunchPriceSnapshot.launch_id.in_(launch_ids))
        .distinct(LaunchPriceSnapshot.launch_id)
        .order_by(LaunchPriceSnapshot.launch_id, LaunchPriceSnapshot.fetched_at.desc())
    )
    snapshots = {s.launch_id: s for s in result.scalars().all()}

    platforms: dict[str, LaunchPlatform] = {}
    if platform_ids:
        result = await session.execute(
            sa.select(LaunchPlatform).where(LaunchPlatform.id.in_(platform_ids))
        )
        platforms = {p.id: p for p in result.scalars().all()}

    investors: dict[str, LeadInvestor] = {}
    if investor_ids:
        result = await session.execute(
            sa.select(LeadInvestor).where(LeadInvestor.id.in_(investor_ids))
        )
        investors = {i.id: i for i in result.scalars().all()}

    items: list[LaunchWithMetrics] = []
    for launch in launches:
        snapshot = snapshots.get(launch.id)
        investor = investors.get(launch.lead_investor_id) if launch.lead_investor_id else None
        items.append(
            LaunchWithMetrics(
                launch=launch,
                platform=_platform_dict(platforms.get(launch.platform_id or ""), with_kind=False),
                primary_platform=_platform_dict(
                    platforms.get(launch.primary_platform_id or ""), with_kind=True
                ),
                listing_platform=_platform_dict(
                    platforms.get(launch.listing_platform_id or ""), with_kind=True
                ),
                lead_investor={"id": investor.id, "name": investor.name} if investor else None,
                latest_snapshot=_snapshot_dict(snapshot),
                roi_percent=compute_roi_percent(
                    launch.sale_price_usd, snapshot.price_usd if snapshot else None
                ),
            )
        )
    return items


@degrade_on_error(list)
async def get_all_launches_with_metrics(store: PortalStore) -> list[LaunchWithMetrics]:
    """Every launch, newest first, with ROI against its latest price."""
    async with store.session() as session:
        result = await session.execute(sa.select(NewLaunch).order_by(NewLaunch.created_at.desc()))
        return await _launch_metrics(session, list(result.scalars().all()))


@degrade_on_error(lambda: None)
async def get_launch_by_id_with_metrics(store: PortalStore, launch_id: str) -> LaunchWithMetrics | None:
    async with store.session() as session:
        result = await session.execute(sa.select(NewLaunch).where(NewLaunch.id == launch_id))
        launch = result.scalar_one_or_none()
        if launch is None:
            return None
        items = await _launch_metrics(session, [launch])
        return items[0]


# ================================================================
# Stablecoin flows and overview
# ================================================================


@degrade_on_error(ChainFlowSummary)
async def get_chain_flow_summary(store: PortalStore, lookback_hours: int = 6) -> ChainFlowSummary:
    """Net stablecoin flow per (stable, chain) over the lookback, with derived signals."""
    async with store.session() as session:
        result = await session.execute(
            sa.select(StablecoinFlowSnapshot).where(
                StablecoinFlowSnapshot.window_end >= _now() - timedelta(hours=lookback_hours)
            )
        )
        rows = list(result.scalars().all())

    flows = aggregate_chain_flows(rows)
    return ChainFlowSummary(flows=flows, signals=derive_flow_signals(flows))


async def get_market_overview(
    store: PortalStore, settings: PortalConfig | None = None
) -> MarketOverview:
    """Market page data. Each read has its own session and its own fallback."""
    settings = settings or PortalConfig()
    window = timedelta(minutes=settings.latest_batch_window_minutes)

    markets, memes, whales, signals, dex_rows, cex_rows = await asyncio.gather(
        get_latest_market_snapshots(store, settings.default_limit, window),
        get_latest_meme_token_snapshots(store, settings.default_limit, window),
        get_whale_entries_with_fallback(
            store, settings.whale_recent_hours, settings.whale_fallback_days
        ),
        get_liquidity_signals_with_fallback(
            store, settings.liquidity_recent_hours, settings.liquidity_fallback_days
        ),
        get_dex_liquidity_snapshots(store),
        get_cex_market_snapshots(store),
    )
    logger.info(
        "market_overview_loaded",
        markets=len(markets),
        memes=len(memes),
        whales=len(whales.recent),
        dex=len(dex_rows),
        cex=len(cex_rows),
    )
    return MarketOverview(
        market_snapshots=markets,
        meme_snapshots=memes,
        whales=whales,
        liquidity_signals=signals,
        dex_liquidity=dex_rows,
        cex_markets=cex_rows,
    )
