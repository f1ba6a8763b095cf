"""Database engine, store construction, and SQLAlchemy 2.0 async models.

Portal snapshot schema. All timestamps UTC. All monetary values USD.

Snapshot tables are append-only; rows are superseded by newer rows, never
updated in place. Stores are built per caller via ``create_store``; there is
no process-wide engine.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from datetime import date as date_type  # noqa: TC003 (Mapped resolves at runtime)
from datetime import datetime  # noqa: TC003 (Mapped resolves at runtime)
from typing import Any

from sqlalchemy import (
    BigInteger,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
    inspect,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from akari.config.settings import AkariConfig


class Base(DeclarativeBase):
    def to_dict(self) -> dict[str, Any]:
        return {attr.key: getattr(self, attr.key) for attr in inspect(self).mapper.column_attrs}


# ================================================================
# MARKET SNAPSHOTS: price index readings per ingestion batch
# ================================================================
class MarketSnapshot(Base):
    __tablename__ = "market_snapshots"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    symbol: Mapped[str] = mapped_column(String(32), nullable=False)
    name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    price_usd: Mapped[float | None] = mapped_column(Float, nullable=True)
    volume_24h_usd: Mapped[float | None] = mapped_column(Float, nullable=True)
    change_24h_pct: Mapped[float | None] = mapped_column(Float, nullable=True)
    market_cap_usd: Mapped[float | None] = mapped_column(Float, nullable=True)
    source: Mapped[str] = mapped_column(String(32), nullable=False, default="coingecko")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_market_snapshots_created", created_at.desc()),)


class MemeTokenSnapshot(Base):
    __tablename__ = "meme_token_snapshots"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    symbol: Mapped[str] = mapped_column(String(32), nullable=False)
    name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    chain: Mapped[str | None] = mapped_column(String(32), nullable=True)
    price_usd: Mapped[float | None] = mapped_column(Float, nullable=True)
    volume_24h_usd: Mapped[float | None] = mapped_column(Float, nullable=True)
    change_24h_pct: Mapped[float | None] = mapped_column(Float, nullable=True)
    market_cap_usd: Mapped[float | None] = mapped_column(Float, nullable=True)
    source: Mapped[str] = mapped_column(String(32), nullable=False, default="coingecko")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_meme_token_snapshots_created", created_at.desc()),)


# ================================================================
# VENUE SNAPSHOTS: DEX pools and CEX pairs
# ================================================================
class DexMarketSnapshot(Base):
    __tablename__ = "dex_market_snapshots"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    symbol: Mapped[str | None] = mapped_column(String(32), nullable=True)
    name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    chain: Mapped[str | None] = mapped_column(String(32), nullable=True)
    dex: Mapped[str | None] = mapped_column(String(64), nullable=True)
    token_address: Mapped[str | None] = mapped_column(String(128), nullable=True)
    pair_address: Mapped[str | None] = mapped_column(String(128), nullable=True)
    source: Mapped[str] = mapped_column(String(32), nullable=False)
    price_usd: Mapped[float | None] = mapped_column(Float, nullable=True)
    liquidity_usd: Mapped[float | None] = mapped_column(Float, nullable=True)
    volume_24h_usd: Mapped[float | None] = mapped_column(Float, nullable=True)
    txns_24h: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_dex_snapshots_symbol", "symbol"),
        Index("idx_dex_snapshots_liquidity", liquidity_usd.desc()),
    )


class CexMarketSnapshot(Base):
    __tablename__ = "cex_market_snapshots"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    symbol: Mapped[str] = mapped_column(String(32), nullable=False)
    base_asset: Mapped[str | None] = mapped_column(String(32), nullable=True)
    quote_asset: Mapped[str | None] = mapped_column(String(32), nullable=True)
    source: Mapped[str] = mapped_column(String(64), nullable=False)
    price_usd: Mapped[float | None] = mapped_column(Float, nullable=True)
    volume_24h_usd: Mapped[float | None] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_cex_snapshots_symbol", "symbol"),
        Index("idx_cex_snapshots_volume", volume_24h_usd.desc()),
    )


# ================================================================
# ON-CHAIN: whale transfers, stablecoin flows, derived signals
# ================================================================
class WhaleEntry(Base):
    __tablename__ = "whale_entries"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    token_symbol: Mapped[str] = mapped_column(String(32), nullable=False)
    chain: Mapped[str] = mapped_column(String(32), nullable=False)
    wallet: Mapped[str] = mapped_column(String(128), nullable=False)
    amount_usd: Mapped[float] = mapped_column(Float, nullable=False)  # signed
    tx_hash: Mapped[str | None] = mapped_column(String(128), nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_whale_entries_occurred", occurred_at.desc()),)


class LiquiditySignal(Base):
    __tablename__ = "liquidity_signals"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    severity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    chain: Mapped[str | None] = mapped_column(String(32), nullable=True)
    stable_symbol: Mapped[str | None] = mapped_column(String(16), nullable=True)
    triggered_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("idx_liquidity_signals_triggered", triggered_at.desc()),)


class StablecoinFlowSnapshot(Base):
    __tablename__ = "stablecoin_flow_snapshots"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    stable_symbol: Mapped[str] = mapped_column(String(16), nullable=False)
    from_chain: Mapped[str | None] = mapped_column(String(32), nullable=True)
    to_chain: Mapped[str] = mapped_column(String(32), nullable=False)
    net_amount_usd: Mapped[float] = mapped_column(Float, nullable=False)
    window_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    window_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("idx_stablecoin_flows_window_end", window_end.desc()),)


# ================================================================
# LAUNCHES: token sales and their post-listing prices
# ================================================================
class LaunchPlatformKind(enum.StrEnum):
    LAUNCHPAD = "LAUNCHPAD"
    EXCHANGE = "EXCHANGE"
    DEX = "DEX"
    OTHER = "OTHER"


class LaunchPlatform(Base):
    __tablename__ = "launch_platforms"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    slug: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    kind: Mapped[str] = mapped_column(String(16), nullable=False, default=LaunchPlatformKind.LAUNCHPAD)
    website: Mapped[str | None] = mapped_column(Text, nullable=True)


class LeadInvestor(Base):
    __tablename__ = "lead_investors"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    slug: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    tier: Mapped[str | None] = mapped_column(String(32), nullable=True)


class NewLaunch(Base):
    __tablename__ = "new_launches"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    token_symbol: Mapped[str] = mapped_column(String(32), nullable=False)
    token_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    chain: Mapped[str | None] = mapped_column(String(32), nullable=True)
    category: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[str | None] = mapped_column(String(32), nullable=True)
    platform_id: Mapped[str | None] = mapped_column(ForeignKey("launch_platforms.id"), nullable=True)
    primary_platform_id: Mapped[str | None] = mapped_column(
        ForeignKey("launch_platforms.id"), nullable=True
    )
    listing_platform_id: Mapped[str | None] = mapped_column(
        ForeignKey("launch_platforms.id"), nullable=True
    )
    lead_investor_id: Mapped[str | None] = mapped_column(
        ForeignKey("lead_investors.id"), nullable=True
    )
    sale_price_usd: Mapped[float | None] = mapped_column(Float, nullable=True)
    tokens_for_sale: Mapped[float | None] = mapped_column(Float, nullable=True)
    total_raise_usd: Mapped[float | None] = mapped_column(Float, nullable=True)
    airdrop_percent: Mapped[float | None] = mapped_column(Float, nullable=True)
    airdrop_value_usd: Mapped[float | None] = mapped_column(Float, nullable=True)
    vesting_info: Mapped[dict | None] = mapped_column(JSONB, nullable=True)  # type: ignore[type-arg]
    token_address: Mapped[str | None] = mapped_column(String(128), nullable=True)
    price_source: Mapped[str | None] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (Index("idx_new_launches_status", "status"),)


class LaunchPriceSnapshot(Base):
    __tablename__ = "launch_price_snapshots"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    launch_id: Mapped[str] = mapped_column(ForeignKey("new_launches.id"), nullable=False)
    price_usd: Mapped[float] = mapped_column(Float, nullable=False)
    volume_24h: Mapped[float | None] = mapped_column(Float, nullable=True)
    liquidity: Mapped[float | None] = mapped_column(Float, nullable=True)
    source: Mapped[str] = mapped_column(String(32), nullable=False)
    fetched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_launch_price_launch_fetched", "launch_id", fetched_at.desc()),)


# ================================================================
# SENTIMENT: tracked projects, daily metrics, influencers, tweets
# ================================================================
class Project(Base):
    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    slug: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    x_handle: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    first_tracked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    last_refreshed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class MetricsDaily(Base):
    __tablename__ = "metrics_daily"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    sentiment_score: Mapped[int | None] = mapped_column(Integer, nullable=True)  # 0-100
    ct_heat_score: Mapped[int | None] = mapped_column(Integer, nullable=True)  # 0-100
    tweet_count: Mapped[int] = mapped_column(Integer, default=0)
    followers: Mapped[int] = mapped_column(Integer, default=0)
    akari_score: Mapped[int | None] = mapped_column(Integer, nullable=True)  # 0-1000
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("project_id", "date", name="uq_metrics_daily_project_date"),
        Index("idx_metrics_daily_date", date.desc()),
    )


class Influencer(Base):
    __tablename__ = "influencers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    x_handle: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    followers: Mapped[int] = mapped_column(Integer, default=0)
    following: Mapped[int] = mapped_column(Integer, default=0)
    akari_score: Mapped[int | None] = mapped_column(Integer, nullable=True)  # 0-1000
    credibility_score: Mapped[int | None] = mapped_column(Integer, nullable=True)  # 0-100
    last_updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class ProjectInfluencer(Base):
    __tablename__ = "project_influencers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    influencer_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("influencers.id", ondelete="CASCADE"), nullable=False
    )
    is_follower: Mapped[bool] = mapped_column(Boolean, default=False)
    last_mention_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    avg_sentiment_30d: Mapped[int | None] = mapped_column(Integer, nullable=True)  # 0-100

    __table_args__ = (
        UniqueConstraint("project_id", "influencer_id", name="uq_project_influencers"),
    )


class ProjectTweet(Base):
    __tablename__ = "project_tweets"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    tweet_id: Mapped[str] = mapped_column(Text, nullable=False)
    author_handle: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    text: Mapped[str | None] = mapped_column(Text, nullable=True)
    likes: Mapped[int] = mapped_column(Integer, default=0)
    replies: Mapped[int] = mapped_column(Integer, default=0)
    retweets: Mapped[int] = mapped_column(Integer, default=0)
    sentiment_score: Mapped[int | None] = mapped_column(Integer, nullable=True)  # 0-100

    __table_args__ = (
        UniqueConstraint("project_id", "tweet_id", name="uq_project_tweets_project_tweet"),
        Index("idx_project_tweets_project_created", "project_id", created_at.desc()),
    )


class ProjectMindshareSnapshot(Base):
    """Mindshare in basis points, computed upstream and only read here."""

    __tablename__ = "project_mindshare_snapshots"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    project_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    time_window: Mapped[str] = mapped_column(String(8), nullable=False)  # 24h|48h|7d|30d
    as_of_date: Mapped[date_type] = mapped_column(Date, nullable=False)
    mindshare_bps: Mapped[int] = mapped_column(Integer, nullable=False)  # 0-10000

    __table_args__ = (
        UniqueConstraint(
            "project_id", "time_window", "as_of_date", name="uq_mindshare_project_window_date"
        ),
    )


# ================================================================
# Store construction (per request, no module-level engine)
# ================================================================


class StoreTier(enum.StrEnum):
    READ = "read"  # restricted, read-only credentials
    SERVICE = "service"  # privileged read/write credentials


@dataclass
class PortalStore:
    """An engine and the session factory bound to it."""

    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    tier: StoreTier = StoreTier.READ

    def session(self) -> AsyncSession:
        return self.session_factory()

    async def dispose(self) -> None:
        await self.engine.dispose()

    async def __aenter__(self) -> PortalStore:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.dispose()


def create_store(config: AkariConfig, tier: StoreTier = StoreTier.READ) -> PortalStore:
    """Build a fresh store for one caller.

    Raises:
        ConfigurationError: When the DSN for ``tier`` is not configured.
    """
    url = config.require_database_url(service=tier is StoreTier.SERVICE)
    engine = create_async_engine(
        url,
        echo=config.store.echo,
        pool_size=config.store.pool_size,
        max_overflow=config.store.max_overflow,
        pool_pre_ping=True,
    )
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    return PortalStore(engine=engine, session_factory=factory, tier=tier)
