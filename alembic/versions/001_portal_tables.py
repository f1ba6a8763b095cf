"""Portal snapshot, launch and sentiment tables.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _price_columns() -> list[sa.Column]:
    return [
        sa.Column("price_usd", sa.Float, nullable=True),
        sa.Column("volume_24h_usd", sa.Float, nullable=True),
        sa.Column("change_24h_pct", sa.Float, nullable=True),
        sa.Column("market_cap_usd", sa.Float, nullable=True),
        sa.Column("source", sa.String(32), nullable=False, server_default="coingecko"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # --- MARKET_SNAPSHOTS ---
    op.create_table(
        "market_snapshots",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("symbol", sa.String(32), nullable=False),
        sa.Column("name", sa.String(128), nullable=True),
        *_price_columns(),
    )
    op.create_index(
        "idx_market_snapshots_created", "market_snapshots", [sa.text("created_at DESC")]
    )

    # --- MEME_TOKEN_SNAPSHOTS ---
    op.create_table(
        "meme_token_snapshots",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("symbol", sa.String(32), nullable=False),
        sa.Column("name", sa.String(128), nullable=True),
        sa.Column("chain", sa.String(32), nullable=True),
        *_price_columns(),
    )
    op.create_index(
        "idx_meme_token_snapshots_created", "meme_token_snapshots", [sa.text("created_at DESC")]
    )

    # --- DEX_MARKET_SNAPSHOTS ---
    op.create_table(
        "dex_market_snapshots",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("symbol", sa.String(32), nullable=True),
        sa.Column("name", sa.String(128), nullable=True),
        sa.Column("chain", sa.String(32), nullable=True),
        sa.Column("dex", sa.String(64), nullable=True),
        sa.Column("token_address", sa.String(128), nullable=True),
        sa.Column("pair_address", sa.String(128), nullable=True),
        sa.Column("source", sa.String(32), nullable=False),
        sa.Column("price_usd", sa.Float, nullable=True),
        sa.Column("liquidity_usd", sa.Float, nullable=True),
        sa.Column("volume_24h_usd", sa.Float, nullable=True),
        sa.Column("txns_24h", sa.Integer, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("idx_dex_snapshots_symbol", "dex_market_snapshots", ["symbol"])
    op.create_index(
        "idx_dex_snapshots_liquidity", "dex_market_snapshots", [sa.text("liquidity_usd DESC")]
    )

    # --- CEX_MARKET_SNAPSHOTS ---
    op.create_table(
        "cex_market_snapshots",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("symbol", sa.String(32), nullable=False),
        sa.Column("base_asset", sa.String(32), nullable=True),
        sa.Column("quote_asset", sa.String(32), nullable=True),
        sa.Column("source", sa.String(64), nullable=False),
        sa.Column("price_usd", sa.Float, nullable=True),
        sa.Column("volume_24h_usd", sa.Float, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("idx_cex_snapshots_symbol", "cex_market_snapshots", ["symbol"])
    op.create_index(
        "idx_cex_snapshots_volume", "cex_market_snapshots", [sa.text("volume_24h_usd DESC")]
    )

    # --- WHALE_ENTRIES ---
    op.create_table(
        "whale_entries",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("token_symbol", sa.String(32), nullable=False),
        sa.Column("chain", sa.String(32), nullable=False),
        sa.Column("wallet", sa.String(128), nullable=False),
        sa.Column("amount_usd", sa.Float, nullable=False),
        sa.Column("tx_hash", sa.String(128), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("idx_whale_entries_occurred", "whale_entries", [sa.text("occurred_at DESC")])

    # --- LIQUIDITY_SIGNALS ---
    op.create_table(
        "liquidity_signals",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("severity", sa.Integer, nullable=False, server_default="1"),
        sa.Column("chain", sa.String(32), nullable=True),
        sa.Column("stable_symbol", sa.String(16), nullable=True),
        sa.Column("triggered_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "idx_liquidity_signals_triggered", "liquidity_signals", [sa.text("triggered_at DESC")]
    )

    # --- STABLECOIN_FLOW_SNAPSHOTS ---
    op.create_table(
        "stablecoin_flow_snapshots",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("stable_symbol", sa.String(16), nullable=False),
        sa.Column("from_chain", sa.String(32), nullable=True),
        sa.Column("to_chain", sa.String(32), nullable=False),
        sa.Column("net_amount_usd", sa.Float, nullable=False),
        sa.Column("window_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("window_end", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "idx_stablecoin_flows_window_end", "stablecoin_flow_snapshots", [sa.text("window_end DESC")]
    )

    # --- LAUNCHES ---
    op.create_table(
        "launch_platforms",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("slug", sa.String(128), nullable=False, unique=True),
        sa.Column("kind", sa.String(16), nullable=False, server_default="LAUNCHPAD"),
        sa.Column("website", sa.Text, nullable=True),
    )
    op.create_table(
        "lead_investors",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("slug", sa.String(128), nullable=False, unique=True),
        sa.Column("tier", sa.String(32), nullable=True),
    )
    op.create_table(
        "new_launches",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("token_symbol", sa.String(32), nullable=False),
        sa.Column("token_name", sa.String(128), nullable=True),
        sa.Column("chain", sa.String(32), nullable=True),
        sa.Column("category", sa.String(64), nullable=True),
        sa.Column("status", sa.String(32), nullable=True),
        sa.Column("platform_id", sa.String(64), sa.ForeignKey("launch_platforms.id"), nullable=True),
        sa.Column(
            "primary_platform_id", sa.String(64), sa.ForeignKey("launch_platforms.id"), nullable=True
        ),
        sa.Column(
            "listing_platform_id", sa.String(64), sa.ForeignKey("launch_platforms.id"), nullable=True
        ),
        sa.Column(
            "lead_investor_id", sa.String(64), sa.ForeignKey("lead_investors.id"), nullable=True
        ),
        sa.Column("sale_price_usd", sa.Float, nullable=True),
        sa.Column("tokens_for_sale", sa.Float, nullable=True),
        sa.Column("total_raise_usd", sa.Float, nullable=True),
        sa.Column("airdrop_percent", sa.Float, nullable=True),
        sa.Column("airdrop_value_usd", sa.Float, nullable=True),
        sa.Column("vesting_info", JSONB, nullable=True),
        sa.Column("token_address", sa.String(128), nullable=True),
        sa.Column("price_source", sa.String(32), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("idx_new_launches_status", "new_launches", ["status"])
    op.create_table(
        "launch_price_snapshots",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("launch_id", sa.String(64), sa.ForeignKey("new_launches.id"), nullable=False),
        sa.Column("price_usd", sa.Float, nullable=False),
        sa.Column("volume_24h", sa.Float, nullable=True),
        sa.Column("liquidity", sa.Float, nullable=True),
        sa.Column("source", sa.String(32), nullable=False),
        sa.Column("fetched_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        "idx_launch_price_launch_fetched",
        "launch_price_snapshots",
        ["launch_id", sa.text("fetched_at DESC")],
    )

    # --- SENTIMENT: PROJECTS ---
    op.create_table(
        "projects",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("slug", sa.Text, nullable=False, unique=True),
        sa.Column("x_handle", sa.Text, nullable=False, unique=True),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("bio", sa.Text, nullable=True),
        sa.Column("avatar_url", sa.Text, nullable=True),
        sa.Column("first_tracked_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("last_refreshed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean, server_default=sa.true()),
    )

    # --- METRICS_DAILY ---
    op.create_table(
        "metrics_daily",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column(
            "project_id", sa.Uuid, sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("sentiment_score", sa.Integer, nullable=True),
        sa.Column("ct_heat_score", sa.Integer, nullable=True),
        sa.Column("tweet_count", sa.Integer, server_default="0"),
        sa.Column("followers", sa.Integer, server_default="0"),
        sa.Column("akari_score", sa.Integer, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("project_id", "date", name="uq_metrics_daily_project_date"),
    )
    op.create_index("idx_metrics_daily_date", "metrics_daily", [sa.text("date DESC")])

    # --- INFLUENCERS ---
    op.create_table(
        "influencers",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("x_handle", sa.Text, nullable=False, unique=True),
        sa.Column("name", sa.Text, nullable=True),
        sa.Column("bio", sa.Text, nullable=True),
        sa.Column("avatar_url", sa.Text, nullable=True),
        sa.Column("followers", sa.Integer, server_default="0"),
        sa.Column("following", sa.Integer, server_default="0"),
        sa.Column("akari_score", sa.Integer, nullable=True),
        sa.Column("credibility_score", sa.Integer, nullable=True),
        sa.Column("last_updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_table(
        "project_influencers",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column(
            "project_id", sa.Uuid, sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "influencer_id",
            sa.Uuid,
            sa.ForeignKey("influencers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("is_follower", sa.Boolean, server_default=sa.false()),
        sa.Column("last_mention_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("avg_sentiment_30d", sa.Integer, nullable=True),
        sa.UniqueConstraint("project_id", "influencer_id", name="uq_project_influencers"),
    )

    # --- PROJECT_TWEETS ---
    op.create_table(
        "project_tweets",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column(
            "project_id", sa.Uuid, sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("tweet_id", sa.Text, nullable=False),
        sa.Column("author_handle", sa.Text, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("text", sa.Text, nullable=True),
        sa.Column("likes", sa.Integer, server_default="0"),
        sa.Column("replies", sa.Integer, server_default="0"),
        sa.Column("retweets", sa.Integer, server_default="0"),
        sa.Column("sentiment_score", sa.Integer, nullable=True),
        sa.UniqueConstraint("project_id", "tweet_id", name="uq_project_tweets_project_tweet"),
    )
    op.create_index(
        "idx_project_tweets_project_created",
        "project_tweets",
        ["project_id", sa.text("created_at DESC")],
    )

    # --- PROJECT_MINDSHARE_SNAPSHOTS (written by the mindshare job) ---
    op.create_table(
        "project_mindshare_snapshots",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column(
            "project_id", sa.Uuid, sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("time_window", sa.String(8), nullable=False),
        sa.Column("as_of_date", sa.Date, nullable=False),
        sa.Column("mindshare_bps", sa.Integer, nullable=False),
        sa.UniqueConstraint(
            "project_id", "time_window", "as_of_date", name="uq_mindshare_project_window_date"
        ),
    )


def downgrade() -> None:
    for table in (
        "project_mindshare_snapshots",
        "project_tweets",
        "project_influencers",
        "influencers",
        "metrics_daily",
        "projects",
        "launch_price_snapshots",
        "new_launches",
        "lead_investors",
        "launch_platforms",
        "stablecoin_flow_snapshots",
        "liquidity_signals",
        "whale_entries",
        "cex_market_snapshots",
        "dex_market_snapshots",
        "meme_token_snapshots",
        "market_snapshots",
    ):
        op.drop_table(table)
