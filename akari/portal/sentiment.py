"""Sentiment portal queries: tracked projects, metrics, inner circle, mindshare.

Interface contract:
  - reads take a PortalStore and never raise; a failed read logs
    portal_query_failed and returns its empty fallback
  - get_projects_with_latest_metrics keeps the project list when only the
    metrics read fails (metrics fields None, changes flat)
  - upsert_project_tweets needs a SERVICE-tier store
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from typing import Any

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import insert as pg_insert

from akari.normalizers.twitter import TwitterTweet
from akari.portal.common import InvalidInputError, degrade_on_error
from akari.portal.rankings import (
    FollowerDeltas,
    ProjectWithMetrics,
    combine_latest_metrics,
    compute_follower_deltas,
)
from akari.utils.db import (
    Influencer,
    MetricsDaily,
    PortalStore,
    Project,
    ProjectInfluencer,
    ProjectMindshareSnapshot,
    ProjectTweet,
    StoreTier,
)
from akari.utils.logger import get_logger

logger = get_logger("portal.sentiment")

MINDSHARE_WINDOWS: tuple[str, ...] = ("24h", "48h", "7d", "30d")
DEFAULT_MINDSHARE_WINDOW = "7d"


# ================================================================
# Data models
# ================================================================


@dataclass(frozen=True)
class InfluencerWithRelation:
    influencer: Influencer
    avg_sentiment_30d: int | None = None
    last_mention_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        data = self.influencer.to_dict()
        data["avg_sentiment_30d"] = self.avg_sentiment_30d
        data["last_mention_at"] = self.last_mention_at
        return data


@dataclass(frozen=True)
class ProjectDetail:
    project: Project
    metrics_history: list[MetricsDaily] = field(default_factory=list)
    influencers: list[InfluencerWithRelation] = field(default_factory=list)
    tweets: list[ProjectTweet] = field(default_factory=list)
    follower_deltas: FollowerDeltas = FollowerDeltas()

    def to_dict(self) -> dict[str, Any]:
        return {
            "project": self.project.to_dict(),
            "metrics_history": [m.to_dict() for m in self.metrics_history],
            "influencers": [i.to_dict() for i in self.influencers],
            "tweets": [t.to_dict() for t in self.tweets],
            "follower_deltas": self.follower_deltas.to_dict(),
        }


@dataclass(frozen=True)
class MindshareEntry:
    project_id: uuid.UUID
    project_name: str
    x_handle: str
    mindshare_bps: int
    delta_1d: int | None
    delta_7d: int | None
    updated_as_of_date: date


@dataclass(frozen=True)
class MindshareLeaderboard:
    window: str
    as_of_date: date
    entries: list[MindshareEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": True,
            "window": self.window,
            "as_of_date": self.as_of_date.isoformat(),
            "entries": [
                {
                    "project_id": str(e.project_id),
                    "project_name": e.project_name,
                    "x_handle": e.x_handle,
                    "mindshare_bps": e.mindshare_bps,
                    "delta_1d": e.delta_1d,
                    "delta_7d": e.delta_7d,
                    "updated_as_of_date": e.updated_as_of_date.isoformat(),
                }
                for e in self.entries
            ],
        }


def parse_mindshare_window(value: str | None) -> str | InvalidInputError:
    """Validate a window name; empty means the 7d default."""
    window = value or DEFAULT_MINDSHARE_WINDOW
    if window not in MINDSHARE_WINDOWS:
        return InvalidInputError(
            param="window",
            message=f"Invalid window. Must be one of: {', '.join(MINDSHARE_WINDOWS)}",
        )
    return window


# ================================================================
# Projects and metrics
# ================================================================


@degrade_on_error(list)
async def get_projects_with_latest_metrics(store: PortalStore) -> list[ProjectWithMetrics]:
    """Active projects by name, each with latest metrics and day-over-day change."""
    async with store.session() as session:
        result = await session.execute(
            sa.select(Project).where(Project.is_active.is_(True)).order_by(Project.name)
        )
        projects = list(result.scalars().all())
        if not projects:
            return []

        try:
            result = await session.execute(
                sa.select(MetricsDaily)
                .where(MetricsDaily.project_id.in_([p.id for p in projects]))
                .order_by(MetricsDaily.date.desc())
            )
            metrics = list(result.scalars().all())
        except Exception as e:
            logger.warning("project_metrics_unavailable", error=str(e))
            return [ProjectWithMetrics(project=p) for p in projects]

    return combine_latest_metrics(projects, metrics)


@degrade_on_error(lambda: None)
async def get_project_by_slug(store: PortalStore, slug: str) -> Project | None:
    async with store.session() as session:
        result = await session.execute(sa.select(Project).where(Project.slug == slug))
        return result.scalar_one_or_none()


@degrade_on_error(list)
async def get_project_metrics_history(
    store: PortalStore, project_id: uuid.UUID, limit: int = 90
) -> list[MetricsDaily]:
    async with store.session() as session:
        result = await session.execute(
            sa.select(MetricsDaily)
            .where(MetricsDaily.project_id == project_id)
            .order_by(MetricsDaily.date.desc())
            .limit(limit)
        )
        return list(result.scalars().all())


@degrade_on_error(list)
async def get_project_influencers(
    store: PortalStore, project_id: uuid.UUID, limit: int = 10
) -> list[InfluencerWithRelation]:
    """Inner circle: the ``limit`` most positive relations, ranked by AKARI score."""
    async with store.session() as session:
        result = await session.execute(
            sa.select(ProjectInfluencer)
            .where(ProjectInfluencer.project_id == project_id)
            .order_by(ProjectInfluencer.avg_sentiment_30d.desc().nulls_last())
            .limit(limit)
        )
        relations = {r.influencer_id: r for r in result.scalars().all()}
        if not relations:
            return []

        result = await session.execute(
            sa.select(Influencer)
            .where(Influencer.id.in_(list(relations)))
            .order_by(Influencer.akari_score.desc().nulls_last())
        )
        influencers = list(result.scalars().all())

    return [
        InfluencerWithRelation(
            influencer=inf,
            avg_sentiment_30d=relations[inf.id].avg_sentiment_30d if inf.id in relations else None,
            last_mention_at=relations[inf.id].last_mention_at if inf.id in relations else None,
        )
        for inf in influencers
    ]


@degrade_on_error(list)
async def get_project_tweets(
    store: PortalStore, project_id: uuid.UUID, limit: int = 50
) -> list[ProjectTweet]:
    async with store.session() as session:
        result = await session.execute(
            sa.select(ProjectTweet)
            .where(ProjectTweet.project_id == project_id)
            .order_by(ProjectTweet.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())


async def get_project_detail(store: PortalStore, slug: str) -> ProjectDetail | None:
    """Project page: the project, then history, inner circle and tweets concurrently."""
    project = await get_project_by_slug(store, slug)
    if project is None:
        return None

    history, influencers, tweets = await asyncio.gather(
        get_project_metrics_history(store, project.id),
        get_project_influencers(store, project.id),
        get_project_tweets(store, project.id),
    )
    return ProjectDetail(
        project=project,
        metrics_history=history,
        influencers=influencers,
        tweets=tweets,
        follower_deltas=compute_follower_deltas(history),
    )


# ================================================================
# Mindshare
# ================================================================


@degrade_on_error(lambda: None)
async def get_mindshare_leaderboard(
    store: PortalStore, window: str = DEFAULT_MINDSHARE_WINDOW, as_of: date | None = None
) -> MindshareLeaderboard | None:
    """Mindshare ranking for ``as_of`` (default today, UTC), biggest share first.

    Deltas compare against the snapshot exactly 1 and 7 days earlier.
    """
    as_of = as_of or datetime.now(UTC).date()
    async with store.session() as session:
        result = await session.execute(
            sa.select(ProjectMindshareSnapshot, Project.name, Project.x_handle)
            .join(Project, Project.id == ProjectMindshareSnapshot.project_id)
            .where(
                ProjectMindshareSnapshot.time_window == window,
                ProjectMindshareSnapshot.as_of_date == as_of,
            )
            .order_by(ProjectMindshareSnapshot.mindshare_bps.desc())
        )
        current = list(result.all())
        if not current:
            return MindshareLeaderboard(window=window, as_of_date=as_of)

        day_ago, week_ago = as_of - timedelta(days=1), as_of - timedelta(days=7)
        result = await session.execute(
            sa.select(
                ProjectMindshareSnapshot.project_id,
                ProjectMindshareSnapshot.as_of_date,
                ProjectMindshareSnapshot.mindshare_bps,
            ).where(
                ProjectMindshareSnapshot.time_window == window,
                ProjectMindshareSnapshot.project_id.in_([row[0].project_id for row in current]),
                ProjectMindshareSnapshot.as_of_date.in_([day_ago, week_ago]),
            )
        )
        past = {(row.project_id, row.as_of_date): row.mindshare_bps for row in result.all()}

    def delta(project_id: uuid.UUID, bps: int, on: date) -> int | None:
        previous = past.get((project_id, on))
        return None if previous is None else bps - previous

    entries = [
        MindshareEntry(
            project_id=snap.project_id,
            project_name=name,
            x_handle=x_handle or "",
            mindshare_bps=snap.mindshare_bps,
            delta_1d=delta(snap.project_id, snap.mindshare_bps, day_ago),
            delta_7d=delta(snap.project_id, snap.mindshare_bps, week_ago),
            updated_as_of_date=snap.as_of_date,
        )
        for snap, name, x_handle in current
    ]
    return MindshareLeaderboard(window=window, as_of_date=as_of, entries=entries)


# ================================================================
# Writes
# ================================================================


def _tweet_created_at(tweet: TwitterTweet) -> datetime:
    if tweet.created_at:
        try:
            return datetime.fromisoformat(tweet.created_at)
        except ValueError:
            logger.warning("tweet_created_at_unparsed", tweet_id=tweet.id, value=tweet.created_at)
    return datetime.now(UTC)


async def upsert_project_tweets(
    store: PortalStore,
    project_id: uuid.UUID,
    tweets: Sequence[TwitterTweet],
    scores: Sequence[int | None],
) -> int:
    """Insert or refresh tweets keyed by (project_id, tweet_id).

    ``scores`` lines up with ``tweets``. Returns the number of rows written,
    0 when the write fails. Repeated tweet ids collapse to their last occurrence.

    Raises:
        ValueError: On a READ-tier store or mismatched lengths.
    """
    if store.tier is not StoreTier.SERVICE:
        raise ValueError("upsert_project_tweets requires a service-tier store")
    if len(tweets) != len(scores):
        raise ValueError("tweets and scores must have the same length")
    if not tweets:
        return 0

    rows = [
        {
            "id": uuid.uuid4(),
            "project_id": project_id,
            "tweet_id": tweet.id,
            "author_handle": tweet.author_handle,
            "created_at": _tweet_created_at(tweet),
            "text": tweet.text,
            "likes": tweet.like_count or 0,
            "replies": tweet.reply_count or 0,
            "retweets": tweet.retweet_count or 0,
            "sentiment_score": score,
        }
        for tweet, score in zip(tweets, scores, strict=True)
    ]
    # Postgres rejects one ON CONFLICT statement touching a row twice; last occurrence wins
    rows = list({row["tweet_id"]: row for row in rows}.values())
    stmt = pg_insert(ProjectTweet).values(rows)
    stmt = stmt.on_conflict_do_update(
        constraint="uq_project_tweets_project_tweet",
        set_={
            "text": stmt.excluded.text,
            "likes": stmt.excluded.likes,
            "replies": stmt.excluded.replies,
            "retweets": stmt.excluded.retweets,
            "sentiment_score": stmt.excluded.sentiment_score,
        },
    )

    try:
        async with store.session() as session:
            await session.execute(stmt)
            await session.commit()
    except Exception as e:
        logger.warning("project_tweets_upsert_failed", project_id=str(project_id), error=str(e))
        return 0

    logger.info("project_tweets_upserted", project_id=str(project_id), count=len(rows))
    return len(rows)
