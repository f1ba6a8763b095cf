"""Project rankings for the sentiment overview.

Pure functions over ProjectWithMetrics. Projects without any metrics row
never appear in a ranking; every ranking returns up to ``limit`` projects
even when nothing moved.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import asdict, dataclass
from datetime import date as date_type
from datetime import timedelta
from typing import Any

from akari.utils.db import MetricsDaily, Project

UP = "up"
DOWN = "down"
FLAT = "flat"


@dataclass(frozen=True)
class Changes24h:
    sentiment_change_24h: int = 0
    ct_heat_change_24h: int = 0
    akari_change_24h: int = 0
    sentiment_direction_24h: str = FLAT
    ct_heat_direction_24h: str = FLAT

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ProjectWithMetrics:
    """A project, its newest metrics row (if any) and the day-over-day change."""

    project: Project
    latest: MetricsDaily | None = None
    changes: Changes24h = Changes24h()

    @property
    def slug(self) -> str:
        return self.project.slug

    @property
    def date(self) -> date_type | None:
        return self.latest.date if self.latest else None

    @property
    def sentiment_score(self) -> int | None:
        return self.latest.sentiment_score if self.latest else None

    @property
    def ct_heat_score(self) -> int | None:
        return self.latest.ct_heat_score if self.latest else None

    @property
    def akari_score(self) -> int | None:
        return self.latest.akari_score if self.latest else None

    @property
    def followers(self) -> int | None:
        return self.latest.followers if self.latest else None

    def to_dict(self) -> dict[str, Any]:
        data = self.project.to_dict()
        data.update(
            sentiment_score=self.sentiment_score,
            ct_heat_score=self.ct_heat_score,
            akari_score=self.akari_score,
            followers=self.followers,
            date=self.date,
        )
        data.update(self.changes.to_dict())
        return data


def get_direction(change: float) -> str:
    if change > 0:
        return UP
    if change < 0:
        return DOWN
    return FLAT


def _delta(latest: int | None, previous: int | None) -> int:
    """latest - previous; a missing previous counts as no change."""
    current = latest or 0
    baseline = previous if previous is not None else current
    return current - baseline


def compute_24h_changes(latest: MetricsDaily | None, previous: MetricsDaily | None) -> Changes24h:
    if latest is None:
        return Changes24h()

    sentiment = _delta(latest.sentiment_score, previous.sentiment_score if previous else None)
    ct_heat = _delta(latest.ct_heat_score, previous.ct_heat_score if previous else None)
    akari = _delta(latest.akari_score, previous.akari_score if previous else None)
    return Changes24h(
        sentiment_change_24h=sentiment,
        ct_heat_change_24h=ct_heat,
        akari_change_24h=akari,
        sentiment_direction_24h=get_direction(sentiment),
        ct_heat_direction_24h=get_direction(ct_heat),
    )


def combine_latest_metrics(
    projects: Iterable[Project], metrics_newest_first: Iterable[MetricsDaily]
) -> list[ProjectWithMetrics]:
    """Pair each project with its first two metrics rows (newest, previous)."""
    latest: dict[Any, MetricsDaily] = {}
    previous: dict[Any, MetricsDaily] = {}
    for row in metrics_newest_first:
        if row.project_id not in latest:
            latest[row.project_id] = row
        elif row.project_id not in previous:
            previous[row.project_id] = row

    combined = []
    for project in projects:
        newest = latest.get(project.id)
        combined.append(
            ProjectWithMetrics(
                project=project,
                latest=newest,
                changes=compute_24h_changes(newest, previous.get(project.id)),
            )
        )
    return combined


def _tracked(projects: Sequence[ProjectWithMetrics]) -> list[ProjectWithMetrics]:
    return [p for p in projects if p.date is not None]


def compute_top_movers(projects: Sequence[ProjectWithMetrics], limit: int = 3) -> list[ProjectWithMetrics]:
    """Largest absolute move in AKARI score or CT heat, ties by AKARI score."""

    def mover_key(p: ProjectWithMetrics) -> tuple[int, int]:
        score = max(abs(p.changes.akari_change_24h), abs(p.changes.ct_heat_change_24h))
        return (score, p.akari_score or 0)

    return sorted(_tracked(projects), key=mover_key, reverse=True)[:limit]


def compute_top_engagement(
    projects: Sequence[ProjectWithMetrics], limit: int = 3
) -> list[ProjectWithMetrics]:
    return sorted(
        _tracked(projects),
        key=lambda p: (p.ct_heat_score or 0, p.akari_score or 0),
        reverse=True,
    )[:limit]


def compute_trending_up(projects: Sequence[ProjectWithMetrics], limit: int = 3) -> list[ProjectWithMetrics]:
    return sorted(
        _tracked(projects),
        key=lambda p: (p.changes.sentiment_change_24h, p.sentiment_score or 0),
        reverse=True,
    )[:limit]


# ================================================================
# Follower deltas
# ================================================================


@dataclass(frozen=True)
class FollowerDeltas:
    followers: int | None = None
    delta_1d: int | None = None
    delta_7d: int | None = None
    delta_30d: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def compute_follower_deltas(history: Sequence[MetricsDaily]) -> FollowerDeltas:
    """Follower change against the newest row on or before 1, 7 and 30 days back.

    ``history`` may be in any order. A delta is None when no row is old enough.
    """
    if not history:
        return FollowerDeltas()

    rows = sorted(history, key=lambda r: r.date, reverse=True)
    newest = rows[0]

    def delta(days: int) -> int | None:
        cutoff = newest.date - timedelta(days=days)
        for row in rows[1:]:
            if row.date <= cutoff:
                return newest.followers - row.followers
        return None

    return FollowerDeltas(
        followers=newest.followers,
        delta_1d=delta(1),
        delta_7d=delta(7),
        delta_30d=delta(30),
    )
