"""Tests for sentiment portal queries and the tweet upsert."""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime, timedelta
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from sqlalchemy.dialects import postgresql

from akari.normalizers.twitter import TwitterTweet
from akari.portal.common import InvalidInputError
from akari.portal.sentiment import (
    get_mindshare_leaderboard,
    get_project_detail,
    get_project_influencers,
    get_projects_with_latest_metrics,
    parse_mindshare_window,
    upsert_project_tweets,
)
from akari.utils.db import (
    Influencer,
    MetricsDaily,
    Project,
    ProjectInfluencer,
    ProjectMindshareSnapshot,
    ProjectTweet,
    StoreTier,
)

TODAY = date(2026, 3, 10)


def _project(slug: str = "akari") -> Project:
    return Project(id=uuid.uuid4(), slug=slug, x_handle=f"{slug}_fi", name=slug.title())


def _metrics(project: Project, day: date, sentiment: int, followers: int = 1000) -> MetricsDaily:
    return MetricsDaily(
        project_id=project.id,
        date=day,
        sentiment_score=sentiment,
        ct_heat_score=50,
        akari_score=500,
        followers=followers,
    )


def _snapshot(project: Project, bps: int, day: date = TODAY, window: str = "7d"):
    return ProjectMindshareSnapshot(
        project_id=project.id, time_window=window, as_of_date=day, mindshare_bps=bps
    )


class TestParseMindshareWindow:
    def test_default(self) -> None:
        assert parse_mindshare_window(None) == "7d"
        assert parse_mindshare_window("") == "7d"

    def test_valid(self) -> None:
        assert parse_mindshare_window("24h") == "24h"

    def test_invalid(self) -> None:
        err = parse_mindshare_window("1y")
        assert isinstance(err, InvalidInputError)
        assert err.to_dict() == {
            "ok": False,
            "error": "Invalid window. Must be one of: 24h, 48h, 7d, 30d",
            "param": "window",
        }


class TestProjectsWithLatestMetrics:
    async def test_combines_latest_and_previous(self, make_store, results) -> None:
        a, b = _project("a"), _project("b")
        metrics = [
            _metrics(a, TODAY, 70),
            _metrics(b, TODAY, 40),
            _metrics(a, TODAY - timedelta(days=1), 65),
        ]
        store, _ = make_store([results.scalars([a, b]), results.scalars(metrics)])

        projects = await get_projects_with_latest_metrics(store)

        assert [p.slug for p in projects] == ["a", "b"]
        assert projects[0].changes.sentiment_change_24h == 5
        assert projects[0].changes.sentiment_direction_24h == "up"
        assert projects[1].sentiment_score == 40

    async def test_no_projects(self, make_store, results) -> None:
        store, sessions = make_store([results.scalars([])])

        assert await get_projects_with_latest_metrics(store) == []
        assert sessions[0].execute.await_count == 1

    async def test_metrics_failure_keeps_projects(self, make_store, results) -> None:
        """A broken metrics read still lists every project, without scores."""
        a = _project("a")
        store, _ = make_store([results.scalars([a]), RuntimeError("metrics table missing")])

        projects = await get_projects_with_latest_metrics(store)

        assert len(projects) == 1
        assert projects[0].latest is None
        assert projects[0].changes.sentiment_direction_24h == "flat"

    async def test_project_read_failure_is_empty(self, failing_store) -> None:
        assert await get_projects_with_latest_metrics(failing_store) == []


class TestProjectDetail:
    async def test_full_detail(self, make_store, results) -> None:
        project = _project()
        history = [
            _metrics(project, TODAY, 70, followers=1200),
            _metrics(project, TODAY - timedelta(days=1), 60, followers=1150),
        ]
        fan, critic = Influencer(id=uuid.uuid4(), x_handle="fan"), Influencer(
            id=uuid.uuid4(), x_handle="critic"
        )
        relations = [
            ProjectInfluencer(project_id=project.id, influencer_id=fan.id, avg_sentiment_30d=90),
            ProjectInfluencer(project_id=project.id, influencer_id=critic.id, avg_sentiment_30d=None),
        ]
        tweet = ProjectTweet(
            project_id=project.id,
            tweet_id="1",
            author_handle="fan",
            created_at=datetime(2026, 3, 10, tzinfo=UTC),
        )
        store, _ = make_store(
            [results.scalar(project)],
            [results.scalars(history)],
            [results.scalars(relations), results.scalars([critic, fan])],
            [results.scalars([tweet])],
        )

        detail = await get_project_detail(store, "akari")

        assert detail is not None
        assert detail.project is project
        assert detail.metrics_history == history
        assert [i.influencer.x_handle for i in detail.influencers] == ["critic", "fan"]
        assert detail.influencers[1].avg_sentiment_30d == 90
        assert detail.tweets == [tweet]
        assert detail.follower_deltas.delta_1d == 50
        assert detail.to_dict()["follower_deltas"]["followers"] == 1200

    async def test_unknown_slug(self, make_store, results) -> None:
        store, _ = make_store([results.scalar(None)])
        assert await get_project_detail(store, "ghost") is None

    async def test_influencers_without_relations(self, make_store, results) -> None:
        store, sessions = make_store([results.scalars([])])

        assert await get_project_influencers(store, uuid.uuid4()) == []
        assert sessions[0].execute.await_count == 1


class TestMindshareLeaderboard:
    async def test_entries_with_exact_date_deltas(self, make_store, results) -> None:
        a, b = _project("a"), _project("b")
        current = [(_snapshot(a, 3000), "A", "a_fi"), (_snapshot(b, 1500), "B", None)]
        past = [
            SimpleNamespace(project_id=a.id, as_of_date=TODAY - timedelta(days=1), mindshare_bps=2800),
            SimpleNamespace(project_id=a.id, as_of_date=TODAY - timedelta(days=7), mindshare_bps=3500),
            SimpleNamespace(project_id=b.id, as_of_date=TODAY - timedelta(days=7), mindshare_bps=1000),
        ]
        store, _ = make_store([results.rows(current), results.rows(past)])

        board = await get_mindshare_leaderboard(store, "7d", as_of=TODAY)

        assert board is not None
        first, second = board.entries
        assert (first.mindshare_bps, first.delta_1d, first.delta_7d) == (3000, 200, -500)
        assert (second.delta_1d, second.delta_7d) == (None, 500)
        assert second.x_handle == ""

        data = board.to_dict()
        assert data["ok"] is True
        assert data["as_of_date"] == "2026-03-10"
        assert data["entries"][0]["project_id"] == str(a.id)

    async def test_no_snapshots(self, make_store, results) -> None:
        store, sessions = make_store([results.rows([])])

        board = await get_mindshare_leaderboard(store, "24h", as_of=TODAY)

        assert board is not None
        assert board.entries == []
        assert board.window == "24h"
        assert sessions[0].execute.await_count == 1

    async def test_failure_is_none(self, failing_store) -> None:
        assert await get_mindshare_leaderboard(failing_store) is None


class TestUpsertProjectTweets:
    def _tweets(self) -> list[TwitterTweet]:
        return [
            TwitterTweet(id="1", text="gm", author_handle="a", created_at="2026-03-10T08:00:00.000Z"),
            TwitterTweet(id="2", text="wagmi", author_handle="b", like_count=4),
        ]

    async def test_requires_service_tier(self, make_store) -> None:
        store, _ = make_store()
        with pytest.raises(ValueError, match="service-tier"):
            await upsert_project_tweets(store, uuid.uuid4(), self._tweets(), [50, 60])

    async def test_lengths_must_match(self, make_store) -> None:
        store, _ = make_store(tier=StoreTier.SERVICE)
        with pytest.raises(ValueError, match="same length"):
            await upsert_project_tweets(store, uuid.uuid4(), self._tweets(), [50])

    async def test_nothing_to_write(self, make_store) -> None:
        store, _ = make_store(tier=StoreTier.SERVICE)
        assert await upsert_project_tweets(store, uuid.uuid4(), [], []) == 0
        store.session_factory.assert_not_called()

    async def test_writes_and_commits(self, make_store) -> None:
        store, sessions = make_store([MagicMock()], tier=StoreTier.SERVICE)

        written = await upsert_project_tweets(store, uuid.uuid4(), self._tweets(), [80, None])

        assert written == 2
        sessions[0].execute.assert_awaited_once()
        sessions[0].commit.assert_awaited_once()

    async def test_write_failure_returns_zero(self, make_store) -> None:
        store, sessions = make_store([RuntimeError("deadlock")], tier=StoreTier.SERVICE)

        assert await upsert_project_tweets(store, uuid.uuid4(), self._tweets(), [80, 20]) == 0
        sessions[0].commit.assert_not_awaited()

    async def test_repeated_tweet_ids_collapse_to_last(self, make_store) -> None:
        """Search pages can repeat a tweet; the batch still writes once per id."""
        store, sessions = make_store([MagicMock()], tier=StoreTier.SERVICE)
        tweets = [
            *self._tweets(),
            TwitterTweet(id="1", text="gm again", author_handle="a", like_count=9),
        ]

        written = await upsert_project_tweets(store, uuid.uuid4(), tweets, [10, 60, 90])

        assert written == 2
        stmt = sessions[0].execute.await_args.args[0]
        params = stmt.compile(dialect=postgresql.dialect()).params
        assert sorted(v for k, v in params.items() if k.startswith("tweet_id")) == ["1", "2"]
        assert sorted(v for k, v in params.items() if k.startswith("sentiment_score")) == [60, 90]
        assert "gm again" in params.values()
        assert "gm" not in params.values()
