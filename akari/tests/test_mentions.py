"""Tests for the get-twitter-mentions normalizer, stats and client."""

from __future__ import annotations

import re

import pytest
from aioresponses import aioresponses

from akari.connectors.mentions_client import MentionsClient
from akari.connectors.rapidapi import RapidApiError
from akari.normalizers.mentions import (
    MentionResult,
    calculate_mention_stats,
    normalize_mention_item,
)

MENTIONS_URL = re.compile(r"^https://get-twitter-mentions\.p\.rapidapi\.com/.*$")


def _only_call(m: aioresponses):
    calls = [c for request_calls in m.requests.values() for c in request_calls]
    assert len(calls) == 1
    return calls[0]


class TestNormalizeMentionItem:
    def test_nested_user(self) -> None:
        raw = {
            "id_str": "100",
            "full_text": "$AKARI looks strong",
            "user": {"screen_name": "trader"},
            "favorite_count": 12,
            "retweet_count": 3,
            "created_at": "2024-03-01T12:00:00Z",
        }
        mention = normalize_mention_item(raw)

        assert mention is not None
        assert mention.id == "100"
        assert mention.author == "trader"
        assert mention.like_count == 12
        assert mention.retweet_count == 3
        assert mention.reply_count is None
        assert mention.created_at == "2024-03-01T12:00:00Z"

    def test_flat_author(self) -> None:
        mention = normalize_mention_item({"id": 7, "text": "gm", "author": "alice"})
        assert mention is not None
        assert mention.id == "7"
        assert mention.author == "alice"

    def test_unknown_author(self) -> None:
        mention = normalize_mention_item({"id": "1", "text": "anon"})
        assert mention is not None
        assert mention.author == "unknown"

    def test_missing_required_fields(self) -> None:
        assert normalize_mention_item({"id": "1"}) is None
        assert normalize_mention_item({"text": "no id"}) is None
        assert normalize_mention_item("not a dict") is None


class TestMentionStats:
    def test_empty(self) -> None:
        stats = calculate_mention_stats([])
        assert stats.count == 0
        assert stats.avg_likes == 0.0
        assert stats.unique_authors == 0

    def test_totals_and_averages(self) -> None:
        mentions = [
            MentionResult(id="1", text="a", author="Alice", like_count=10, retweet_count=2),
            MentionResult(id="2", text="b", author="alice", like_count=None, retweet_count=4),
            MentionResult(id="3", text="c", author="bob", like_count=5),
        ]
        stats = calculate_mention_stats(mentions)

        assert stats.count == 3
        assert stats.total_likes == 15
        assert stats.total_retweets == 6
        assert stats.avg_likes == pytest.approx(5.0)
        assert stats.avg_retweets == pytest.approx(2.0)

    def test_authors_case_insensitive(self) -> None:
        """Alice and alice are the same author."""
        mentions = [
            MentionResult(id="1", text="a", author="Alice"),
            MentionResult(id="2", text="b", author="alice"),
            MentionResult(id="3", text="c", author="bob"),
        ]
        assert calculate_mention_stats(mentions).unique_authors == 2


class TestMentionsClient:
    async def test_fetch_project_mentions(self, config) -> None:
        """Items under ``tweets`` are normalized and invalid ones dropped."""
        client = MentionsClient(config)
        payload = {
            "tweets": [
                {"id": "1", "text": "first", "author": "a"},
                {"id": "2"},
                {"id": "3", "text": "third", "author": "b"},
            ]
        }
        try:
            with aioresponses() as m:
                m.get(MENTIONS_URL, payload=payload)
                mentions = await client.fetch_project_mentions("akari", period_days=7)
                call = _only_call(m)
        finally:
            await client.close()

        assert [x.id for x in mentions] == ["1", "3"]
        assert call.kwargs["params"] == {"keyword": "akari", "period": 7}
        assert call.kwargs["headers"]["X-RapidAPI-Key"] == "test-rapid-key"
        assert call.kwargs["headers"]["X-RapidAPI-Host"] == "get-twitter-mentions.p.rapidapi.com"

    async def test_limit_applied_after_normalization(self, config) -> None:
        client = MentionsClient(config)
        payload = [{"id": str(i), "text": f"t{i}", "author": "x"} for i in range(5)]
        try:
            with aioresponses() as m:
                m.get(MENTIONS_URL, payload=payload)
                mentions = await client.fetch_project_mentions("akari", limit=2)
        finally:
            await client.close()

        assert [x.id for x in mentions] == ["0", "1"]

    async def test_unknown_shape_is_empty(self, config) -> None:
        client = MentionsClient(config)
        try:
            with aioresponses() as m:
                m.get(MENTIONS_URL, payload={"status": "ok"})
                assert await client.fetch_project_mentions("akari") == []
        finally:
            await client.close()

    async def test_ticker_search_is_upper_cased(self, config) -> None:
        client = MentionsClient(config)
        try:
            with aioresponses() as m:
                m.get(MENTIONS_URL, payload=[])
                await client.fetch_ticker_mentions("$pepe")
                call = _only_call(m)
        finally:
            await client.close()

        assert call.kwargs["params"]["keyword"] == "$PEPE"

    async def test_handle_search(self, config) -> None:
        client = MentionsClient(config)
        try:
            with aioresponses() as m:
                m.get(MENTIONS_URL, payload=[])
                await client.fetch_handle_mentions("@akari_fi")
                call = _only_call(m)
        finally:
            await client.close()

        assert call.kwargs["params"]["keyword"] == "@akari_fi"

    async def test_provider_error_raises(self, config) -> None:
        client = MentionsClient(config)
        try:
            with aioresponses() as m:
                m.get(MENTIONS_URL, status=500, body="upstream down")
                with pytest.raises(RapidApiError, match="twitter-mentions request failed for /"):
                    await client.fetch_project_mentions("akari")
        finally:
            await client.close()
