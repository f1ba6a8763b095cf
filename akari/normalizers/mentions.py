"""Normalizer and summary stats for the get-twitter-mentions provider."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from akari.normalizers.common import as_int, as_text, first_not_none, first_present


@dataclass(frozen=True)
class MentionResult:
    id: str
    text: str
    author: str
    created_at: str = ""
    like_count: int | None = None
    retweet_count: int | None = None
    reply_count: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class MentionStats:
    count: int = 0
    total_likes: int = 0
    total_retweets: int = 0
    avg_likes: float = 0.0
    avg_retweets: float = 0.0
    unique_authors: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def normalize_mention_item(raw: Any) -> MentionResult | None:
    if not isinstance(raw, dict):
        return None

    mention_id = as_text(first_present(raw, "id", "id_str", "tweet_id"))
    if mention_id is None:
        return None

    text = as_text(first_present(raw, "text", "full_text", "content"))
    if text is None:
        return None

    return MentionResult(
        id=mention_id,
        text=text,
        author=as_text(first_present(raw, "user.screen_name", "author", "screen_name", "username"))
        or "unknown",
        created_at=as_text(first_present(raw, "created_at", "date", "timestamp")) or "",
        like_count=as_int(first_not_none(raw, "favorite_count", "like_count", "likes")),
        retweet_count=as_int(first_not_none(raw, "retweet_count", "retweets")),
        reply_count=as_int(first_not_none(raw, "reply_count", "replies")),
    )


def calculate_mention_stats(mentions: list[MentionResult]) -> MentionStats:
    """Engagement totals and averages; authors are counted case-insensitively."""
    if not mentions:
        return MentionStats()

    total_likes = sum(m.like_count or 0 for m in mentions)
    total_retweets = sum(m.retweet_count or 0 for m in mentions)
    return MentionStats(
        count=len(mentions),
        total_likes=total_likes,
        total_retweets=total_retweets,
        avg_likes=total_likes / len(mentions),
        avg_retweets=total_retweets / len(mentions),
        unique_authors=len({m.author.lower() for m in mentions}),
    )
