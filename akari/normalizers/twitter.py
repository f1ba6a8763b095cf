"""Twitter/X payload normalizers for the RapidAPI provider family.

Three providers return overlapping but differently named shapes:
  - twitter-api65: flat v1.1 fields or GraphQL ``legacy`` / ``core`` nesting
  - twitter-data-scraper3: ``screenname`` style profiles, nested timelines
  - twitter-scraper2: flat scrape results

Interface contract:
  - normalize_*(raw) → domain object, or None when a required field
    (handle, tweet id, text) is missing under every known alias
  - required fields take the first non-empty alias in the order listed
  - optional counts take the first alias that is set; absent stays None,
    except for data-scraper timelines, whose schema guarantees counts
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from akari.normalizers.common import (
    as_bool,
    as_int,
    as_text,
    dig,
    first_not_none,
    first_present,
    round_half_up,
    to_iso,
)

UNKNOWN_AUTHOR = "unknown"


# ================================================================
# Data models
# ================================================================


@dataclass(frozen=True)
class TwitterUserProfile:
    """Normalized Twitter user profile."""

    handle: str
    user_id: str | None = None
    name: str | None = None
    bio: str | None = None
    avatar_url: str | None = None
    followers_count: int | None = None
    following_count: int | None = None
    tweet_count: int | None = None
    created_at: str | None = None
    verified: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TwitterTweet:
    """Normalized tweet."""

    id: str
    text: str
    author_handle: str = UNKNOWN_AUTHOR
    created_at: str = ""
    like_count: int | None = None
    reply_count: int | None = None
    retweet_count: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TwitterTweetDetail(TwitterTweet):
    """Tweet with the extended metrics of the tweet-detail endpoint."""

    quote_count: int | None = None
    bookmark_count: int | None = None
    impression_count: int | None = None
    author_name: str | None = None
    author_avatar_url: str | None = None


# ================================================================
# twitter-api65
# ================================================================


def normalize_user_from_api(raw: Any) -> TwitterUserProfile | None:
    if not isinstance(raw, dict):
        return None

    handle = as_text(first_present(raw, "screen_name", "username", "legacy.screen_name"))
    if handle is None:
        return None

    return TwitterUserProfile(
        handle=handle,
        user_id=as_text(first_present(raw, "id", "id_str", "rest_id")),
        name=as_text(first_present(raw, "name", "legacy.name")),
        bio=as_text(first_present(raw, "description", "bio", "legacy.description")),
        avatar_url=as_text(
            first_present(
                raw,
                "profile_image_url_https",
                "profile_image_url",
                "avatar_url",
                "legacy.profile_image_url_https",
            )
        ),
        followers_count=as_int(
            first_not_none(raw, "followers_count", "followersCount", "legacy.followers_count")
        ),
        following_count=as_int(
            first_not_none(
                raw,
                "friends_count",
                "following_count",
                "followingCount",
                "legacy.friends_count",
            )
        ),
        tweet_count=as_int(
            first_not_none(raw, "statuses_count", "tweet_count", "legacy.statuses_count")
        ),
        created_at=to_iso(first_present(raw, "created_at", "legacy.created_at")),
        verified=as_bool(first_not_none(raw, "verified", "is_blue_verified", "legacy.verified")),
    )


def _api_tweet_author(raw: dict[str, Any]) -> dict[str, Any] | None:
    user = first_present(raw, "user", "author", "core.user_results.result")
    return user if isinstance(user, dict) else None


def normalize_tweet_from_api(raw: Any) -> TwitterTweet | None:
    if not isinstance(raw, dict):
        return None

    tweet_id = as_text(first_present(raw, "id", "id_str", "rest_id"))
    if tweet_id is None:
        return None

    text = as_text(first_present(raw, "text", "full_text", "content", "legacy.full_text"))
    if text is None:
        return None

    user = _api_tweet_author(raw) or {}
    author = (
        as_text(first_present(user, "screen_name", "username", "legacy.screen_name"))
        or as_text(first_present(raw, "screen_name", "username"))
        or UNKNOWN_AUTHOR
    )

    return TwitterTweet(
        id=tweet_id,
        text=text,
        author_handle=author,
        created_at=to_iso(
            first_present(raw, "created_at", "date", "timestamp", "legacy.created_at")
        )
        or "",
        like_count=as_int(
            first_not_none(raw, "favorite_count", "like_count", "likes", "legacy.favorite_count")
        ),
        reply_count=as_int(first_not_none(raw, "reply_count", "replies", "legacy.reply_count")),
        retweet_count=as_int(
            first_not_none(raw, "retweet_count", "retweets", "legacy.retweet_count")
        ),
    )


def normalize_tweet_detail_from_api(raw: Any) -> TwitterTweetDetail | None:
    base = normalize_tweet_from_api(raw)
    if base is None:
        return None

    user = _api_tweet_author(raw) or {}
    return TwitterTweetDetail(
        **asdict(base),
        quote_count=as_int(first_not_none(raw, "quote_count", "legacy.quote_count")),
        bookmark_count=as_int(first_not_none(raw, "bookmark_count", "legacy.bookmark_count")),
        impression_count=as_int(first_not_none(raw, "impression_count", "view_count", "views")),
        author_name=as_text(first_present(user, "name", "legacy.name")),
        author_avatar_url=as_text(
            first_present(user, "profile_image_url_https", "legacy.profile_image_url_https")
        ),
    )


# ================================================================
# twitter-data-scraper3
# ================================================================


def normalize_user_profile_from_data_scraper(raw: Any) -> TwitterUserProfile | None:
    if not isinstance(raw, dict):
        return None

    handle = as_text(first_present(raw, "screen_name", "screenname", "username"))
    if handle is None:
        return None

    return TwitterUserProfile(
        handle=handle,
        name=as_text(first_present(raw, "name", "full_name")),
        bio=as_text(first_present(raw, "description", "bio")),
        avatar_url=as_text(
            first_present(raw, "profile_image_url_https", "profile_image_url", "avatar")
        ),
        followers_count=as_int(first_not_none(raw, "followers_count", "followers")),
        following_count=as_int(first_not_none(raw, "friends_count", "following")),
        tweet_count=as_int(first_not_none(raw, "statuses_count", "tweet_count", "tweets_count")),
        created_at=as_text(raw.get("created_at")),
    )


def _as_dict(value: Any) -> dict[str, Any] | None:
    return value if isinstance(value, dict) and value else None


def normalize_tweet_from_data_scraper(raw: Any) -> TwitterTweet | None:
    """Timeline items arrive wrapped in ``tweet`` or ``content`` with a ``legacy`` body."""
    if not isinstance(raw, dict):
        return None

    tweet = _as_dict(raw.get("tweet")) or _as_dict(raw.get("content")) or raw
    legacy = _as_dict(tweet.get("legacy")) or tweet

    tweet_id = as_text(first_present(tweet, "id", "id_str", "rest_id")) or as_text(
        first_present(raw, "id", "id_str")
    )
    if tweet_id is None:
        return None

    text = as_text(first_present(legacy, "full_text", "text")) or as_text(
        first_present(tweet, "text", "full_text")
    )
    if text is None and raw is not tweet:
        text = as_text(raw.get("text"))
    if text is None:
        return None

    user = (
        _as_dict(tweet.get("user"))
        or _as_dict(dig(tweet, "core.user_results"))
        or _as_dict(raw.get("user"))
        or {}
    )
    user_result = _as_dict(user.get("result")) or user
    user_legacy = _as_dict(user_result.get("legacy")) or user_result
    author = (
        as_text(user_legacy.get("screen_name"))
        or as_text(user_result.get("screen_name"))
        or as_text(user.get("screen_name"))
        or as_text(tweet.get("screen_name"))
        or as_text(raw.get("screen_name"))
        or UNKNOWN_AUTHOR
    )

    created_at = (
        first_present(legacy, "created_at")
        or first_present(tweet, "created_at")
        or first_present(raw, "created_at")
    )

    def _count(*keys: str) -> int:
        value = first_not_none(legacy, *keys)
        if value is None:
            value = first_not_none(tweet, keys[0])
        return as_int(value) or 0

    return TwitterTweet(
        id=tweet_id,
        text=text,
        author_handle=author,
        created_at=to_iso(created_at) or "",
        like_count=_count("favorite_count", "like_count"),
        reply_count=_count("reply_count"),
        retweet_count=_count("retweet_count"),
    )


# ================================================================
# twitter-scraper2
# ================================================================


def normalize_tweet_from_scraper(raw: Any) -> TwitterTweet | None:
    if not isinstance(raw, dict):
        return None

    tweet_id = as_text(first_present(raw, "id", "tweetId", "tweet_id"))
    if tweet_id is None:
        return None

    text = as_text(first_present(raw, "text", "content", "full_text"))
    if text is None:
        return None

    author = first_present(raw, "user", "username", "author", "screen_name")
    if isinstance(author, dict):
        author = first_present(author, "screen_name", "username")

    return TwitterTweet(
        id=tweet_id,
        text=text,
        author_handle=as_text(author) or UNKNOWN_AUTHOR,
        # scrape results carry display dates; kept verbatim
        created_at=as_text(first_present(raw, "date", "created_at", "timestamp")) or "",
        like_count=as_int(first_not_none(raw, "likes", "like_count", "favorite_count")),
        reply_count=as_int(first_not_none(raw, "replies", "reply_count")),
        retweet_count=as_int(first_not_none(raw, "retweets", "retweet_count")),
    )


# ================================================================
# Derived metrics
# ================================================================


def _follower_points(followers: int) -> int:
    if followers >= 10_000:
        return 40
    if followers >= 1_000:
        return 30
    if followers >= 100:
        return 20
    return 10


def _ratio_points(followers: int, following: int | None) -> int:
    if not following or following <= 0:
        return 15
    ratio = followers / following
    if ratio >= 2:
        return 30
    if ratio >= 1:
        return 20
    if ratio >= 0.5:
        return 10
    return 0


def _activity_points(tweets: int | None) -> int:
    if tweets is None:
        return 15
    if tweets >= 1_000:
        return 30
    if tweets >= 100:
        return 20
    if tweets >= 10:
        return 10
    return 0


def calculate_follower_quality(profiles: list[TwitterUserProfile]) -> int:
    """Average per-profile quality (0-100) over a follower sample.

    Profiles without a follower count are skipped. Returns 50 when nothing
    could be scored.
    """
    scores: list[int] = []
    for profile in profiles:
        if profile.followers_count is None:
            continue
        score = (
            _follower_points(profile.followers_count)
            + _ratio_points(profile.followers_count, profile.following_count)
            + _activity_points(profile.tweet_count)
            + (20 if profile.verified else 0)
        )
        scores.append(min(100, score))

    if not scores:
        return 50
    return round_half_up(sum(scores) / len(scores))
