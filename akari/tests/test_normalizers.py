"""Tests for Twitter/X payload normalizers.

Payloads mirror the shapes the three RapidAPI providers return.
"""

from __future__ import annotations

from akari.normalizers.common import (
    as_int,
    dig,
    extract_array_from_response,
    first_not_none,
    first_present,
    round_half_up,
    to_iso,
    unwrap_payload,
)
from akari.normalizers.twitter import (
    UNKNOWN_AUTHOR,
    TwitterUserProfile,
    calculate_follower_quality,
    normalize_tweet_detail_from_api,
    normalize_tweet_from_api,
    normalize_tweet_from_data_scraper,
    normalize_tweet_from_scraper,
    normalize_user_from_api,
    normalize_user_profile_from_data_scraper,
)

TWITTER_DATE = "Wed Oct 10 20:19:24 +0000 2018"


# ---------------------------------------------------------------------------
# Lookup helpers
# ---------------------------------------------------------------------------


class TestLookupHelpers:
    def test_dig_walks_nested_dicts(self) -> None:
        """Dotted paths resolve through nested dicts."""
        assert dig({"a": {"b": {"c": 1}}}, "a.b.c") == 1

    def test_dig_missing_link_is_none(self) -> None:
        """A missing or non-dict link yields None."""
        assert dig({"a": 5}, "a.b") is None
        assert dig(None, "a") is None

    def test_first_present_skips_blank_strings(self) -> None:
        """Empty strings do not satisfy a required-field alias."""
        assert first_present({"a": "", "b": "x"}, "a", "b") == "x"

    def test_first_not_none_keeps_zero(self) -> None:
        """Counts of 0 are real values, not missing ones."""
        assert first_not_none({"a": 0, "b": 5}, "a", "b") == 0

    def test_as_int_unparseable_is_none(self) -> None:
        """Garbage counts decode as absent."""
        assert as_int("abc") is None
        assert as_int("42") == 42
        assert as_int(True) is None

    def test_round_half_up(self) -> None:
        """Halves round toward positive infinity."""
        assert round_half_up(2.5) == 3
        assert round_half_up(-2.5) == -2
        assert round_half_up(0.49) == 0


class TestToIso:
    def test_twitter_classic_format(self) -> None:
        assert to_iso(TWITTER_DATE) == "2018-10-10T20:19:24.000Z"

    def test_iso_with_z_suffix(self) -> None:
        assert to_iso("2024-01-05T10:00:00Z") == "2024-01-05T10:00:00.000Z"

    def test_epoch_milliseconds(self) -> None:
        assert to_iso(86_400_000) == "1970-01-02T00:00:00.000Z"

    def test_unparseable_returned_verbatim(self) -> None:
        """Unknown formats pass through unchanged."""
        assert to_iso("yesterday") == "yesterday"

    def test_empty_is_none(self) -> None:
        assert to_iso("") is None
        assert to_iso(None) is None


class TestResponseUnwrapping:
    def test_list_response_returned_as_is(self) -> None:
        assert extract_array_from_response([1, 2], "tweets") == [1, 2]

    def test_nested_data_wrapper(self) -> None:
        """Arrays inside a ``data`` wrapper are found."""
        assert extract_array_from_response({"data": {"tweets": [1, 2]}}, "tweets") == [1, 2]

    def test_nested_result_wrapper(self) -> None:
        assert extract_array_from_response({"result": {"items": [1]}}, "items") == [1]

    def test_unknown_shape_is_empty(self) -> None:
        assert extract_array_from_response("oops", "tweets") == []
        assert extract_array_from_response({"tweets": "nope"}, "tweets") == []

    def test_unwrap_payload_skips_empty_wrappers(self) -> None:
        assert unwrap_payload({"user": {}, "data": {"a": 1}}, "user", "data") == {"a": 1}

    def test_unwrap_payload_falls_back_to_input(self) -> None:
        payload = {"screen_name": "akari"}
        assert unwrap_payload(payload, "user") is payload


# ---------------------------------------------------------------------------
# twitter-api65
# ---------------------------------------------------------------------------


class TestNormalizeUserFromApi:
    def test_graphql_legacy_shape(self) -> None:
        """GraphQL users carry fields under ``legacy``."""
        raw = {
            "rest_id": "44196397",
            "legacy": {
                "screen_name": "akari_fi",
                "name": "Akari",
                "description": "CT intelligence",
                "followers_count": 100,
                "friends_count": 50,
                "statuses_count": 10,
                "created_at": TWITTER_DATE,
            },
        }
        profile = normalize_user_from_api(raw)

        assert profile is not None
        assert profile.handle == "akari_fi"
        assert profile.user_id == "44196397"
        assert profile.name == "Akari"
        assert profile.bio == "CT intelligence"
        assert profile.followers_count == 100
        assert profile.following_count == 50
        assert profile.tweet_count == 10
        assert profile.created_at == "2018-10-10T20:19:24.000Z"

    def test_flat_shape_keeps_zero_counts(self) -> None:
        """A follower count of 0 is not confused with a missing one."""
        profile = normalize_user_from_api({"screen_name": "fresh", "followers_count": 0})

        assert profile is not None
        assert profile.followers_count == 0
        assert profile.following_count is None

    def test_missing_handle_is_none(self) -> None:
        assert normalize_user_from_api({"name": "No Handle"}) is None

    def test_non_dict_is_none(self) -> None:
        assert normalize_user_from_api(["screen_name"]) is None
        assert normalize_user_from_api(None) is None

    def test_verified_from_blue_flag(self) -> None:
        profile = normalize_user_from_api({"username": "v", "is_blue_verified": True})
        assert profile is not None
        assert profile.verified is True


class TestNormalizeTweetFromApi:
    def test_v11_shape(self) -> None:
        raw = {
            "id_str": "1",
            "full_text": "gm CT",
            "user": {"screen_name": "alice"},
            "favorite_count": 5,
            "created_at": TWITTER_DATE,
        }
        tweet = normalize_tweet_from_api(raw)

        assert tweet is not None
        assert tweet.id == "1"
        assert tweet.text == "gm CT"
        assert tweet.author_handle == "alice"
        assert tweet.like_count == 5
        assert tweet.reply_count is None
        assert tweet.created_at == "2018-10-10T20:19:24.000Z"

    def test_missing_text_is_none(self) -> None:
        assert normalize_tweet_from_api({"id": "1"}) is None

    def test_missing_id_is_none(self) -> None:
        assert normalize_tweet_from_api({"text": "orphan"}) is None

    def test_author_defaults_to_unknown(self) -> None:
        tweet = normalize_tweet_from_api({"id": "2", "text": "hi"})
        assert tweet is not None
        assert tweet.author_handle == UNKNOWN_AUTHOR
        assert tweet.created_at == ""

    def test_detail_adds_extended_metrics(self) -> None:
        raw = {
            "id": "3",
            "text": "thread",
            "user": {"screen_name": "dan", "name": "Dan"},
            "quote_count": 2,
            "views": 1000,
        }
        detail = normalize_tweet_detail_from_api(raw)

        assert detail is not None
        assert detail.author_handle == "dan"
        assert detail.author_name == "Dan"
        assert detail.quote_count == 2
        assert detail.impression_count == 1000
        assert detail.bookmark_count is None


# ---------------------------------------------------------------------------
# twitter-data-scraper3 / twitter-scraper2
# ---------------------------------------------------------------------------


class TestDataScraper:
    def test_profile(self) -> None:
        raw = {"screenname": "akari", "full_name": "Akari", "followers": 1200, "following": 300}
        profile = normalize_user_profile_from_data_scraper(raw)

        assert profile is not None
        assert profile.handle == "akari"
        assert profile.name == "Akari"
        assert profile.followers_count == 1200
        assert profile.following_count == 300

    def test_wrapped_timeline_tweet(self) -> None:
        """Timeline items nest the body under tweet.legacy and the author under core."""
        raw = {
            "tweet": {
                "rest_id": "9",
                "legacy": {"full_text": "hello", "favorite_count": 3, "created_at": TWITTER_DATE},
                "core": {"user_results": {"result": {"legacy": {"screen_name": "bob"}}}},
            }
        }
        tweet = normalize_tweet_from_data_scraper(raw)

        assert tweet is not None
        assert tweet.id == "9"
        assert tweet.text == "hello"
        assert tweet.author_handle == "bob"
        assert tweet.like_count == 3
        # timeline counts always decode to a number
        assert tweet.reply_count == 0
        assert tweet.retweet_count == 0

    def test_flat_timeline_tweet(self) -> None:
        tweet = normalize_tweet_from_data_scraper(
            {"id": "10", "text": "flat", "screen_name": "eve"}
        )
        assert tweet is not None
        assert tweet.author_handle == "eve"

    def test_missing_text_is_none(self) -> None:
        assert normalize_tweet_from_data_scraper({"tweet": {"rest_id": "1"}}) is None


class TestScraper:
    def test_scrape_result(self) -> None:
        raw = {"tweetId": "55", "content": "hi", "user": {"username": "carol"}, "likes": 7, "date": "2h"}
        tweet = normalize_tweet_from_scraper(raw)

        assert tweet is not None
        assert tweet.id == "55"
        assert tweet.author_handle == "carol"
        assert tweet.like_count == 7
        assert tweet.created_at == "2h"

    def test_string_author(self) -> None:
        tweet = normalize_tweet_from_scraper({"id": "1", "text": "x", "username": "dave"})
        assert tweet is not None
        assert tweet.author_handle == "dave"


# ---------------------------------------------------------------------------
# Follower quality
# ---------------------------------------------------------------------------


class TestFollowerQuality:
    def test_empty_sample_is_neutral(self) -> None:
        assert calculate_follower_quality([]) == 50

    def test_profiles_without_counts_skipped(self) -> None:
        assert calculate_follower_quality([TwitterUserProfile(handle="a")]) == 50

    def test_score_capped_at_100(self) -> None:
        strong = TwitterUserProfile(
            handle="whale",
            followers_count=20_000,
            following_count=5_000,
            tweet_count=5_000,
            verified=True,
        )
        assert calculate_follower_quality([strong]) == 100

    def test_average_over_sample(self) -> None:
        """(100 + 40) / 2: a strong account and a tiny one with unknown activity."""
        strong = TwitterUserProfile(
            handle="whale",
            followers_count=20_000,
            following_count=5_000,
            tweet_count=5_000,
            verified=True,
        )
        tiny = TwitterUserProfile(handle="anon", followers_count=50)
        assert calculate_follower_quality([strong, tiny]) == 70

    def test_mid_account(self) -> None:
        """500 followers (20) at a 0.5 ratio (10) with 50 tweets (10)."""
        mid = TwitterUserProfile(
            handle="mid", followers_count=500, following_count=1_000, tweet_count=50
        )
        assert calculate_follower_quality([mid]) == 40
