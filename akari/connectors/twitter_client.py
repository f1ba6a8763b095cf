"""Twitter/X data client over three RapidAPI providers.

Interface contract (twitter-api65, POST, bearer Authorization header):
  - fetch_user_details_by_screen_name(username) → TwitterUserProfile | None
  - fetch_user_tweets_by_id(user_id, limit) → list[TwitterTweet]
  - fetch_followers_by_user_id / fetch_verified_followers_by_user_id /
    fetch_following_by_user_id(user_id, limit) → list[TwitterUserProfile]
  - fetch_user_media_by_user_id / fetch_highlighted_tweets_by_user_id
    (user_id, limit) → list[TwitterTweet]
  - fetch_tweet_detail(tweet_id) → TwitterTweetDetail | None
  - search_tweets(query, search_type, limit) → list[TwitterTweet]
  - search_users(query, limit) → list[TwitterUserProfile]

twitter-data-scraper3 (GET):
  - fetch_user_profile(handle) → TwitterUserProfile | None (None on 404 only)

twitter-scraper2 (GET, long timeout):
  - scrape_tweets_by_search(search_terms, max_tweets, url) → list[TwitterTweet]

Composites with provider fallback, never raising:
  - fetch_user_tweets(handle, limit)
  - fetch_user_followers_sample(handle, limit)

Auth: RAPIDAPI_KEY for every host, TWITTER_API65_AUTH_TOKEN for twitter-api65.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import aiohttp

from akari.config.settings import AkariConfig
from akari.connectors.rapidapi import (
    RapidApiError,
    RapidApiNotFoundError,
    RapidApiTransport,
)
from akari.normalizers.common import extract_array_from_response, unwrap_payload
from akari.normalizers.twitter import (
    TwitterTweet,
    TwitterTweetDetail,
    TwitterUserProfile,
    normalize_tweet_detail_from_api,
    normalize_tweet_from_api,
    normalize_tweet_from_data_scraper,
    normalize_tweet_from_scraper,
    normalize_user_from_api,
    normalize_user_profile_from_data_scraper,
)
from akari.normalizers.variants import normalize_many
from akari.utils.logger import get_logger

logger = get_logger("twitter")

TWEET_KEYS = ("tweets", "results", "data", "statuses")
FOLLOWER_KEYS = ("followers", "users", "data", "results")


def clean_handle(handle: str) -> str:
    return handle.strip().replace("@", "", 1)


def build_search_url(search_terms: str) -> str:
    """Live-search URL the scraper provider expects."""
    return f"https://x.com/search?q={quote(search_terms, safe='')}&src=typed_query&f=live"


class TwitterClient:
    """Async client for twitter-api65, twitter-data-scraper3 and twitter-scraper2.

    Args:
        config: Loaded configuration (hosts, timeouts, credentials).
        session: Optional shared aiohttp session.

    Raises:
        ConfigurationError: When RAPIDAPI_KEY is not set.
    """

    def __init__(
        self,
        config: AkariConfig,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        rapid = config.rapidapi
        self._api = RapidApiTransport.from_config(
            config,
            host=rapid.twitter_api65_host,
            provider="twitter-api65",
            session=session,
            extra_headers={"Authorization": config.twitter_api65_auth_token},
        )
        self._data = RapidApiTransport.from_config(
            config,
            host=rapid.data_scraper_host,
            provider="twitter-data-scraper3",
            session=session,
        )
        self._scraper = RapidApiTransport.from_config(
            config,
            host=rapid.scraper_host,
            provider="twitter-scraper2",
            session=session,
            timeout_s=rapid.scraper_timeout_seconds,
        )

    async def close(self) -> None:
        for transport in (self._api, self._data, self._scraper):
            await transport.close()

    async def __aenter__(self) -> TwitterClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # twitter-api65
    # ------------------------------------------------------------------

    async def fetch_user_details_by_screen_name(self, username: str) -> TwitterUserProfile | None:
        """Profile lookup. Any provider failure reads as "not found"."""
        try:
            response = await self._api.post(
                "/user-details-by-screen-name", {"username": clean_handle(username)}
            )
        except RapidApiError as e:
            logger.info("twitter_user_details_unavailable", username=username, error=str(e))
            return None
        return normalize_user_from_api(unwrap_payload(response, "user", "data", "result"))

    async def _user_id_call(
        self,
        path: str,
        user_id: str,
        keys: tuple[str, ...],
        limit: int,
        users: bool,
    ) -> list[Any]:
        response = await self._api.post(path, {"userId": str(user_id)})
        raw_items = extract_array_from_response(response, *keys)
        decoder = normalize_user_from_api if users else normalize_tweet_from_api
        return normalize_many(raw_items, decoder, limit)

    async def fetch_user_tweets_by_id(self, user_id: str, limit: int = 20) -> list[TwitterTweet]:
        return await self._user_id_call("/user-tweets", user_id, TWEET_KEYS, limit, users=False)

    async def fetch_followers_by_user_id(
        self, user_id: str, limit: int = 50
    ) -> list[TwitterUserProfile]:
        return await self._user_id_call("/followers", user_id, FOLLOWER_KEYS, limit, users=True)

    async def fetch_verified_followers_by_user_id(
        self, user_id: str, limit: int = 50
    ) -> list[TwitterUserProfile]:
        return await self._user_id_call(
            "/verified-followers", user_id, FOLLOWER_KEYS, limit, users=True
        )

    async def fetch_following_by_user_id(
        self, user_id: str, limit: int = 50
    ) -> list[TwitterUserProfile]:
        return await self._user_id_call(
            "/following", user_id, ("following", "users", "data", "results"), limit, users=True
        )

    async def fetch_user_media_by_user_id(
        self, user_id: str, limit: int = 20
    ) -> list[TwitterTweet]:
        return await self._user_id_call(
            "/user-media", user_id, ("tweets", "media", "results", "data"), limit, users=False
        )

    async def fetch_highlighted_tweets_by_user_id(
        self, user_id: str, limit: int = 20
    ) -> list[TwitterTweet]:
        return await self._user_id_call(
            "/highlighted-tweets",
            user_id,
            ("tweets", "highlighted", "results", "data"),
            limit,
            users=False,
        )

    async def fetch_tweet_detail(self, tweet_id: str) -> TwitterTweetDetail | None:
        try:
            response = await self._api.post("/tweet-detail", {"tweetId": str(tweet_id)})
        except RapidApiError as e:
            logger.info("twitter_tweet_detail_unavailable", tweet_id=tweet_id, error=str(e))
            return None
        return normalize_tweet_detail_from_api(unwrap_payload(response, "tweet", "data", "result"))

    async def search_tweets(
        self,
        query: str,
        search_type: str = "Latest",
        limit: int = 50,
    ) -> list[TwitterTweet]:
        """Search tweets. search_type is Latest, Top, Photos or Videos."""
        response = await self._api.post("/search", {"query": query, "type": search_type})
        raw_items = extract_array_from_response(response, *TWEET_KEYS)
        return normalize_many(raw_items, normalize_tweet_from_api, limit)

    async def search_users(self, query: str, limit: int = 20) -> list[TwitterUserProfile]:
        response = await self._api.post("/search", {"query": query, "type": "People"})
        raw_items = extract_array_from_response(response, "users", "people", "results", "data")
        return normalize_many(raw_items, normalize_user_from_api, limit)

    # ------------------------------------------------------------------
    # twitter-data-scraper3
    # ------------------------------------------------------------------

    async def fetch_user_profile(self, handle: str) -> TwitterUserProfile | None:
        """Profile via the data scraper.

        Returns None on 404; other failures raise RapidApiError.
        """
        try:
            data = await self._data.get("/screenname.php", {"screenname": clean_handle(handle)})
        except RapidApiNotFoundError:
            return None
        if isinstance(data, dict):
            data = unwrap_payload(data, "user", "data", "result")
        return normalize_user_profile_from_data_scraper(data)

    # ------------------------------------------------------------------
    # twitter-scraper2
    # ------------------------------------------------------------------

    async def scrape_tweets_by_search(
        self,
        search_terms: str,
        max_tweets: int = 50,
        url: str | None = None,
    ) -> list[TwitterTweet]:
        response = await self._scraper.get(
            "/scrape",
            {
                "searchTerms": search_terms,
                "maxTweets": max_tweets,
                "url": url or build_search_url(search_terms),
            },
        )
        raw_items = extract_array_from_response(response, "tweets", "results", "data")
        return normalize_many(raw_items, normalize_tweet_from_scraper)

    # ------------------------------------------------------------------
    # Composites
    # ------------------------------------------------------------------

    async def fetch_user_tweets(self, handle: str, limit: int = 20) -> list[TwitterTweet]:
        """Recent tweets: api65 ``from:`` search, then the scraper timeline, then []."""
        handle = clean_handle(handle)
        try:
            return await self.search_tweets(f"from:{handle}", "Latest", limit)
        except RapidApiError:
            logger.info("twitter_tweets_fallback", handle=handle)

        try:
            data = await self._data.get("/timeline.php", {"screenname": handle})
        except RapidApiError as e:
            logger.error("twitter_tweets_all_providers_failed", handle=handle, error=str(e))
            return []

        raw_items = extract_array_from_response(data, "timeline", "tweets", "data", "results")
        tweets = normalize_many(raw_items, normalize_tweet_from_data_scraper, limit)
        logger.info("twitter_tweets_fallback_done", handle=handle, count=len(tweets))
        return tweets

    async def fetch_user_followers_sample(
        self, handle: str, limit: int = 50
    ) -> list[TwitterUserProfile]:
        """Accounts that interact with ``handle``.

        Unique authors of tweets mentioning the handle first (handle-only
        profiles), then the data scraper follower list, then [].
        """
        handle = clean_handle(handle)
        target = handle.lower()

        try:
            tweets = await self.scrape_tweets_by_search(f"@{handle}", max_tweets=min(limit * 2, 100))
        except RapidApiError:
            logger.info("twitter_followers_fallback", handle=handle)
        else:
            authors: dict[str, TwitterUserProfile] = {}
            for tweet in tweets:
                key = tweet.author_handle.lower()
                if key == target or key in authors:
                    continue
                authors[key] = TwitterUserProfile(handle=tweet.author_handle)
                if len(authors) >= limit:
                    break
            if authors:
                return list(authors.values())

        try:
            data = await self._data.get(
                "/followers.php", {"screenname": handle, "blue_verified": 0}
            )
        except RapidApiError as e:
            logger.error("twitter_followers_all_providers_failed", handle=handle, error=str(e))
            return []

        profiles: list[TwitterUserProfile] = []
        for raw in extract_array_from_response(data, *FOLLOWER_KEYS):
            profile = normalize_user_profile_from_data_scraper(raw)
            if profile and profile.handle != handle:
                profiles.append(profile)
            if len(profiles) >= limit:
                break
        logger.info("twitter_followers_fallback_done", handle=handle, count=len(profiles))
        return profiles
