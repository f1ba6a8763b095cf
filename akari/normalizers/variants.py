"""Tagged decoding of provider payloads.

Callers name the provider variant a payload came from and get back the
domain object (or None). Each variant maps to exactly one decoder, so a
payload is never probed against the wrong provider's aliases.
"""

from __future__ import annotations

import enum
from collections.abc import Callable
from typing import Any

from akari.normalizers.mentions import MentionResult, normalize_mention_item
from akari.normalizers.twitter import (
    TwitterTweet,
    TwitterUserProfile,
    normalize_tweet_from_api,
    normalize_tweet_from_data_scraper,
    normalize_tweet_from_scraper,
    normalize_user_from_api,
    normalize_user_profile_from_data_scraper,
)


class PayloadVariant(enum.StrEnum):
    TWITTER_API65 = "twitter_api65"
    DATA_SCRAPER = "data_scraper"
    SCRAPER = "scraper"
    MENTIONS = "mentions"


class UnsupportedVariantError(ValueError):
    """The provider variant has no decoder for the requested shape."""


_USER_DECODERS: dict[PayloadVariant, Callable[[Any], TwitterUserProfile | None]] = {
    PayloadVariant.TWITTER_API65: normalize_user_from_api,
    PayloadVariant.DATA_SCRAPER: normalize_user_profile_from_data_scraper,
}

_TWEET_DECODERS: dict[PayloadVariant, Callable[[Any], TwitterTweet | MentionResult | None]] = {
    PayloadVariant.TWITTER_API65: normalize_tweet_from_api,
    PayloadVariant.DATA_SCRAPER: normalize_tweet_from_data_scraper,
    PayloadVariant.SCRAPER: normalize_tweet_from_scraper,
    PayloadVariant.MENTIONS: normalize_mention_item,
}


def normalize_user(raw: Any, variant: PayloadVariant | str) -> TwitterUserProfile | None:
    try:
        decoder = _USER_DECODERS[PayloadVariant(variant)]
    except (KeyError, ValueError) as e:
        raise UnsupportedVariantError(f"No user decoder for {variant!r}") from e
    return decoder(raw)


def normalize_tweet(raw: Any, variant: PayloadVariant | str) -> TwitterTweet | MentionResult | None:
    try:
        decoder = _TWEET_DECODERS[PayloadVariant(variant)]
    except ValueError as e:
        raise UnsupportedVariantError(f"No tweet decoder for {variant!r}") from e
    return decoder(raw)


def normalize_many(
    items: list[Any],
    decoder: Callable[[Any], Any],
    limit: int | None = None,
) -> list[Any]:
    """Decode a list, dropping items the decoder rejects."""
    out = [obj for obj in (decoder(item) for item in items) if obj is not None]
    return out if limit is None else out[:limit]
