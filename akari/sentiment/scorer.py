"""Sentiment scoring: free text → 0-100 score with a label.

Interface contract:
  - analyze_sentiment(text) → SentimentResult, never raises for provider errors
  - analyze_sentiments(texts) → list[int], same order as input
  - analyze_sentiments_with_cache(texts) → dict[text, score]
  - analyze_tweet_sentiments(tweets) → list[(tweet, score)]

Batch scoring is sequential with a fixed pause between provider calls
(rate limit). Texts shorter than ``min_text_length`` after trimming score 50
without a call.

Provider payload scoring (parse_sentiment_response):
  label fields first (label, sentiment, result.*, output.*, [0].label),
  then numeric fields (score, confidence, result.score, output.score,
  [0].score), then the best-scoring label of a list, else 50.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Sequence
from dataclasses import asdict, dataclass
from typing import Any, Protocol, TypeVar

import aiohttp

from akari.config.settings import AkariConfig
from akari.connectors.rapidapi import RapidApiError, RapidApiTransport
from akari.normalizers.common import dig, round_half_up
from akari.sentiment.local_analyzer import analyze_text
from akari.utils.logger import get_logger

logger = get_logger("sentiment")

NEUTRAL_SCORE = 50
POSITIVE_THRESHOLD = 60
NEGATIVE_THRESHOLD = 40

T = TypeVar("T")


# ================================================================
# Data models
# ================================================================


@dataclass(frozen=True)
class SentimentResult:
    text: str
    label: str  # positive | negative | neutral
    confidence: float  # 0..1
    score: int  # 0..100

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# ================================================================
# Score mapping
# ================================================================


def score_to_label(
    score: float,
    positive_threshold: int = POSITIVE_THRESHOLD,
    negative_threshold: int = NEGATIVE_THRESHOLD,
) -> str:
    if score >= positive_threshold:
        return "positive"
    if score <= negative_threshold:
        return "negative"
    return "neutral"


def score_to_confidence(score: float) -> float:
    return abs(score - 50) / 50


def label_to_score(label: str) -> int:
    normalized = label.lower().strip()
    if "positive" in normalized or normalized == "pos":
        return 80
    if "negative" in normalized or normalized == "neg":
        return 20
    return NEUTRAL_SCORE


def numeric_to_score(value: float) -> int:
    """Rescale a provider number to 0-100.

    Ranges are tested in order and overlap: anything in [-1, 1] is read as
    a polarity, so 0.5 → 75. The [0, 1] probability branch therefore never
    fires; it stays for providers documented as [0, 1] should the polarity
    branch ever be narrowed.
    """
    if -1 <= value <= 1:
        return round_half_up((value + 1) / 2 * 100)
    if 0 <= value <= 1:
        return round_half_up(value * 100)
    if 0 <= value <= 100:
        return round_half_up(value)
    return NEUTRAL_SCORE


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_sentiment_response(payload: Any) -> int:
    first = payload[0] if isinstance(payload, list) and payload else None

    for candidate in (
        dig(payload, "label"),
        dig(payload, "sentiment"),
        dig(payload, "result.label"),
        dig(payload, "result.sentiment"),
        dig(payload, "output.label"),
        dig(payload, "output.sentiment"),
        dig(first, "label"),
    ):
        if candidate:
            if isinstance(candidate, str):
                return label_to_score(candidate)
            break

    for candidate in (
        dig(payload, "score"),
        dig(payload, "confidence"),
        dig(payload, "result.score"),
        dig(payload, "output.score"),
        dig(first, "score"),
    ):
        if candidate is not None:
            if _is_number(candidate):
                return numeric_to_score(candidate)
            break

    if isinstance(payload, list):
        best_label = ""
        best_score = -1.0
        for item in payload:
            if isinstance(item, dict) and _is_number(item.get("score")) and "label" in item:
                if item["score"] > best_score:
                    best_score = item["score"]
                    best_label = item.get("label") or ""
        if best_label:
            return label_to_score(str(best_label))

    return NEUTRAL_SCORE


# ================================================================
# Text prep
# ================================================================

_URL = re.compile(r"https?://\S+")
_MENTION = re.compile(r"@\w+")
_TICKER = re.compile(r"\$\w+")
_HASHTAG = re.compile(r"#(\w+)")
_RT_PREFIX = re.compile(r"^RT\s+", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")


def clean_tweet_text(text: str) -> str:
    """Strip URLs, mentions and $tickers; unwrap hashtags; drop a leading RT."""
    text = _URL.sub("", text)
    text = _MENTION.sub("", text)
    text = _TICKER.sub("", text)
    text = _HASHTAG.sub(r"\1", text)
    text = _RT_PREFIX.sub("", text)
    return _WHITESPACE.sub(" ", text).strip()


# ================================================================
# Backends
# ================================================================


class SentimentBackend(Protocol):
    async def score(self, text: str) -> int: ...

    async def close(self) -> None: ...


class RapidApiSentimentBackend:
    """sentiment-analysis38 /pipeline endpoint."""

    def __init__(self, transport: RapidApiTransport) -> None:
        self._transport = transport

    async def score(self, text: str) -> int:
        payload = await self._transport.post("/pipeline", {"input": text})
        return parse_sentiment_response(payload)

    async def close(self) -> None:
        await self._transport.close()


class LocalSentimentBackend:
    """Lexicon heuristic; no I/O."""

    async def score(self, text: str) -> int:
        return analyze_text(text)

    async def close(self) -> None:
        return None


# ================================================================
# Scorer
# ================================================================


class SentimentScorer:
    """Score texts through a backend.

    Args:
        backend: Provider or local backend.
        delay_s: Pause between consecutive provider calls in a batch.
        min_text_length: Shorter (trimmed) texts score neutral without a call.
    """

    def __init__(
        self,
        backend: SentimentBackend,
        delay_s: float = 0.1,
        min_text_length: int = 3,
        positive_threshold: int = POSITIVE_THRESHOLD,
        negative_threshold: int = NEGATIVE_THRESHOLD,
    ) -> None:
        self._backend = backend
        self._delay_s = delay_s
        self._min_text_length = min_text_length
        self._positive_threshold = positive_threshold
        self._negative_threshold = negative_threshold

    @classmethod
    def from_config(
        cls,
        config: AkariConfig,
        session: aiohttp.ClientSession | None = None,
    ) -> SentimentScorer:
        """Build the configured backend.

        Raises:
            ConfigurationError: rapidapi backend without RAPIDAPI_KEY.
        """
        settings = config.sentiment
        backend: SentimentBackend
        if settings.backend == "local":
            backend = LocalSentimentBackend()
            delay_s = 0.0
        else:
            backend = RapidApiSentimentBackend(
                RapidApiTransport.from_config(
                    config,
                    host=config.rapidapi.sentiment_host,
                    provider="sentiment-api",
                    session=session,
                )
            )
            delay_s = settings.delay_ms / 1000
        return cls(
            backend,
            delay_s=delay_s,
            min_text_length=settings.min_text_length,
            positive_threshold=settings.positive_threshold,
            negative_threshold=settings.negative_threshold,
        )

    async def close(self) -> None:
        await self._backend.close()

    def _result(self, text: str, score: int) -> SentimentResult:
        return SentimentResult(
            text=text,
            label=score_to_label(score, self._positive_threshold, self._negative_threshold),
            confidence=score_to_confidence(score),
            score=score,
        )

    def _is_scorable(self, text: str | None) -> bool:
        return bool(text) and len(text.strip()) >= self._min_text_length

    async def analyze_sentiment(self, text: str) -> SentimentResult:
        try:
            score = await self._backend.score(text)
        except RapidApiError as e:
            logger.warning("sentiment_api_error", error=str(e))
            return SentimentResult(text=text, label="neutral", confidence=0.0, score=NEUTRAL_SCORE)
        return self._result(text, score)

    async def analyze_sentiments(self, texts: Sequence[str]) -> list[int]:
        """Scores in input order; one provider call at a time."""
        scores: list[int] = []
        last = len(texts) - 1
        for i, text in enumerate(texts):
            if not self._is_scorable(text):
                scores.append(NEUTRAL_SCORE)
                continue

            result = await self.analyze_sentiment(text)
            scores.append(result.score)

            if i < last and self._delay_s > 0:
                await asyncio.sleep(self._delay_s)

        return scores

    async def analyze_sentiments_with_cache(self, texts: Sequence[str]) -> dict[str, int]:
        """Score each distinct scorable text once."""
        unique = list(dict.fromkeys(t for t in texts if self._is_scorable(t)))
        scores = await self.analyze_sentiments(unique)
        return dict(zip(unique, scores, strict=True))

    async def scores_for(self, texts: Sequence[str]) -> list[int]:
        """Per-occurrence scores, calling the backend once per distinct text."""
        cache = await self.analyze_sentiments_with_cache(texts)
        return [cache.get(t, NEUTRAL_SCORE) for t in texts]

    async def analyze_tweet_sentiments(self, tweets: Sequence[T]) -> list[tuple[T, int]]:
        """Pair each tweet with the score of its cleaned text.

        Accepts objects with a ``text`` attribute or dicts with a "text" key.
        """
        cleaned = [clean_tweet_text(_text_of(tweet)) for tweet in tweets]
        indices = [i for i, text in enumerate(cleaned) if len(text) >= self._min_text_length]
        scores = await self.analyze_sentiments([cleaned[i] for i in indices])

        by_index = dict(zip(indices, scores, strict=True))
        return [(tweet, by_index.get(i, NEUTRAL_SCORE)) for i, tweet in enumerate(tweets)]


def _text_of(item: Any) -> str:
    if isinstance(item, dict):
        return str(item.get("text") or "")
    return str(getattr(item, "text", "") or "")
