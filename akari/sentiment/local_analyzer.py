"""Keyword-lexicon sentiment heuristic.

No network. Weighted positive / negative crypto-Twitter vocabulary with
intensifiers and negators; the ratio of positive weight is compressed toward
50 so a single keyword cannot produce an extreme score.
"""

from __future__ import annotations

import re

from akari.normalizers.common import round_half_up

POSITIVE_KEYWORDS: dict[str, int] = {
    # strong
    "amazing": 3, "excellent": 3, "incredible": 3, "fantastic": 3, "brilliant": 3,
    "outstanding": 3, "exceptional": 3, "phenomenal": 3, "bullish": 3, "moon": 3,
    "gem": 3, "winner": 3, "best": 3, "love": 3, "perfect": 3,
    # medium
    "great": 2, "good": 2, "nice": 2, "happy": 2, "excited": 2, "awesome": 2,
    "solid": 2, "strong": 2, "growing": 2, "bullrun": 2, "pump": 2,
    "buy": 2, "accumulate": 2, "opportunity": 2, "potential": 2, "promising": 2,
    "undervalued": 2, "innovation": 2, "revolutionary": 2,
    # light
    "okay": 1, "fine": 1, "interesting": 1, "cool": 1, "up": 1, "green": 1,
    "gain": 1, "profit": 1, "win": 1, "positive": 1, "support": 1, "like": 1,
}  # fmt: skip

NEGATIVE_KEYWORDS: dict[str, int] = {
    # strong
    "scam": 3, "fraud": 3, "rug": 3, "rugpull": 3, "terrible": 3, "awful": 3,
    "horrible": 3, "disaster": 3, "crash": 3, "dump": 3, "dead": 3, "worthless": 3,
    "hate": 3, "worst": 3, "avoid": 3, "ponzi": 3, "fake": 3,
    # medium
    "bad": 2, "bearish": 2, "sell": 2, "selling": 2, "drop": 2, "fall": 2,
    "failing": 2, "failed": 2, "poor": 2, "weak": 2, "worried": 2, "concern": 2,
    "risk": 2, "risky": 2, "overvalued": 2, "bubble": 2, "warning": 2,
    # light
    "down": 1, "red": 1, "loss": 1, "lose": 1, "problem": 1, "issue": 1,
    "bug": 1, "delay": 1, "slow": 1, "meh": 1, "boring": 1,
}  # fmt: skip

INTENSIFIERS: dict[str, float] = {
    "very": 1.5, "really": 1.5, "extremely": 2, "super": 1.5, "so": 1.3,
    "absolutely": 2, "totally": 1.5, "completely": 1.5, "highly": 1.5,
}  # fmt: skip

NEGATORS: frozenset[str] = frozenset(
    {
        "not", "no", "never", "neither", "nobody", "nothing", "nowhere",
        "don't", "doesn't", "didn't", "won't", "wouldn't", "couldn't",
        "shouldn't", "isn't", "aren't", "wasn't", "weren't", "ain't",
    }
)  # fmt: skip

COMPRESSION = 0.6

_URL = re.compile(r"https?://\S+")
_MENTION = re.compile(r"@\w+")
_HASHTAG = re.compile(r"#(\w+)")
# apostrophes stay inside tokens so contractions reach NEGATORS
_SPLIT = re.compile(r"[\s,.!?;:\"()\[\]{}]+")


def tokenize(text: str) -> list[str]:
    cleaned = _HASHTAG.sub(r"\1", _MENTION.sub("", _URL.sub("", text.lower())))
    cleaned = cleaned.replace("’", "'")
    return [tok for tok in _SPLIT.split(cleaned) if len(tok) > 1]


def analyze_text(text: str) -> int:
    """Score ``text`` 0-100 (50 = neutral or too short)."""
    if not text or len(text.strip()) < 3:
        return 50

    positive = 0.0
    negative = 0.0
    intensifier = 1.0
    negated = False

    for i, word in enumerate(tokenize(text)):
        if word in NEGATORS:
            negated = True
            continue
        if word in INTENSIFIERS:
            intensifier = INTENSIFIERS[word]
            continue

        weight = POSITIVE_KEYWORDS.get(word)
        if weight is not None:
            if negated:
                negative += weight * intensifier
            else:
                positive += weight * intensifier
            intensifier, negated = 1.0, False
            continue

        weight = NEGATIVE_KEYWORDS.get(word)
        if weight is not None:
            if negated:
                positive += weight * intensifier
            else:
                negative += weight * intensifier
            intensifier, negated = 1.0, False
            continue

        # A neutral word breaks the modifier chain
        if i > 0:
            intensifier, negated = 1.0, False

    total = positive + negative
    if total == 0:
        return 50

    raw = positive / total * 100
    compressed = 50 + (raw - 50) * COMPRESSION
    return round_half_up(max(0.0, min(100.0, compressed)))


def analyze_texts(texts: list[str]) -> list[int]:
    return [analyze_text(t) for t in texts]
