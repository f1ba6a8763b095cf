"""Tests for the keyword-lexicon sentiment heuristic."""

from __future__ import annotations

from akari.sentiment.local_analyzer import analyze_text, analyze_texts, tokenize


class TestTokenize:
    def test_drops_urls_mentions_and_single_chars(self) -> None:
        assert tokenize("Hello @bob, see https://x.com/a a #Moon!") == ["hello", "see", "moon"]

    def test_keeps_contractions(self) -> None:
        assert "don't" in tokenize("I don’t buy it")


class TestAnalyzeText:
    def test_short_or_empty_is_neutral(self) -> None:
        assert analyze_text("") == 50
        assert analyze_text("gm") == 50

    def test_no_keywords_is_neutral(self) -> None:
        assert analyze_text("hello world") == 50

    def test_all_positive_is_compressed(self) -> None:
        """Pure positive text lands at 80, not 100."""
        assert analyze_text("This is amazing and bullish") == 80

    def test_all_negative(self) -> None:
        assert analyze_text("total scam, avoid") == 20

    def test_negator_flips(self) -> None:
        assert analyze_text("not good") == 20
        assert analyze_text("don't buy") == 20

    def test_neutral_word_resets_modifiers(self) -> None:
        """very good (3) vs bad (2): 60% positive → 56."""
        assert analyze_text("very good but bad") == 56

    def test_intensifier(self) -> None:
        """extremely bullish (6) vs bad (2): 75% positive → 65."""
        assert analyze_text("extremely bullish and bad") == 65

    def test_batch(self) -> None:
        assert analyze_texts(["gm", "not good"]) == [50, 20]
