from __future__ import annotations

import unittest

from reddit_brand_monitor.analyze import (
    KeywordSentimentClassifier,
    map_sentiment_to_score,
    match_keywords,
    score_keywords,
)
from reddit_brand_monitor.models import LABELS


class ScoreMapperTests(unittest.TestCase):
    def test_neutral_ignores_confidence(self) -> None:
        for confidence in (0.0, 0.1, 0.3, 0.5, 0.9, 1.0):
            self.assertEqual(map_sentiment_to_score("neutral", confidence), 50)

    def test_anchor_values(self) -> None:
        self.assertEqual(map_sentiment_to_score("negative", 0), 10)
        self.assertEqual(map_sentiment_to_score("negative", 1), 1)
        self.assertEqual(map_sentiment_to_score("positive", 0), 90)
        self.assertEqual(map_sentiment_to_score("positive", 1), 100)

    def test_halves_round_up(self) -> None:
        self.assertEqual(map_sentiment_to_score("positive", 0.25), 93)
        self.assertEqual(map_sentiment_to_score("negative", 0.25), 8)

    def test_output_is_always_an_int_in_range(self) -> None:
        for label in LABELS:
            for step in range(0, 21):
                score = map_sentiment_to_score(label, step / 20)
                self.assertIsInstance(score, int)
                self.assertGreaterEqual(score, 1)
                self.assertLessEqual(score, 100)


class KeywordScorerTests(unittest.TestCase):
    def test_empty_text_is_neutral(self) -> None:
        result = score_keywords("")
        self.assertEqual(result.label, "neutral")
        self.assertEqual(result.score, 50)
        self.assertEqual(result.confidence, 0.5)

    def test_red_flag_terms_override(self) -> None:
        result = score_keywords("this is a total scam and fraud")
        self.assertEqual(result.label, "negative")
        self.assertEqual(result.confidence, 0.9)
        self.assertEqual(result.score, 1)

    def test_red_flag_beats_high_signal_positive(self) -> None:
        result = score_keywords("Promising product but honestly a scam")
        self.assertEqual(result.label, "negative")
        self.assertEqual(result.confidence, 0.9)

    def test_substring_matching_catches_longer_words(self) -> None:
        result = score_keywords("watch out for this scammer")
        self.assertEqual(result.label, "negative")
        self.assertEqual(result.score, 5)

    def test_high_signal_positive_override(self) -> None:
        result = score_keywords("amazing breakthrough in this field")
        self.assertEqual(result.label, "positive")
        self.assertEqual(result.confidence, 0.8)
        self.assertEqual(result.score, 100)

        funding = score_keywords("The funding round closed")
        self.assertEqual(funding.label, "positive")
        self.assertEqual(funding.score, 90)

    def test_generic_positive_count(self) -> None:
        result = score_keywords("good great excellent")
        self.assertEqual(result.label, "positive")
        self.assertEqual(result.score, 94)
        self.assertEqual(result.confidence, 0.7)

    def test_generic_negative_count(self) -> None:
        result = score_keywords("I had a bad experience, terrible support")
        self.assertEqual(result.label, "negative")
        self.assertEqual(result.score, 14)
        self.assertEqual(result.confidence, 0.7)

    def test_tie_is_neutral(self) -> None:
        result = score_keywords("good but bad")
        self.assertEqual(result.label, "neutral")
        self.assertEqual(result.score, 50)


class KeywordMatcherTests(unittest.TestCase):
    def test_matches_case_insensitively(self) -> None:
        self.assertEqual(match_keywords("I love LifeX products", ["lifex"]), ["lifex"])
        self.assertEqual(match_keywords("no match here", ["lifex"]), [])

    def test_keeps_configured_casing_and_order(self) -> None:
        matched = match_keywords("lifex research is cool", ["LifeX", "LifeX Research", "Other"])
        self.assertEqual(matched, ["LifeX", "LifeX Research"])

    def test_empty_text(self) -> None:
        self.assertEqual(match_keywords("", ["lifex"]), [])


class KeywordClassifierTests(unittest.TestCase):
    def test_mapped_mode_uses_score_mapper(self) -> None:
        result = KeywordSentimentClassifier("mapped").classify("good great excellent")
        self.assertEqual(result.label, "positive")
        self.assertEqual(result.score, map_sentiment_to_score("positive", 0.7))
        self.assertEqual(result.score, 97)

    def test_legacy_mode_keeps_heuristic_score(self) -> None:
        result = KeywordSentimentClassifier("legacy").classify("good great excellent")
        self.assertEqual(result.score, 94)

    def test_rejects_unknown_mode(self) -> None:
        with self.assertRaises(ValueError):
            KeywordSentimentClassifier("fuzzy")


if __name__ == "__main__":
    unittest.main()
