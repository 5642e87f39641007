"""Keyword sentiment scoring, score mapping and tracked-term matching."""

from __future__ import annotations

import math

from .models import SentimentResult

POSITIVE_WORDS = [
    "good", "great", "excellent", "amazing", "love", "best", "awesome", "fantastic",
    "wonderful", "perfect", "impressed", "satisfied", "happy", "pleased", "recommend",
    "helpful", "effective", "working", "success", "breakthrough", "innovation", "promising",
    "exciting", "beneficial", "valuable", "quality", "reliable", "outstanding", "superior",
    "exceptional", "remarkable", "impressive", "top-notch",
]

NEGATIVE_WORDS = [
    "bad", "terrible", "awful", "hate", "worst", "horrible", "disappointed", "frustrated",
    "angry", "annoyed", "scam", "fraud", "fake", "useless", "waste", "problem", "issue",
    "complaint", "broken", "failed", "overpriced", "expensive", "poor", "unreliable",
    "misleading", "deceptive", "unethical", "illegal", "disgusting", "pathetic", "ridiculous",
    "stupid", "dumb", "garbage", "trash", "sucks",
]

RED_FLAG_TERMS = ["scam", "fraud", "fake", "pyramid", "mlm", "scheme"]
HIGH_SIGNAL_POSITIVE_TERMS = [
    "breakthrough", "innovation", "promising", "clinical trial", "funding", "investment",
]

_LABEL_BASE = {"negative": 10, "neutral": 50, "positive": 90}
_LABEL_DIRECTION = {"negative": -1, "neutral": 0, "positive": 1}


def map_sentiment_to_score(label: str, confidence: float) -> int:
    """Map a label and confidence onto the 1-100 brand-health scale.

    Negative anchors at 10, neutral at 50 and positive at 90; confidence moves
    the score by up to 10 points away from neutral. Neutral is always 50.
    """
    raw = _LABEL_BASE[label] + confidence * 10 * _LABEL_DIRECTION[label]
    # Half-up rounding, not round-half-even.
    score = math.floor(raw + 0.5)
    return max(1, min(100, score))


def _present(text: str, words: list[str]) -> list[str]:
    return [word for word in words if word in text]


def score_keywords(text: str) -> SentimentResult:
    """Classify text with the keyword heuristic.

    Matching is by substring on the lower-cased text, so ``scam`` also fires
    on ``scammer``. Red-flag terms win over everything, then high-signal
    positive terms, then a plain count comparison of dictionary hits.
    """
    lowered = (text or "").lower()
    positive_hits = _present(lowered, POSITIVE_WORDS)
    negative_hits = _present(lowered, NEGATIVE_WORDS)
    positive_count = len(positive_hits)
    negative_count = len(negative_hits)

    red_flags = _present(lowered, RED_FLAG_TERMS)
    if red_flags:
        return SentimentResult(
            label="negative",
            confidence=0.9,
            score=max(1, 10 - negative_count * 5),
            reasons=tuple(f"red flag: {term}" for term in red_flags),
        )

    high_signal = _present(lowered, HIGH_SIGNAL_POSITIVE_TERMS)
    if high_signal:
        return SentimentResult(
            label="positive",
            confidence=0.8,
            score=min(100, 90 + positive_count * 5),
            reasons=tuple(f"high signal: {term}" for term in high_signal),
        )

    if positive_count > negative_count:
        return SentimentResult(
            label="positive",
            confidence=0.7,
            score=min(100, 70 + positive_count * 8),
            reasons=tuple(positive_hits),
        )
    if negative_count > positive_count:
        return SentimentResult(
            label="negative",
            confidence=0.7,
            score=max(1, 30 - negative_count * 8),
            reasons=tuple(negative_hits),
        )
    return SentimentResult(label="neutral", confidence=0.5, score=50)


def match_keywords(text: str, terms: list[str]) -> list[str]:
    """Return the configured terms found in ``text``, keeping their configured casing."""
    lowered = (text or "").lower()
    return [term for term in terms if term.lower() in lowered]


class KeywordSentimentClassifier:
    """Expose the keyword heuristic through the ``classify(text)`` protocol.

    ``legacy`` keeps the heuristic's own per-branch score. ``mapped`` derives
    the score from the label and confidence via ``map_sentiment_to_score`` so
    stored mentions agree with the LLM path.
    """

    def __init__(self, score_mode: str = "mapped") -> None:
        if score_mode not in {"legacy", "mapped"}:
            raise ValueError(f"Unsupported keyword score mode: {score_mode}")
        self.score_mode = score_mode

    def classify(self, text: str) -> SentimentResult:
        result = score_keywords(text)
        if self.score_mode == "legacy":
            return result
        return SentimentResult(
            label=result.label,
            confidence=result.confidence,
            score=map_sentiment_to_score(result.label, result.confidence),
            reasons=result.reasons,
        )
