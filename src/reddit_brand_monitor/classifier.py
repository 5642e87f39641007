"""LLM-backed sentiment classification and the rate-limited batch driver."""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Literal, Protocol

from openai import OpenAI, OpenAIError
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from tqdm import tqdm

from .analyze import KeywordSentimentClassifier, map_sentiment_to_score
from .config import MonitorConfig
from .io_utils import append_event_log
from .models import SentimentResult

SYSTEM_PROMPT = (
    "You are a sentiment analysis expert. Analyze the sentiment of Reddit posts/comments "
    "mentioning the brand {brand}. Respond with a JSON object containing the sentiment "
    "label, confidence score, and reasons for your classification."
)
USER_PROMPT = (
    "Analyze the sentiment of this Reddit content:\n\n\"{text}\"\n\n"
    'Respond with JSON: {{"label": "negative|neutral|positive", "confidence": 0.0-1.0, '
    '"reasons": ["reason1", "reason2"]}}'
)

NEUTRAL_FALLBACK = SentimentResult(
    label="neutral",
    confidence=0.5,
    score=50,
    reasons=("Classification failed, defaulting to neutral",),
)


class ClassificationError(Exception):
    """Raised when a text could not be classified into a valid result."""


class SentimentClassifier(Protocol):
    def classify(self, text: str) -> SentimentResult: ...


class ClassificationPayload(BaseModel):
    """Shape the language model must answer with."""

    model_config = ConfigDict(strict=True, extra="ignore")

    label: Literal["negative", "neutral", "positive"]
    confidence: float = Field(ge=0.0, le=1.0)
    reasons: list[str]


def parse_classification(content: str) -> SentimentResult:
    """Validate a raw JSON answer and turn it into a scored result."""
    if not content or not content.strip():
        raise ClassificationError("Empty response content from language model")
    try:
        payload = ClassificationPayload.model_validate_json(content)
    except ValidationError as exc:
        raise ClassificationError(f"Invalid classification payload: {exc}") from exc
    return SentimentResult(
        label=payload.label,
        confidence=payload.confidence,
        score=map_sentiment_to_score(payload.label, payload.confidence),
        reasons=tuple(payload.reasons),
    )


class OpenAISentimentClassifier:
    def __init__(
        self,
        api_key: str,
        model: str = "gpt-3.5-turbo",
        temperature: float = 0.1,
        max_tokens: int = 200,
        brand: str = "LifeX",
        client: OpenAI | None = None,
    ) -> None:
        if client is None:
            if not api_key:
                raise ValueError("OPENAI_API_KEY is required for the openai classifier")
            client = OpenAI(api_key=api_key)
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.brand = brand

    def classify(self, text: str) -> SentimentResult:
        if not text or not text.strip():
            raise ClassificationError("Cannot classify empty text")
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT.format(brand=self.brand)},
                    {"role": "user", "content": USER_PROMPT.format(text=text)},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                response_format={"type": "json_object"},
            )
        except OpenAIError as exc:
            raise ClassificationError(f"Language model request failed: {exc}") from exc

        choices = getattr(response, "choices", None) or []
        content = choices[0].message.content if choices else None
        return parse_classification(content or "")


def batch_classify(
    texts: list[str],
    classifier: SentimentClassifier,
    batch_size: int = 5,
    delay_seconds: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> list[SentimentResult]:
    """Classify ``texts`` in concurrent batches with a fixed pause between batches.

    Any exception raised for one item is logged and replaced by
    ``NEUTRAL_FALLBACK``; the returned list always has one result per input,
    in input order.
    """
    size = max(batch_size, 1)
    results: list[SentimentResult] = []

    def _classify_one(text: str) -> SentimentResult:
        try:
            return classifier.classify(text)
        except Exception as exc:
            append_event_log(
                "error",
                stage="batch_classify",
                text_preview=text[:100],
                error=f"{type(exc).__name__}: {exc}",
            )
            return NEUTRAL_FALLBACK

    with tqdm(total=len(texts), desc="Classifying mentions") as progress:
        for start in range(0, len(texts), size):
            batch = texts[start : start + size]
            with ThreadPoolExecutor(max_workers=len(batch)) as executor:
                batch_results = list(executor.map(_classify_one, batch))
            results.extend(batch_results)
            progress.update(len(batch))

            if start + size < len(texts):
                sleep(delay_seconds)

    return results


def build_classifier(config: MonitorConfig) -> SentimentClassifier:
    if config.classifier == "openai":
        brand = config.brand_terms[0] if config.brand_terms else "the brand"
        return OpenAISentimentClassifier(
            api_key=config.openai_api_key,
            model=config.openai_model,
            temperature=config.openai_temperature,
            max_tokens=config.openai_max_tokens,
            brand=brand,
        )
    if config.classifier == "keyword":
        return KeywordSentimentClassifier(score_mode=config.keyword_score_mode)
    raise ValueError(f"Unsupported classifier backend: {config.classifier}")
