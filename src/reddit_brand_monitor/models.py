"""Records shared by the classifiers, the store and the analytics layer."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any

LABELS = ("negative", "neutral", "positive")

POST_PREFIX = "t3_"
COMMENT_PREFIX = "t1_"


@dataclass(frozen=True, slots=True)
class SentimentResult:
    """One classification of one piece of text."""

    label: str
    confidence: float
    score: int
    reasons: tuple[str, ...] = ()


def mention_type_from_id(mention_id: str) -> str:
    """Infer ``post`` or ``comment`` from a Reddit fullname prefix."""
    if mention_id.startswith(POST_PREFIX):
        return "post"
    if mention_id.startswith(COMMENT_PREFIX):
        return "comment"
    raise ValueError(f"Unrecognized Reddit id prefix: {mention_id!r}")


def validate_label(label: str) -> str:
    if label not in LABELS:
        raise ValueError(f"Invalid label {label!r}. Must be one of: {', '.join(LABELS)}")
    return label


@dataclass(slots=True)
class Mention:
    """A Reddit post or comment that matched the tracked brand terms.

    Manual tags live beside the automated classification and never replace it;
    ``effective_label`` and ``effective_score`` give the value to display.
    """

    id: str
    type: str
    subreddit: str
    permalink: str
    created_utc: int
    label: str
    confidence: float
    score: int
    author: str | None = None
    title: str | None = None
    body: str | None = None
    keywords_matched: list[str] = field(default_factory=list)
    ingested_at: str = ""
    num_comments: int = 0
    upvotes: int = 0
    ignored: bool = False
    urgent: bool = False
    manual_label: str | None = None
    manual_score: int | None = None
    tagged_by: str | None = None
    tagged_at: str | None = None

    @property
    def effective_label(self) -> str:
        return self.manual_label or self.label

    @property
    def effective_score(self) -> int:
        return self.manual_score if self.manual_score is not None else self.score

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Mention":
        known = {item.name for item in fields(cls)}
        values = {key: value for key, value in data.items() if key in known}
        values["keywords_matched"] = list(values.get("keywords_matched") or [])
        return cls(**values)
