"""Aggregation helpers for the analytics views and CSV exports."""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pandas as pd

from .io_utils import save_csv
from .models import LABELS, Mention

ALL_TIME_START = datetime(2023, 1, 1, tzinfo=timezone.utc)
TIME_RANGES = {"7d": 7, "30d": 30, "90d": 90}

MENTION_COLUMNS = [
    "id",
    "type",
    "subreddit",
    "author",
    "title",
    "body",
    "permalink",
    "created_ts",
    "label",
    "confidence",
    "score",
    "effective_label",
    "effective_score",
    "keywords_matched",
    "ignored",
    "urgent",
    "tagged_by",
]


def to_frame(mentions: list[Mention]) -> pd.DataFrame:
    """Convert mentions to a DataFrame with effective label/score and UTC timestamps."""
    if not mentions:
        return pd.DataFrame(columns=MENTION_COLUMNS)
    frame = pd.DataFrame(asdict(mention) for mention in mentions)
    frame["effective_label"] = [mention.effective_label for mention in mentions]
    frame["effective_score"] = [mention.effective_score for mention in mentions]
    frame["created_ts"] = pd.to_datetime(frame["created_utc"], unit="s", utc=True)
    frame["keywords_matched"] = frame["keywords_matched"].map(lambda terms: "; ".join(terms))
    return frame


def range_start(time_range: str, now: datetime | None = None) -> datetime:
    if time_range == "all":
        return ALL_TIME_START
    if time_range not in TIME_RANGES:
        raise ValueError(f"Unsupported time range: {time_range}")
    runtime = now or datetime.now(tz=timezone.utc)
    return runtime - timedelta(days=TIME_RANGES[time_range])


def daily_sentiment(
    frame: pd.DataFrame, time_range: str = "30d", now: datetime | None = None
) -> pd.DataFrame:
    """Count mentions per UTC day and label within the requested window."""
    columns = ["date", *LABELS, "total"]
    start = pd.Timestamp(range_start(time_range, now))
    if frame.empty:
        return pd.DataFrame(columns=columns)

    window = frame[frame["created_ts"] >= start]
    if window.empty:
        return pd.DataFrame(columns=columns)

    counts = (
        window.assign(date=window["created_ts"].dt.strftime("%Y-%m-%d"))
        .groupby(["date", "effective_label"])
        .size()
        .unstack(fill_value=0)
        .reindex(columns=list(LABELS), fill_value=0)
    )
    counts["total"] = counts.sum(axis=1)
    return counts.reset_index().sort_values("date").reset_index(drop=True)[columns]


def sentiment_stats(frame: pd.DataFrame) -> dict[str, float | int]:
    """Overall totals and percentages per effective label."""
    total = int(len(frame))
    stats: dict[str, float | int] = {"total": total}
    for label in LABELS:
        count = int((frame["effective_label"] == label).sum()) if total else 0
        stats[label] = count
        stats[f"{label}_percentage"] = (count / total) * 100.0 if total else 0.0
    stats["average_score"] = float(frame["effective_score"].mean()) if total else 0.0
    return stats


def subreddit_breakdown(frame: pd.DataFrame) -> pd.DataFrame:
    """Mentions and average score per subreddit, busiest first."""
    if frame.empty:
        return pd.DataFrame(columns=["subreddit", "mentions", "avg_score", "negative"])
    return (
        frame.groupby("subreddit", as_index=False)
        .agg(
            mentions=("id", "count"),
            avg_score=("effective_score", "mean"),
            negative=("effective_label", lambda s: int((s == "negative").sum())),
        )
        .sort_values(["mentions", "subreddit"], ascending=[False, True])
        .reset_index(drop=True)
    )


def export_mentions_csv(mentions: list[Mention], output_path: str | Path) -> pd.DataFrame:
    frame = to_frame(mentions).reindex(columns=MENTION_COLUMNS)
    save_csv(frame, output_path)
    return frame
