from __future__ import annotations

import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path

import pandas as pd

from reddit_brand_monitor.aggregate import (
    daily_sentiment,
    export_mentions_csv,
    sentiment_stats,
    subreddit_breakdown,
    to_frame,
)
from reddit_brand_monitor.models import Mention

NOW = datetime(2026, 2, 12, 12, 0, tzinfo=timezone.utc)


def at(year: int, month: int, day: int) -> int:
    return int(datetime(year, month, day, 12, 0, tzinfo=timezone.utc).timestamp())


def mention(
    mention_id: str,
    label: str,
    score: int,
    created_utc: int,
    subreddit: str = "longevity",
    manual_label: str | None = None,
    manual_score: int | None = None,
) -> Mention:
    return Mention(
        id=mention_id,
        type="post" if mention_id.startswith("t3_") else "comment",
        subreddit=subreddit,
        permalink=f"/r/{subreddit}/{mention_id}",
        created_utc=created_utc,
        label=label,
        confidence=0.7,
        score=score,
        body="text",
        keywords_matched=["lifex", "lifex research"],
        manual_label=manual_label,
        manual_score=manual_score,
    )


def sample_mentions() -> list[Mention]:
    return [
        mention("t3_a", "negative", 3, at(2026, 2, 10)),
        mention("t1_b", "positive", 97, at(2026, 2, 10), subreddit="biohackers"),
        mention("t1_c", "negative", 3, at(2026, 2, 11), manual_label="positive", manual_score=100),
        mention("t3_d", "neutral", 50, at(2026, 2, 11)),
        mention("t3_old", "negative", 1, at(2025, 1, 5)),
    ]


class AggregateTests(unittest.TestCase):
    def test_to_frame_exposes_effective_columns(self) -> None:
        frame = to_frame(sample_mentions())
        row = frame.set_index("id").loc["t1_c"]
        self.assertEqual(row["effective_label"], "positive")
        self.assertEqual(row["effective_score"], 100)
        self.assertEqual(row["keywords_matched"], "lifex; lifex research")

    def test_daily_sentiment_within_window(self) -> None:
        daily = daily_sentiment(to_frame(sample_mentions()), time_range="30d", now=NOW)

        self.assertEqual(list(daily["date"]), ["2026-02-10", "2026-02-11"])
        first, second = daily.iloc[0], daily.iloc[1]
        self.assertEqual((first["negative"], first["neutral"], first["positive"]), (1, 0, 1))
        self.assertEqual((second["negative"], second["neutral"], second["positive"]), (0, 1, 1))
        self.assertEqual(list(daily["total"]), [2, 2])

    def test_all_time_range_includes_old_mentions(self) -> None:
        daily = daily_sentiment(to_frame(sample_mentions()), time_range="all", now=NOW)
        self.assertEqual(daily["date"].iloc[0], "2025-01-05")
        self.assertEqual(int(daily["total"].sum()), 5)

    def test_unknown_time_range(self) -> None:
        with self.assertRaises(ValueError):
            daily_sentiment(to_frame(sample_mentions()), time_range="1y", now=NOW)

    def test_sentiment_stats(self) -> None:
        stats = sentiment_stats(to_frame(sample_mentions()))
        self.assertEqual(stats["total"], 5)
        self.assertEqual(stats["negative"], 2)
        self.assertEqual(stats["positive"], 2)
        self.assertEqual(stats["neutral"], 1)
        self.assertAlmostEqual(stats["negative_percentage"], 40.0)
        self.assertAlmostEqual(stats["average_score"], (3 + 97 + 100 + 50 + 1) / 5)

    def test_empty_inputs(self) -> None:
        frame = to_frame([])
        self.assertTrue(daily_sentiment(frame, time_range="all").empty)
        self.assertEqual(sentiment_stats(frame)["total"], 0)
        self.assertTrue(subreddit_breakdown(frame).empty)

    def test_subreddit_breakdown(self) -> None:
        breakdown = subreddit_breakdown(to_frame(sample_mentions()))
        self.assertEqual(list(breakdown["subreddit"]), ["longevity", "biohackers"])
        self.assertEqual(int(breakdown.iloc[0]["mentions"]), 4)
        self.assertEqual(int(breakdown.iloc[0]["negative"]), 2)

    def test_export_mentions_csv(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            destination = Path(tmpdir) / "exports" / "mentions.csv"
            export_mentions_csv(sample_mentions(), destination)

            exported = pd.read_csv(destination)
            self.assertEqual(len(exported), 5)
            self.assertIn("effective_label", exported.columns)


if __name__ == "__main__":
    unittest.main()
