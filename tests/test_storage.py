from __future__ import annotations

import json
import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path

from reddit_brand_monitor.models import Mention, mention_type_from_id
from reddit_brand_monitor.storage import MentionNotFoundError, MentionStore


def make_mention(
    mention_id: str,
    label: str = "neutral",
    score: int = 50,
    confidence: float = 0.5,
    subreddit: str = "longevity",
    created_utc: int = 1_700_000_000,
) -> Mention:
    return Mention(
        id=mention_id,
        type=mention_type_from_id(mention_id),
        subreddit=subreddit,
        permalink=f"/r/{subreddit}/comments/{mention_id}",
        created_utc=created_utc,
        label=label,
        confidence=confidence,
        score=score,
        author="someone",
        title="LifeX update" if mention_id.startswith("t3_") else None,
        body="Body text",
        keywords_matched=["lifex"],
    )


class MentionModelTests(unittest.TestCase):
    def test_type_inferred_from_prefix(self) -> None:
        self.assertEqual(mention_type_from_id("t3_abc"), "post")
        self.assertEqual(mention_type_from_id("t1_abc"), "comment")
        with self.assertRaises(ValueError):
            mention_type_from_id("abc")

    def test_effective_values_prefer_manual_override(self) -> None:
        mention = make_mention("t3_a", label="negative", score=3)
        self.assertEqual(mention.effective_label, "negative")
        mention.manual_label = "positive"
        mention.manual_score = 100
        self.assertEqual(mention.effective_label, "positive")
        self.assertEqual(mention.effective_score, 100)
        self.assertEqual(mention.label, "negative")

    def test_from_dict_ignores_unknown_keys(self) -> None:
        data = make_mention("t1_c").to_dict()
        data["legacyField"] = "ignored"
        restored = Mention.from_dict(data)
        self.assertEqual(restored.id, "t1_c")
        self.assertIsNone(restored.title)


class MentionStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmpdir.cleanup)
        self.path = Path(self._tmpdir.name) / "data" / "reddit-data.json"
        self.store = MentionStore(self.path)

    def test_empty_store(self) -> None:
        self.assertEqual(self.store.all(), [])
        self.assertIsNone(self.store.latest_created_utc())

    def test_add_many_skips_duplicate_ids(self) -> None:
        first = self.store.add_many([make_mention("t3_a"), make_mention("t1_b")])
        second = self.store.add_many([make_mention("t3_a"), make_mention("t1_c")])

        self.assertEqual(first, 2)
        self.assertEqual(second, 1)
        self.assertEqual([m.id for m in self.store.all()], ["t3_a", "t1_b", "t1_c"])

        raw = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertIn("lastUpdated", raw)
        self.assertEqual(len(raw["mentions"]), 3)

    def test_latest_created_utc(self) -> None:
        self.store.add_many(
            [
                make_mention("t3_a", created_utc=100),
                make_mention("t3_b", created_utc=300),
                make_mention("t1_c", created_utc=200),
            ]
        )
        self.assertEqual(self.store.latest_created_utc(), 300)

    def test_tag_keeps_automated_classification(self) -> None:
        self.store.add_many([make_mention("t3_a", label="negative", score=3, confidence=0.7)])
        now = datetime(2026, 2, 12, 12, 0, tzinfo=timezone.utc)

        tagged = self.store.tag("t3_a", "positive", tagged_by="analyst", now=now)

        self.assertEqual(tagged.manual_label, "positive")
        self.assertEqual(tagged.manual_score, 100)
        self.assertEqual(tagged.tagged_by, "analyst")
        self.assertEqual(tagged.tagged_at, now.isoformat())

        stored = self.store.get("t3_a")
        self.assertEqual(stored.label, "negative")
        self.assertEqual(stored.score, 3)
        self.assertEqual(stored.effective_label, "positive")

        restored = self.store.untag("t3_a")
        self.assertIsNone(restored.manual_label)
        self.assertIsNone(self.store.get("t3_a").tagged_by)
        self.assertEqual(self.store.get("t3_a").effective_score, 3)

    def test_tag_validation(self) -> None:
        self.store.add_many([make_mention("t3_a")])
        with self.assertRaises(ValueError):
            self.store.tag("t3_a", "mixed")
        with self.assertRaises(MentionNotFoundError):
            self.store.tag("t3_missing", "positive")
        with self.assertRaises(KeyError):
            self.store.set_urgent("t3_missing", True)

    def test_ignored_mentions_are_hidden_by_default(self) -> None:
        self.store.add_many([make_mention("t3_a"), make_mention("t3_b")])
        self.store.set_ignored("t3_a", True)

        self.assertEqual([m.id for m in self.store.query().mentions], ["t3_b"])
        self.assertEqual(self.store.query(show_ignored=True).total, 2)

        self.store.set_ignored("t3_a", False)
        self.assertEqual(self.store.query().total, 2)

    def test_urgent_filter(self) -> None:
        self.store.add_many([make_mention("t3_a"), make_mention("t3_b")])
        self.store.set_urgent("t3_b", True)

        page = self.store.query(urgent_only=True)
        self.assertEqual([m.id for m in page.mentions], ["t3_b"])
        with self.assertRaises(ValueError):
            self.store.set_urgent("t3_b", "yes")

    def test_query_filters_on_effective_label_and_subreddit(self) -> None:
        self.store.add_many(
            [
                make_mention("t3_a", label="negative", score=3, subreddit="Longevity"),
                make_mention("t3_b", label="positive", score=97, subreddit="biohackers"),
                make_mention("t1_c", label="negative", score=1, subreddit="longevity"),
            ]
        )
        self.store.tag("t1_c", "neutral")

        negatives = self.store.query(label="negative")
        self.assertEqual([m.id for m in negatives.mentions], ["t3_a"])

        longevity = self.store.query(subreddit="LONGE")
        self.assertEqual({m.id for m in longevity.mentions}, {"t3_a", "t1_c"})

    def test_query_sorts_and_paginates(self) -> None:
        self.store.add_many(
            [
                make_mention(f"t3_{index}", score=score, created_utc=1_700_000_000 + index)
                for index, score in enumerate([40, 10, 90, 60, 20])
            ]
        )

        newest = self.store.query(limit=2, page=2)
        self.assertEqual([m.id for m in newest.mentions], ["t3_2", "t3_1"])
        self.assertEqual(newest.total, 5)
        self.assertEqual(newest.total_pages, 3)
        self.assertTrue(newest.has_more)

        lowest = self.store.query(sort_by="score", descending=False, limit=3)
        self.assertEqual([m.effective_score for m in lowest.mentions], [10, 20, 40])

        self.assertEqual(self.store.query(limit=500).limit, 100)
        with self.assertRaises(ValueError):
            self.store.query(sort_by="body")


if __name__ == "__main__":
    unittest.main()
