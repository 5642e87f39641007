"""JSON-file persistence for mentions and their triage state."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from .analyze import map_sentiment_to_score
from .io_utils import load_json, save_json, utc_now_iso
from .models import Mention, validate_label

MAX_PAGE_LIMIT = 100
SORT_FIELDS = {"created_utc", "score", "confidence", "subreddit", "ingested_at", "upvotes"}


class MentionNotFoundError(KeyError):
    """Raised when a mention id is not present in the store."""


@dataclass(slots=True)
class MentionPage:
    mentions: list[Mention]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_more(self) -> bool:
        return self.page * self.limit < self.total


class MentionStore:
    """Mentions kept in a single ``{"mentions": [...], "lastUpdated": ...}`` file.

    Every mutating call reads the file, applies the change and writes it back.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _read(self) -> list[Mention]:
        if not self.path.exists():
            return []
        raw = load_json(self.path)
        return [Mention.from_dict(item) for item in raw.get("mentions", [])]

    def _write(self, mentions: list[Mention]) -> None:
        save_json(
            {"mentions": [mention.to_dict() for mention in mentions], "lastUpdated": utc_now_iso()},
            self.path,
        )

    def all(self) -> list[Mention]:
        return self._read()

    def get(self, mention_id: str) -> Mention:
        for mention in self._read():
            if mention.id == mention_id:
                return mention
        raise MentionNotFoundError(mention_id)

    def add_many(self, mentions: list[Mention]) -> int:
        """Insert mentions whose ids are not stored yet; return how many were added."""
        existing = self._read()
        seen = {mention.id for mention in existing}
        added = 0
        for mention in mentions:
            if mention.id in seen:
                continue
            existing.append(mention)
            seen.add(mention.id)
            added += 1
        if added:
            self._write(existing)
        return added

    def latest_created_utc(self) -> int | None:
        mentions = self._read()
        if not mentions:
            return None
        return max(mention.created_utc for mention in mentions)

    def _update(self, mention_id: str, change) -> Mention:
        mentions = self._read()
        for mention in mentions:
            if mention.id == mention_id:
                change(mention)
                self._write(mentions)
                return mention
        raise MentionNotFoundError(mention_id)

    def tag(
        self,
        mention_id: str,
        label: str,
        tagged_by: str = "user",
        now: datetime | None = None,
    ) -> Mention:
        """Record a manual label; the manual score uses full confidence."""
        validate_label(label)
        tagged_at = (now or datetime.now(tz=timezone.utc)).isoformat()

        def change(mention: Mention) -> None:
            mention.manual_label = label
            mention.manual_score = map_sentiment_to_score(label, 1.0)
            mention.tagged_by = tagged_by
            mention.tagged_at = tagged_at

        return self._update(mention_id, change)

    def untag(self, mention_id: str) -> Mention:
        def change(mention: Mention) -> None:
            mention.manual_label = None
            mention.manual_score = None
            mention.tagged_by = None
            mention.tagged_at = None

        return self._update(mention_id, change)

    def set_ignored(self, mention_id: str, ignored: bool) -> Mention:
        if not isinstance(ignored, bool):
            raise ValueError("Invalid ignored value. Must be boolean")

        def change(mention: Mention) -> None:
            mention.ignored = ignored

        return self._update(mention_id, change)

    def set_urgent(self, mention_id: str, urgent: bool) -> Mention:
        if not isinstance(urgent, bool):
            raise ValueError("Invalid urgent value. Must be boolean")

        def change(mention: Mention) -> None:
            mention.urgent = urgent

        return self._update(mention_id, change)

    def query(
        self,
        label: str | None = None,
        subreddit: str | None = None,
        show_ignored: bool = False,
        urgent_only: bool = False,
        sort_by: str = "created_utc",
        descending: bool = True,
        page: int = 1,
        limit: int = 20,
    ) -> MentionPage:
        """Filter, sort and paginate mentions the way the dashboard lists them."""
        if label is not None:
            validate_label(label)
        if sort_by not in SORT_FIELDS:
            raise ValueError(f"Unsupported sort field: {sort_by}")
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_LIMIT)

        selected = self._read()
        if not show_ignored:
            selected = [mention for mention in selected if not mention.ignored]
        if urgent_only:
            selected = [mention for mention in selected if mention.urgent]
        if label is not None:
            selected = [mention for mention in selected if mention.effective_label == label]
        if subreddit:
            needle = subreddit.lower()
            selected = [mention for mention in selected if needle in mention.subreddit.lower()]

        def sort_key(mention: Mention):
            if sort_by == "score":
                return mention.effective_score
            return getattr(mention, sort_by)

        selected.sort(key=sort_key, reverse=descending)

        start = (page - 1) * limit
        return MentionPage(
            mentions=selected[start : start + limit],
            page=page,
            limit=limit,
            total=len(selected),
        )
