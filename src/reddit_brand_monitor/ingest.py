"""Ingestion cycle and its long-running scheduler."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Tuple

from tqdm import tqdm

from .aggregate import export_mentions_csv
from .analyze import match_keywords
from .classifier import NEUTRAL_FALLBACK, SentimentClassifier, batch_classify, build_classifier
from .config import MonitorConfig
from .io_utils import append_event_log, emit_progress
from .models import Mention, SentimentResult
from .notifiers import Notifier, build_mentions_report, build_notifier
from .scraper import fetch_new_mentions
from .storage import MentionStore

Fetcher = Callable[[MonitorConfig, int], Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]]

TOP_NEGATIVE_LIMIT = 10


@dataclass(slots=True)
class IngestResult:
    new_mentions: int
    total_processed: int
    failed_classifications: int = 0
    top_negative: list[Mention] = field(default_factory=list)
    report_sent: bool = False


def item_text(item: Dict[str, Any]) -> str:
    """Text to classify: title and body for posts, body alone for comments."""
    if item.get("type") == "post":
        return f"{item.get('title') or ''} {item.get('body') or ''}".strip()
    return (item.get("body") or "").strip()


def build_mention(
    item: Dict[str, Any],
    result: SentimentResult,
    brand_terms: list[str],
    ingested_at: str,
) -> Mention:
    text = item_text(item)
    return Mention(
        id=item["id"],
        type=item["type"],
        subreddit=item.get("subreddit", ""),
        permalink=item.get("permalink", ""),
        author=item.get("author"),
        title=item.get("title") if item["type"] == "post" else None,
        body=item.get("body"),
        created_utc=int(item.get("created_utc") or 0),
        label=result.label,
        confidence=result.confidence,
        score=result.score,
        keywords_matched=match_keywords(text, brand_terms),
        ingested_at=ingested_at,
        num_comments=int(item.get("num_comments") or 0),
        upvotes=int(item.get("score") or 0),
    )


class IngestService:
    def __init__(
        self,
        config: MonitorConfig,
        store: MentionStore | None = None,
        classifier: SentimentClassifier | None = None,
        fetcher: Fetcher = fetch_new_mentions,
        notifier: Notifier | None = None,
    ) -> None:
        self.config = config
        self.store = store or MentionStore(config.data_file)
        self.classifier = classifier or build_classifier(config)
        self.fetcher = fetcher
        self.notifier = notifier if notifier is not None else build_notifier(config)

    def since_timestamp(self) -> int:
        latest = self.store.latest_created_utc()
        if latest is not None:
            return latest
        return int(self.config.start_from.timestamp())

    def classify_texts(self, texts: list[str]) -> list[SentimentResult]:
        if self.config.classifier == "openai":
            return batch_classify(
                texts,
                self.classifier,
                batch_size=self.config.batch_size,
                delay_seconds=self.config.batch_delay_s,
            )
        return [self.classifier.classify(text) for text in tqdm(texts, desc="Classifying mentions")]

    def run_ingestion(self, now: datetime | None = None) -> IngestResult:
        """Fetch, classify and store every mention not yet in the store.

        Fetching starts at the newest stored second inclusive, so items that
        share that second are still picked up; ids already stored are dropped
        before classification.
        """
        runtime = now or datetime.now(tz=timezone.utc)
        since = self.since_timestamp()
        emit_progress(
            "ingest",
            "Fetching mentions",
            since=datetime.fromtimestamp(since, tz=timezone.utc).isoformat(),
        )

        posts, comments = self.fetcher(self.config, since)
        known_ids = {mention.id for mention in self.store.all()}
        items = [
            item
            for item in [*posts, *comments]
            if item["id"] not in known_ids and item_text(item)
        ]
        emit_progress(
            "ingest",
            "Found new items",
            posts=len(posts),
            comments=len(comments),
            classifiable=len(items),
        )
        if not items:
            return IngestResult(new_mentions=0, total_processed=0)

        results = self.classify_texts([item_text(item) for item in items])
        failed = sum(1 for result in results if result is NEUTRAL_FALLBACK)
        ingested_at = runtime.isoformat()
        mentions = [
            build_mention(item, result, self.config.brand_terms, ingested_at)
            for item, result in zip(items, results)
        ]

        added = self.store.add_many(mentions)
        top_negative = sorted(
            (m for m in mentions if m.effective_label == "negative"),
            key=lambda m: m.effective_score,
        )[:TOP_NEGATIVE_LIMIT]

        emit_progress(
            "ingest",
            "Ingestion completed",
            new_mentions=added,
            total_processed=len(mentions),
            failed_classifications=failed,
        )
        result = IngestResult(
            new_mentions=added,
            total_processed=len(mentions),
            failed_classifications=failed,
            top_negative=top_negative,
        )
        result.report_sent = self.send_report(result, mentions, runtime)
        return result

    def send_report(
        self, result: IngestResult, mentions: list[Mention], runtime: datetime
    ) -> bool:
        """Mail the new-mentions report; a failed send is logged, never raised."""
        if self.notifier is None or result.new_mentions == 0:
            return False

        brand = self.config.brand_terms[0] if self.config.brand_terms else "Brand"
        subject, body = build_mentions_report(
            brand, result.new_mentions, result.top_negative, runtime
        )
        attachment = self.config.output_dir / f"mentions-{runtime:%Y-%m-%d}.csv"
        try:
            export_mentions_csv(mentions, attachment)
            self.notifier.send(subject, body, attachment)
        except Exception as exc:
            append_event_log(
                "error",
                stage="send_report",
                error=f"{type(exc).__name__}: {exc}",
            )
            return False
        emit_progress("ingest", "Report sent", new_mentions=result.new_mentions)
        return True


class IngestScheduler:
    """Runs ``IngestService.run_ingestion`` every ``interval_seconds`` on a worker thread."""

    def __init__(self, service: IngestService, interval_seconds: float = 300) -> None:
        self.service = service
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._next_run: datetime | None = None
        self.runs = 0

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def next_run(self) -> datetime | None:
        return self._next_run if self.is_running else None

    def start(self) -> None:
        if self.is_running:
            emit_progress("scheduler", "Scheduler is already running")
            return
        self._stop.clear()
        self._next_run = datetime.now(tz=timezone.utc) + timedelta(seconds=self.interval_seconds)
        self._thread = threading.Thread(target=self._loop, name="ingest-scheduler", daemon=True)
        self._thread.start()
        emit_progress("scheduler", "Scheduler started", interval_seconds=self.interval_seconds)

    def stop(self, timeout: float | None = None) -> None:
        if self._thread is None:
            return
        self._stop.set()
        self._thread.join(timeout)
        self._thread = None
        self._next_run = None
        emit_progress("scheduler", "Scheduler stopped")

    def _loop(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            self.run_cycle()
            self._next_run = datetime.now(tz=timezone.utc) + timedelta(
                seconds=self.interval_seconds
            )

    def run_cycle(self) -> IngestResult | None:
        self.runs += 1
        try:
            result = self.service.run_ingestion()
        except Exception as exc:
            append_event_log(
                "error",
                stage="scheduler",
                error=f"{type(exc).__name__}: {exc}",
            )
            return None
        return result
