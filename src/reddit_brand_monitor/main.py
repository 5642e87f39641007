"""CLI for ingesting, triaging, and analyzing Reddit brand mentions."""

from __future__ import annotations

import argparse
import json
import time
from pathlib import Path

from .aggregate import (
    daily_sentiment,
    export_mentions_csv,
    sentiment_stats,
    subreddit_breakdown,
    to_frame,
)
from .analyze import match_keywords
from .classifier import build_classifier
from .config import MonitorConfig, load_config
from .io_utils import configure_event_log
from .ingest import IngestScheduler, IngestService
from .models import LABELS
from .storage import MentionNotFoundError, MentionStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Reddit brand-mention monitor")
    parser.add_argument("--data-file", default=None, help="Override the JSON mention store path")
    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Fetch, classify and store new mentions")
    ingest.add_argument("--watch", action="store_true", help="Keep running on the configured interval")

    classify = sub.add_parser("classify", help="Classify a piece of text and print the result")
    classify.add_argument("text")

    listing = sub.add_parser("list", help="List stored mentions")
    listing.add_argument("--label", choices=LABELS)
    listing.add_argument("--subreddit")
    listing.add_argument("--show-ignored", action="store_true")
    listing.add_argument("--urgent-only", action="store_true")
    listing.add_argument("--sort-by", default="created_utc")
    listing.add_argument("--ascending", action="store_true")
    listing.add_argument("--page", type=int, default=1)
    listing.add_argument("--limit", type=int, default=20)

    tag = sub.add_parser("tag", help="Manually re-tag a mention")
    tag.add_argument("mention_id")
    tag.add_argument("label", choices=LABELS)
    tag.add_argument("--tagged-by", default="user")

    untag = sub.add_parser("untag", help="Remove a manual tag")
    untag.add_argument("mention_id")

    for name in ("ignore", "urgent"):
        flag = sub.add_parser(name, help=f"Set the {name} flag on a mention")
        flag.add_argument("mention_id")
        flag.add_argument("--off", action="store_true", help="Clear the flag instead of setting it")

    analytics = sub.add_parser("analytics", help="Print sentiment analytics")
    analytics.add_argument("--time-range", default="30d", choices=["7d", "30d", "90d", "all"])

    export = sub.add_parser("export", help="Export mentions to CSV")
    export.add_argument("output", nargs="?", default=None)
    return parser


def _print_json(payload: object) -> None:
    print(json.dumps(payload, indent=2, default=str))


def run_watch(config: MonitorConfig, service: IngestService) -> None:
    scheduler = IngestScheduler(service, interval_seconds=config.ingest_interval_s)
    scheduler.run_cycle()
    scheduler.start()
    try:
        while scheduler.is_running:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        scheduler.stop()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config()
    if args.data_file:
        config.data_file = Path(args.data_file)
    configure_event_log(config.event_log_path)
    store = MentionStore(config.data_file)

    try:
        if args.command == "ingest":
            service = IngestService(config, store=store)
            if args.watch:
                run_watch(config, service)
                return 0
            result = service.run_ingestion()
            _print_json(
                {
                    "new_mentions": result.new_mentions,
                    "total_processed": result.total_processed,
                    "failed_classifications": result.failed_classifications,
                    "top_negative": [m.id for m in result.top_negative],
                    "report_sent": result.report_sent,
                }
            )
        elif args.command == "classify":
            result = build_classifier(config).classify(args.text)
            _print_json(
                {
                    "label": result.label,
                    "confidence": result.confidence,
                    "score": result.score,
                    "reasons": list(result.reasons),
                    "keywords_matched": match_keywords(args.text, config.brand_terms),
                }
            )
        elif args.command == "list":
            page = store.query(
                label=args.label,
                subreddit=args.subreddit,
                show_ignored=args.show_ignored,
                urgent_only=args.urgent_only,
                sort_by=args.sort_by,
                descending=not args.ascending,
                page=args.page,
                limit=args.limit,
            )
            for mention in page.mentions:
                flags = "".join(["!" if mention.urgent else "", "~" if mention.ignored else ""])
                print(
                    f"{mention.id}\t{mention.effective_label}\t{mention.effective_score}\t"
                    f"r/{mention.subreddit}\t{flags}"
                )
            print(f"page {page.page}/{page.total_pages} ({page.total} mentions)")
        elif args.command == "tag":
            mention = store.tag(args.mention_id, args.label, tagged_by=args.tagged_by)
            print(
                f"Tagged {mention.id}: {mention.label} ({mention.score}) -> "
                f"{mention.manual_label} ({mention.manual_score})"
            )
        elif args.command == "untag":
            mention = store.untag(args.mention_id)
            print(f"Removed manual tag from {mention.id}: {mention.label} ({mention.score})")
        elif args.command == "ignore":
            mention = store.set_ignored(args.mention_id, not args.off)
            print(f"Mention {mention.id} {'ignored' if mention.ignored else 'unignored'}")
        elif args.command == "urgent":
            mention = store.set_urgent(args.mention_id, not args.off)
            print(f"Mention {mention.id} urgent={mention.urgent}")
        elif args.command == "analytics":
            frame = to_frame(store.all())
            _print_json(
                {
                    "stats": sentiment_stats(frame),
                    "daily": daily_sentiment(frame, time_range=args.time_range).to_dict(
                        orient="records"
                    ),
                    "subreddits": subreddit_breakdown(frame).to_dict(orient="records"),
                }
            )
        elif args.command == "export":
            output = Path(args.output) if args.output else config.output_dir / "mentions.csv"
            frame = export_mentions_csv(store.all(), output)
            print(f"Exported {len(frame)} mentions to {output}")
    except MentionNotFoundError as exc:
        print(f"Mention not found: {exc.args[0]}")
        return 1
    except ValueError as exc:
        print(f"Error: {exc}")
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
