"""Configuration for the Reddit brand monitor."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path


@dataclass(slots=True)
class SmtpConfig:
    host: str
    port: int
    user: str
    password: str
    email_from: str
    email_to: str


@dataclass(slots=True)
class MonitorConfig:
    """Settings used by the scraper, classifiers, store and scheduler."""

    brand_terms: list[str] = field(default_factory=lambda: ["lifex", "lifex research"])
    search_query: str = 'lifex OR "lifex research"'
    subreddits: list[str] = field(default_factory=list)
    time_filter: str = "all"
    pages: int = 4
    per_page_limit: int = 25
    max_results: int = 1000
    start_from: datetime = field(
        default_factory=lambda: datetime(2023, 1, 1, tzinfo=timezone.utc)
    )

    classifier: str = "keyword"
    keyword_score_mode: str = "mapped"
    openai_api_key: str = ""
    openai_model: str = "gpt-3.5-turbo"
    openai_temperature: float = 0.1
    openai_max_tokens: int = 200
    batch_size: int = 5
    batch_delay_s: float = 1.0

    data_file: Path = Path("data/reddit-data.json")
    output_dir: Path = Path("output")
    event_log_path: Path = Path("data/monitor_log.jsonl")
    ingest_interval_s: int = 300

    user_agent: str = "reddit-brand-monitor/1.0 (public-json-client)"
    request_timeout_s: int = 20
    max_retries: int = 3

    smtp: SmtpConfig | None = None


DEFAULT_CONFIG = MonitorConfig()


def _csv_env(name: str, fallback: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None:
        return fallback.copy()
    return [item.strip() for item in raw.split(",") if item.strip()]


def _int_env(name: str, fallback: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return fallback
    try:
        return int(raw)
    except ValueError:
        return fallback


def _float_env(name: str, fallback: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return fallback
    try:
        return float(raw)
    except ValueError:
        return fallback


def _datetime_env(name: str, fallback: datetime) -> datetime:
    raw = os.getenv(name)
    if not raw:
        return fallback
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return fallback
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _smtp_from_env(fallback: SmtpConfig | None) -> SmtpConfig | None:
    host = os.getenv("SMTP_HOST", "")
    user = os.getenv("SMTP_USER", "")
    password = os.getenv("SMTP_PASS", "")
    email_to = os.getenv("EMAIL_TO", "")
    if not (host and user and password and email_to):
        return fallback
    return SmtpConfig(
        host=host,
        port=_int_env("SMTP_PORT", 587),
        user=user,
        password=password,
        email_from=os.getenv("EMAIL_FROM", user),
        email_to=email_to,
    )


def load_config(base: MonitorConfig | None = None) -> MonitorConfig:
    """Build a config from defaults overlaid with environment variables."""
    defaults = base or MonitorConfig()

    classifier = os.getenv("BRAND_MONITOR_CLASSIFIER", defaults.classifier).strip().lower()
    if classifier not in {"keyword", "openai"}:
        raise ValueError(f"Unsupported classifier backend: {classifier}")
    score_mode = os.getenv("BRAND_MONITOR_SCORE_MODE", defaults.keyword_score_mode).strip().lower()
    if score_mode not in {"legacy", "mapped"}:
        raise ValueError(f"Unsupported keyword score mode: {score_mode}")

    data_file = Path(os.getenv("BRAND_MONITOR_DATA_FILE", str(defaults.data_file)))
    return MonitorConfig(
        brand_terms=_csv_env("BRAND_MONITOR_TERMS", defaults.brand_terms),
        search_query=os.getenv("BRAND_MONITOR_QUERY", defaults.search_query),
        subreddits=_csv_env("BRAND_MONITOR_SUBREDDITS", defaults.subreddits),
        time_filter=os.getenv("BRAND_MONITOR_TIME_FILTER", defaults.time_filter),
        pages=_int_env("BRAND_MONITOR_PAGES", defaults.pages),
        per_page_limit=_int_env("BRAND_MONITOR_PER_PAGE", defaults.per_page_limit),
        max_results=_int_env("BRAND_MONITOR_MAX_RESULTS", defaults.max_results),
        start_from=_datetime_env("START_FROM_ISO", defaults.start_from),
        classifier=classifier,
        keyword_score_mode=score_mode,
        openai_api_key=os.getenv("OPENAI_API_KEY", defaults.openai_api_key),
        openai_model=os.getenv("BRAND_MONITOR_OPENAI_MODEL", defaults.openai_model),
        openai_temperature=_float_env(
            "BRAND_MONITOR_OPENAI_TEMPERATURE", defaults.openai_temperature
        ),
        openai_max_tokens=_int_env("BRAND_MONITOR_OPENAI_MAX_TOKENS", defaults.openai_max_tokens),
        batch_size=_int_env("BRAND_MONITOR_BATCH_SIZE", defaults.batch_size),
        batch_delay_s=_float_env("BRAND_MONITOR_BATCH_DELAY_S", defaults.batch_delay_s),
        data_file=data_file,
        output_dir=Path(os.getenv("BRAND_MONITOR_OUTPUT_DIR", str(defaults.output_dir))),
        event_log_path=Path(
            os.getenv("BRAND_MONITOR_EVENT_LOG", str(defaults.event_log_path))
        ),
        ingest_interval_s=_int_env("BRAND_MONITOR_INTERVAL_S", defaults.ingest_interval_s),
        user_agent=os.getenv("REDDIT_USER_AGENT", defaults.user_agent),
        request_timeout_s=_int_env("BRAND_MONITOR_TIMEOUT_S", defaults.request_timeout_s),
        max_retries=_int_env("BRAND_MONITOR_MAX_RETRIES", defaults.max_retries),
        smtp=_smtp_from_env(defaults.smtp),
    )
