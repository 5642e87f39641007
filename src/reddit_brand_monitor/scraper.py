"""Reddit search utilities for brand-mention monitoring.

This module provides a resilient request helper, paginated search over posts
and comments, normalization into mention-ready items, and deduplication.
"""

from __future__ import annotations

import time
from typing import Any, Dict, Iterable, List, Optional, Tuple

import requests

from .config import MonitorConfig
from .io_utils import append_event_log, emit_progress

DEFAULT_USER_AGENT = "reddit-brand-monitor/1.0 (public-json-client)"
MIN_REQUEST_DELAY_SECONDS = 1.0
MAX_RETRIES = 3
RATE_LIMIT_WAIT_SECONDS = 60
DEFAULT_TIMEOUT = 20
SEARCH_KINDS = {"link": "post", "comment": "comment"}
TIME_FILTERS = {"hour", "day", "week", "month", "year", "all"}

_LAST_REQUEST_TS = 0.0


def _progress(message: str, **payload: Any) -> None:
    emit_progress("scraper", message, **payload)


def _enforce_min_delay() -> None:
    global _LAST_REQUEST_TS
    now = time.time()
    elapsed = now - _LAST_REQUEST_TS
    if _LAST_REQUEST_TS and elapsed < MIN_REQUEST_DELAY_SECONDS:
        wait_for = MIN_REQUEST_DELAY_SECONDS - elapsed
        _progress("Waiting to respect minimum request delay", seconds=wait_for)
        time.sleep(wait_for)
    _LAST_REQUEST_TS = time.time()


def _backoff(url: str, attempt: int) -> None:
    wait_for = 2 ** (attempt - 1)
    _progress("Retrying Reddit request", url=url, attempt=attempt, wait_seconds=wait_for)
    time.sleep(wait_for)


def request_json(
    url: str,
    params: Optional[Dict[str, Any]] = None,
    user_agent: str = DEFAULT_USER_AGENT,
    timeout: int = DEFAULT_TIMEOUT,
    max_retries: int = MAX_RETRIES,
) -> Optional[Any]:
    """GET a Reddit JSON endpoint, returning the decoded body or ``None``.

    An ingestion cycle issues a handful of unauthenticated search calls, so
    calls are spaced at least ``MIN_REQUEST_DELAY_SECONDS`` apart, which keeps
    the monitor under Reddit's anonymous rate limit. Transport errors and
    unexpected statuses back off 1, 2, 4... seconds. A 429 waits
    ``RATE_LIMIT_WAIT_SECONDS`` before the next attempt. A 403 or 404 means a
    private, banned or missing subreddit and is not retried. ``None`` tells
    ``search_reddit`` to stop paginating that query.
    """
    headers = {"User-Agent": user_agent, "Accept": "application/json"}

    for attempt in range(1, max_retries + 1):
        _enforce_min_delay()
        try:
            response = requests.get(url, params=params, headers=headers, timeout=timeout)
        except requests.RequestException as exc:
            append_event_log(
                "error",
                stage="request_json",
                url=url,
                params=params,
                attempt=attempt,
                error=str(exc),
            )
            if attempt == max_retries:
                return None
            _backoff(url, attempt)
            continue

        status = response.status_code
        if status == 200:
            try:
                return response.json()
            except ValueError as exc:
                append_event_log(
                    "error",
                    stage="request_json",
                    url=url,
                    params=params,
                    attempt=attempt,
                    status_code=status,
                    error=f"Invalid JSON payload: {exc}",
                )
                return None

        if status in (403, 404):
            append_event_log(
                "warning",
                stage="request_json",
                url=url,
                params=params,
                status_code=status,
                reason="Subreddit is private, banned or missing",
            )
            return None

        if status == 429:
            append_event_log(
                "warning",
                stage="request_json",
                url=url,
                params=params,
                attempt=attempt,
                status_code=status,
                wait_seconds=RATE_LIMIT_WAIT_SECONDS,
                reason="Rate limited by Reddit",
            )
            if attempt == max_retries:
                return None
            time.sleep(RATE_LIMIT_WAIT_SECONDS)
            continue

        append_event_log(
            "error",
            stage="request_json",
            url=url,
            params=params,
            attempt=attempt,
            status_code=status,
            response_text=response.text[:500],
        )
        if attempt == max_retries:
            return None
        _backoff(url, attempt)

    return None


def normalize_post(raw_post: Dict[str, Any], search_query: str) -> Dict[str, Any]:
    """Normalize a Reddit link listing child into a mention-ready post item."""
    return {
        "id": f"t3_{raw_post.get('id')}",
        "type": "post",
        "subreddit": raw_post.get("subreddit", ""),
        "permalink": raw_post.get("permalink", ""),
        "author": raw_post.get("author"),
        "title": raw_post.get("title", ""),
        "body": raw_post.get("selftext") or "",
        "created_utc": int(raw_post.get("created_utc") or 0),
        "score": int(raw_post.get("score") or 0),
        "num_comments": int(raw_post.get("num_comments") or 0),
        "search_query": [search_query],
    }


def normalize_comment(raw_comment: Dict[str, Any], search_query: str) -> Dict[str, Any]:
    """Normalize a Reddit comment listing child into a mention-ready comment item."""
    return {
        "id": f"t1_{raw_comment.get('id')}",
        "type": "comment",
        "subreddit": raw_comment.get("subreddit", ""),
        "permalink": raw_comment.get("permalink", ""),
        "author": raw_comment.get("author"),
        "title": None,
        "body": raw_comment.get("body") or "",
        "created_utc": int(raw_comment.get("created_utc") or 0),
        "score": int(raw_comment.get("score") or 0),
        "num_comments": 0,
        "search_query": [search_query],
    }


def search_reddit(
    query: str,
    kind: str = "link",
    subreddit: Optional[str] = None,
    time_filter: str = "all",
    pages: int = 1,
    per_page_limit: int = 25,
    user_agent: str = DEFAULT_USER_AGENT,
    timeout: int = DEFAULT_TIMEOUT,
    max_retries: int = MAX_RETRIES,
) -> List[Dict[str, Any]]:
    """Search Reddit posts (``kind="link"``) or comments with pagination.

    Uses the public JSON search endpoint, site-wide or restricted to one
    subreddit, newest first.
    """
    if kind not in SEARCH_KINDS:
        raise ValueError(f"Unsupported search kind: {kind}")
    if time_filter not in TIME_FILTERS:
        raise ValueError(f"Unsupported time_filter: {time_filter}")

    if subreddit:
        url = f"https://www.reddit.com/r/{subreddit}/search.json"
    else:
        url = "https://www.reddit.com/search.json"
    normalize = normalize_post if kind == "link" else normalize_comment
    after: Optional[str] = None
    collected: List[Dict[str, Any]] = []

    _progress(
        "Starting mention search",
        query=query,
        kind=kind,
        subreddit=subreddit,
        time_filter=time_filter,
        pages=pages,
    )

    for page in range(1, max(1, pages) + 1):
        params: Dict[str, Any] = {
            "q": query,
            "sort": "new",
            "t": time_filter,
            "type": kind,
            "limit": min(max(per_page_limit, 1), 100),
            "raw_json": 1,
        }
        if subreddit:
            params["restrict_sr"] = 1
        if after:
            params["after"] = after

        payload = request_json(
            url, params=params, user_agent=user_agent, timeout=timeout, max_retries=max_retries
        )
        if not payload:
            append_event_log(
                "warning",
                stage="search_reddit",
                query=query,
                kind=kind,
                subreddit=subreddit,
                page=page,
                reason="No payload returned",
            )
            break

        data = payload.get("data", {})
        children = data.get("children", [])
        for child in children:
            item_data = child.get("data", {})
            if item_data.get("id"):
                collected.append(normalize(item_data, query))

        after = data.get("after")
        _progress(
            "Fetched search page",
            query=query,
            kind=kind,
            page=page,
            page_items=len(children),
            next_after=after,
        )

        if not after:
            break

    return collected


def merge_item_metadata(existing: Dict[str, Any], incoming: Dict[str, Any]) -> Dict[str, Any]:
    """Merge search metadata for duplicate ids while preserving all matches."""
    left = set(existing.get("search_query", []))
    right = set(incoming.get("search_query", []))
    existing["search_query"] = sorted(left.union(right))
    return existing


def deduplicate_items(items: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Deduplicate items by id while merging search metadata."""
    items_list = list(items)
    by_id: Dict[str, Dict[str, Any]] = {}
    for item in items_list:
        item_id = item.get("id")
        if not item_id:
            continue
        if item_id not in by_id:
            by_id[item_id] = item
        else:
            by_id[item_id] = merge_item_metadata(by_id[item_id], item)

    deduped = list(by_id.values())
    _progress("Deduplicated items", input_count=len(items_list), output_count=len(deduped))
    return deduped


def fetch_new_mentions(
    config: MonitorConfig, since_utc: int
) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    """Fetch posts and comments created at or after ``since_utc``."""
    targets: List[Optional[str]] = list(config.subreddits) or [None]
    results: Dict[str, List[Dict[str, Any]]] = {"link": [], "comment": []}

    for kind in ("link", "comment"):
        gathered: List[Dict[str, Any]] = []
        for subreddit in targets:
            gathered.extend(
                search_reddit(
                    query=config.search_query,
                    kind=kind,
                    subreddit=subreddit,
                    time_filter=config.time_filter,
                    pages=config.pages,
                    per_page_limit=config.per_page_limit,
                    user_agent=config.user_agent,
                    timeout=config.request_timeout_s,
                    max_retries=config.max_retries,
                )
            )
        deduped = deduplicate_items(gathered)[: config.max_results]
        results[kind] = [item for item in deduped if item["created_utc"] >= since_utc]

    return results["link"], results["comment"]
