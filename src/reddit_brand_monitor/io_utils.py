"""Input/output helpers for local persistence and the structured event log."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pandas as pd

EVENT_LOG_PATH = Path("monitor_log.jsonl")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def configure_event_log(path: str | Path) -> None:
    """Point the structured event log at a new file."""
    global EVENT_LOG_PATH
    EVENT_LOG_PATH = Path(path)


def append_event_log(event_type: str, **payload: Any) -> None:
    """Append a structured event record to the event log."""
    entry = {
        "timestamp": utc_now_iso(),
        "event_type": event_type,
        **payload,
    }
    ensure_output_dir(EVENT_LOG_PATH.parent)
    with EVENT_LOG_PATH.open("a", encoding="utf-8") as fh:
        fh.write(json.dumps(entry, ensure_ascii=False, default=str) + "\n")


def emit_progress(source: str, message: str, **payload: Any) -> None:
    """Print progress to stdout and write the corresponding structured log."""
    print(f"[{source}] {message}")
    append_event_log("progress", source=source, message=message, **payload)


def ensure_output_dir(path: str | Path) -> Path:
    """Create output directory when needed."""
    output = Path(path)
    output.mkdir(parents=True, exist_ok=True)
    return output


def save_csv(frame: pd.DataFrame, output_path: str | Path) -> None:
    """Persist DataFrame to CSV."""
    ensure_output_dir(Path(output_path).parent)
    frame.to_csv(output_path, index=False)


def save_json(data: dict[str, Any] | list[Any], output_path: str | Path) -> None:
    """Persist JSON payload to disk, replacing the previous file in one step."""
    out = Path(output_path)
    ensure_output_dir(out.parent)
    tmp = out.with_suffix(out.suffix + ".tmp")
    tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
    tmp.replace(out)


def load_json(input_path: str | Path) -> Any:
    return json.loads(Path(input_path).read_text(encoding="utf-8"))
