"""Post-ingestion report delivery."""

from __future__ import annotations

import smtplib
from dataclasses import dataclass
from datetime import datetime
from email.message import EmailMessage
from pathlib import Path
from typing import Protocol

from .config import MonitorConfig
from .models import Mention

REPORT_TOP_NEGATIVE = 5
BODY_PREVIEW_CHARS = 200


class Notifier(Protocol):
    def send(self, subject: str, body: str, attachment_path: Path | None) -> None: ...


@dataclass(slots=True)
class EmailNotifier:
    host: str
    port: int
    user: str
    password: str
    email_from: str
    email_to: str

    def send(self, subject: str, body: str, attachment_path: Path | None) -> None:
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self.email_from
        message["To"] = self.email_to
        message.set_content(body)

        if attachment_path is not None and attachment_path.exists():
            message.add_attachment(
                attachment_path.read_bytes(),
                maintype="text",
                subtype="csv",
                filename=attachment_path.name,
            )

        with smtplib.SMTP(self.host, self.port, timeout=20) as smtp:
            smtp.starttls()
            smtp.login(self.user, self.password)
            smtp.send_message(message)


def build_notifier(config: MonitorConfig) -> Notifier | None:
    if config.smtp is None:
        return None
    return EmailNotifier(
        host=config.smtp.host,
        port=config.smtp.port,
        user=config.smtp.user,
        password=config.smtp.password,
        email_from=config.smtp.email_from,
        email_to=config.smtp.email_to,
    )


def _preview(mention: Mention) -> str:
    if mention.title:
        return mention.title
    if mention.body:
        return mention.body[:BODY_PREVIEW_CHARS] + "..."
    return "No content"


def build_mentions_report(
    brand: str,
    new_count: int,
    top_negative: list[Mention],
    generated_at: datetime,
) -> tuple[str, str]:
    """Return the subject and plain-text body of a new-mentions report."""
    subject = f"{brand} Mentions Report - {new_count} new mentions"
    lines = [
        f"{brand} Mentions Report",
        "",
        f"New mentions found: {new_count}",
        f"Report generated: {generated_at.isoformat()}",
    ]
    if top_negative:
        lines += ["", f"Top {REPORT_TOP_NEGATIVE} most negative mentions:"]
        for mention in top_negative[:REPORT_TOP_NEGATIVE]:
            lines += [
                f"- r/{mention.subreddit} - Score: {mention.effective_score}/100 "
                f"({mention.effective_label})",
                f"  {_preview(mention)}",
                f"  https://reddit.com{mention.permalink}",
            ]
    lines += [
        "",
        "A CSV file with all new mentions is attached.",
        "Score scale: 1 = most negative, 100 = most positive, 50 = neutral",
    ]
    return subject, "\n".join(lines)
