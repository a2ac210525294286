"""Message rendering for Telegram (HTML parse mode)."""

import html
import re
from datetime import datetime
from typing import Iterable, Optional

from .constants import ALL_CATEGORIES_LABEL, ALL_CATEGORIES_VALUE, exp_label, sort_categories
from .models import FeedItem, Recipient

SUMMARY_MAX_LENGTH = 420
LINK_MAX_LENGTH = 60
DATE_FORMAT = "%d.%m.%Y %H:%M:%S"


def escape_html(text: str) -> str:
    return html.escape(text or "", quote=True)


def truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length - 1] + "…"


def format_pub_date(published_at: Optional[datetime], raw: str = "") -> str:
    """Render a publication date, falling back to the raw feed value."""
    if published_at is not None:
        return published_at.strftime(DATE_FORMAT)
    if not raw:
        return "no date"
    return re.sub(r"\s[+-]\d{4}$", "", raw).strip()


def format_category_label(categories: Iterable[str]) -> str:
    selected = sort_categories(categories)
    if not selected:
        return "not selected"
    if ALL_CATEGORIES_VALUE in selected:
        return ALL_CATEGORIES_LABEL
    return ", ".join(selected)


def format_exp_label(levels: Iterable[str]) -> str:
    levels = list(levels)
    if not levels:
        return "any (no filter)"
    return ", ".join(exp_label(level) for level in levels)


def format_job_message(item: FeedItem) -> str:
    """
    Render one listing as a Telegram HTML message.

    Args:
        item: Feed item to render.

    Returns:
        Message text with bold title and a hyperlink to the listing.
    """
    snippet = truncate(item.summary, SUMMARY_MAX_LENGTH)
    return "\n".join([
        f"<b>{escape_html(item.title)}</b>",
        f"Category: {escape_html(item.category)}",
        f"Date: {escape_html(format_pub_date(item.published_at, item.published_raw))}",
        "",
        escape_html(snippet),
        "",
        f'<a href="{escape_html(item.link)}">Open vacancy</a>',
    ])


def format_settings(recipient: Optional[Recipient]) -> str:
    """Settings summary shown by /start and /settings."""
    if recipient is None:
        return "Settings have not been created yet."

    status = "enabled" if recipient.is_active else "paused"
    last_link = truncate(recipient.last_job_link, LINK_MAX_LENGTH) if recipient.last_job_link else "not set"
    return "\n".join([
        "<b>Djinni RSS settings</b>",
        f"Categories: <b>{escape_html(format_category_label(recipient.categories))}</b>",
        f"Experience: <b>{escape_html(format_exp_label(recipient.exp_levels))}</b>",
        f"Status: <b>{status}</b>",
        f"Last link: <b>{escape_html(last_link)}</b>",
    ])
