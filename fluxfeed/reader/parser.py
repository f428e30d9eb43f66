"""Turn a feed document into a feed title, site URL and unsaved entries."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List

import feedparser

from ..errors import ParseError
from ..models import Entry

logger = logging.getLogger(__name__)

# The body is already normalized to UTF-8; stop feedparser from trusting a
# stale XML declaration.
_UTF8_HEADERS = {"content-type": "application/xml; charset=utf-8"}


@dataclass
class ParsedFeed:
    title: str = ""
    site_url: str = ""
    feed_url: str = ""
    entries: List[Entry] = field(default_factory=list)


def _entry_timestamp(entry: Any) -> datetime:
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if parsed:
        return datetime(*parsed[:6], tzinfo=timezone.utc)
    return datetime.now(timezone.utc)


def _entry_content(entry: Any) -> str:
    for item in entry.get("content") or []:
        value = item.get("value") if isinstance(item, dict) else getattr(item, "value", None)
        if value:
            return value
    return entry.get("summary") or entry.get("description") or ""


def _self_link(meta: Any) -> str:
    for link in meta.get("links") or []:
        if link.get("rel") == "self" and link.get("href"):
            return link["href"]
    return ""


def parse_feed(body: str) -> ParsedFeed:
    """Parse ``body``; raise :class:`ParseError` when it is not a feed."""
    parsed = feedparser.parse(body.encode("utf-8"), response_headers=_UTF8_HEADERS)
    if not parsed.get("version"):
        reason = parsed.get("bozo_exception") or "unsupported feed format"
        raise ParseError(reason)
    if parsed.get("bozo"):
        logger.debug("Feed parsed with recoverable errors: %s", parsed.get("bozo_exception"))

    meta = parsed.feed
    result = ParsedFeed(
        title=(meta.get("title") or "").strip(),
        site_url=meta.get("link") or "",
        feed_url=_self_link(meta),
    )

    for item in parsed.entries:
        url = item.get("link")
        if not url:
            logger.debug("Skipping entry '%s' with no URL.", item.get("title"))
            continue
        identity = item.get("id") or url
        result.entries.append(
            Entry(
                hash=hashlib.sha256(identity.encode("utf-8")).hexdigest(),
                url=url,
                title=(item.get("title") or url).strip(),
                author=item.get("author") or "",
                content=_entry_content(item),
                published_at=_entry_timestamp(item),
            )
        )

    if not result.title:
        result.title = result.site_url
    return result
