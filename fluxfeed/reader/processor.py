"""Per-entry processing: optional crawl, then rewrite and sanitize."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Mapping, Optional

from ..models import Entry
from ..observability.metrics import ENTRY_CRAWL_COUNTER
from . import rewrite as rewrite_module
from . import sanitizer as sanitizer_module
from . import scraper as scraper_module

logger = logging.getLogger(__name__)


class CrawlStatus(str, enum.Enum):
    DISABLED = "disabled"
    SKIPPED = "skipped"
    CRAWLED = "crawled"
    FAILED = "failed"


@dataclass
class CrawlOutcome:
    url: str
    status: CrawlStatus
    error: Optional[str] = None


@dataclass
class ProcessingReport:
    outcomes: List[CrawlOutcome] = field(default_factory=list)

    def count(self, status: CrawlStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status is status)

    @property
    def failures(self) -> List[CrawlOutcome]:
        return [outcome for outcome in self.outcomes if outcome.status is CrawlStatus.FAILED]


def log_outcome(outcome: CrawlOutcome) -> None:
    ENTRY_CRAWL_COUNTER.labels(outcome.status.value).inc()
    if outcome.status is CrawlStatus.FAILED:
        logger.error("Unable to crawl %s: %s", outcome.url, outcome.error)
    elif outcome.status is CrawlStatus.SKIPPED:
        logger.debug("Do not crawl existing entry URL: %s", outcome.url)
    elif outcome.status is CrawlStatus.CRAWLED:
        logger.debug("Crawled entry URL: %s", outcome.url)


def crawl_entry(
    entry: Entry,
    *,
    scraper_rules: str,
    cookies: Mapping[str, str],
    entry_exists: Callable[[str], bool],
    fetch_content: Callable[..., str],
) -> CrawlOutcome:
    if entry_exists(entry.url):
        return CrawlOutcome(entry.url, CrawlStatus.SKIPPED)
    try:
        content = fetch_content(entry.url, scraper_rules, dict(cookies))
    except Exception as exc:  # noqa: BLE001
        return CrawlOutcome(entry.url, CrawlStatus.FAILED, str(exc))
    entry.content = content
    return CrawlOutcome(entry.url, CrawlStatus.CRAWLED)


def process_entries(
    entries: Iterable[Entry],
    *,
    user_id: Optional[str] = None,
    crawler: bool = False,
    scraper_rules: str = "",
    rewrite_rules: str = "",
    cookies: Optional[Mapping[str, str]] = None,
    entry_exists: Callable[[str], bool] = lambda url: False,
    fetch_content: Optional[Callable[..., str]] = None,
    rewrite: Optional[Callable[[str, str, str], str]] = None,
    sanitize: Optional[Callable[[str, str], str]] = None,
    on_outcome: Callable[[CrawlOutcome], None] = log_outcome,
) -> ProcessingReport:
    """Mutate ``entries`` in place.

    With ``crawler`` enabled, entries whose URL the user does not have yet are
    replaced by the scraped web page. Every entry is then rewritten and
    sanitized, in that order. Crawl failures are reported, never raised.
    """
    cookies = dict(cookies or {})
    fetch_content = fetch_content or scraper_module.fetch_content
    rewrite = rewrite or rewrite_module.rewrite
    sanitize = sanitize or sanitizer_module.sanitize

    report = ProcessingReport()
    for entry in entries:
        if user_id is not None:
            entry.user_id = user_id

        if crawler:
            outcome = crawl_entry(
                entry,
                scraper_rules=scraper_rules,
                cookies=cookies,
                entry_exists=entry_exists,
                fetch_content=fetch_content,
            )
        else:
            outcome = CrawlOutcome(entry.url, CrawlStatus.DISABLED)
        report.outcomes.append(outcome)
        on_outcome(outcome)

        entry.content = rewrite(entry.url, entry.content or "", rewrite_rules)
        entry.content = sanitize(entry.url, entry.content)
    return report
