"""Create and refresh feeds.

``FeedHandler.create_feed`` subscribes a user to a feed: nothing is stored
unless every step up to persistence succeeds. ``FeedHandler.refresh_feed``
revalidates an existing feed; its failures are written to the feed row
(``parsing_error_count`` / ``parsing_error_msg``) and raised again, and its
successes clear them.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterator, Optional

from ..errors import (
    CategoryNotFoundError,
    DuplicateFeedError,
    FeedNotFoundError,
    LocalizedError,
    RequestFailedError,
)
from ..http import client
from ..locale import Translator
from ..models import Feed, Icon
from ..observability.logging import bind_feed_id
from ..observability.metrics import FEED_REFRESH_COUNTER
from ..storage import FeedStore
from . import icon as icon_module
from . import parser as parser_module
from . import processor as processor_module

logger = logging.getLogger(__name__)


@contextmanager
def execution_time(label: str) -> Iterator[None]:
    start = time.time()
    try:
        yield
    finally:
        logger.debug("%s took %.3fs", label, time.time() - start)


class FeedHandler:
    def __init__(
        self,
        store: FeedStore,
        translator: Optional[Translator] = None,
        *,
        fetch: Callable[..., client.HTTPResponse] = client.fetch,
        parse: Callable[[str], parser_module.ParsedFeed] = parser_module.parse_feed,
        process: Callable[..., processor_module.ProcessingReport] = processor_module.process_entries,
        find_icon: Callable[[str], Optional[Icon]] = icon_module.find_icon,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.store = store
        self.translator = translator or Translator()
        self._fetch = fetch
        self._parse = parse
        self._process = process
        self._find_icon = find_icon
        self._now = now

    def create_feed(
        self,
        user_id: str,
        category_id: str,
        url: str,
        crawler: bool = False,
        username: str = "",
        password: str = "",
    ) -> Feed:
        with execution_time(f"[FeedHandler:create_feed] feed_url={url}"):
            try:
                feed = self._create_feed(user_id, category_id, url, crawler, username, password)
            except LocalizedError as exc:
                FEED_REFRESH_COUNTER.labels("create", exc.code).inc()
                raise
            FEED_REFRESH_COUNTER.labels("create", "created").inc()
            return feed

    def _create_feed(
        self,
        user_id: str,
        category_id: str,
        url: str,
        crawler: bool,
        username: str,
        password: str,
    ) -> Feed:
        if not self.store.category_exists(user_id, category_id):
            raise CategoryNotFoundError()

        response = self._fetch(url, username=username, password=password)
        response.ensure_not_empty()

        if self.store.feed_url_exists(user_id, response.effective_url):
            raise DuplicateFeedError(response.effective_url)

        body = response.normalize_body_encoding()
        subscription = self._parse(body)

        report = self._process(
            subscription.entries,
            user_id=user_id,
            crawler=crawler,
            entry_exists=lambda entry_url: self.store.entry_url_exists(user_id, entry_url),
        )
        logger.debug(
            "Processed %d entries for %s (%d crawled, %d failed)",
            len(report.outcomes),
            response.effective_url,
            report.count(processor_module.CrawlStatus.CRAWLED),
            report.count(processor_module.CrawlStatus.FAILED),
        )

        feed = Feed(
            user_id=user_id,
            category_id=category_id,
            feed_url=response.effective_url,
            site_url=subscription.site_url or response.effective_url,
            title=subscription.title or response.effective_url,
            etag_header=response.etag,
            last_modified_header=response.last_modified,
            checked_at=self._now(),
            crawler=crawler,
            username=username,
            password=password,
        )
        feed = self.store.create_feed(feed, subscription.entries)
        bind_feed_id(feed.id)
        self._discover_icon(feed)
        return feed

    def refresh_feed(self, user_id: str, feed_id: str) -> Feed:
        with execution_time(f"[FeedHandler:refresh_feed] feed_id={feed_id}"):
            bind_feed_id(feed_id)
            try:
                feed, outcome = self._refresh_feed(user_id, feed_id)
            except LocalizedError as exc:
                FEED_REFRESH_COUNTER.labels("refresh", exc.code).inc()
                raise
            FEED_REFRESH_COUNTER.labels("refresh", outcome).inc()
            return feed

    def _refresh_feed(self, user_id: str, feed_id: str) -> tuple[Feed, str]:
        language = self.store.user_language(user_id)
        if not language:
            logger.error("Unable to find the language of user %s", user_id)
        language = self.translator.get_language(language)

        feed = self.store.feed_by_id(user_id, feed_id)
        if feed is None:
            raise FeedNotFoundError(feed_id)

        try:
            response = self._fetch(
                feed.feed_url,
                username=feed.username,
                password=feed.password,
                etag=feed.etag_header,
                last_modified=feed.last_modified_header,
                cookies=dict(feed.cookies or {}),
            )
            modified = response.is_modified(feed.etag_header, feed.last_modified_header)
            if modified:
                logger.debug("Feed %s has been modified", feed_id)
                response.ensure_not_empty()
                subscription = self._parse(response.normalize_body_encoding())
        except LocalizedError as exc:
            self._record_failure(feed, exc, language)
            raise

        if modified:
            self._process(
                subscription.entries,
                user_id=user_id,
                crawler=feed.crawler,
                scraper_rules=feed.scraper_rules,
                rewrite_rules=feed.rewrite_rules,
                cookies=dict(feed.cookies or {}),
                entry_exists=lambda entry_url: self.store.entry_url_exists(user_id, entry_url),
            )

            feed.etag_header = response.etag
            feed.last_modified_header = response.last_modified

            # Crawled content is never overwritten by the feed summary.
            self.store.update_entries(
                feed.user_id, feed.id, subscription.entries, not feed.crawler
            )

            if not self.store.has_icon(feed.id):
                logger.debug("Looking for feed icon")
                self._discover_icon(feed)
        else:
            logger.debug("Feed %s not modified", feed_id)

        feed.checked_at = self._now()
        feed.parsing_error_count = 0
        feed.parsing_error_msg = ""
        if not feed.site_url:
            feed.site_url = feed.feed_url

        return self.store.update_feed(feed), "modified" if modified else "unmodified"

    def _record_failure(self, feed: Feed, error: LocalizedError, language: str) -> None:
        # Only transport errors leave the feed unchecked; anything else got a response.
        if not isinstance(error, RequestFailedError):
            feed.checked_at = self._now()
        feed.parsing_error_count = (feed.parsing_error_count or 0) + 1
        feed.parsing_error_msg = error.localize(self.translator, language)
        logger.warning(
            "Refresh of feed %s failed (%d consecutive errors): %s",
            feed.id,
            feed.parsing_error_count,
            error,
        )
        self.store.update_feed(feed)

    def _discover_icon(self, feed: Feed) -> None:
        try:
            icon = self._find_icon(feed.site_url or feed.feed_url)
        except Exception as exc:  # noqa: BLE001
            logger.error("Unable to find icon for feed %s: %s", feed.id, exc)
            return
        if icon is None:
            logger.info("No icon found for feed %s", feed.id)
            return
        try:
            self.store.create_feed_icon(feed, icon)
        except Exception:  # noqa: BLE001
            logger.exception("Unable to store icon for feed %s", feed.id)
