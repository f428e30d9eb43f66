"""Persistence for feeds, entries and icons."""

from __future__ import annotations

import logging
from contextlib import AbstractContextManager
from typing import Callable, Iterable, List, Optional, Protocol

from sqlalchemy import func, update
from sqlmodel import Session, select

from .config import max_parsing_error
from .db import get_session_ctx
from .models import Category, Entry, Feed, FeedIcon, Icon, User

logger = logging.getLogger(__name__)


class FeedStore(Protocol):
    """What the refresh handler needs from storage."""

    def category_exists(self, user_id: str, category_id: str) -> bool: ...

    def feed_url_exists(self, user_id: str, feed_url: str) -> bool: ...

    def entry_url_exists(self, user_id: str, url: str) -> bool: ...

    def feed_by_id(self, user_id: str, feed_id: str) -> Optional[Feed]: ...

    def create_feed(self, feed: Feed, entries: Iterable[Entry]) -> Feed: ...

    def update_feed(self, feed: Feed) -> Feed: ...

    def update_entries(
        self, user_id: str, feed_id: str, entries: Iterable[Entry], update_existing: bool
    ) -> None: ...

    def has_icon(self, feed_id: str) -> bool: ...

    def create_feed_icon(self, feed: Feed, icon: Icon) -> None: ...

    def user_language(self, user_id: str) -> Optional[str]: ...


class Storage:
    """SQLModel implementation of :class:`FeedStore`.

    Every method runs in its own session and commits before returning.
    """

    def __init__(
        self, session_factory: Callable[[], AbstractContextManager[Session]] = get_session_ctx
    ):
        self._session_factory = session_factory

    def category_exists(self, user_id: str, category_id: str) -> bool:
        with self._session_factory() as session:
            stmt = select(Category.id).where(
                Category.id == category_id, Category.user_id == user_id
            )
            return session.exec(stmt).first() is not None

    def feed_url_exists(self, user_id: str, feed_url: str) -> bool:
        with self._session_factory() as session:
            stmt = select(Feed.id).where(Feed.user_id == user_id, Feed.feed_url == feed_url)
            return session.exec(stmt).first() is not None

    def entry_url_exists(self, user_id: str, url: str) -> bool:
        with self._session_factory() as session:
            stmt = select(Entry.id).where(Entry.user_id == user_id, Entry.url == url)
            return session.exec(stmt).first() is not None

    def feed_by_id(self, user_id: str, feed_id: str) -> Optional[Feed]:
        with self._session_factory() as session:
            feed = session.get(Feed, feed_id)
            if feed is None or feed.user_id != user_id:
                return None
            return feed

    def feeds(self, user_id: str) -> List[Feed]:
        with self._session_factory() as session:
            stmt = (
                select(Feed)
                .where(Feed.user_id == user_id)
                .order_by(Feed.parsing_error_count.desc(), Feed.title.asc())
            )
            return list(session.exec(stmt).all())

    def create_feed(self, feed: Feed, entries: Iterable[Entry]) -> Feed:
        with self._session_factory() as session:
            session.add(feed)
            for entry in entries:
                entry.feed_id = feed.id
                entry.user_id = feed.user_id
                session.add(entry)
            session.commit()
            session.refresh(feed)
        logger.debug("Feed saved with ID: %s", feed.id)
        return feed

    def update_feed(self, feed: Feed) -> Feed:
        with self._session_factory() as session:
            merged = session.merge(feed)
            session.commit()
            session.refresh(merged)
            return merged

    def update_entries(
        self, user_id: str, feed_id: str, entries: Iterable[Entry], update_existing: bool
    ) -> None:
        """Insert unknown entries; overwrite known ones only if ``update_existing``."""
        created = updated = 0
        with self._session_factory() as session:
            stmt = select(Entry).where(Entry.feed_id == feed_id)
            existing = {entry.url: entry for entry in session.exec(stmt).all()}
            for entry in entries:
                current = existing.get(entry.url)
                if current is None:
                    entry.user_id = user_id
                    entry.feed_id = feed_id
                    session.add(entry)
                    existing[entry.url] = entry
                    created += 1
                elif update_existing:
                    current.title = entry.title
                    current.author = entry.author
                    current.content = entry.content
                    current.hash = entry.hash
                    session.add(current)
                    updated += 1
            session.commit()
        logger.debug(
            "Merged entries for feed %s: %d created, %d updated", feed_id, created, updated
        )

    def has_icon(self, feed_id: str) -> bool:
        with self._session_factory() as session:
            return session.get(FeedIcon, feed_id) is not None

    def feed_icon_id(self, feed_id: str) -> Optional[str]:
        with self._session_factory() as session:
            link = session.get(FeedIcon, feed_id)
            return link.icon_id if link else None

    def create_feed_icon(self, feed: Feed, icon: Icon) -> None:
        with self._session_factory() as session:
            if session.get(FeedIcon, feed.id) is not None:
                return
            stored = session.exec(select(Icon).where(Icon.hash == icon.hash)).first()
            if stored is None:
                session.add(icon)
                stored = icon
            session.add(FeedIcon(feed_id=feed.id, icon_id=stored.id))
            session.commit()

    def user_language(self, user_id: str) -> Optional[str]:
        with self._session_factory() as session:
            user = session.get(User, user_id)
            return user.language if user else None

    def remove_feed(self, user_id: str, feed_id: str) -> bool:
        with self._session_factory() as session:
            feed = session.get(Feed, feed_id)
            if feed is None or feed.user_id != user_id:
                return False
            for entry in session.exec(select(Entry).where(Entry.feed_id == feed_id)).all():
                session.delete(entry)
            link = session.get(FeedIcon, feed_id)
            if link is not None:
                session.delete(link)
            session.delete(feed)
            session.commit()
            return True

    def reset_feed_errors(self) -> None:
        with self._session_factory() as session:
            session.execute(update(Feed).values(parsing_error_count=0, parsing_error_msg=""))
            session.commit()

    def count_error_feeds(self, user_id: str) -> int:
        with self._session_factory() as session:
            stmt = select(func.count(Feed.id)).where(
                Feed.user_id == user_id,
                Feed.parsing_error_count >= max_parsing_error(),
            )
            return int(session.exec(stmt).one())
