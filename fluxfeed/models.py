from typing import Optional, Dict
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    LargeBinary,
    String,
    Text,
    UniqueConstraint,
)
from sqlmodel import SQLModel, Field, Column
from datetime import datetime, timezone


def gen_id(prefix: str) -> str:
    return f"{prefix}_{uuid4().hex[:12]}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("username", name="uq_users_username"),)

    id: str = Field(default_factory=lambda: gen_id("usr"), primary_key=True)
    username: str = Field(sa_column=Column(String(length=255), nullable=False))
    language: str = Field(default="en_US")
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class Category(SQLModel, table=True):
    __tablename__ = "category"
    __table_args__ = (
        UniqueConstraint("user_id", "title", name="uq_category_user_title"),
    )

    id: str = Field(default_factory=lambda: gen_id("cat"), primary_key=True)
    user_id: str = Field(
        sa_column=Column(
            ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
        )
    )
    title: str


class Feed(SQLModel, table=True):
    __tablename__ = "feed"
    __table_args__ = (
        UniqueConstraint("user_id", "feed_url", name="uq_feed_user_feed_url"),
    )

    id: str = Field(default_factory=lambda: gen_id("feed"), primary_key=True)
    user_id: str = Field(
        sa_column=Column(
            ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
        )
    )
    category_id: Optional[str] = Field(
        default=None,
        sa_column=Column(
            ForeignKey("category.id", ondelete="CASCADE"), nullable=True, index=True
        ),
    )
    feed_url: str
    site_url: str = ""
    title: str = ""
    etag_header: str = ""
    last_modified_header: str = ""
    checked_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True),
    )
    parsing_error_count: int = Field(
        default=0, sa_column=Column(Integer, nullable=False, default=0)
    )
    parsing_error_msg: str = Field(
        default="", sa_column=Column(Text, nullable=False, default="")
    )
    scraper_rules: str = ""
    rewrite_rules: str = ""
    cookies: Dict = Field(default_factory=dict, sa_column=Column(JSON))
    crawler: bool = Field(
        default=False, sa_column=Column(Boolean, nullable=False, default=False)
    )
    username: str = ""
    password: str = ""


class Entry(SQLModel, table=True):
    __tablename__ = "entry"
    __table_args__ = (
        Index("ix_entry_user_url", "user_id", "url"),
        Index("ix_entry_feed_url", "feed_id", "url"),
    )

    id: str = Field(default_factory=lambda: gen_id("entry"), primary_key=True)
    user_id: Optional[str] = Field(
        default=None,
        sa_column=Column(ForeignKey("users.id", ondelete="CASCADE"), nullable=True),
    )
    feed_id: Optional[str] = Field(
        default=None,
        sa_column=Column(ForeignKey("feed.id", ondelete="CASCADE"), nullable=True),
    )
    hash: str = ""
    url: str
    title: str = ""
    author: str = ""
    content: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    status: str = Field(default="unread", index=True)
    published_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True),
    )


class Icon(SQLModel, table=True):
    __tablename__ = "icon"
    __table_args__ = (UniqueConstraint("hash", name="uq_icon_hash"),)

    id: str = Field(default_factory=lambda: gen_id("icon"), primary_key=True)
    hash: str
    mime_type: str
    content: bytes = Field(sa_column=Column(LargeBinary, nullable=False))


class FeedIcon(SQLModel, table=True):
    __tablename__ = "feed_icon"

    feed_id: str = Field(
        sa_column=Column(ForeignKey("feed.id", ondelete="CASCADE"), primary_key=True)
    )
    icon_id: str = Field(
        sa_column=Column(ForeignKey("icon.id", ondelete="CASCADE"), nullable=False)
    )


class Job(SQLModel, table=True):
    __tablename__ = "job"
    id: str = Field(default_factory=lambda: gen_id("job"), primary_key=True)
    type: str  # feed_refresh
    payload: Dict = Field(default_factory=dict, sa_column=Column(JSON))
    status: str = Field(default="queued", index=True)
    owner_user_id: Optional[str] = Field(default=None, index=True)
    attempts: int = Field(default=0)
    last_error: Optional[str] = None
    available_at: Optional[float] = Field(default=None, index=True)
    details: Dict = Field(default_factory=dict, sa_column=Column(JSON))
