from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import Feed


def parse_cookie_header(raw: Optional[str]) -> Dict[str, str]:
    """Parse ``name=value; other=value`` into a dict; malformed pairs are dropped."""
    cookies: Dict[str, str] = {}
    for part in (raw or "").split(";"):
        name, sep, value = part.strip().partition("=")
        name = name.strip()
        if not sep or not name or any(ch.isspace() for ch in name):
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] == '"':
            value = value[1:-1]
        cookies[name] = value
    return cookies


class FeedCreate(BaseModel):
    feed_url: str = Field(min_length=1)
    category_id: str = Field(min_length=1)
    crawler: bool = False
    username: str = ""
    password: str = ""

    @field_validator("feed_url")
    @classmethod
    def _strip_url(cls, value: str) -> str:
        return value.strip()


class FeedUpdate(BaseModel):
    """Edit form for an existing feed; every visible field is mandatory."""

    feed_url: str = Field(min_length=1)
    site_url: str = Field(min_length=1)
    title: str = Field(min_length=1)
    category_id: str = Field(min_length=1)
    scraper_rules: str = ""
    rewrite_rules: str = ""
    cookies: str = ""
    crawler: bool = False
    username: str = ""
    password: str = ""

    def merge(self, feed: Feed) -> Feed:
        """Copy the form onto ``feed`` and give it a clean error state."""
        feed.category_id = self.category_id
        feed.title = self.title
        feed.site_url = self.site_url
        feed.feed_url = self.feed_url
        feed.scraper_rules = self.scraper_rules
        feed.rewrite_rules = self.rewrite_rules
        feed.cookies = parse_cookie_header(self.cookies)
        feed.crawler = self.crawler
        feed.parsing_error_count = 0
        feed.parsing_error_msg = ""
        feed.username = self.username
        feed.password = self.password
        return feed


class FeedOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    category_id: Optional[str] = None
    feed_url: str
    site_url: str = ""
    title: str = ""
    checked_at: Optional[datetime] = None
    parsing_error_count: int = 0
    parsing_error_msg: str = ""
    scraper_rules: str = ""
    rewrite_rules: str = ""
    cookies: Dict[str, str] = Field(default_factory=dict)
    crawler: bool = False
    username: str = ""
    icon_id: Optional[str] = None


class ErrorFeedsCount(BaseModel):
    count: int


class RefreshJobOut(BaseModel):
    job_id: str
    feed_id: str
    status: str
