from __future__ import annotations

import pytest
from pydantic import ValidationError

from fluxfeed.models import Feed
from fluxfeed.schemas import FeedUpdate, parse_cookie_header


def test_parse_cookie_header_is_lenient():
    cookies = parse_cookie_header('session=abc; theme="dark"; broken; =nope; bad name=1; empty=')

    assert cookies == {"session": "abc", "theme": "dark", "empty": ""}
    assert parse_cookie_header(None) == {}


def test_feed_update_merge_resets_error_state():
    feed = Feed(
        user_id="u1",
        feed_url="https://old.example/feed",
        parsing_error_count=7,
        parsing_error_msg="Unable to fetch feed (Status Code = 500)",
    )
    form = FeedUpdate(
        feed_url="https://new.example/feed",
        site_url="https://new.example/",
        title="New",
        category_id="cat2",
        scraper_rules="article",
        cookies="session=abc",
        crawler=True,
    )

    form.merge(feed)

    assert feed.feed_url == "https://new.example/feed"
    assert feed.category_id == "cat2"
    assert feed.cookies == {"session": "abc"}
    assert feed.crawler is True
    assert feed.parsing_error_count == 0
    assert feed.parsing_error_msg == ""


def test_feed_update_requires_visible_fields():
    with pytest.raises(ValidationError):
        FeedUpdate(feed_url="https://x.example/feed", site_url="", title="t", category_id="c")
