from __future__ import annotations

from fluxfeed.models import Entry
from fluxfeed.reader.processor import CrawlStatus, process_entries


def _entries(*urls):
    return [Entry(url=url, title=url, content=f"feed:{url}") for url in urls]


class Recorder:
    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.calls = []

    def fetch(self, url, rules, cookies):
        self.calls.append(("fetch", url, rules, dict(cookies)))
        if url in self.fail_on:
            raise RuntimeError(f"boom {url}")
        return f"page:{url}"

    def rewrite(self, url, content, rules):
        self.calls.append(("rewrite", url, content, rules))
        return f"rw({content})"

    def sanitize(self, url, content):
        self.calls.append(("sanitize", url, content))
        return f"clean({content})"


def test_crawler_disabled_never_fetches_but_still_cleans():
    recorder = Recorder()
    entries = _entries("https://a.example/1")

    report = process_entries(
        entries,
        crawler=False,
        fetch_content=recorder.fetch,
        rewrite=recorder.rewrite,
        sanitize=recorder.sanitize,
        on_outcome=lambda outcome: None,
    )

    assert [call[0] for call in recorder.calls] == ["rewrite", "sanitize"]
    assert entries[0].content == "clean(rw(feed:https://a.example/1))"
    assert report.count(CrawlStatus.DISABLED) == 1


def test_crawler_skips_urls_the_user_already_has():
    recorder = Recorder()
    known = {"https://a.example/old"}
    entries = _entries("https://a.example/old", "https://a.example/new")

    report = process_entries(
        entries,
        crawler=True,
        scraper_rules="article",
        entry_exists=known.__contains__,
        fetch_content=recorder.fetch,
        rewrite=recorder.rewrite,
        sanitize=recorder.sanitize,
        on_outcome=lambda outcome: None,
    )

    fetched = [call[1] for call in recorder.calls if call[0] == "fetch"]
    assert fetched == ["https://a.example/new"]
    assert entries[0].content == "clean(rw(feed:https://a.example/old))"
    assert entries[1].content == "clean(rw(page:https://a.example/new))"
    assert report.count(CrawlStatus.SKIPPED) == 1
    assert report.count(CrawlStatus.CRAWLED) == 1


def test_crawl_failure_keeps_feed_content_and_continues():
    recorder = Recorder(fail_on={"https://a.example/1"})
    entries = _entries("https://a.example/1", "https://a.example/2")
    seen = []

    report = process_entries(
        entries,
        crawler=True,
        fetch_content=recorder.fetch,
        rewrite=recorder.rewrite,
        sanitize=recorder.sanitize,
        on_outcome=seen.append,
    )

    assert entries[0].content == "clean(rw(feed:https://a.example/1))"
    assert entries[1].content == "clean(rw(page:https://a.example/2))"
    assert [outcome.status for outcome in seen] == [CrawlStatus.FAILED, CrawlStatus.CRAWLED]
    assert "boom" in report.failures[0].error


def test_rewrite_runs_before_sanitize_for_each_entry():
    recorder = Recorder()
    entries = _entries("https://a.example/1", "https://a.example/2")

    process_entries(
        entries,
        rewrite_rules="add_image_title",
        fetch_content=recorder.fetch,
        rewrite=recorder.rewrite,
        sanitize=recorder.sanitize,
        on_outcome=lambda outcome: None,
    )

    assert [(call[0], call[1]) for call in recorder.calls] == [
        ("rewrite", "https://a.example/1"),
        ("sanitize", "https://a.example/1"),
        ("rewrite", "https://a.example/2"),
        ("sanitize", "https://a.example/2"),
    ]
    assert recorder.calls[0][3] == "add_image_title"


def test_cookies_and_user_are_applied_to_every_crawl():
    recorder = Recorder()
    cookies = {"session": "abc"}
    entries = _entries("https://a.example/1", "https://a.example/2")

    process_entries(
        entries,
        user_id="u42",
        crawler=True,
        scraper_rules="div.body",
        cookies=cookies,
        fetch_content=recorder.fetch,
        rewrite=recorder.rewrite,
        sanitize=recorder.sanitize,
        on_outcome=lambda outcome: None,
    )

    fetches = [call for call in recorder.calls if call[0] == "fetch"]
    assert [call[2:] for call in fetches] == [("div.body", cookies), ("div.body", cookies)]
    assert all(entry.user_id == "u42" for entry in entries)


def test_default_pipeline_rewrites_and_sanitizes_real_markup():
    entries = [
        Entry(
            url="https://xkcd.com/1/",
            title="Comic",
            content='<img src="/comic.png" title="Hover text"><script>alert(1)</script>',
        )
    ]

    process_entries(entries, on_outcome=lambda outcome: None)

    content = entries[0].content
    assert "<figcaption>" in content
    assert "Hover text" in content
    assert "<script" not in content
    assert "https://xkcd.com/comic.png" in content
