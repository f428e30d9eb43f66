from __future__ import annotations

import pytest

from fluxfeed.errors import ScraperError, ServerFailureError
from fluxfeed.reader import scraper
from fluxfeed.reader.scraper import ExtractionKind, ExtractionStrategy
from tests.factories import install_http, make_response


ARTICLE_PAGE = """
<html><body>
  <nav>menu</nav>
  <article>
    <p>First paragraph</p>
    <figure><img src="a.png"><figcaption>Caption A</figcaption></figure>
    <p>Second paragraph</p>
  </article>
</body></html>
"""


def test_scrape_content_concatenates_inner_html_in_document_order():
    page = "<div class='x'><b>one</b></div><p>skip</p><div class='x'><i>two</i></div>"

    assert scraper.scrape_content(page, "div.x") == "<b>one</b><i>two</i>"


def test_scrape_content_uses_parent_of_images():
    content = scraper.scrape_content(ARTICLE_PAGE, "article img")

    assert "<figcaption>Caption A</figcaption>" in content
    assert content.startswith("<img")


def test_scrape_content_uses_parent_of_iframes():
    page = '<div class="video"><iframe src="https://player.vimeo.com/1"></iframe><p>About</p></div>'

    content = scraper.scrape_content(page, "iframe")

    assert "<p>About</p>" in content
    assert "<iframe" in content


def test_scrape_content_mixes_node_kinds_in_match_order():
    page = '<p>intro</p><figure><img src="b.png"/><figcaption>B</figcaption></figure><p>outro</p>'

    content = scraper.scrape_content(page, "p, img")

    assert content.index("intro") < content.index("B") < content.index("outro")


def test_scrape_content_without_matches_is_empty():
    assert scraper.scrape_content(ARTICLE_PAGE, "section.missing") == ""


def test_scrape_content_rejects_invalid_selector():
    with pytest.raises(ScraperError):
        scraper.scrape_content(ARTICLE_PAGE, "div[")


def test_resolve_strategy_prefers_explicit_rules():
    strategy = scraper.resolve_strategy("https://www.lemonde.fr/article", "div.custom")

    assert strategy == ExtractionStrategy(ExtractionKind.EXPLICIT, "div.custom")


def test_resolve_strategy_uses_predefined_rules_for_known_domains():
    strategy = scraper.resolve_strategy("https://www.lemonde.fr/article", "")

    assert strategy == ExtractionStrategy(ExtractionKind.PREDEFINED, "div#articleBody")


def test_resolve_strategy_falls_back_to_readability():
    strategy = scraper.resolve_strategy("https://blog.example.org/post", "  ")

    assert strategy.kind is ExtractionKind.AUTOMATIC


def test_extract_returns_readability_result_verbatim():
    result = scraper.extract(
        "<html>page</html>",
        ExtractionStrategy(ExtractionKind.AUTOMATIC),
        readability=lambda page: "<div>readable</div>",
    )

    assert result == "<div>readable</div>"


def test_fetch_content_uses_effective_url_for_predefined_rules(monkeypatch):
    page = "<div id='articleBody'><p>Le texte</p></div><aside>pub</aside>"
    http = install_http(
        monkeypatch,
        {
            "https://short.link/abc": make_response(
                url="https://www.lemonde.fr/article",
                content=page.encode("utf-8"),
                headers={"Content-Type": "text/html; charset=utf-8"},
            )
        },
    )

    content = scraper.fetch_content("https://short.link/abc", "", {"session": "1"})

    assert content == "<p>Le texte</p>"
    assert http.requests[0]["cookies"] == {"session": "1"}


def test_fetch_content_rejects_non_html_documents(monkeypatch):
    install_http(
        monkeypatch,
        {
            "https://example.com/file.pdf": make_response(
                url="https://example.com/file.pdf",
                content=b"%PDF",
                headers={"Content-Type": "application/pdf"},
            )
        },
    )

    with pytest.raises(ScraperError) as exc:
        scraper.fetch_content("https://example.com/file.pdf", "article")

    assert "not a HTML document" in str(exc.value)


def test_fetch_content_propagates_server_failures(monkeypatch):
    install_http(
        monkeypatch,
        {"https://example.com/down": make_response(url="https://example.com/down", status=502)},
    )

    with pytest.raises(ServerFailureError):
        scraper.fetch_content("https://example.com/down", "article")


def test_fetch_content_uses_readability_without_rules(monkeypatch):
    install_http(
        monkeypatch,
        {
            "https://blog.example.org/post": make_response(
                url="https://blog.example.org/post",
                content=b"<html><body><p>text</p></body></html>",
                headers={"Content-Type": "text/html"},
            )
        },
    )
    seen = []

    def fake_readability(page):
        seen.append(page)
        return "<p>readable</p>"

    monkeypatch.setattr(scraper, "extract_readable_content", fake_readability)

    assert scraper.fetch_content("https://blog.example.org/post") == "<p>readable</p>"
    assert seen and "<p>text</p>" in seen[0]
