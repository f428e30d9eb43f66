from __future__ import annotations

import hashlib

import pytest
import requests

from fluxfeed.errors import IconError
from fluxfeed.reader import icon
from tests.factories import install_http, make_response


def _html(url, body):
    return make_response(url=url, content=body.encode("utf-8"), headers={"Content-Type": "text/html"})


def test_find_icon_follows_link_rel_icon(monkeypatch):
    http = install_http(
        monkeypatch,
        {
            "https://example.com/": _html(
                "https://example.com/",
                '<html><head><link rel="shortcut icon" href="/static/icon.png"></head></html>',
            ),
            "https://example.com/static/icon.png": make_response(
                url="https://example.com/static/icon.png",
                content=b"PNGDATA",
                headers={"Content-Type": "image/png"},
            ),
        },
    )

    result = icon.find_icon("https://example.com/")

    assert http.urls() == ["https://example.com/", "https://example.com/static/icon.png"]
    assert result.mime_type == "image/png"
    assert result.content == b"PNGDATA"
    assert result.hash == hashlib.sha256(b"PNGDATA").hexdigest()


def test_find_icon_falls_back_to_favicon(monkeypatch):
    http = install_http(
        monkeypatch,
        {
            "https://example.com/blog/": _html("https://example.com/blog/", "<html></html>"),
            "https://example.com/favicon.ico": make_response(
                url="https://example.com/favicon.ico",
                content=b"ICO",
                headers={"Content-Type": "image/x-icon"},
            ),
        },
    )

    result = icon.find_icon("https://example.com/blog/")

    assert http.urls()[-1] == "https://example.com/favicon.ico"
    assert result.mime_type == "image/x-icon"


def test_find_icon_wraps_fetch_errors(monkeypatch):
    install_http(
        monkeypatch, {"https://example.com/": requests.exceptions.Timeout("too slow")}
    )

    with pytest.raises(IconError):
        icon.find_icon("https://example.com/")


def test_download_icon_with_empty_body_returns_none(monkeypatch):
    install_http(
        monkeypatch,
        {"https://example.com/favicon.ico": make_response(url="https://example.com/favicon.ico")},
    )

    assert icon.download_icon("https://example.com/favicon.ico") is None


def test_parse_icon_url_resolves_relative_links():
    page = '<link rel="apple-touch-icon" href="touch.png"><link rel="stylesheet" href="s.css">'

    assert icon.parse_icon_url(page, "https://example.com/a/") == "https://example.com/a/touch.png"
    assert icon.parse_icon_url("<p>none</p>", "https://example.com/") is None
