"""Download a web page and keep only the part worth reading."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

from bs4 import BeautifulSoup
from readability import Document
from soupsieve import SelectorSyntaxError

from ..errors import ScraperError
from ..http import client
from .rules import PREDEFINED_SCRAPER_RULES, find_rule

logger = logging.getLogger(__name__)

# Inline media is replaced by its parent so captions and wrappers survive.
_PARENT_CONTENT_TAGS = frozenset({"img", "iframe"})


class ExtractionKind(str, enum.Enum):
    EXPLICIT = "explicit"
    PREDEFINED = "predefined"
    AUTOMATIC = "automatic"


@dataclass(frozen=True)
class ExtractionStrategy:
    kind: ExtractionKind
    rules: str = ""


def resolve_strategy(url: str, rules: str = "") -> ExtractionStrategy:
    """Pick the extraction strategy for a page reached at ``url``."""
    if rules and rules.strip():
        return ExtractionStrategy(ExtractionKind.EXPLICIT, rules.strip())
    predefined = find_rule(url, PREDEFINED_SCRAPER_RULES)
    if predefined:
        return ExtractionStrategy(ExtractionKind.PREDEFINED, predefined)
    return ExtractionStrategy(ExtractionKind.AUTOMATIC)


def scrape_content(page: str, rules: str) -> str:
    """Concatenate the inner HTML of every node matching ``rules``.

    Nodes are visited in document order. ``img`` and ``iframe`` matches
    contribute their parent's inner HTML instead of their own.
    """
    document = BeautifulSoup(page, "html.parser")
    try:
        nodes = document.select(rules)
    except SelectorSyntaxError as exc:
        raise ScraperError(f"scraper: invalid rules {rules!r}: {exc}") from exc

    contents = []
    for node in nodes:
        if node.name in _PARENT_CONTENT_TAGS and node.parent is not None:
            contents.append(node.parent.decode_contents())
        else:
            contents.append(node.decode_contents())
    return "".join(contents)


def extract_readable_content(page: str) -> str:
    try:
        return Document(page).summary(html_partial=True)
    except Exception as exc:  # noqa: BLE001
        raise ScraperError(f"scraper: readability failed: {exc}") from exc


def extract(
    page: str,
    strategy: ExtractionStrategy,
    *,
    readability: Optional[Callable[[str], str]] = None,
) -> str:
    if strategy.kind is ExtractionKind.AUTOMATIC:
        return (readability or extract_readable_content)(page)
    return scrape_content(page, strategy.rules)


def fetch_content(
    url: str,
    rules: str = "",
    cookies: Optional[Mapping[str, str]] = None,
) -> str:
    """Download ``url`` and return its relevant HTML content."""
    response = client.fetch(url, cookies=dict(cookies or {}))

    if not response.is_html():
        raise ScraperError(
            f"scraper: this resource is not a HTML document ({response.content_type})"
        )

    page = response.normalize_body_encoding()

    # The entry URL could redirect somewhere else.
    strategy = resolve_strategy(response.effective_url, rules)
    if strategy.kind is ExtractionKind.AUTOMATIC:
        logger.debug("Using readability for %s", response.effective_url)
    else:
        logger.debug(
            "Using %s rules %r for %s",
            strategy.kind.value,
            strategy.rules,
            response.effective_url,
        )
    return extract(page, strategy)
