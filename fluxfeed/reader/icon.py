"""Find and download the favicon of a website."""

from __future__ import annotations

import hashlib
import logging
from typing import Optional
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from ..errors import IconError, LocalizedError
from ..http import client
from ..models import Icon

logger = logging.getLogger(__name__)


def _root_url(website_url: str) -> str:
    parsed = urlparse(website_url)
    return f"{parsed.scheme}://{parsed.netloc}/"


def parse_icon_url(page: str, base_url: str) -> Optional[str]:
    document = BeautifulSoup(page, "html.parser")
    for link in document.find_all("link", href=True):
        rel = link.get("rel") or []
        if isinstance(rel, str):
            rel = rel.split()
        if any(value.lower() in ("icon", "shortcut", "apple-touch-icon") for value in rel):
            href = link["href"].strip()
            if href:
                return urljoin(base_url, href)
    return None


def download_icon(icon_url: str) -> Optional[Icon]:
    try:
        response = client.fetch(icon_url)
    except LocalizedError as exc:
        raise IconError(f"icon: unable to download {icon_url}: {exc}") from exc
    if not response.body:
        return None
    mime_type = (response.content_type or "image/x-icon").split(";")[0].strip()
    return Icon(
        hash=hashlib.sha256(response.body).hexdigest(),
        mime_type=mime_type,
        content=response.body,
    )


def find_icon(website_url: str) -> Optional[Icon]:
    """Return the icon advertised by ``website_url``, or its /favicon.ico."""
    if not website_url:
        return None
    icon_url = None
    try:
        response = client.fetch(website_url)
        if response.is_html():
            icon_url = parse_icon_url(response.normalize_body_encoding(), response.effective_url)
    except LocalizedError as exc:
        raise IconError(f"icon: unable to fetch {website_url}: {exc}") from exc
    if not icon_url:
        icon_url = urljoin(_root_url(response.effective_url), "favicon.ico")

    logger.debug("Downloading icon %s for %s", icon_url, website_url)
    return download_icon(icon_url)
