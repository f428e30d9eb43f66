"""Content rewrite rules applied to every entry before sanitization."""

from __future__ import annotations

import logging
import re
from typing import Callable, Dict

from bs4 import BeautifulSoup

from .rules import PREDEFINED_REWRITE_RULES, find_rule

logger = logging.getLogger(__name__)

_YOUTUBE_WATCH = re.compile(r"youtube\.com/watch\?v=([\w-]+)")


def add_image_title(entry_url: str, content: str) -> str:
    """Show the ``title`` of comic strips as a caption under the image."""
    document = BeautifulSoup(content, "html.parser")
    images = [img for img in document.find_all("img") if img.get("title") and img.get("src")]
    if not images:
        return content

    for img in images:
        figure = document.new_tag("figure")
        image = document.new_tag("img", src=img["src"], alt=img.get("alt", ""))
        caption = document.new_tag("figcaption")
        paragraph = document.new_tag("p")
        paragraph.string = img["title"]
        caption.append(paragraph)
        figure.append(image)
        figure.append(caption)
        img.replace_with(figure)
    return str(document)


def add_youtube_video(entry_url: str, content: str) -> str:
    match = _YOUTUBE_WATCH.search(entry_url or "")
    if not match:
        return content
    video = (
        '<iframe width="650" height="350" frameborder="0" '
        f'src="https://www.youtube-nocookie.com/embed/{match.group(1)}" allowfullscreen></iframe>'
    )
    return f"{video}<p>{content}</p>"


REWRITE_FUNCTIONS: Dict[str, Callable[[str, str], str]] = {
    "add_image_title": add_image_title,
    "add_youtube_video": add_youtube_video,
}


def rewrite(entry_url: str, content: str, rules: str = "") -> str:
    """Apply comma separated rewrite ``rules``, or the predefined ones for the URL."""
    rules = (rules or "").strip() or find_rule(entry_url, PREDEFINED_REWRITE_RULES) or ""
    if not rules:
        return content

    for name in (part.strip() for part in rules.split(",")):
        if not name:
            continue
        function = REWRITE_FUNCTIONS.get(name)
        if function is None:
            logger.debug("Ignoring unknown rewrite rule %r for %s", name, entry_url)
            continue
        content = function(entry_url, content)
    return content
