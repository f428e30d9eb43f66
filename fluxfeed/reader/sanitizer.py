"""HTML sanitizer: the last step before entry content is stored."""

from __future__ import annotations

from urllib.parse import urljoin, urlparse

from bleach.sanitizer import Cleaner
from bs4 import BeautifulSoup

_ALLOWED_TAGS = {
    "a", "abbr", "audio", "b", "blockquote", "br", "caption", "cite", "code",
    "dd", "del", "dfn", "dl", "dt", "em", "figcaption", "figure", "h1", "h2",
    "h3", "h4", "h5", "h6", "hr", "i", "iframe", "img", "ins", "kbd", "li",
    "mark", "ol", "p", "pre", "q", "rp", "rt", "rtc", "ruby", "s", "samp",
    "source", "small", "strike", "strong", "sub", "sup", "table", "tbody",
    "td", "tfoot", "th", "thead", "time", "tr", "u", "ul", "var", "video",
    "wbr",
}

# Removed together with their content instead of being unwrapped.
_BLACKLISTED_TAGS = ("script", "style", "noscript", "object", "embed", "form", "noembed")

_IFRAME_HOSTS = (
    "www.youtube.com",
    "www.youtube-nocookie.com",
    "player.vimeo.com",
    "www.dailymotion.com",
    "player.twitch.tv",
    "bandcamp.com",
    "open.spotify.com",
)


def _allow_iframe_attribute(tag: str, name: str, value: str) -> bool:
    if name in ("width", "height", "frameborder", "allowfullscreen"):
        return True
    if name != "src":
        return False
    host = (urlparse(value).hostname or "").lower()
    return any(host == allowed or host.endswith(f".{allowed}") for allowed in _IFRAME_HOSTS)


_ALLOWED_ATTRS = {
    "a": ["href", "title", "id"],
    "abbr": ["title"],
    "audio": ["src", "controls"],
    "blockquote": ["cite"],
    "del": ["cite", "datetime"],
    "iframe": _allow_iframe_attribute,
    "img": ["alt", "title", "src", "srcset", "sizes", "width", "height"],
    "ins": ["cite", "datetime"],
    "q": ["cite"],
    "source": ["src", "type", "srcset", "sizes", "media"],
    "td": ["colspan", "rowspan"],
    "th": ["colspan", "rowspan", "scope"],
    "time": ["datetime"],
    "video": ["src", "poster", "controls", "width", "height"],
}

_ALLOWED_PROTOCOLS = ["http", "https", "mailto", "tel", "ftp", "magnet", "news", "rtsp", "apt", "itms"]

_CLEANER = Cleaner(
    tags=_ALLOWED_TAGS,
    attributes=_ALLOWED_ATTRS,
    protocols=_ALLOWED_PROTOCOLS,
    strip=True,
    strip_comments=True,
)

_URL_ATTRIBUTES = ("href", "src", "poster", "cite")


def sanitize(entry_url: str, content: str) -> str:
    """Strip unsafe markup and make links absolute relative to ``entry_url``."""
    if not content:
        return ""
    soup = BeautifulSoup(content, "html.parser")
    for element in soup.find_all(_BLACKLISTED_TAGS):
        if not element.decomposed:
            element.decompose()
    cleaned = _CLEANER.clean(str(soup))

    document = BeautifulSoup(cleaned, "html.parser")
    for iframe in document.find_all("iframe"):
        if not iframe.get("src"):
            iframe.decompose()
    for element in document.find_all(True):
        for attribute in _URL_ATTRIBUTES:
            value = element.get(attribute)
            if value and entry_url:
                element[attribute] = urljoin(entry_url, value.strip())
        if element.name == "a" and element.get("href"):
            element["rel"] = "noopener noreferrer"
            element["target"] = "_blank"
    return str(document).strip()
