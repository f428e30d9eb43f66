"""Conditional HTTP fetching for feed documents and web pages."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import requests
from requests.auth import HTTPBasicAuth
from bs4 import UnicodeDammit

from ..config import http_client_timeout, http_client_user_agent
from ..errors import (
    EmptyFeedError,
    EncodingError,
    RequestFailedError,
    ResourceNotFoundError,
    ServerFailureError,
)
from ..observability.metrics import FETCH_DURATION

logger = logging.getLogger(__name__)

_REDACTED_HEADERS = {"cookie", "set-cookie", "authorization", "proxy-authorization"}


def _sanitize_headers_for_logging(headers: Any) -> Dict[str, Any]:
    if not headers:
        return {}
    try:
        iterable = headers.items()
    except AttributeError:
        return {}
    sanitized: Dict[str, Any] = {}
    for name, value in iterable:
        if str(name).lower() in _REDACTED_HEADERS:
            sanitized[str(name)] = "<redacted>"
        else:
            sanitized[str(name)] = value
    return sanitized


def _parse_content_length(value: Optional[str]) -> int:
    # -1 means the server did not declare a length.
    if value is None:
        return -1
    try:
        return int(str(value).strip())
    except ValueError:
        return -1


def charset_from_content_type(content_type: str) -> Optional[str]:
    for param in (content_type or "").split(";")[1:]:
        key, _, value = param.partition("=")
        if key.strip().lower() == "charset":
            charset = value.strip().strip("\"'")
            return charset or None
    return None


@dataclass
class HTTPResponse:
    """The parts of an HTTP response the reader cares about."""

    status_code: int
    effective_url: str
    content_type: str = ""
    content_length: int = -1
    etag: str = ""
    last_modified: str = ""
    body: bytes = b""

    def is_not_found(self) -> bool:
        return self.status_code == 404

    def has_server_failure(self) -> bool:
        return self.status_code >= 400

    def is_modified(self, etag: str = "", last_modified: str = "") -> bool:
        """Return ``False`` when the response matches the stored validators."""
        if self.status_code == 304:
            return False
        if self.etag and self.etag == etag:
            return False
        if self.last_modified and self.last_modified == last_modified:
            return False
        return True

    def ensure_not_empty(self) -> None:
        if self.content_length == 0:
            raise EmptyFeedError()

    def is_html(self) -> bool:
        return "text/html" in (self.content_type or "")

    def normalize_body_encoding(self) -> str:
        """Return the body decoded to text.

        A declared charset wins; undecodable bytes are replaced. Without a
        declaration the encoding is detected from the document itself.
        """
        declared = charset_from_content_type(self.content_type)
        if declared:
            try:
                return self.body.decode(declared, errors="replace")
            except LookupError as exc:
                raise EncodingError(exc) from exc
        dammit = UnicodeDammit(self.body, is_html=self.is_html())
        if dammit.unicode_markup is None:
            raise EncodingError("unable to detect the character set")
        return dammit.unicode_markup


def fetch(
    url: str,
    *,
    username: str = "",
    password: str = "",
    etag: str = "",
    last_modified: str = "",
    cookies: Optional[Mapping[str, str]] = None,
    timeout: Optional[float] = None,
) -> HTTPResponse:
    """GET ``url`` following redirects.

    Raises :class:`RequestFailedError` on transport errors,
    :class:`ResourceNotFoundError` on 404 and :class:`ServerFailureError` on
    any other status >= 400.
    """
    headers = {"User-Agent": http_client_user_agent()}
    if etag:
        headers["If-None-Match"] = etag
    if last_modified:
        headers["If-Modified-Since"] = last_modified

    session = requests.Session()
    session.headers.update(headers)
    for name, value in (cookies or {}).items():
        if name and value is not None:
            session.cookies.set(str(name), str(value))
    if session.cookies:
        logger.debug("Session cookies for %s: %s", url, ", ".join(sorted(session.cookies.keys())))
    auth = HTTPBasicAuth(username, password) if username else None
    logger.debug(
        "Fetching %s with headers (sanitized): %s",
        url,
        _sanitize_headers_for_logging(headers),
    )

    start = time.time()
    try:
        response = session.get(
            url,
            auth=auth,
            timeout=timeout or http_client_timeout(),
            allow_redirects=True,
        )
    except requests.exceptions.RequestException as exc:
        logger.error("Error fetching %s: %s", url, exc)
        raise RequestFailedError(exc) from exc
    finally:
        FETCH_DURATION.observe(time.time() - start)
        session.close()

    history_chain = [resp.url for resp in (response.history or []) if getattr(resp, "url", None)]
    response_headers = response.headers or {}
    result = HTTPResponse(
        status_code=response.status_code,
        effective_url=response.url or url,
        content_type=response_headers.get("Content-Type", ""),
        content_length=_parse_content_length(response_headers.get("Content-Length")),
        etag=response_headers.get("ETag", ""),
        last_modified=response_headers.get("Last-Modified", ""),
        body=response.content or b"",
    )
    logger.debug(
        "Received status %s from %s (effective URL %s, redirects: %s)",
        result.status_code,
        url,
        result.effective_url,
        " -> ".join(history_chain) if history_chain else "<none>",
    )

    if result.is_not_found():
        raise ResourceNotFoundError()
    if result.has_server_failure():
        raise ServerFailureError(result.status_code)
    return result
