import logging
import traceback
import uuid
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .locale import Translator, format_message


class LocalizedError(Exception):
    """Error carrying an English message template and its arguments.

    ``str(error)`` renders the English message; ``localize`` renders it for a
    user language through a :class:`~fluxfeed.locale.Translator`.
    """

    template = "%s"
    code = "feed_error"
    status_code = 400

    def __init__(self, *args: object, template: Optional[str] = None):
        self.template = template or self.template
        self.args_ = args
        super().__init__(format_message(self.template, args))

    def localize(self, translator: Translator, language: Optional[str]) -> str:
        return translator.translate(language, self.template, *self.args_)


class CategoryNotFoundError(LocalizedError):
    template = "Category not found for this user"
    code = "category_not_found"


class RequestFailedError(LocalizedError):
    template = "Unable to execute request: %s"
    code = "request_failed"
    status_code = 502


class ServerFailureError(LocalizedError):
    template = "Unable to fetch feed (Status Code = %d)"
    code = "server_failure"
    status_code = 502

    def __init__(self, status: int):
        self.status = status
        super().__init__(status)


class ResourceNotFoundError(LocalizedError):
    template = "Resource not found (404), this feed doesn't exists anymore, check the feed URL"
    code = "resource_not_found"
    status_code = 502


class EmptyFeedError(LocalizedError):
    template = "This feed is empty"
    code = "empty_feed"
    status_code = 422


class EncodingError(LocalizedError):
    template = "Unable to normalize encoding: %s"
    code = "encoding_error"
    status_code = 422


class DuplicateFeedError(LocalizedError):
    template = "This feed already exists (%s)"
    code = "duplicate_feed"
    status_code = 409


class FeedNotFoundError(LocalizedError):
    template = "Feed %s not found"
    code = "feed_not_found"
    status_code = 404


class ParseError(LocalizedError):
    template = "Unable to parse feed: %s"
    code = "parse_error"
    status_code = 422


class ScraperError(RuntimeError):
    """Raised when a web page cannot be turned into entry content."""


class IconError(RuntimeError):
    """Raised when a feed icon cannot be downloaded."""


def _problem(
    *,
    code: str,
    message: str,
    status: int,
    trace_id: str,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    body = {
        "type": f"about:blank#{code}",
        "title": message,
        "status": status,
        "code": code,
        "message": message,
        "trace_id": trace_id,
    }
    if details:
        body["details"] = details
    return JSONResponse(
        body,
        status_code=status,
        headers={"X-Trace-Id": trace_id},
        media_type="application/problem+json",
    )


def register_error_handlers(app: FastAPI, translator: Optional[Translator] = None) -> None:
    translator = translator or Translator()

    @app.exception_handler(LocalizedError)
    async def localized_exc_handler(request: Request, exc: LocalizedError):  # type: ignore[override]
        trace_id = str(uuid.uuid4())
        language = request.headers.get("X-User-Language")
        return _problem(
            code=exc.code,
            message=exc.localize(translator, language),
            status=exc.status_code,
            trace_id=trace_id,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
        trace_id = str(uuid.uuid4())
        detail = exc.detail
        if isinstance(detail, dict):
            message = detail.get("message") or detail.get("error") or "HTTP error"
            return _problem(
                code="http_error",
                message=str(message),
                status=exc.status_code,
                trace_id=trace_id,
                details=detail,
            )
        return _problem(code="http_error", message=str(detail), status=exc.status_code, trace_id=trace_id)

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
        trace_id = str(uuid.uuid4())
        return _problem(
            code="validation_error",
            message="Request validation failed",
            status=422,
            trace_id=trace_id,
            details={"errors": exc.errors()},
        )

    @app.exception_handler(Exception)
    async def unhandled_exc_handler(request: Request, exc: Exception):  # type: ignore[override]
        trace_id = str(uuid.uuid4())
        logging.error("Unhandled error: %s\n%s", exc, traceback.format_exc())
        return _problem(
            code="internal_error",
            message="An unexpected error occurred",
            status=500,
            trace_id=trace_id,
        )
