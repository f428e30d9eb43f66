import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .db import init_db
from .errors import register_error_handlers
from .locale import Translator
from .observability.logging import setup_logging, bind_request_id
from .observability.metrics import metrics_endpoint, request_metrics_middleware
from .observability.sentry import init_sentry
from .routers import feeds, status


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


def create_app() -> FastAPI:
    tags_metadata = [
        {"name": "status", "description": "Service health"},
        {"name": "feeds", "description": "Feed subscriptions and refreshes"},
    ]
    app = FastAPI(
        title="fluxfeed API",
        version="0.1.0",
        openapi_tags=tags_metadata,
        lifespan=lifespan,
    )

    register_error_handlers(app, Translator())
    setup_logging()
    init_sentry(app)

    origins = os.getenv("CORS_ALLOW_ORIGINS", "*")
    allow_origins = [o.strip() for o in origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(request_metrics_middleware)

    @app.middleware("http")
    async def add_request_id(request, call_next):
        rid = bind_request_id(request.headers.get("X-Request-Id"))
        response = await call_next(request)
        response.headers["X-Request-Id"] = rid
        return response

    app.add_api_route("/metrics", metrics_endpoint, include_in_schema=False)

    app.include_router(status.router)
    app.include_router(feeds.router)
    return app


app = create_app()
