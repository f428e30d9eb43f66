import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlmodel import SQLModel, Session, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from .config import database_url, is_create_all_enabled


logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None
_engine_url: Optional[str] = None


def get_engine():
    """Return a SQLModel engine, creating it if needed."""
    global _engine, _engine_url
    url = database_url()
    if _engine is None or url != _engine_url:
        connect_args = {}
        engine_kwargs = {"echo": False}
        if url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
            if url == "sqlite://":
                engine_kwargs["poolclass"] = StaticPool
        _engine = create_engine(url, connect_args=connect_args, **engine_kwargs)
        _engine_url = url
    return _engine


def init_db() -> None:
    """Optionally create all tables.

    In-memory sqlite is reset on every call so tests start from an empty
    schema. Other databases only get ``create_all`` when SQLMODEL_CREATE_ALL
    is enabled.
    """
    from . import models  # noqa: F401  register tables on the metadata

    engine = get_engine()
    if database_url() == "sqlite://":
        SQLModel.metadata.drop_all(engine)
        SQLModel.metadata.create_all(engine)
        return
    if is_create_all_enabled():
        logger.info("Creating database tables")
        SQLModel.metadata.create_all(engine)


def _session_scope() -> Iterator[Session]:
    with Session(get_engine(), expire_on_commit=False) as session:
        yield session


@contextmanager
def get_session_ctx() -> Iterator[Session]:
    yield from _session_scope()


def get_session() -> Iterator[Session]:
    yield from _session_scope()
