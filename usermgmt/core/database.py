"""SQLAlchemy plumbing for the local user projection."""
from __future__ import annotations
import logging

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

Base = declarative_base()


def make_engine(url: str) -> Engine:
    """Create an engine; SQLite connections may be shared across threads."""
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    kwargs = {"connect_args": connect_args, "pool_pre_ping": True}
    if url in ("sqlite://", "sqlite:///:memory:"):
        # One connection, otherwise every session sees a fresh empty database
        kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_db(engine: Engine) -> None:
    # Import registers the mapped tables on Base.metadata
    from . import projection  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Projection tables ready on %s", engine.url.render_as_string(hide_password=True))


def ping(session_factory: sessionmaker) -> bool:
    """Return True when the projection database answers a trivial query."""
    with session_factory() as session:
        session.execute(text("SELECT 1"))
    return True
