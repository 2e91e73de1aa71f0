"""
PostgreSQL connection via SQLAlchemy with psycopg3.

System of record for schedules, invitations, and tenant data.
"""

import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, scoped_session, declarative_base

from carecycle.config import config

# SQLAlchemy base for model declarations
Base = declarative_base()

# Engine and session factory (initialized lazily)
_engine = None
_session_factory = None

logger = logging.getLogger("db.postgres")


def sqlalchemy_url() -> str:
    """Configured database URL pinned to the psycopg3 driver."""
    url = config.get_database_url()
    if url.startswith("postgresql://"):
        url = "postgresql+psycopg://" + url[len("postgresql://"):]
    return url


def get_engine():
    """Get or create the SQLAlchemy engine."""
    global _engine
    if _engine is None:
        _engine = create_engine(
            sqlalchemy_url(),
            echo=config.DEBUG,  # Log SQL in debug mode
            pool_pre_ping=True,
            pool_recycle=300,
            pool_reset_on_return="rollback",
        )
    return _engine


def get_db_session():
    """Get a scoped database session.

    Returns the thread-local session from the scoped session factory.
    The session is cleaned up at the end of each request via close_db_session().
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = scoped_session(
            sessionmaker(bind=get_engine(), autocommit=False, autoflush=False)
        )

    return _session_factory()


def init_db():
    """Initialize database tables (for development/testing)."""
    # Import models so they register with Base.metadata
    from carecycle import models  # noqa: F401

    Base.metadata.create_all(bind=get_engine())


def close_db_session(exception=None):
    """Remove the current session (call at end of request).

    Always rollback so uncommitted work never leaks into the next request,
    then remove the session from the registry.
    """
    if _session_factory is None:
        return
    try:
        _session_factory.rollback()
    except Exception as e:
        logger.warning(f"Rollback on teardown failed: {e}")
    finally:
        _session_factory.remove()


def rollback_session():
    """Explicitly rollback the current session.

    Call this at the start of a request to ensure clean state.
    """
    if _session_factory is not None:
        session = _session_factory()
        if session.is_active:
            session.rollback()


# Alias for convenience
db = Base
