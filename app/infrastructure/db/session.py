"""
Database session management (SQLAlchemy)

One engine per process, shared by API requests and the scheduler thread.
"""
from contextlib import contextmanager
from typing import Iterator

import psycopg
from sqlalchemy import create_engine, text
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session

from app.config import get_settings


class Base(DeclarativeBase):
    """
    Declarative base for budget, transaction and alert tables
    """
    pass


# Singleton engine and session factory
_engine = None
_SessionLocal = None


def get_engine():
    """Get or create SQLAlchemy engine (singleton)"""
    global _engine
    if _engine is None:
        url = get_settings().get_sqlalchemy_url()
        kwargs = {"pool_pre_ping": True}
        if url.startswith("sqlite"):
            # Scheduler jobs use the engine from a worker thread
            kwargs["connect_args"] = {"check_same_thread": False}
        _engine = create_engine(url, **kwargs)
    return _engine


def get_session_factory():
    """Get or create session factory (singleton)"""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(bind=get_engine(), autoflush=False, autocommit=False)
    return _SessionLocal


def get_db() -> Session:
    """
    FastAPI dependency: opens a session and closes it after the request

    Usage:
        @router.get("/alerts")
        def list_alerts(db: Session = Depends(get_db)):
            ...
    """
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session for background jobs and scripts, closed on exit"""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def check_db_connection() -> None:
    """
    Readiness probe.

    PostgreSQL is checked over a raw psycopg connection, outside the pool;
    other backends (SQLite in development) go through the engine.

    Raises:
        psycopg.OperationalError / sqlalchemy.exc.OperationalError:
            if the database is unreachable
    """
    settings = get_settings()
    if settings.DATABASE_URL.startswith("postgresql"):
        with psycopg.connect(settings.DATABASE_URL, connect_timeout=3) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return

    with get_engine().connect() as conn:
        conn.execute(text("SELECT 1"))
