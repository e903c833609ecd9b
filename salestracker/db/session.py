"""Engine, sessions and schema setup for the sales database."""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from salestracker.core.config import get_settings

from .models import Base

logger = logging.getLogger(__name__)

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def create_db_engine(url: str) -> Engine:
    """Create an engine; SQLite connections get foreign keys switched on."""
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    engine = create_engine(url, connect_args={"check_same_thread": False})

    @event.listens_for(engine, "connect")
    def enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def get_engine() -> Engine:
    """Engine for the configured database, created on first use."""
    global _engine
    if _engine is None:
        _engine = create_db_engine(get_settings().get_database_url())
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine(), expire_on_commit=False)
    return _session_factory


@contextmanager
def session_scope(factory: sessionmaker[Session] | None = None) -> Generator[Session, None, None]:
    """Commit on success, roll back on any error."""
    session = (factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_database(use_migrations: bool = True) -> None:
    """Bring the schema up to date.

    Alembic upgrades to head when the migration scripts ship alongside the
    package; otherwise the tables are created straight from the models.
    """
    engine = get_engine()
    alembic_ini = Path(__file__).resolve().parents[2] / "alembic.ini"

    if not use_migrations or not alembic_ini.exists():
        if use_migrations:
            logger.warning(f"alembic.ini not found at {alembic_ini}, creating tables directly")
        Base.metadata.create_all(engine)
        return

    from alembic import command
    from alembic.config import Config

    config = Config(str(alembic_ini))
    config.set_main_option("script_location", str(alembic_ini.parent / "migrations"))
    config.set_main_option("sqlalchemy.url", engine.url.render_as_string(hide_password=False))

    logger.info("Upgrading database schema to head")
    command.upgrade(config, "head")


def close_database() -> None:
    """Dispose of the engine; the next use creates a fresh one."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
        _engine = None
    _session_factory = None
