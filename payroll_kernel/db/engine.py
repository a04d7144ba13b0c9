"""
Engine and session management for the payroll database.

One module-level engine and session factory, set up by
``init_engine_from_url``.  PostgreSQL (psycopg) in production, SQLite in
tests and local runs.  Sessions are created with ``expire_on_commit=False``
so DTOs can be built from models after a service commits.

Payroll writes detect races with guarded conditional UPDATEs (version and
status in the WHERE clause), so READ COMMITTED is enough on PostgreSQL.
"""

import atexit
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from payroll_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def _not_initialized() -> RuntimeError:
    return RuntimeError("Payroll database not initialized; call init_engine_from_url() first")


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Create the engine and session factory, replacing any previous ones.

    Pool settings apply to PostgreSQL only.  SQLite connections may be
    used from worker threads (batch runs) and wait ``pool_timeout``
    seconds for a write lock.
    """
    global _engine, _SessionFactory

    if database_url.startswith("sqlite"):
        dialect = "sqlite"
        _engine = create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": pool_timeout},
        )
    else:
        dialect = "postgresql"
        _engine = create_engine(
            database_url,
            echo=echo,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=pool_pre_ping,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
            isolation_level="READ COMMITTED",
        )
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info("payroll_engine_initialized", extra={"dialect": dialect, "echo": echo})
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise _not_initialized()
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """The session factory; batch runs call it once per employee."""
    if _SessionFactory is None:
        raise _not_initialized()
    return _SessionFactory


def get_session() -> Session:
    return get_session_factory()()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    A session committed on normal exit, rolled back on error, always closed.

    For callers that drive flush-only components (``LockCoordinator``,
    ``PayrollRecordStore``) without a service around them::

        with session_scope() as session:
            LockCoordinator(session).lock_period(3, 2025, actor_id)
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("payroll_transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables(install_listeners: bool = True) -> None:
    """
    Create the tables of every imported model and, by default, register
    the immutability listeners.

    Import the model modules first, e.g.
    ``payroll_modules.compensation.orm``; tables and protections are
    declared on import.
    """
    from payroll_kernel.db.base import Base
    from payroll_kernel.db.immutability import register_immutability_listeners

    Base.metadata.create_all(get_engine())
    if install_listeners:
        register_immutability_listeners()
    logger.info("payroll_tables_created", extra={"tables": sorted(Base.metadata.tables)})


def drop_tables() -> None:
    """Drop every payroll table.  Tests and local resets only."""
    from payroll_kernel.db.base import Base

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


@atexit.register
def _dispose_on_exit() -> None:
    if _engine is not None:
        _engine.dispose()
