"""
Module: verein_kernel.db.engine
Responsibility: One process-wide SQLAlchemy engine and session factory for
    the persistence collaborator, plus the transactional ``session_scope``.
Architecture position: Kernel > DB.  The billing engines never import this
    module; only ORM-facing code and tests do.

Invariants enforced:
    - ``session_scope()`` commits on success and rolls back on any
      exception, so a reminder insert and the matching invoice
      reminder_level bump land together or not at all.

Failure modes:
    - RuntimeError when a session is requested before
      ``init_engine_from_url()``.
"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import Session, sessionmaker

from verein_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_NOT_INITIALIZED = "Database engine not initialized; call init_engine_from_url() first"

_engine: Engine | None = None
_sessions: sessionmaker[Session] | None = None


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 10,
    max_overflow: int = 5,
    pool_pre_ping: bool = True,
) -> Engine:
    """
    Create the engine for ``database_url`` and bind the session factory.

    Pool options only apply to server databases (PostgreSQL in production);
    SQLite URLs, used by the tests, keep SQLAlchemy's default pool.
    """
    global _engine, _sessions

    url = make_url(database_url)
    backend = url.get_backend_name()
    options: dict = {"echo": echo}
    if backend != "sqlite":
        options.update(
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=pool_pre_ping,
        )

    _engine = create_engine(url, **options)
    _sessions = sessionmaker(bind=_engine, expire_on_commit=False)

    logger.info("engine_initialized", extra={
        "dialect": backend,
        "database": url.database,
        "echo": echo,
    })
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session() -> Session:
    """New session from the shared factory; the caller closes it."""
    if _sessions is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _sessions()


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    Unit of work: commit when the block finishes, roll back if it raises.

    Usage:
        with session_scope() as session:
            session.add(ContributionReminderModel.from_dto(reminder, reminder_number=number))
            invoice_model.apply_dunning(updated_invoice)
    """
    session = get_session()
    try:
        yield session
        session.commit()
        logger.debug("transaction_committed")
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    """
    Create every table registered on ``Base.metadata``.

    Preconditions: the engine is initialized and the ORM models are
        imported (e.g. ``verein_modules.billing.orm``), so the metadata
        holds their table definitions.
    """
    from verein_kernel.db.base import Base

    Base.metadata.create_all(get_engine())


def drop_tables() -> None:
    from verein_kernel.db.base import Base

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory (test teardown)."""
    global _engine, _sessions

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _sessions = None
