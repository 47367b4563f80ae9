"""
Module: importcost_kernel.db.engine
Responsibility: SQLAlchemy engine construction, session factory creation and
    the transactional scope used by every mutating operation.
Architecture position: Kernel > DB.  May import from db/base.py and models/.
    Holds NO module-level engine: the application entry point creates a
    session factory once and injects it wherever a transaction is opened.

Invariants enforced:
    - transaction_scope() commits on normal exit and rolls back the whole
      unit of work on any exception, so a recalculation or a sale
      confirmation is never half-applied.
    - Services only flush(); commit belongs to the caller's scope.

Failure modes:
    - SQLAlchemy OperationalError / IntegrityError propagate after rollback.
"""

from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from importcost_kernel.logging_config import get_logger

logger = get_logger("db.engine")


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create an engine for the given URL.

    SQLite connections get foreign-key enforcement so that cascade and
    SET NULL rules behave as they do on server databases.
    """
    engine = create_engine(database_url, echo=echo)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    logger.info(
        "engine_initialized",
        extra={"dialect": engine.dialect.name, "echo": echo},
    )
    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Session factory bound to engine; objects stay usable after commit."""
    return sessionmaker(bind=engine, expire_on_commit=False)


@contextmanager
def transaction_scope(
    session_factory: sessionmaker[Session],
) -> Generator[Session, None, None]:
    """
    Provide a transactional scope around a series of operations.

    Postconditions: On normal exit, session is committed and closed.
        On exception, session is rolled back and closed; the exception
        is re-raised to the caller.

    Usage:
        with transaction_scope(factory) as session:
            ContainerService(session).add_expense(...)
    """
    session = session_factory()
    logger.debug("transaction_started")
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


def create_tables(engine: Engine) -> None:
    """Create all tables. Models are imported so Base.metadata sees them."""
    import importcost_kernel.models  # noqa: F401
    from importcost_kernel.db.base import Base

    Base.metadata.create_all(engine)


def drop_tables(engine: Engine) -> None:
    """Drop all tables. Use with caution - primarily for testing."""
    import importcost_kernel.models  # noqa: F401
    from importcost_kernel.db.base import Base

    Base.metadata.drop_all(engine)
