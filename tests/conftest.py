"""
Pytest fixtures for the import cost test suite.

Provides:
- Structured logging configuration and captured JSON logs
- A SQLite-backed session factory per test (file under tmp_path)
- Deterministic clock and seeded random generator
- Catalog helpers: seeded currencies, products, containers

Database tests run against SQLite with foreign keys enabled; no external
server is required.
"""

import json
import logging
from collections.abc import Callable
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from uuid import UUID

import pytest
from sqlalchemy.orm import Session, sessionmaker

from importcost_config import Settings, get_settings
from importcost_engines.day_distribution import make_rng
from importcost_kernel.db.engine import (
    create_db_engine,
    create_session_factory,
    create_tables,
    drop_tables,
    transaction_scope,
)
from importcost_kernel.domain.clock import DeterministicClock
from importcost_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from importcost_services import CatalogService, ContainerService, NewLot


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture importcost logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            ...
            logs = captured_logs()
            assert any(r["message"] == "container_recalculated" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("importcost")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Deterministic collaborators
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    """Clock fixed after every scenario's period so EXIT movements sort last."""
    return DeterministicClock(datetime(2024, 6, 30, 18, 0, tzinfo=timezone.utc))


@pytest.fixture
def rng():
    return make_rng(42)


@pytest.fixture
def settings(monkeypatch) -> Settings:
    """Shipped defaults; any IMPORTCOST_CONFIG in the environment is ignored."""
    monkeypatch.delenv("IMPORTCOST_CONFIG", raising=False)
    return get_settings()


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'importcost_test.db'}")
    create_tables(engine)
    yield engine
    drop_tables(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker[Session]:
    return create_session_factory(engine)


@pytest.fixture
def session(session_factory) -> Session:
    """A session for tests that manage their own flushes; rolled back at teardown."""
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def seeded(session_factory, settings):
    """Commit the default currency catalog (USD 320, EUR 340, CUP 1)."""
    with transaction_scope(session_factory) as session:
        CatalogService(session, settings).seed_currencies()
    return session_factory


@pytest.fixture
def make_product(seeded, settings) -> Callable[..., UUID]:
    def _make(name: str, pack_size: int = 24) -> UUID:
        with transaction_scope(seeded) as session:
            return CatalogService(session, settings).create_product(name, pack_size)

    return _make


@pytest.fixture
def make_container(seeded, settings, clock) -> Callable[..., UUID]:
    """
    Create and commit a container.

    lots is a list of (product_id, quantity, unit_price_usd) tuples.
    """

    def _make(import_date: date, lots, percentages=None) -> UUID:
        with transaction_scope(seeded) as session:
            return ContainerService(session, settings, clock).create_container(
                import_date,
                [NewLot(pid, qty, Decimal(str(price))) for pid, qty, price in lots],
                percentages=percentages,
            )

    return _make
