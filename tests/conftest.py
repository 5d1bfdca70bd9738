"""
Shared fixtures for the linen test suite.

- JSON logging is configured once per session at DEBUG; LogContext is
  emptied around every test.
- ``captured_logs`` returns the records emitted during a test as dicts.
- Database tests run on a fresh schema per test.  Set DATABASE_URL to
  point them at PostgreSQL; the default is in-memory SQLite.
"""

import json
import logging
import os
from collections.abc import Callable, Iterator
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO
from uuid import UUID

import pytest
from sqlalchemy.orm import Session

from linen_config import EngineConfig
from linen_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from linen_kernel.domain.clock import DeterministicClock
from linen_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from linen_kernel.models import Client, LinenCategory

TEST_ACTOR_ID = UUID("00000000-0000-4000-8000-000000000001")
FIXED_NOW = datetime(2024, 3, 15, 9, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True, scope="session")
def _session_logging():
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _empty_log_context():
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs() -> Iterator[Callable[[], list[dict]]]:
    """
    Collect ``linen_kernel`` records emitted while the test runs.

        def test_x(captured_logs):
            ...
            assert "batch_created" in [r["message"] for r in captured_logs()]
    """
    buffer = StringIO()
    handler = logging.StreamHandler(buffer)
    handler.setFormatter(StructuredFormatter())
    base = logging.getLogger("linen_kernel")
    saved_level = base.level
    base.setLevel(logging.DEBUG)
    base.addHandler(handler)
    try:
        yield lambda: [json.loads(line) for line in buffer.getvalue().splitlines() if line]
    finally:
        base.removeHandler(handler)
        base.setLevel(saved_level)


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig.with_defaults()


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(FIXED_NOW)


@pytest.fixture
def test_actor_id() -> UUID:
    return TEST_ACTOR_ID


@pytest.fixture
def db_engine():
    engine = init_engine_from_url(os.environ.get("DATABASE_URL", "sqlite://"))
    create_tables()
    try:
        yield engine
    finally:
        drop_tables()
        reset_engine()


@pytest.fixture
def session(db_engine) -> Iterator[Session]:
    db_session = get_session()
    try:
        yield db_session
    finally:
        db_session.rollback()
        db_session.close()


@pytest.fixture
def make_client(session, test_actor_id) -> Callable[..., Client]:
    def factory(name: str = "Seaside Hotel", is_active: bool = True) -> Client:
        client = Client(name=name, is_active=is_active, created_by_id=test_actor_id)
        session.add(client)
        session.flush()
        return client

    return factory


@pytest.fixture
def make_category(session, test_actor_id) -> Callable[..., LinenCategory]:
    def factory(
        name: str,
        price: str,
        is_active: bool = True,
        section: str | None = None,
    ) -> LinenCategory:
        category = LinenCategory(
            name=name,
            price_per_item=Decimal(price),
            is_active=is_active,
            section=section,
            created_by_id=test_actor_id,
        )
        session.add(category)
        session.flush()
        return category

    return factory
