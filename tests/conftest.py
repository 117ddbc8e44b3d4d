"""
Pytest fixtures for the billing core test suite.

Provides:
- Structured logging capture
- Deterministic clock
- Member / contribution / invoice fixtures (see tests/factories.py)
- In-memory SQLite sessions for the ORM mappings
"""

import json
import logging
from datetime import datetime, timezone
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy.orm import Session

from tests.factories import (
    VALID_BIC,
    make_contribution,
    make_definition,
    make_invoice,
    make_member,
)
from verein_config.schema import BillingConfig
from verein_engines.dunning import DunningPolicy
from verein_engines.sepa_xml import SepaCreditorConfig
from verein_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from verein_kernel.domain.clock import DeterministicClock
from verein_modules.billing import orm as billing_orm  # noqa: F401  (registers the billing tables)
from verein_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)


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
    Capture verein logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            service.run_dunning(items)
            logs = captured_logs()
            assert any(r["message"] == "dunning_run_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("verein")
    previous_level = root.level
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Clock
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Clock fixed at 2025-01-25 09:00 UTC."""
    return DeterministicClock(datetime(2025, 1, 25, 9, 0, 0, tzinfo=timezone.utc))


# =============================================================================
# Records
# =============================================================================


@pytest.fixture
def member():
    return make_member()


@pytest.fixture
def definition():
    return make_definition()


@pytest.fixture
def contribution(member, definition):
    return make_contribution(member, definition)


@pytest.fixture
def invoice(member):
    return make_invoice(member_id=member.id)


@pytest.fixture
def creditor() -> SepaCreditorConfig:
    return SepaCreditorConfig(
        creditor_name="Musterverein e.V.",
        creditor_iban="DE89 3704 0044 0532 0130 00",
        creditor_bic=VALID_BIC,
        creditor_id="DE98ZZZ09999999999",
        message_id_prefix="MV",
    )


@pytest.fixture
def billing_config(creditor) -> BillingConfig:
    return BillingConfig(
        association_name="Musterverein e.V.",
        creditor=creditor,
        dunning=DunningPolicy(),
    )


# =============================================================================
# Database fixtures (in-memory SQLite)
# =============================================================================


@pytest.fixture
def session() -> Generator[Session, None, None]:
    """Fresh in-memory database with all billing tables."""
    init_engine_from_url("sqlite://")
    create_tables()
    db_session = get_session()
    try:
        yield db_session
    finally:
        db_session.close()
        drop_tables()
        reset_engine()
