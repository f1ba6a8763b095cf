"""Shared test fixtures for the Akari test suite."""

from __future__ import annotations

import os
from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

# Set test environment before any imports
os.environ.setdefault("MODE", "test")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from akari.config.settings import AkariConfig  # noqa: E402
from akari.utils.db import PortalStore, StoreTier  # noqa: E402


@pytest.fixture
def config() -> AkariConfig:
    """Config with every credential set; ignores any local .env."""
    return AkariConfig(
        _env_file=None,
        RAPIDAPI_KEY="test-rapid-key",
        TWITTER_API65_AUTH_TOKEN="Bearer test-token",
        DATABASE_URL="postgresql+asyncpg://reader:pw@localhost/akari",
        DATABASE_SERVICE_URL="postgresql+asyncpg://service:pw@localhost/akari",
    )


@pytest.fixture
def empty_config() -> AkariConfig:
    """Config with no credentials at all."""
    return AkariConfig(_env_file=None)


class Results:
    """Builders for the SQLAlchemy Result shapes the queries consume."""

    @staticmethod
    def scalars(rows: list[Any]) -> MagicMock:
        result = MagicMock()
        result.scalars.return_value.all.return_value = rows
        return result

    @staticmethod
    def scalar(value: Any) -> MagicMock:
        result = MagicMock()
        result.scalar.return_value = value
        result.scalar_one_or_none.return_value = value
        return result

    @staticmethod
    def rows(rows: list[Any]) -> MagicMock:
        result = MagicMock()
        result.all.return_value = rows
        return result


@pytest.fixture
def results() -> type[Results]:
    return Results


def _mock_session(results: list[Any]) -> AsyncMock:
    session = AsyncMock()
    session.execute = AsyncMock(side_effect=results)
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=None)
    return session


@pytest.fixture
def make_store() -> Callable[..., tuple[PortalStore, list[AsyncMock]]]:
    """Build a PortalStore whose sessions replay canned results.

    Each positional argument is the list of results one session returns, in
    the order sessions are opened.
    """

    def factory(*per_session: list[Any], tier: StoreTier = StoreTier.READ):
        sessions = [_mock_session(list(r)) for r in per_session]
        session_factory = MagicMock(side_effect=sessions)
        store = PortalStore(engine=MagicMock(), session_factory=session_factory, tier=tier)
        return store, sessions

    return factory


@pytest.fixture
def failing_store() -> PortalStore:
    """A store whose every session fails on execute."""
    session = AsyncMock()
    session.execute = AsyncMock(side_effect=RuntimeError("connection refused"))
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=None)
    return PortalStore(engine=MagicMock(), session_factory=MagicMock(return_value=session))
