"""Shared fixtures for the career agent test suite."""

from __future__ import annotations

import os
import random

os.environ.setdefault("CAREER_AGENT_NO_LOG_FILE", "1")

import pytest

from career_agent.catalog import default_catalog
from career_agent.config import DEFAULT_SETTINGS
from career_agent.matcher import JobMatcher


@pytest.fixture
def catalog():
    """The bundled five-posting reference catalog."""
    return default_catalog()


@pytest.fixture
def matcher(catalog) -> JobMatcher:
    return JobMatcher(catalog, rng=random.Random(1234))


@pytest.fixture
def settings() -> dict:
    import copy

    return copy.deepcopy(DEFAULT_SETTINGS)


@pytest.fixture(autouse=True)
def no_retry_sleep(monkeypatch: pytest.MonkeyPatch) -> None:
    """Retries back off instantly in tests."""
    monkeypatch.setattr("career_agent.retry.time.sleep", lambda _seconds: None)
