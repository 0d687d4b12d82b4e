"""
Shared test configuration and fixtures.

Provides temporary directories, a team-aware account provider and
ready-to-use candidates for connector tests.
"""

from __future__ import annotations

import tempfile
from collections.abc import Iterator
from pathlib import Path

import pytest

from sre_security.access import AccessCandidate
from sre_security.accounts import StaticAccountProvider

TEAM_DATA = {
    "team-1": {
        "users": {"alice": {}, "bob": {}},
        "agents": {"agent-1": {}},
        "settings": {"region": "eu"},
    },
    "team-2": {
        "users": {"carol": {}},
        "agents": {"agent-2": {}},
        "settings": {},
    },
}


@pytest.fixture
def temp_dir() -> Iterator[Path]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def accounts() -> StaticAccountProvider:
    """Account provider with two teams."""
    return StaticAccountProvider(TEAM_DATA)


@pytest.fixture
def alice() -> AccessCandidate:
    return AccessCandidate.user("alice")


@pytest.fixture
def bob() -> AccessCandidate:
    """Alice's teammate."""
    return AccessCandidate.user("bob")


@pytest.fixture
def carol() -> AccessCandidate:
    """Member of another team."""
    return AccessCandidate.user("carol")
