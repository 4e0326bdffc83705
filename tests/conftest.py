"""
Shared pytest fixtures for crmstore tests.

Provides fixtures for:
- Every store backend (contract tests run once per backend)
- Seeded and empty SQLite files
- A configured MCP handler layer with an activity log
"""

from pathlib import Path
from typing import Iterator

import pytest

from crmstore.core.memory_store import InMemoryPersonStore
from crmstore.core.observability import ObservabilityLogger
from crmstore.core.sqlite_store import EphemeralSQLitePersonStore, SQLitePersonStore
from crmstore.core.store import PersonStore
from crmstore.mcp import handlers

BACKENDS = ["memory", "sqlite", "ephemeral"]


def _make_store(backend: str, tmp_path: Path, seed: bool = True) -> PersonStore:
    if backend == "memory":
        return InMemoryPersonStore(seed=seed)
    if backend == "sqlite":
        return SQLitePersonStore(tmp_path / "crm.db", seed=seed)
    return EphemeralSQLitePersonStore(tmp_path / "scratch.db", seed=seed)


@pytest.fixture(params=BACKENDS)
def store(request, tmp_path: Path) -> Iterator[PersonStore]:
    """Seeded store, once per backend."""
    s = _make_store(request.param, tmp_path)
    yield s
    s.close()


@pytest.fixture(params=BACKENDS)
def empty_store(request, tmp_path: Path) -> Iterator[PersonStore]:
    """Unseeded store, once per backend."""
    s = _make_store(request.param, tmp_path, seed=False)
    yield s
    s.close()


@pytest.fixture
def sqlite_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "crm.db"


@pytest.fixture
def obs_logger(tmp_path: Path) -> ObservabilityLogger:
    return ObservabilityLogger(tmp_path / "logs.db")


@pytest.fixture
def configured(obs_logger: ObservabilityLogger) -> Iterator[PersonStore]:
    """Handlers wired to a seeded in-memory store and a log database."""
    s = InMemoryPersonStore()
    handlers.configure(s, obs_logger)
    yield s
    handlers.configure(None)


@pytest.fixture
def unconfigured() -> Iterator[None]:
    handlers.configure(None)
    yield
    handlers.configure(None)
