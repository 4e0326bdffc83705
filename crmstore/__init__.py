"""
crmstore - Person record store with an MCP tool surface

A small CRM: keyed and prefix lookup, substring search, CRUD, and
aggregate statistics over Person records. The store is plain Python;
the MCP server and CLI are thin layers over it.

Core components:
- PersonStore: Store interface shared by all backends
- SQLitePersonStore: Durable SQLite-backed store (seeded once per file)
- EphemeralSQLitePersonStore: SQLite store that deletes its file on close
- InMemoryPersonStore: Lock-guarded process-local store
- ObservabilityLogger: Phase-based activity log
"""

__version__ = "0.1.0"

from crmstore.core import (
    Person,
    Sex,
    SEED_PEOPLE,
    PersonStore,
    StorageError,
    InMemoryPersonStore,
    SQLitePersonStore,
    EphemeralSQLitePersonStore,
    ObservabilityLogger,
    LogEntry,
    CrmConfig,
    load_config,
    create_store,
    create_logger,
)

__all__ = [
    "Person",
    "Sex",
    "SEED_PEOPLE",
    "PersonStore",
    "StorageError",
    "InMemoryPersonStore",
    "SQLitePersonStore",
    "EphemeralSQLitePersonStore",
    "ObservabilityLogger",
    "LogEntry",
    "CrmConfig",
    "load_config",
    "create_store",
    "create_logger",
]
