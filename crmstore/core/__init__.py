"""Core abstractions for crmstore."""

from crmstore.core.models import Person, Sex, SEED_PEOPLE
from crmstore.core.store import PersonStore, StorageError
from crmstore.core.memory_store import InMemoryPersonStore
from crmstore.core.sqlite_store import SQLitePersonStore, EphemeralSQLitePersonStore
from crmstore.core.observability import ObservabilityLogger, LogEntry
from crmstore.core.config import CrmConfig, load_config, create_store, create_logger

__all__ = [
    # Model
    "Person",
    "Sex",
    "SEED_PEOPLE",
    # Stores
    "PersonStore",
    "StorageError",
    "InMemoryPersonStore",
    "SQLitePersonStore",
    "EphemeralSQLitePersonStore",
    # Observability
    "ObservabilityLogger",
    "LogEntry",
    # Config
    "CrmConfig",
    "load_config",
    "create_store",
    "create_logger",
]
