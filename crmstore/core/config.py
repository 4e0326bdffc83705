"""
Configuration system for crmstore.

Loads YAML configuration files and provides typed access to settings.
Uses Pydantic v2 for validation and immutable config objects.

Configuration Hierarchy (highest priority first):
1. Explicit overrides (passed to load_config)
2. Environment variables (CRMSTORE_*)
3. YAML configuration file
4. Pydantic field defaults
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from crmstore.core.observability import ObservabilityLogger
from crmstore.core.store import PersonStore

DEFAULT_DB_PATH = "crm.db"
DEFAULT_LOG_DB_PATH = "crm_logs.db"

CONFIG_FILENAMES = ["crmstore.yaml", "config.yaml"]
SECTIONS = {"storage", "observability", "server"}


class StorageConfig(BaseModel):
    """Where and how person records are kept."""

    model_config = ConfigDict(frozen=True)

    backend: Literal["sqlite", "memory", "ephemeral"] = Field(
        default="sqlite",
        description="sqlite: durable file; memory: process-local; ephemeral: file deleted on close",
    )
    db_path: Path = Field(default=Path(DEFAULT_DB_PATH), description="SQLite database file")
    seed: bool = Field(default=True, description="Insert the seed set into fresh storage")

    @field_validator("backend", mode="before")
    @classmethod
    def normalize_backend(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v


class ObservabilityConfig(BaseModel):
    """Activity log settings."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(default=True, description="Record store activity")
    db_path: Path = Field(default=Path(DEFAULT_LOG_DB_PATH), description="Log database file")


class ServerConfig(BaseModel):
    """MCP server settings."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(default="crmstore", min_length=1, description="Server name advertised to clients")


class CrmConfig(BaseModel):
    """Central configuration object for crmstore."""

    model_config = ConfigDict(frozen=True)

    storage: StorageConfig = Field(default_factory=StorageConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> "CrmConfig":
        """Load configuration from YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data, base_path=Path(path).parent)

    @classmethod
    def from_dict(cls, data: dict, base_path: Optional[Path] = None) -> "CrmConfig":
        """Create from dictionary, resolving relative paths against base_path."""
        base_path = base_path or Path(".")
        storage = dict(data.get("storage") or {})
        observability = dict(data.get("observability") or {})

        for section in (storage, observability):
            if section.get("db_path"):
                section["db_path"] = _resolve(base_path, str(section["db_path"]))

        return cls.model_validate({
            "storage": storage,
            "observability": observability,
            "server": data.get("server") or {},
        })


def _resolve(base_path: Path, value: Union[str, Path]) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else base_path / path


def load_config(
    path: Optional[Path] = None,
    env_prefix: str = "CRMSTORE_",
    overrides: Optional[Dict[str, Any]] = None,
    use_env: bool = True,
) -> CrmConfig:
    """Load configuration with hierarchy: defaults → YAML → env vars → overrides.

    Args:
        path: Optional explicit path to YAML config file
        env_prefix: Prefix for environment variables (default: "CRMSTORE_")
        overrides: Optional dictionary of overrides (e.g. from CLI options)
        use_env: Whether to load environment variables (default: True)

    Returns:
        Merged CrmConfig

    Examples:
        # Environment variable: CRMSTORE_STORAGE_BACKEND=memory
        config = load_config()  # config.storage.backend == "memory"

        config = load_config(overrides={"storage": {"db_path": "/tmp/crm.db"}})
    """
    yaml_path = _find_config_file(path)
    base_path = yaml_path.parent if yaml_path else Path(".")

    if yaml_path:
        with open(yaml_path) as f:
            config_dict = yaml.safe_load(f) or {}
    else:
        config_dict = {}

    if use_env:
        _deep_merge(config_dict, _extract_env_config(env_prefix))

    if overrides:
        _deep_merge(config_dict, overrides)

    return CrmConfig.from_dict(config_dict, base_path=base_path)


def _find_config_file(path: Optional[Path] = None) -> Optional[Path]:
    """Find configuration file.

    Searches in this order:
    1. Provided path
    2. ./crmstore.yaml
    3. ./config.yaml

    Returns:
        Path to config file or None if not found
    """
    if path and Path(path).exists():
        return Path(path)

    for filename in CONFIG_FILENAMES:
        config_path = Path(filename)
        if config_path.exists():
            return config_path

    return None


def _extract_env_config(prefix: str = "CRMSTORE_") -> Dict[str, Any]:
    """Extract configuration from environment variables.

    - CRMSTORE_STORAGE_DB_PATH=/data/crm.db → {"storage": {"db_path": "/data/crm.db"}}
    - CRMSTORE_OBSERVABILITY_ENABLED=false → {"observability": {"enabled": False}}

    Path fields (``*_path``) are kept verbatim, so "2024" or "a,b.db" stay
    file names. Variables outside the known sections are ignored.
    """
    config: Dict[str, Any] = {}

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue

        parts = key[len(prefix):].lower().split("_")
        if parts[0] not in SECTIONS or len(parts) < 2:
            continue

        section = parts[0]
        field = "_".join(parts[1:])
        if field.endswith("path"):
            config.setdefault(section, {})[field] = value
        else:
            config.setdefault(section, {})[field] = _convert_env_value(value)

    return config


def _convert_env_value(value: str) -> Union[str, int, float, bool, List[str]]:
    """Convert environment variable string to appropriate type.

    Booleans ("true"/"false"/"yes"/"no"/"on"/"off"), comma-separated lists,
    ints and floats are converted; everything else stays a string.
    """
    if not value:
        return value

    if value.lower() in ("true", "yes", "on"):
        return True
    if value.lower() in ("false", "no", "off"):
        return False

    if "," in value:
        return [v.strip() for v in value.split(",") if v.strip()]

    try:
        return int(value)
    except ValueError:
        pass

    try:
        return float(value)
    except ValueError:
        pass

    return value


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> None:
    """Deep merge override into base dictionary (mutates base).

    Examples:
        >>> base = {"a": {"b": 1, "c": 2}, "d": 3}
        >>> _deep_merge(base, {"a": {"b": 10}, "e": 5})
        >>> base
        {'a': {'b': 10, 'c': 2}, 'd': 3, 'e': 5}
    """
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


def create_store(config: CrmConfig) -> PersonStore:
    """Build the store variant named by config.storage.backend."""
    from crmstore.core.memory_store import InMemoryPersonStore
    from crmstore.core.sqlite_store import EphemeralSQLitePersonStore, SQLitePersonStore

    storage = config.storage
    if storage.backend == "memory":
        return InMemoryPersonStore(seed=storage.seed)
    if storage.backend == "ephemeral":
        # Without an explicit path, use a temp file rather than the default crm.db
        db_path = storage.db_path if "db_path" in storage.model_fields_set else None
        return EphemeralSQLitePersonStore(db_path, seed=storage.seed)
    return SQLitePersonStore(storage.db_path, seed=storage.seed)


def create_logger(config: CrmConfig) -> Optional[ObservabilityLogger]:
    """Build the activity logger, or None when disabled."""
    if not config.observability.enabled:
        return None
    return ObservabilityLogger(config.observability.db_path)
