"""Core infrastructure layer - no business logic dependencies.

This module provides foundation-level services:
- Configuration management (TOML)
- Logging (Loguru)
- Preference storage (SQLite)

Clean architecture principle: The core layer has no dependencies on
domain or application layers.
"""

# Configuration
from .config import (
    Config,
    load_config,
    get_config_dir,
    get_config_path,
    get_data_dir,
    get_database_path,
    create_default_config,
    ensure_directories,
)

# Exceptions
from .exceptions import (
    TunewaveError,
    CatalogError,
    EngineUnavailableError,
)

# Logging
from .output import setup_loguru

# Storage
from .storage import (
    LOCAL_SCOPE,
    MemoryStore,
    PersistenceAdapter,
    SqliteStore,
    scope_for_identity,
)

__all__ = [
    # Config
    "Config",
    "load_config",
    "get_config_dir",
    "get_config_path",
    "get_data_dir",
    "get_database_path",
    "create_default_config",
    "ensure_directories",
    # Exceptions
    "TunewaveError",
    "CatalogError",
    "EngineUnavailableError",
    # Logging
    "setup_loguru",
    # Storage
    "LOCAL_SCOPE",
    "MemoryStore",
    "PersistenceAdapter",
    "SqliteStore",
    "scope_for_identity",
]
