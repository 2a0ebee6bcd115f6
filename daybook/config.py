"""
Configuration management for daybook stores.

The configuration is stored as a TOML file in the store directory.
It names the storage backend, the active profile and the presentation
tuning used by derived views.
"""

import os
import tomllib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

import tomli_w

from .status import DEFAULT_DUE_SOON_FRACTION


CONFIG_FILENAME = "daybook.toml"
CONFIG_VERSION = 1
DEFAULT_PROFILE = "journal"
DEFAULT_SORT = "occurred_desc"


def get_default_store_path() -> Path:
    """Store directory: DAYBOOK_STORE_PATH, else ~/.daybook."""
    env = os.environ.get("DAYBOOK_STORE_PATH")
    if env:
        return Path(env).expanduser()
    return Path.home() / ".daybook"


@dataclass
class DaybookConfig:
    """Complete store configuration."""
    path: Path
    version: int = CONFIG_VERSION
    created: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    # "local" (SQLite), "memory", or a name from the daybook.backends entry points
    backend: str = "local"
    profile: str = DEFAULT_PROFILE

    # Share of a care interval after which a record counts as due soon
    due_soon_fraction: float = DEFAULT_DUE_SOON_FRACTION
    default_sort: str = DEFAULT_SORT

    @property
    def config_path(self) -> Path:
        """Path to the TOML config file."""
        return self.path / CONFIG_FILENAME

    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()


def load_config(store_path: Path) -> DaybookConfig:
    """
    Load configuration from a store directory.

    Raises:
        FileNotFoundError: If config doesn't exist
        ValueError: If config is invalid
    """
    config_path = store_path / CONFIG_FILENAME

    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    store = data.get("store", {})
    version = store.get("version", 1)
    if version > CONFIG_VERSION:
        raise ValueError(f"Config version {version} is newer than supported ({CONFIG_VERSION})")

    views = data.get("views", {})
    fraction = float(views.get("due_soon_fraction", DEFAULT_DUE_SOON_FRACTION))
    if not 0 < fraction <= 1:
        raise ValueError(f"views.due_soon_fraction must be in (0, 1]: {fraction}")

    return DaybookConfig(
        path=store_path,
        version=version,
        created=store.get("created", ""),
        backend=store.get("backend", "local"),
        profile=store.get("profile", DEFAULT_PROFILE),
        due_soon_fraction=fraction,
        default_sort=views.get("default_sort", DEFAULT_SORT),
    )


def save_config(config: DaybookConfig) -> None:
    """
    Save configuration to the store directory.

    Creates the directory if it doesn't exist.
    """
    config.path.mkdir(parents=True, exist_ok=True)

    data = {
        "store": {
            "version": config.version,
            "created": config.created,
            "backend": config.backend,
            "profile": config.profile,
        },
        "views": {
            "due_soon_fraction": config.due_soon_fraction,
            "default_sort": config.default_sort,
        },
    }

    with open(config.config_path, "wb") as f:
        tomli_w.dump(data, f)


def load_or_create_config(store_path: Path) -> DaybookConfig:
    """
    Load existing config or create a new one with defaults.

    This is the main entry point for config management.
    """
    config_path = store_path / CONFIG_FILENAME

    if config_path.exists():
        return load_config(store_path)
    config = DaybookConfig(path=store_path)
    save_config(config)
    return config
