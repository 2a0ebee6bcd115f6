"""
Pluggable slot store factory.

Creates the durable blob storage for a store directory based on
configuration. ``local`` uses SQLite in the store directory, ``memory``
keeps everything in the process. External backends register via the
``daybook.backends`` entry point group.

External backend packages provide a factory function::

    def create_slot_store(config: DaybookConfig) -> SlotStoreProtocol:
        ...

and register it in their pyproject.toml::

    [project.entry-points."daybook.backends"]
    my-backend = "my_package.backend:create_slot_store"
"""

from .config import DaybookConfig
from .protocol import SlotStoreProtocol

SLOTS_FILENAME = "slots.db"


def create_slot_store(config: DaybookConfig) -> SlotStoreProtocol:
    """Create the slot store named by ``config.backend``."""
    if config.backend == "local":
        from .slot_store import SqliteSlotStore
        return SqliteSlotStore(config.path / SLOTS_FILENAME)
    if config.backend == "memory":
        from .slot_store import MemorySlotStore
        return MemorySlotStore()
    return _load_backend(config.backend, config)


def _load_backend(name: str, config: DaybookConfig) -> SlotStoreProtocol:
    """Load a backend by entry point name."""
    from importlib.metadata import entry_points

    eps = entry_points(group="daybook.backends")
    for ep in eps:
        if ep.name == name:
            factory = ep.load()
            return factory(config)

    available = [ep.name for ep in eps]
    if available:
        raise ValueError(
            f"Unknown backend: {name!r}. Available: {available}"
        )
    raise ValueError(
        f"Unknown backend: {name!r}. No backends registered "
        f"(built in: 'local', 'memory')."
    )
