"""
Error taxonomy and error logging for daybook.

Store operations raise the exceptions below. The CLI logs full stack
traces to a file while showing clean messages to users.
"""

import os
import traceback
from datetime import datetime, timezone
from pathlib import Path


class DaybookError(Exception):
    """Base class for daybook errors."""


class NotFound(DaybookError, KeyError):
    """No record with the requested id."""

    def __init__(self, id: str, slot: str = ""):
        self.id = id
        self.slot = slot
        super().__init__(id)

    def __str__(self) -> str:
        where = f" in {self.slot}" if self.slot else ""
        return f"Not found{where}: {self.id}"


class DuplicateId(DaybookError):
    """A record with this id already exists.

    Ids are generated fresh for every new record, so this signals a
    programming error rather than a user mistake.
    """

    def __init__(self, id: str, slot: str = ""):
        self.id = id
        self.slot = slot
        where = f" in {slot}" if slot else ""
        super().__init__(f"Duplicate id{where}: {id}")


class DecodeFailure(DaybookError):
    """A persisted blob could not be decoded into records."""


class EncodeFailure(DaybookError):
    """The in-memory collection could not be encoded.

    The mutation that triggered it is not committed.
    """


class PersistenceFailure(DaybookError):
    """The slot store failed to save a blob; the mutation is not committed."""


def _error_log_path() -> Path:
    """Resolve error log path, respecting DAYBOOK_STORE_PATH."""
    store = os.environ.get("DAYBOOK_STORE_PATH")
    if store:
        return Path(store) / "daybook-errors.log"
    return Path.home() / ".daybook" / "daybook-errors.log"


def log_exception(exc: Exception, context: str = "") -> Path:
    """
    Log exception with full traceback to file.

    Args:
        exc: The exception that occurred
        context: Optional context string (e.g., command name)

    Returns:
        Path to the error log file
    """
    log_path = _error_log_path()
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        with os.fdopen(fd, "a") as f:
            f.write(f"\n{'='*60}\n")
            f.write(f"[{timestamp}]")
            if context:
                f.write(f" {context}")
            f.write("\n")
            f.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    except OSError:
        pass  # error log is best effort; daybook CLI prints the message regardless
    return log_path
