"""
Error taxonomy for testreset.

Exceptions abort the current operation. Conditions a caller is expected to
handle (no snapshot yet, stale snapshot, nothing installed) are status values,
not exceptions.
"""

from enum import Enum


class ResetStatus(str, Enum):
    """Outcome of a database reset."""
    RESET = "reset"
    NOT_INSTALLED = "not_installed"      # No tables or no config table
    NOT_INITIALIZED = "not_initialized"  # No snapshot captured yet


class SnapshotStatus(str, Enum):
    """State of the stored snapshot relative to the codebase."""
    CURRENT = "current"
    STALE = "stale"
    NOT_INITIALIZED = "not_initialized"


class TestResetError(Exception):
    """Base class for all testreset failures."""
    __test__ = False


class FormatError(TestResetError):
    """A snapshot file exists but cannot be read back as a mapping."""

    def __init__(self, path, reason: str = "invalid format"):
        self.path = path
        super().__init__(
            f"Can not read {path} ({reason}), reinitialize test database."
        )


class DatabaseError(TestResetError):
    """A database statement failed. The test environment is contaminated."""

    def __init__(self, message: str, sql: str = None):
        self.sql = sql
        super().__init__(message)


class FilesystemError(TestResetError):
    """A dataroot path could not be read, created or removed."""

    def __init__(self, message: str, path=None):
        self.path = path
        super().__init__(message)
