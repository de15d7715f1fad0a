"""
testreset - Fast database and dataroot reset between test runs

Snapshots a freshly installed database and its file store once, then restores
only what each test changed.

Usage:
    from testreset import Config, TestEnvironment, connect

    config = Config.load()
    env = TestEnvironment(config, connect(config.database))

    env.capture()          # once, after installation
    ...
    env.reset()            # after every test
"""

__version__ = "1.0.0"

# Main exports
from .config import Config
from .db import Database, connect
from .manager import TestEnvironment, EnvironmentResetResult
from .context import ResetContext

# Components
from .snapshot import SnapshotStore, DatabaseResetEngine, SequenceAllocator, ResetResult
from .tracking import DirtyTableTracker, ScenarioMailbox
from .dataroot import DataStoreResetEngine, CacheSubsystem, DirectoryCache
from .versions import VersionFingerprint
from .siteinfo import SiteInfoReporter
from .logs import configure_logging

# Errors and status values
from .errors import (
    TestResetError,
    FormatError,
    DatabaseError,
    FilesystemError,
    ResetStatus,
    SnapshotStatus,
)

__all__ = [
    # Version
    "__version__",
    # Main
    "Config",
    "Database",
    "connect",
    "TestEnvironment",
    "EnvironmentResetResult",
    "ResetContext",
    # Components
    "SnapshotStore",
    "DatabaseResetEngine",
    "SequenceAllocator",
    "ResetResult",
    "DirtyTableTracker",
    "ScenarioMailbox",
    "DataStoreResetEngine",
    "CacheSubsystem",
    "DirectoryCache",
    "VersionFingerprint",
    "SiteInfoReporter",
    "configure_logging",
    # Errors
    "TestResetError",
    "FormatError",
    "DatabaseError",
    "FilesystemError",
    "ResetStatus",
    "SnapshotStatus",
]
