"""
TestEnvironment - high-level snapshot and reset operations.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from .config import Config
from .context import ResetContext
from .dataroot import CacheSubsystem, DatarootResetResult
from .db.base import CONFIG_TABLE, Database
from .errors import FilesystemError, SnapshotStatus
from .siteinfo import SiteInfoReporter
from .snapshot.models import ResetResult
from .ui.console import ConsoleUI

logger = logging.getLogger(__name__)


@dataclass
class EnvironmentResetResult:
    """Combined result of a database and dataroot reset."""
    database: ResetResult
    dataroot: DatarootResetResult


class TestEnvironment:
    """Snapshot, reset and teardown of one test database and dataroot."""

    __test__ = False

    def __init__(
        self,
        config: Config,
        db: Database,
        cache: Optional[CacheSubsystem] = None,
        ui: Optional[ConsoleUI] = None,
    ):
        """
        Initialize the environment.

        Args:
            config: Loaded configuration
            db: Open database (writes through it are tracked from now on)
            cache: Cache subsystem purged on dataroot reset
            ui: Console for progress output
        """
        self.config = config
        self.context = ResetContext.create(config, db, cache=cache)
        self.ui = ui or ConsoleUI(quiet=config.output.quiet or not config.output.verbose)

    @property
    def db(self) -> Database:
        return self.context.db

    @property
    def marker_path(self):
        return self.context.dataroot / f"{self.config.reset.framework}testdir.txt"

    # =========================================================================
    # Site checks
    # =========================================================================

    def is_test_site(self) -> bool:
        """
        Does this database and dataroot belong to the test framework?

        The dataroot must carry the framework marker file, and an installed
        database must carry the framework flag in its config table.
        """
        if not self.marker_path.exists():
            return False

        tables = self.db.get_tables()
        if tables:
            if CONFIG_TABLE not in tables:
                return False
            if not self.db.get_config(self.context.store.config_key):
                return False

        return True

    def status(self) -> SnapshotStatus:
        return self.context.store.status()

    def site_info(self) -> str:
        reporter = SiteInfoReporter(self.config.dirroot, self.db, dbtype=self.config.database.type)
        return reporter.get_site_info()

    # =========================================================================
    # Capture / reset
    # =========================================================================

    def capture(self) -> None:
        """
        Record the freshly installed state as the restore target.

        Call once, right after installation.
        """
        framework_dir = self.context.framework_dir
        try:
            framework_dir.mkdir(parents=True, exist_ok=True)
            self.marker_path.write_text(
                f"Contents of this directory are used during tests only, "
                f"do not delete this file! ({self.config.reset.framework})\n"
            )
        except OSError as e:
            raise FilesystemError(f"Cannot initialise dataroot: {e}", path=framework_dir) from e

        self.context.store.capture()
        self.context.dataroot_engine.save_preserved_manifest()
        self.context.tracker.clear()
        logger.info("Test environment captured in %s", self.context.dataroot)

    def reset_database(self) -> ResetResult:
        return self.context.database_engine.reset()

    def reset_dataroot(self) -> DatarootResetResult:
        return self.context.dataroot_engine.purge()

    def reset(self) -> EnvironmentResetResult:
        """Reset the database, then the dataroot."""
        database = self.reset_database()
        dataroot = self.reset_dataroot()
        return EnvironmentResetResult(database=database, dataroot=dataroot)

    def prepare_suite(self) -> None:
        """Before a full suite: forget tracked tables so the next reset scans all."""
        self.context.tracker.invalidate()

    # =========================================================================
    # Teardown
    # =========================================================================

    def drop_database(self, display_progress: bool = False) -> List[str]:
        """
        Drop every prefixed table.

        The config table goes last so an interrupted drop still looks
        installed and can be dropped again.
        """
        tables = self.db.get_tables()
        if CONFIG_TABLE in tables:
            tables.remove(CONFIG_TABLE)
            tables.append(CONFIG_TABLE)

        items = self.ui.track(tables, "Dropping tables") if display_progress else tables
        with self.context.tracker.paused():
            for table in items:
                self.db.drop_table(table)
        self.db.purge_config_cache()
        return tables

    def drop_dataroot(self) -> List[str]:
        return self.context.dataroot_engine.drop()

    def drop(self, display_progress: bool = False) -> None:
        """Remove the whole test environment (database and dataroot)."""
        self.drop_database(display_progress=display_progress)
        self.drop_dataroot()
        self.context.tracker.invalidate()
