"""
ResetContext - state shared by one test-run session.

Holds what would otherwise be process-wide globals: the fingerprint cache, the
dirty table set and the sequence cursors. Create one per session and pass it
around; nothing in testreset keeps module-level state.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config import Config
from .dataroot import CacheSubsystem, DataStoreResetEngine
from .db.base import Database
from .snapshot.restore import DatabaseResetEngine
from .snapshot.sequences import SequenceAllocator
from .snapshot.store import SnapshotStore
from .tracking import DirtyTableTracker, ScenarioMailbox
from .versions import VersionFingerprint


@dataclass
class ResetContext:
    """Components of one session, wired together."""
    config: Config
    db: Database
    fingerprint: VersionFingerprint
    tracker: DirtyTableTracker
    allocator: SequenceAllocator
    store: SnapshotStore
    database_engine: DatabaseResetEngine
    dataroot_engine: DataStoreResetEngine

    @property
    def dataroot(self) -> Path:
        return self.dataroot_engine.dataroot

    @property
    def framework_dir(self) -> Path:
        return self.dataroot_engine.framework_dir

    @classmethod
    def create(
        cls,
        config: Config,
        db: Database,
        cache: Optional[CacheSubsystem] = None,
    ) -> "ResetContext":
        """
        Build a context from configuration.

        The tracker is attached to the database, so every write made through
        ``db`` from now on marks its table dirty.
        """
        dataroot = config.dataroot
        framework = config.reset.framework
        framework_dir = dataroot / framework

        fingerprint = VersionFingerprint(config.dirroot, exclude=[dataroot])
        store = SnapshotStore(db, framework_dir, fingerprint, framework=framework)
        tracker = DirtyTableTracker(
            mailbox=ScenarioMailbox(store.paths.mailbox),
            shared=config.reset.scenario_running,
        )
        tracker.attach(db)
        allocator = SequenceAllocator(
            start=config.reset.sequence_start,
            block=config.reset.sequence_block,
        )

        return cls(
            config=config,
            db=db,
            fingerprint=fingerprint,
            tracker=tracker,
            allocator=allocator,
            store=store,
            database_engine=DatabaseResetEngine(db, store, tracker, allocator),
            dataroot_engine=DataStoreResetEngine(
                dataroot,
                framework=framework,
                cache=cache,
                skip_on_reset=config.reset.skip_on_reset,
                skip_on_drop=config.reset.skip_on_drop,
                directory_permissions=config.reset.directory_permissions,
            ),
        )

    def close(self) -> None:
        """Stop tracking writes on the database."""
        self.tracker.detach(self.db)
