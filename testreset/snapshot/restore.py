"""
Database reset - brings dirty tables back to the snapshot.

Strategy per table:
1. Snapshot had no rows: delete everything
2. Auto-increment id: compare row for row; if the live table only has extra
   rows after the last snapshot id, delete those; otherwise replace
3. No auto-increment id: replace (delete all + reinsert)

Nothing runs inside a transaction. A failing statement raises DatabaseError
and leaves some tables restored and some not; the caller must treat the
environment as contaminated.
"""

import logging
from typing import Any, Dict, List, Optional, Set

from ..db.base import CONFIG_TABLE, ColumnInfo, Database, has_auto_increment_id
from ..errors import ResetStatus
from ..tracking import DirtyTableTracker
from .models import ResetResult
from .sequences import SequenceAllocator, SequenceResetStrategy, strategy_for
from .state import ResetPhase, ResetStateMachine
from .store import SnapshotStore

logger = logging.getLogger(__name__)


class DatabaseResetEngine:
    """Restores the database to the captured snapshot."""

    def __init__(
        self,
        db: Database,
        store: SnapshotStore,
        tracker: DirtyTableTracker,
        allocator: SequenceAllocator,
        strategy: Optional[SequenceResetStrategy] = None,
    ):
        """
        Initialize the engine.

        Args:
            db: Database to reset
            store: Snapshot to restore to
            tracker: Dirty tables since the last reset
            allocator: Staggered sequence starts
            strategy: Sequence strategy (picked from the engine family if None)
        """
        self.db = db
        self.store = store
        self.tracker = tracker
        self.allocator = allocator
        self.strategy = strategy or strategy_for(db)
        self.state = ResetStateMachine()

    def reset(self) -> ResetResult:
        """
        Reset all dirty tables, their sequences, and drop unknown tables.

        Returns:
            ResetResult; NOT_INSTALLED / NOT_INITIALIZED results did nothing
        """
        self.state.begin()

        tables = self.db.get_tables()
        if not tables or CONFIG_TABLE not in tables:
            return ResetResult.skipped(ResetStatus.NOT_INSTALLED)

        data = self.store.load_tabledata()
        structure = self.store.load_tablestructure()
        if not data or not structure:
            return ResetResult.skipped(ResetStatus.NOT_INITIALIZED)

        self.state.transition(ResetPhase.DATA_LOADED)

        with self.tracker.paused():
            self.tracker.merge_mailbox()
            full_scan = not self.tracker.synced
            scope = set(data) if full_scan else self.tracker.tables

            empties: Set[str] = set()
            if full_scan and not self.strategy.staggers:
                # Engines without staggered sequences: don't touch what was
                # never written to.
                empties = self.strategy.guess_empty_tables(self.db)

            result = ResetResult(status=ResetStatus.RESET, full_scan=full_scan)

            for table, rows in data.items():
                if table not in scope:
                    continue
                self._restore_table(table, rows, structure.get(table, {}), empties, result)

            self.allocator.start_pass()
            result.sequences = self.strategy.reset(
                self.db, data, structure, scope, self.allocator, skip=empties,
            )
            self.state.transition(ResetPhase.SEQUENCES_RESET, {"sequences": len(result.sequences)})

            for table in tables:
                if table not in data:
                    logger.debug("Dropping table created during test: %s", table)
                    self.db.drop_table(table)
                    result.tables_dropped.append(table)
            self.state.transition(ResetPhase.TABLES_CLEANED)

        self.tracker.clear()
        self.state.transition(ResetPhase.IDLE)

        logger.info(
            "Database reset: %d restored, %d truncated, %d emptied, %d dropped%s",
            len(result.tables_restored), len(result.tables_truncated),
            len(result.tables_emptied), len(result.tables_dropped),
            " (full scan)" if full_scan else "",
        )
        return result

    def _restore_table(
        self,
        table: str,
        rows: List[Dict[str, Any]],
        columns: Dict[str, ColumnInfo],
        empties: Set[str],
        result: ResetResult,
    ) -> None:
        if not rows:
            if table not in empties:
                self.db.delete_records(table)
                result.tables_emptied.append(table)
            return

        if has_auto_increment_id(columns):
            current = self.db.get_records(table, order_by="id")
            extra = self.trailing_rows(rows, current)
            if extra is not None:
                if extra:
                    logger.debug("Truncating %d row(s) from %s", len(extra), table)
                    self.db.delete_records_select(table, "id > ?", [rows[-1]["id"]])
                    result.tables_truncated.append(table)
                return

        logger.debug("Replacing contents of %s", table)
        self.db.delete_records(table)
        for row in rows:
            self.db.insert_record(table, row)
        result.tables_restored.append(table)

    @staticmethod
    def trailing_rows(
        snapshot: List[Dict[str, Any]],
        current: List[Dict[str, Any]],
    ) -> Optional[List[Any]]:
        """
        Ids of live rows appended after the snapshot.

        Returns:
            List of extra ids (empty when the table is unchanged), or None if
            the live table diverges in any other way
        """
        live = {row["id"]: row for row in current}
        for row in snapshot:
            if live.pop(row["id"], None) != row:
                return None

        last_id = snapshot[-1]["id"]
        if any(row_id <= last_id for row_id in live):
            return None
        return sorted(live)
