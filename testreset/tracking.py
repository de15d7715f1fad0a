"""
Dirty table tracking.

The tracker listens to database writes and remembers which tables need a
restore on the next reset. A process that drives scenarios for another process
(e.g. a web worker behind a browser driver) also records writes in a JSON
mailbox file; the resetting process merges and deletes that file before it
restores anything.

The mailbox is a best-effort read-modify-write, replaced atomically so readers
never see a partial file. Concurrent writers can lose each other's keys only
when both add the same table, and a stale extra key only costs a redundant
restore. A mailbox that cannot be parsed is never deleted or overwritten;
the reset that finds it scans every table instead.
"""

import json
import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterable, Optional, Set

logger = logging.getLogger(__name__)

MAILBOX_FILE = "tablesupdatedbyscenario.json"


class ScenarioMailbox:
    """Shared JSON file keyed by dirty table name."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def read(self) -> Optional[Dict[str, bool]]:
        """
        Current mailbox content.

        Returns:
            The recorded tables ({} if there is no mailbox), or None if the
            file exists but cannot be read as a JSON object
        """
        try:
            data = json.loads(self.path.read_text())
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning("Unreadable mailbox %s: %s", self.path, e)
            return None
        if not isinstance(data, dict):
            logger.warning("Unreadable mailbox %s: not a JSON object", self.path)
            return None
        return data

    def record(self, table: str) -> None:
        """Add a table key unless it is already present."""
        tables = self.read()
        if tables is None:
            # Left as is: the resetting process full-scans while it is unreadable.
            return
        if table in tables:
            return
        tables[table] = True
        self._write(json.dumps(tables, indent=4, sort_keys=True))

    def _write(self, content: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            suffix=".tmp",
            prefix=f"{self.path.stem}_",
            dir=self.path.parent,
        )
        try:
            with os.fdopen(fd, "w") as f:
                f.write(content)
            os.replace(temp_path, self.path)
        except OSError:
            Path(temp_path).unlink(missing_ok=True)
            raise

    def drain(self) -> Optional[Set[str]]:
        """
        Return all keys and delete the file.

        Returns:
            The recorded tables, or None if the mailbox is unreadable (the
            file is then kept)
        """
        tables = self.read()
        if tables is None:
            return None
        self.discard()
        return set(tables)

    def discard(self) -> None:
        self.path.unlink(missing_ok=True)


class DirtyTableTracker:
    """
    Set of tables written since the last reset.

    ``synced`` is True once a reset has brought the whole database back to the
    snapshot; until then the tracked set is not a complete picture and the
    next reset must scan every table.
    """

    def __init__(self, mailbox: Optional[ScenarioMailbox] = None, shared: bool = False):
        """
        Args:
            mailbox: Cross-process mailbox (merged on reset when present)
            shared: Also record every mark in the mailbox
        """
        self.mailbox = mailbox
        self.shared = shared and mailbox is not None
        self.synced = False
        self._tables: Set[str] = set()
        self._paused = 0

    def __contains__(self, table: str) -> bool:
        return table in self._tables

    def __len__(self) -> int:
        return len(self._tables)

    @property
    def tables(self) -> Set[str]:
        return set(self._tables)

    def mark(self, table: str) -> None:
        """Record a write to a table. Safe to call repeatedly."""
        if self._paused:
            return
        if table not in self._tables:
            logger.debug("Table marked dirty: %s", table)
            self._tables.add(table)
        if self.shared:
            self.mailbox.record(table)

    def mark_many(self, tables: Iterable[str]) -> None:
        for table in tables:
            self.mark(table)

    def attach(self, db) -> None:
        """Start listening to a database's writes."""
        db.add_write_listener(self.mark)

    def detach(self, db) -> None:
        db.remove_write_listener(self.mark)

    @contextmanager
    def paused(self):
        """Ignore marks inside the block (the reset engine's own writes)."""
        self._paused += 1
        try:
            yield self
        finally:
            self._paused -= 1

    def merge_mailbox(self) -> Set[str]:
        """
        Merge tables recorded by other processes, then delete the mailbox.

        An unreadable mailbox is kept and the tracker loses ``synced``, so
        the reset in progress scans every table.
        """
        if self.mailbox is None:
            return set()
        tables = self.mailbox.drain()
        if tables is None:
            self.synced = False
            return set()
        if tables:
            logger.debug("Merged %d table(s) from %s", len(tables), self.mailbox.path)
        self._tables.update(tables)
        return tables

    def clear(self) -> None:
        """Forget all dirty tables; the database now matches the snapshot."""
        self._tables.clear()
        self.synced = True

    def invalidate(self) -> None:
        """Drop all tracking state so the next reset scans every table."""
        if self.mailbox is not None:
            self.mailbox.discard()
        self._tables.clear()
        self.synced = False
