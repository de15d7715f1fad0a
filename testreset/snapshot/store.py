"""
Snapshot store - persists the captured state in the dataroot.

Layout under ``<dataroot>/<framework>/``:
    tabledata.ser        pickled table contents
    tablestructure.ser   pickled column descriptors
    versionshash.txt     codebase fingerprint at capture time

The fingerprint is also written to the config table, so a snapshot left over
from before a partial upgrade is detected even if the files look intact.
"""

import logging
import pickle
from pathlib import Path
from typing import Optional

from ..db.base import Database
from ..errors import FormatError, FilesystemError, SnapshotStatus
from ..versions import VersionFingerprint
from .capture import SnapshotCapture
from .models import SnapshotPaths, TableData, TableStructure

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Reads and writes the snapshot files of one framework."""

    def __init__(
        self,
        db: Database,
        framework_dir: Path,
        fingerprint: VersionFingerprint,
        framework: str = "unit",
    ):
        """
        Initialize the store.

        Args:
            db: Database the snapshot describes
            framework_dir: Private directory for the snapshot files
            fingerprint: Codebase fingerprint
            framework: Framework name (config key is ``<framework>test``)
        """
        self.db = db
        self.paths = SnapshotPaths(Path(framework_dir))
        self.fingerprint = fingerprint
        self.framework = framework

        self._tabledata: Optional[TableData] = None
        self._tablestructure: Optional[TableStructure] = None

    @property
    def config_key(self) -> str:
        return f"{self.framework}test"

    # =========================================================================
    # Capture
    # =========================================================================

    def capture(self) -> None:
        """
        Capture the current database as the restore target.

        Overwrites any previous snapshot and records the fingerprint in both
        the dataroot and the config table. The fingerprint goes in first so
        the config row is part of the captured contents.
        """
        self.store_versions_hash()
        data, structure = SnapshotCapture(self.db).capture()

        self._write(self.paths.tabledata, pickle.dumps(data, protocol=pickle.HIGHEST_PROTOCOL))
        self._write(
            self.paths.tablestructure,
            pickle.dumps(structure, protocol=pickle.HIGHEST_PROTOCOL),
        )
        self._tabledata = None
        self._tablestructure = None

    def store_versions_hash(self) -> str:
        """Recompute the fingerprint and record it in the config table and the dataroot."""
        self.fingerprint.invalidate()
        value = self.fingerprint.value
        self.db.set_config(self.config_key, value)
        self._write(self.paths.versionshash, value.encode())
        logger.info("Stored versions hash %s", value)
        return value

    def _write(self, path: Path, content: bytes) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        except OSError as e:
            raise FilesystemError(f"Cannot write {path}: {e}", path=path) from e

    # =========================================================================
    # Load
    # =========================================================================

    def _load(self, path: Path) -> dict:
        try:
            raw = path.read_bytes()
        except OSError as e:
            raise FormatError(path, str(e)) from e
        try:
            value = pickle.loads(raw)
        except Exception as e:
            raise FormatError(path, f"{type(e).__name__}: {e}") from e
        if not isinstance(value, dict):
            raise FormatError(path)
        return value

    def load_tabledata(self) -> TableData:
        """Snapshot contents; empty when nothing has been captured yet."""
        if self._tabledata is None:
            if not self.paths.tabledata.exists():
                return {}
            self._tabledata = self._load(self.paths.tabledata)
        return self._tabledata

    def load_tablestructure(self) -> TableStructure:
        """Snapshot structure; empty when nothing has been captured yet."""
        if self._tablestructure is None:
            if not self.paths.tablestructure.exists():
                return {}
            self._tablestructure = self._load(self.paths.tablestructure)
        return self._tablestructure

    # =========================================================================
    # Staleness
    # =========================================================================

    def has_snapshot(self) -> bool:
        return self.paths.tabledata.exists() and self.paths.tablestructure.exists()

    def is_stale(self) -> bool:
        """
        True unless the stored fingerprints match the codebase.

        The database value is read directly (bypassing the config cache) so a
        value changed by another process is not missed. The codebase side
        uses the session fingerprint; a recapture recomputes it.
        """
        if not self.has_snapshot() or not self.paths.versionshash.exists():
            return True

        current = self.fingerprint.value
        if self.paths.versionshash.read_text() != current:
            return True

        if self.db.get_config(self.config_key, bypass_cache=True) != current:
            return True

        return False

    def status(self) -> SnapshotStatus:
        """Snapshot state as a status value."""
        if not self.has_snapshot():
            return SnapshotStatus.NOT_INITIALIZED
        if self.is_stale():
            return SnapshotStatus.STALE
        return SnapshotStatus.CURRENT
