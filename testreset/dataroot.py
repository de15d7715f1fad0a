"""
Dataroot reset - purges the file store and scratch directories.

Files that existed right after installation (the contents of ``filedir``) are
listed once in ``originaldatafiles.json`` and survive every purge. Only a full
drop removes them.
"""

import json
import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Set

from .errors import FilesystemError

logger = logging.getLogger(__name__)

MANIFEST_FILE = "originaldatafiles.json"
FILEDIR = "filedir"

# Recreated after every purge, relative to the dataroot.
SCRATCH_DIRS = ("temp", "temp/backup", "cache", "localcache")


@dataclass
class DatarootResetResult:
    """Result of a dataroot purge."""
    removed: List[str] = field(default_factory=list)
    kept: List[str] = field(default_factory=list)
    directories_created: List[str] = field(default_factory=list)


def make_writable_directory(path: Path, mode: int = 0o777) -> Path:
    """Create a directory (and parents) and normalize its permissions."""
    try:
        path.mkdir(parents=True, exist_ok=True)
        os.chmod(path, mode)
    except OSError as e:
        raise FilesystemError(f"Cannot create directory {path}: {e}", path=path) from e
    return path


def remove_path(path: Path) -> None:
    """Delete a file, link or directory tree."""
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        raise FilesystemError(f"Cannot remove {path}: {e}", path=path) from e


class CacheSubsystem:
    """Cache layer hooks the dataroot reset needs."""

    def purge_all(self) -> None:
        """Drop all cached data."""

    def reset(self) -> None:
        """Forget cache definitions and rebuild the directory layout."""


class DirectoryCache(CacheSubsystem):
    """File caches kept in a set of directories (inside or outside the dataroot)."""

    def __init__(self, directories: Iterable[Path], mode: int = 0o777):
        self.directories = [Path(d) for d in directories]
        self.mode = mode

    def purge_all(self) -> None:
        for directory in self.directories:
            if not directory.exists():
                continue
            for entry in directory.iterdir():
                remove_path(entry)

    def reset(self) -> None:
        for directory in self.directories:
            make_writable_directory(directory, self.mode)


class DataStoreResetEngine:
    """Purge, drop and manifest handling for one dataroot."""

    def __init__(
        self,
        dataroot: Path,
        framework: str = "unit",
        cache: Optional[CacheSubsystem] = None,
        skip_on_reset: Iterable[str] = (".htaccess",),
        skip_on_drop: Iterable[str] = ("lock",),
        directory_permissions: int = 0o777,
    ):
        """
        Initialize the engine.

        Args:
            dataroot: Root of the file store
            framework: Framework name (its private directory is never purged)
            cache: Cache subsystem to purge and rebuild
            skip_on_reset: Extra top-level entries kept by purge()
            skip_on_drop: Entries of the framework directory kept by drop()
            directory_permissions: Mode for recreated scratch directories
        """
        self.dataroot = Path(dataroot)
        self.framework = framework
        self.directory_permissions = directory_permissions
        self.cache = cache or DirectoryCache(
            [self.dataroot / "cache", self.dataroot / "localcache"],
            mode=directory_permissions,
        )
        self.skip_on_reset: Set[str] = {
            framework,
            f"{framework}testdir.txt",
            MANIFEST_FILE,
            *skip_on_reset,
        }
        self.skip_on_drop: Set[str] = set(skip_on_drop)
        self._preserved: Optional[Set[str]] = None

    @property
    def manifest_path(self) -> Path:
        return self.dataroot / MANIFEST_FILE

    @property
    def framework_dir(self) -> Path:
        return self.dataroot / self.framework

    # =========================================================================
    # Preserved manifest
    # =========================================================================

    def save_preserved_manifest(self) -> bool:
        """
        List everything under filedir, once.

        Returns:
            True if the manifest was written, False if it already existed
        """
        if self.manifest_path.exists():
            return False

        entries = [FILEDIR]
        filedir = self.dataroot / FILEDIR
        if filedir.exists():
            for dirpath, dirnames, filenames in os.walk(filedir):
                dirnames.sort()
                current = Path(dirpath)
                for name in dirnames + sorted(filenames):
                    entries.append((current / name).relative_to(self.dataroot).as_posix())

        try:
            self.dataroot.mkdir(parents=True, exist_ok=True)
            self.manifest_path.write_text(json.dumps(entries))
        except OSError as e:
            raise FilesystemError(f"Cannot write {self.manifest_path}: {e}", path=self.manifest_path) from e

        self._preserved = None
        logger.info("Saved %d preserved dataroot path(s)", len(entries))
        return True

    def load_preserved_manifest(self) -> Set[str]:
        """Preserved relative paths (empty if no manifest). Cached after first read."""
        if self._preserved is None:
            if not self.manifest_path.exists():
                return set()
            try:
                entries = json.loads(self.manifest_path.read_text())
            except (OSError, ValueError) as e:
                raise FilesystemError(
                    f"Cannot read {self.manifest_path}: {e}", path=self.manifest_path
                ) from e
            self._preserved = {str(entry) for entry in entries or []}
        return self._preserved

    # =========================================================================
    # Purge
    # =========================================================================

    def purge(self) -> DatarootResetResult:
        """
        Remove everything test runs left in the dataroot.

        Returns:
            DatarootResetResult listing removed and kept entries
        """
        if not self.dataroot.is_dir():
            raise FilesystemError(f"Dataroot does not exist: {self.dataroot}", path=self.dataroot)

        preserved = self.load_preserved_manifest()
        keep = self.skip_on_reset | preserved
        result = DatarootResetResult()

        for entry in sorted(self.dataroot.iterdir()):
            if entry.name in keep:
                result.kept.append(entry.name)
                continue
            remove_path(entry)
            result.removed.append(entry.name)

        filedir = self.dataroot / FILEDIR
        if filedir.is_dir():
            self._purge_filedir(filedir, preserved, result)

        for relative in SCRATCH_DIRS:
            make_writable_directory(self.dataroot / relative, self.directory_permissions)
            result.directories_created.append(relative)

        # Purge before reset: reset forgets the caches purge operates on.
        self.cache.purge_all()
        self.cache.reset()

        logger.info("Dataroot purged: %d removed, %d kept", len(result.removed), len(result.kept))
        return result

    def _purge_filedir(self, directory: Path, preserved: Set[str], result: DatarootResetResult) -> None:
        for entry in sorted(directory.iterdir()):
            relative = entry.relative_to(self.dataroot).as_posix()
            if relative in preserved:
                if entry.is_dir() and not entry.is_symlink():
                    self._purge_filedir(entry, preserved, result)
                continue
            remove_path(entry)
            result.removed.append(relative)

    # =========================================================================
    # Drop
    # =========================================================================

    def drop(self) -> List[str]:
        """
        Tear down the test dataroot.

        Empties the framework directory (except the drop allow-list). When a
        preserved manifest exists, it and the whole filedir go too.

        Returns:
            Removed paths relative to the dataroot
        """
        removed = []
        if self.framework_dir.is_dir():
            for entry in sorted(self.framework_dir.iterdir()):
                if entry.name in self.skip_on_drop:
                    continue
                remove_path(entry)
                removed.append(entry.relative_to(self.dataroot).as_posix())

        if self.manifest_path.exists():
            remove_path(self.manifest_path)
            removed.append(MANIFEST_FILE)
            filedir = self.dataroot / FILEDIR
            if filedir.exists():
                remove_path(filedir)
                removed.append(FILEDIR)

        self._preserved = None
        return removed
