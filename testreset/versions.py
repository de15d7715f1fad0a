"""
Codebase version fingerprint.

Every component directory carries a ``version.py`` marker with a
``version = <number>`` assignment. The fingerprint is a SHA-1 over all
``component=version`` pairs, so any version bump (or added/removed component)
changes it.
"""

import hashlib
import os
import re
from pathlib import Path
from typing import Dict, Iterable, Optional

MARKER_FILE = "version.py"

SKIP_DIRS = {
    ".git", ".hg", ".svn", ".tox", ".venv", "venv", "node_modules",
    "__pycache__", ".pytest_cache", ".mypy_cache",
}

_VERSION_RE = re.compile(r"^\s*version\s*=\s*['\"]?([0-9][0-9.]*)['\"]?", re.MULTILINE)


class VersionFingerprint:
    """Computes the version hash for a code root."""

    def __init__(
        self,
        dirroot: Path,
        exclude: Optional[Iterable[Path]] = None,
        marker: str = MARKER_FILE,
    ):
        """
        Args:
            dirroot: Code root to scan
            exclude: Extra directories to skip (the dataroot, typically)
            marker: Marker file name
        """
        self.dirroot = Path(dirroot)
        self.marker = marker
        self.exclude = {Path(p).resolve() for p in (exclude or [])}
        self._value: Optional[str] = None

    @property
    def value(self) -> str:
        """Cached fingerprint for this session."""
        if self._value is None:
            self._value = self.compute()
        return self._value

    def invalidate(self) -> None:
        self._value = None

    def component_versions(self) -> Dict[str, str]:
        """Map of component (relative directory) to declared version."""
        versions = {}
        for dirpath, dirnames, filenames in os.walk(self.dirroot):
            current = Path(dirpath)
            dirnames[:] = sorted(
                d for d in dirnames
                if d not in SKIP_DIRS and (current / d).resolve() not in self.exclude
            )
            if self.marker not in filenames:
                continue

            content = (current / self.marker).read_text(errors="replace")
            match = _VERSION_RE.search(content)
            component = current.relative_to(self.dirroot).as_posix()
            if match:
                versions[component] = match.group(1)
            else:
                versions[component] = hashlib.sha1(content.encode()).hexdigest()
        return versions

    def compute(self) -> str:
        """Recompute the fingerprint from the files on disk."""
        versions = self.component_versions()
        payload = "\n".join(f"{name}={versions[name]}" for name in sorted(versions))
        return hashlib.sha1(payload.encode()).hexdigest()
