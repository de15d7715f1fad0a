"""
SiteInfoReporter - Describes the environment tests run in.

Read-only: product release, source revision, Python, database and OS.
"""

import platform
import re
from pathlib import Path
from typing import Dict, Optional

from .db.base import Database

_RELEASE_RE = re.compile(r"^\s*release\s*=\s*['\"]([^'\"]+)['\"]", re.MULTILINE)
_SHA1_RE = re.compile(r"^[0-9a-f]{40}$")


class SiteInfoReporter:
    """Collects environment details for test run headers."""

    def __init__(self, dirroot: Path, db: Database, dbtype: Optional[str] = None):
        self.dirroot = Path(dirroot)
        self.db = db
        self.dbtype = dbtype or db.get_dbfamily()

    def get_release(self) -> str:
        """Release string from the root version marker."""
        version_file = self.dirroot / "version.py"
        if not version_file.exists():
            return "unknown"
        match = _RELEASE_RE.search(version_file.read_text(errors="replace"))
        return match.group(1) if match else "unknown"

    def get_git_hash(self) -> Optional[str]:
        """
        Current commit of the checkout in dirroot.

        Naive: reads .git/HEAD and follows one ref. Packed refs, worktrees and
        anything unreadable give None.
        """
        git_dir = self.dirroot / ".git"
        try:
            head = (git_dir / "HEAD").read_text().strip()
        except OSError:
            return None

        # Detached HEAD
        if _SHA1_RE.match(head):
            return head

        if not head.startswith("ref: "):
            return None

        try:
            commit = (git_dir / head[5:].strip()).read_text().strip()
        except OSError:
            return None

        return commit if _SHA1_RE.match(commit) else None

    def get_environment(self) -> Dict[str, str]:
        """Environment the tests run on."""
        server = self.db.get_server_info()
        return {
            "version": self.get_release(),
            "python_version": platform.python_version(),
            "dbtype": self.dbtype,
            "dbversion": server.get("version", "unknown"),
            "os": f"{platform.system()} {platform.release()} {platform.machine()}",
        }

    def get_site_info(self) -> str:
        """One-paragraph text description (not localised)."""
        env = self.get_environment()

        output = f"Release {env['version']}"
        git_hash = self.get_git_hash()
        if git_hash:
            output += f", {git_hash}"
        output += "\n"
        output += f"Python: {env['python_version']}, {env['dbtype']}: {env['dbversion']}"
        output += f", OS: {env['os']}\n"
        return output
