"""
Data models for the snapshot/reset system.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Any

from ..db.base import ColumnInfo
from ..errors import ResetStatus

# Table name -> rows (auto-increment tables ordered by id)
TableData = Dict[str, List[Dict[str, Any]]]

# Table name -> column name -> descriptor
TableStructure = Dict[str, Dict[str, ColumnInfo]]


@dataclass
class SnapshotPaths:
    """Well-known files in the framework directory of the dataroot."""
    framework_dir: Path

    @property
    def tabledata(self) -> Path:
        return self.framework_dir / "tabledata.ser"

    @property
    def tablestructure(self) -> Path:
        return self.framework_dir / "tablestructure.ser"

    @property
    def versionshash(self) -> Path:
        return self.framework_dir / "versionshash.txt"

    @property
    def mailbox(self) -> Path:
        return self.framework_dir / "tablesupdatedbyscenario.json"


@dataclass
class ResetResult:
    """Result of a database reset."""
    status: ResetStatus
    full_scan: bool = False
    tables_restored: List[str] = field(default_factory=list)    # delete all + reinsert
    tables_truncated: List[str] = field(default_factory=list)   # extra trailing rows removed
    tables_emptied: List[str] = field(default_factory=list)     # snapshot had no rows
    tables_dropped: List[str] = field(default_factory=list)
    sequences: Dict[str, int] = field(default_factory=dict)

    @property
    def performed(self) -> bool:
        return self.status == ResetStatus.RESET

    @property
    def tables_changed(self) -> List[str]:
        return self.tables_restored + self.tables_truncated + self.tables_emptied

    @classmethod
    def skipped(cls, status: ResetStatus) -> 'ResetResult':
        """Create a result for a reset that did nothing."""
        return cls(status=status)
