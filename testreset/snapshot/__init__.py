"""
Snapshot/reset system for testreset.

Captures the database right after installation and brings it back to that
state between tests. Key features:

- Only tables written since the last reset are examined
- Appended rows are truncated instead of reloading the whole table
- Sequences restart at staggered values per table
- Tables created during a test are dropped

Scope: table contents and sequences. The schema is assumed fixed.
"""

from .models import ResetResult, SnapshotPaths
from .capture import SnapshotCapture
from .store import SnapshotStore
from .sequences import SequenceAllocator, strategy_for
from .restore import DatabaseResetEngine

__all__ = [
    'ResetResult',
    'SnapshotPaths',
    'SnapshotCapture',
    'SnapshotStore',
    'SequenceAllocator',
    'strategy_for',
    'DatabaseResetEngine',
]
