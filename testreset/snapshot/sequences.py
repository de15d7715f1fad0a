"""
Sequence (auto-increment counter) reset.

If every table restarts its ids at the same value, code that confuses one
entity's id with another's (the classic case: course module id vs instance id)
still passes tests. The allocator therefore hands each table its own block,
starting high enough to stay clear of installed rows.

Each engine family gets a strategy; adding an engine means adding a class and
registering it in STRATEGIES.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Set

from ..db.base import Database, has_auto_increment_id
from ..config import DEFAULT_SEQUENCE_START, DEFAULT_SEQUENCE_BLOCK

logger = logging.getLogger(__name__)


class SequenceAllocator:
    """Hands out staggered starting ids, one per table per pass."""

    def __init__(self, start: int = DEFAULT_SEQUENCE_START, block: int = DEFAULT_SEQUENCE_BLOCK):
        self.start = start
        self.block = block
        self.next_block = start
        self.cursors: Dict[str, int] = {}

    def start_pass(self) -> None:
        """Begin a full sequence reset pass."""
        self.next_block = self.start
        self.cursors = {}

    def next_start(self, rows: List[Dict[str, Any]], table: str) -> int:
        """
        Starting id for a table in the current pass.

        Args:
            rows: Snapshot rows of the table, ordered by id
            table: Table name

        Returns:
            max(block base, last snapshot id + 1); the same value if the
            table was already allocated in this pass
        """
        if table in self.cursors:
            return self.cursors[table]

        value = self.next_block
        if rows:
            value = max(value, int(rows[-1]["id"]) + 1)

        self.next_block = value + self.block
        self.cursors[table] = value
        return value


class SequenceResetStrategy:
    """Generic strategy: the database's own per-table reset primitive."""

    families: tuple = ()

    # Whether this strategy assigns staggered starting ids.
    staggers = False

    def _targets(
        self,
        data: Dict[str, List[Dict[str, Any]]],
        structure: Dict[str, Dict],
        dirty: Set[str],
        skip: Set[str],
    ) -> Iterable[str]:
        for table in data:
            if table not in dirty or table in skip:
                continue
            if has_auto_increment_id(structure.get(table, {})):
                yield table

    def guess_empty_tables(self, db: Database) -> Set[str]:
        """Tables known to be empty and never written to. Unknown: empty set."""
        return set()

    def reset(
        self,
        db: Database,
        data: Dict[str, List[Dict[str, Any]]],
        structure: Dict[str, Dict],
        dirty: Set[str],
        allocator: SequenceAllocator,
        skip: Optional[Set[str]] = None,
    ) -> Dict[str, int]:
        """
        Reset the counters of dirty auto-increment tables.

        Returns:
            Map of table to the starting value assigned (empty when the
            strategy does not assign values itself)
        """
        for table in self._targets(data, structure, dirty, skip or set()):
            db.reset_sequence(table)
        return {}


class RestartSequenceStrategy(SequenceResetStrategy):
    """PostgreSQL: ALTER SEQUENCE ... RESTART, all tables in one batch."""

    families = ("postgres",)
    staggers = True

    def reset(self, db, data, structure, dirty, allocator, skip=None):
        assigned = {}
        queries = []
        for table in self._targets(data, structure, dirty, skip or set()):
            next_id = allocator.next_start(data[table], table)
            queries.append(
                f"ALTER SEQUENCE {db.full_name(table)}_id_seq RESTART WITH {next_id}"
            )
            assigned[table] = next_id

        if queries:
            db.change_database_structure(queries)
        return assigned


class CounterSequenceStrategy(SequenceResetStrategy):
    """
    Engines exposing counters as metadata: read them all, then change only
    the ones that differ from the allocated value.
    """

    staggers = True

    def current_counters(self, db: Database) -> Dict[str, int]:
        """Next id per table, for tables whose counter is known."""
        raise NotImplementedError

    def set_counter_sql(self, db: Database, table: str, value: int) -> List[str]:
        raise NotImplementedError

    def missing_counter(self, db: Database, table: str) -> Optional[int]:
        """Counter to assume when metadata has none; None means fall back."""
        return None

    def reset(self, db, data, structure, dirty, allocator, skip=None):
        counters = self.current_counters(db)
        assigned = {}
        queries = []
        for table in self._targets(data, structure, dirty, skip or set()):
            current = counters.get(table)
            if current is None:
                current = self.missing_counter(db, table)
            if current is None:
                logger.debug("No counter for %s, using generic reset", table)
                db.reset_sequence(table)
                continue

            next_id = allocator.next_start(data[table], table)
            assigned[table] = next_id
            if int(current) != next_id:
                queries.extend(self.set_counter_sql(db, table, next_id))

        if queries:
            db.change_database_structure(queries)
        return assigned


class AutoIncrementStrategy(CounterSequenceStrategy):
    """MySQL / MariaDB: SHOW TABLE STATUS and ALTER TABLE AUTO_INCREMENT."""

    families = ("mysql",)

    def _table_status(self, db: Database) -> List[Dict[str, Any]]:
        return db.get_records_sql(
            f"SHOW TABLE STATUS LIKE {db.placeholder}", [db.prefix + "%"]
        )

    def current_counters(self, db):
        counters = {}
        for info in self._table_status(db):
            # LIKE treats _ in the prefix as a wildcard.
            table = db.strip_prefix(str(info["name"]))
            if table is None or info.get("auto_increment") is None:
                continue
            counters[table] = int(info["auto_increment"])
        return counters

    def set_counter_sql(self, db, table, value):
        return [f"ALTER TABLE {db.full_name(table)} AUTO_INCREMENT = {value}"]

    def guess_empty_tables(self, db):
        empties = set()
        for info in self._table_status(db):
            table = db.strip_prefix(str(info["name"]))
            if table is None or info.get("auto_increment") is None:
                continue
            if int(info.get("rows") or 0) == 0 and int(info["auto_increment"]) == 1:
                empties.add(table)
        return empties


class SqliteSequenceStrategy(CounterSequenceStrategy):
    """SQLite: counters live in the sqlite_sequence table."""

    families = ("sqlite",)

    def current_counters(self, db):
        counters = {}
        for row in db.get_records_sql("SELECT name, seq FROM sqlite_sequence"):
            table = db.strip_prefix(str(row["name"]))
            if table is not None:
                counters[table] = int(row["seq"]) + 1
        return counters

    def missing_counter(self, db, table):
        # Never inserted into: the counter row does not exist yet.
        return 1

    def set_counter_sql(self, db, table, value):
        name = db.full_name(table).replace("'", "''")
        return [
            f"DELETE FROM sqlite_sequence WHERE name = '{name}'",
            f"INSERT INTO sqlite_sequence (name, seq) VALUES ('{name}', {value - 1})",
        ]


class IdentityStrategy(SequenceResetStrategy):
    """SQL Server: per-table reset, but empty untouched tables are detectable."""

    families = ("mssql",)

    def guess_empty_tables(self, db):
        rows = db.get_records_sql(
            f"""
            SELECT t.name
              FROM sys.identity_columns i
              JOIN sys.tables t ON t.object_id = i.object_id
             WHERE t.name LIKE {db.placeholder}
               AND i.name = 'id'
               AND i.last_value IS NULL
            """,
            [db.prefix + "%"],
        )
        empties = set()
        for row in rows:
            table = db.strip_prefix(str(row["name"]))
            if table is not None:
                empties.add(table)
        return empties


STRATEGIES: List[SequenceResetStrategy] = [
    RestartSequenceStrategy(),
    AutoIncrementStrategy(),
    SqliteSequenceStrategy(),
    IdentityStrategy(),
]


def strategy_for(db: Database) -> SequenceResetStrategy:
    """Pick the sequence strategy for a database's engine family."""
    family = db.get_dbfamily()
    for strategy in STRATEGIES:
        if family in strategy.families:
            return strategy
    return SequenceResetStrategy()
