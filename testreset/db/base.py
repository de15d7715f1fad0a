"""
Database abstraction used by the reset engine.

Adapters implement the abstract methods for one engine. Table names passed in
and returned are bare (without the configured prefix); adapters add the prefix
when building statements. Statement fragments use ``?`` placeholders.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

logger = logging.getLogger(__name__)

CONFIG_TABLE = "config"

WriteListener = Callable[[str], None]

# Statement heads that write to the table named right after them.
_WRITE_HEADS = (
    r"INSERT\s+(?:OR\s+\w+\s+)?INTO",
    r"REPLACE\s+INTO",
    r"UPDATE",
    r"DELETE\s+FROM",
    r"TRUNCATE(?:\s+TABLE)?",
    r"ALTER\s+TABLE",
    r"CREATE\s+(?:TEMPORARY\s+)?TABLE(?:\s+IF\s+NOT\s+EXISTS)?",
    r"DROP\s+TABLE(?:\s+IF\s+EXISTS)?",
)


@dataclass
class ColumnInfo:
    """Column descriptor captured in the table structure."""
    name: str
    type: str
    not_null: bool = False
    auto_increment: bool = False
    primary_key: bool = False


def has_auto_increment_id(columns: Dict[str, ColumnInfo]) -> bool:
    """True if the table has an auto-increment ``id`` column."""
    column = columns.get("id")
    return column is not None and column.auto_increment


class Database(ABC):
    """Abstract database connection with write interception."""

    dbfamily = "generic"
    placeholder = "?"

    def __init__(self, prefix: str = ""):
        self.prefix = prefix
        self._write_listeners: List[WriteListener] = []
        self._config_cache: Dict[str, Optional[str]] = {}
        self._write_pattern = self._compile_write_pattern(prefix)

    # =========================================================================
    # Write interception
    # =========================================================================

    def add_write_listener(self, callback: WriteListener) -> None:
        """Register a callback invoked with the table name on every write."""
        if callback not in self._write_listeners:
            self._write_listeners.append(callback)

    def remove_write_listener(self, callback: WriteListener) -> None:
        if callback in self._write_listeners:
            self._write_listeners.remove(callback)

    def _notify_write(self, table: str) -> None:
        for callback in list(self._write_listeners):
            callback(table)

    @staticmethod
    def _compile_write_pattern(prefix: str) -> "re.Pattern[str]":
        heads = "|".join(_WRITE_HEADS)
        return re.compile(
            rf"\b(?:{heads})\s+[\"`\[]?{re.escape(prefix)}(\w+)",
            re.IGNORECASE,
        )

    def tables_written_by_sql(self, sql: str) -> List[str]:
        """
        Best-effort extraction of the tables a raw statement writes to.

        Only names directly following a write keyword and starting with the
        table prefix count; anything else in the statement text is ignored.
        """
        tables = []
        for match in self._write_pattern.finditer(sql):
            table = match.group(1).lower()
            if table not in tables:
                tables.append(table)
        return tables

    def _notify_sql(self, sql: str) -> None:
        for table in self.tables_written_by_sql(sql):
            self._notify_write(table)

    # =========================================================================
    # Naming helpers
    # =========================================================================

    def full_name(self, table: str) -> str:
        """Prefixed table name as stored in the database."""
        return f"{self.prefix}{table}"

    def strip_prefix(self, name: str) -> Optional[str]:
        """Bare table name, or None if the name does not carry the prefix."""
        name = name.lower()
        if not name.startswith(self.prefix.lower()):
            return None
        return name[len(self.prefix):]

    # =========================================================================
    # Engine specific
    # =========================================================================

    @abstractmethod
    def get_tables(self) -> List[str]:
        """Bare names of all prefixed tables, sorted."""

    @abstractmethod
    def get_columns(self, table: str) -> Dict[str, ColumnInfo]:
        """Column descriptors keyed by column name, in table order."""

    @abstractmethod
    def get_records_sql(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        """Run a query and return rows as dicts."""

    @abstractmethod
    def _execute(self, sql: str, params: Sequence[Any] = ()) -> None:
        """Run a single statement without write notification."""

    @abstractmethod
    def _execute_batch(self, statements: List[str]) -> None:
        """Run several statements in one round trip."""

    @abstractmethod
    def quote(self, identifier: str) -> str:
        """Quote an identifier for this engine."""

    @abstractmethod
    def get_server_info(self) -> Dict[str, str]:
        """Server description and version."""

    @abstractmethod
    def reset_sequence(self, table: str) -> None:
        """Generic reset primitive: next id becomes max(id) + 1."""

    def close(self) -> None:
        """Close the underlying connection."""

    # =========================================================================
    # Records
    # =========================================================================

    def get_dbfamily(self) -> str:
        return self.dbfamily

    def get_prefix(self) -> str:
        return self.prefix

    def get_records(self, table: str, order_by: Optional[str] = None) -> List[Dict[str, Any]]:
        """All rows of a table, optionally ordered by a column."""
        sql = f"SELECT * FROM {self.quote(self.full_name(table))}"
        if order_by:
            sql += f" ORDER BY {self.quote(order_by)} ASC"
        return self.get_records_sql(sql)

    def count_records(self, table: str) -> int:
        rows = self.get_records_sql(
            f"SELECT COUNT(*) AS c FROM {self.quote(self.full_name(table))}"
        )
        return int(rows[0]["c"])

    def insert_record(self, table: str, record: Dict[str, Any]) -> None:
        """Insert a row exactly as given, id included."""
        columns = list(record.keys())
        column_list = ", ".join(self.quote(c) for c in columns)
        values = ", ".join([self.placeholder] * len(columns))
        self._execute(
            f"INSERT INTO {self.quote(self.full_name(table))} ({column_list}) VALUES ({values})",
            [record[c] for c in columns],
        )
        self._notify_write(table)

    def delete_records(self, table: str) -> None:
        """Delete every row of a table."""
        self._execute(f"DELETE FROM {self.quote(self.full_name(table))}")
        self._notify_write(table)

    def delete_records_select(self, table: str, where: str, params: Sequence[Any] = ()) -> None:
        """Delete rows matching a WHERE fragment written with ? placeholders."""
        if self.placeholder != "?":
            where = where.replace("?", self.placeholder)
        self._execute(
            f"DELETE FROM {self.quote(self.full_name(table))} WHERE {where}",
            list(params),
        )
        self._notify_write(table)

    def drop_table(self, table: str) -> None:
        self._execute(f"DROP TABLE {self.quote(self.full_name(table))}")
        self._notify_write(table)

    # =========================================================================
    # Raw statements
    # =========================================================================

    def execute(self, sql: str, params: Sequence[Any] = ()) -> None:
        """Run a raw statement; written tables are inferred from the SQL."""
        self._execute(sql, params)
        self._notify_sql(sql)

    def change_database_structure(self, sql: Union[str, Iterable[str]]) -> None:
        """Run one or more structural statements in a single batch."""
        statements = [sql] if isinstance(sql, str) else list(sql)
        statements = [s for s in statements if s.strip()]
        if not statements:
            return
        logger.debug("Structure change: %d statement(s)", len(statements))
        self._execute_batch(statements)
        for statement in statements:
            self._notify_sql(statement)

    # =========================================================================
    # Config table
    # =========================================================================

    def get_config(self, name: str, bypass_cache: bool = False) -> Optional[str]:
        """
        Read a value from the config table.

        Args:
            name: Config key
            bypass_cache: Always query the database

        Returns:
            The stored value or None
        """
        if not bypass_cache and name in self._config_cache:
            return self._config_cache[name]

        rows = self.get_records_sql(
            f"SELECT value FROM {self.quote(self.full_name(CONFIG_TABLE))} "
            f"WHERE name = {self.placeholder}",
            [name],
        )
        value = rows[0]["value"] if rows else None
        self._config_cache[name] = value
        return value

    def set_config(self, name: str, value: str) -> None:
        """Insert or update a config value."""
        table = self.quote(self.full_name(CONFIG_TABLE))
        rows = self.get_records_sql(
            f"SELECT id FROM {table} WHERE name = {self.placeholder}", [name]
        )
        if rows:
            self._execute(
                f"UPDATE {table} SET value = {self.placeholder} WHERE name = {self.placeholder}",
                [value, name],
            )
        else:
            self._execute(
                f"INSERT INTO {table} (name, value) VALUES ({self.placeholder}, {self.placeholder})",
                [name, value],
            )
        self._config_cache[name] = value
        self._notify_write(CONFIG_TABLE)

    def purge_config_cache(self) -> None:
        self._config_cache.clear()
