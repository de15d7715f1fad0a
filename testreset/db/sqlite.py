"""
SQLite adapter.

Auto-increment ids are the ``INTEGER PRIMARY KEY AUTOINCREMENT`` columns, whose
counters live in ``sqlite_sequence``.
"""

import sqlite3
from typing import Any, Dict, List, Sequence

from ..errors import DatabaseError
from .base import Database, ColumnInfo


class SqliteDatabase(Database):
    """Database backed by a stdlib sqlite3 connection."""

    dbfamily = "sqlite"
    placeholder = "?"

    def __init__(self, path: str, prefix: str = "", connection: sqlite3.Connection = None):
        super().__init__(prefix)
        self.path = path
        try:
            self.conn = connection or sqlite3.connect(path, isolation_level=None)
        except sqlite3.Error as e:
            raise DatabaseError(f"Cannot open sqlite database {path}: {e}") from e
        self.conn.row_factory = sqlite3.Row

    def quote(self, identifier: str) -> str:
        return '"' + identifier.replace('"', '""') + '"'

    def get_records_sql(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        try:
            cur = self.conn.execute(sql, list(params))
            return [dict(row) for row in cur.fetchall()]
        except sqlite3.Error as e:
            raise DatabaseError(f"Query failed: {e}", sql=sql) from e

    def _execute(self, sql: str, params: Sequence[Any] = ()) -> None:
        try:
            self.conn.execute(sql, list(params))
        except sqlite3.Error as e:
            raise DatabaseError(f"Statement failed: {e}", sql=sql) from e

    def _execute_batch(self, statements: List[str]) -> None:
        script = ";\n".join(s.rstrip().rstrip(";") for s in statements) + ";"
        try:
            self.conn.executescript(script)
        except sqlite3.Error as e:
            raise DatabaseError(f"Batch failed: {e}", sql=script) from e

    def get_tables(self) -> List[str]:
        rows = self.get_records_sql(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%' "
            "ORDER BY name"
        )
        tables = []
        for row in rows:
            table = self.strip_prefix(row["name"])
            if table:
                tables.append(table)
        return tables

    def get_columns(self, table: str) -> Dict[str, ColumnInfo]:
        full_name = self.full_name(table)
        rows = self.get_records_sql(
            "SELECT sql FROM sqlite_master WHERE type = 'table' AND name = ?", [full_name]
        )
        create_sql = (rows[0]["sql"] or "").upper() if rows else ""

        columns = {}
        for info in self.get_records_sql(f"PRAGMA table_info({self.quote(full_name)})"):
            is_pk = bool(info["pk"])
            columns[info["name"]] = ColumnInfo(
                name=info["name"],
                type=(info["type"] or "").lower(),
                not_null=bool(info["notnull"]) or is_pk,
                auto_increment=(
                    is_pk
                    and (info["type"] or "").upper() == "INTEGER"
                    and "AUTOINCREMENT" in create_sql
                ),
                primary_key=is_pk,
            )
        return columns

    def get_server_info(self) -> Dict[str, str]:
        return {"description": "SQLite", "version": sqlite3.sqlite_version}

    def reset_sequence(self, table: str) -> None:
        full_name = self.full_name(table)
        self._execute("DELETE FROM sqlite_sequence WHERE name = ?", [full_name])
        self._execute(
            f"INSERT INTO sqlite_sequence (name, seq) "
            f"SELECT ?, COALESCE(MAX(id), 0) FROM {self.quote(full_name)}",
            [full_name],
        )

    def close(self) -> None:
        self.conn.close()
