"""
PostgreSQL adapter (psycopg2).

The connection runs in autocommit mode: the reset engine relies on every
statement being committed on its own.
"""

from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Sequence

import psycopg2
import psycopg2.extras

from ..errors import DatabaseError
from .base import Database, ColumnInfo


class PostgresDatabase(Database):
    """Database backed by a psycopg2 connection."""

    dbfamily = "postgres"
    placeholder = "%s"

    def __init__(
        self,
        conn=None,
        prefix: str = "",
        host: str = "localhost",
        port: int = 5432,
        user: str = "postgres",
        password: str = "",
        dbname: str = "postgres",
    ):
        """
        Initialize the adapter.

        Args:
            conn: Existing psycopg2 connection (opened from the other args if None)
            prefix: Table prefix
        """
        super().__init__(prefix)
        if conn is None:
            try:
                conn = psycopg2.connect(
                    host=host,
                    port=port,
                    user=user,
                    password=password,
                    dbname=dbname,
                )
            except psycopg2.Error as e:
                raise DatabaseError(f"Cannot connect to {user}@{host}:{port}/{dbname}: {e}") from e
        conn.autocommit = True
        self.conn = conn

    @contextmanager
    def _cursor(self, sql: Optional[str] = None):
        try:
            with self.conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                yield cur
        except psycopg2.Error as e:
            raise DatabaseError(f"PostgreSQL error: {e}".strip(), sql=sql) from e

    def quote(self, identifier: str) -> str:
        return '"' + identifier.replace('"', '""') + '"'

    def get_records_sql(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        with self._cursor(sql) as cur:
            cur.execute(sql, list(params) or None)
            return [dict(row) for row in cur.fetchall()]

    def _execute(self, sql: str, params: Sequence[Any] = ()) -> None:
        with self._cursor(sql) as cur:
            cur.execute(sql, list(params) or None)

    def _execute_batch(self, statements: List[str]) -> None:
        sql = ";\n".join(s.rstrip().rstrip(";") for s in statements)
        with self._cursor(sql) as cur:
            cur.execute(sql)

    def get_tables(self) -> List[str]:
        rows = self.get_records_sql(
            """
            SELECT tablename
            FROM pg_catalog.pg_tables
            WHERE schemaname = current_schema()
            ORDER BY tablename
            """
        )
        tables = []
        for row in rows:
            table = self.strip_prefix(row["tablename"])
            if table:
                tables.append(table)
        return tables

    def get_columns(self, table: str) -> Dict[str, ColumnInfo]:
        full_name = self.full_name(table)
        primary = {
            row["column_name"]
            for row in self.get_records_sql(
                """
                SELECT kcu.column_name
                FROM information_schema.table_constraints tc
                JOIN information_schema.key_column_usage kcu
                  ON kcu.constraint_name = tc.constraint_name
                 AND kcu.table_schema = tc.table_schema
                WHERE tc.table_schema = current_schema()
                  AND tc.table_name = %s
                  AND tc.constraint_type = 'PRIMARY KEY'
                """,
                [full_name],
            )
        }

        columns = {}
        for row in self.get_records_sql(
            """
            SELECT column_name, data_type, is_nullable, column_default, is_identity
            FROM information_schema.columns
            WHERE table_schema = current_schema() AND table_name = %s
            ORDER BY ordinal_position
            """,
            [full_name],
        ):
            default = row["column_default"] or ""
            columns[row["column_name"]] = ColumnInfo(
                name=row["column_name"],
                type=row["data_type"],
                not_null=row["is_nullable"] == "NO",
                auto_increment=default.startswith("nextval(") or row["is_identity"] == "YES",
                primary_key=row["column_name"] in primary,
            )
        return columns

    def get_server_info(self) -> Dict[str, str]:
        rows = self.get_records_sql("SHOW server_version")
        return {"description": "PostgreSQL", "version": rows[0]["server_version"]}

    def reset_sequence(self, table: str) -> None:
        full_name = self.quote(self.full_name(table))
        self._execute(
            f"SELECT setval(pg_get_serial_sequence(%s, 'id'), COALESCE(MAX(id), 0) + 1, false) "
            f"FROM {full_name}",
            [self.full_name(table)],
        )

    def drop_table(self, table: str) -> None:
        self._execute(f"DROP TABLE {self.quote(self.full_name(table))} CASCADE")
        self._notify_write(table)

    def close(self) -> None:
        self.conn.close()
