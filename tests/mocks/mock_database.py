"""
Mock database for testing engine-specific code without a server.

MockDatabase records every statement it is asked to run and answers the
metadata queries of the sequence strategies from golden_data.
"""

from typing import Any, Dict, List, Sequence, Tuple

from testreset.db.base import ColumnInfo, Database

from .golden_data import MSSQL_UNUSED_IDENTITIES, MYSQL_TABLE_STATUS, PREFIX


class MockDatabase(Database):
    """Recording Database for a given engine family.

    Tables and rows are held in memory; only what the strategies and the
    drop/teardown paths touch is implemented.
    """

    def __init__(self, dbfamily: str = "generic", prefix: str = PREFIX, placeholder: str = "?"):
        super().__init__(prefix)
        self.dbfamily = dbfamily
        self.placeholder = placeholder
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.columns: Dict[str, Dict[str, ColumnInfo]] = {}
        self.statements: List[Tuple[str, List[Any]]] = []
        self.batches: List[List[str]] = []
        self.queries: List[Tuple[str, List[Any]]] = []
        self.sequence_resets: List[str] = []
        self.table_status = [dict(row) for row in MYSQL_TABLE_STATUS]
        self.unused_identities = [dict(row) for row in MSSQL_UNUSED_IDENTITIES]

    def quote(self, identifier: str) -> str:
        return identifier

    def get_tables(self) -> List[str]:
        return sorted(self.tables)

    def get_columns(self, table: str) -> Dict[str, ColumnInfo]:
        return dict(self.columns.get(table, {}))

    def get_records_sql(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        self.queries.append((sql, list(params)))
        if "SHOW TABLE STATUS" in sql:
            return [dict(row) for row in self.table_status]
        if "sys.identity_columns" in sql:
            return [dict(row) for row in self.unused_identities]
        return []

    def _execute(self, sql: str, params: Sequence[Any] = ()) -> None:
        self.statements.append((sql, list(params)))
        if sql.startswith("DROP TABLE "):
            name = self.strip_prefix(sql[len("DROP TABLE "):].strip())
            self.tables.pop(name, None)

    def _execute_batch(self, statements: List[str]) -> None:
        self.batches.append(list(statements))

    def get_server_info(self) -> Dict[str, str]:
        return {"description": f"Mock {self.dbfamily}", "version": "0.0"}

    def reset_sequence(self, table: str) -> None:
        self.sequence_resets.append(table)


def id_column() -> ColumnInfo:
    """Descriptor of an auto-increment primary key."""
    return ColumnInfo(name="id", type="integer", not_null=True, auto_increment=True, primary_key=True)
