"""
Snapshot capture - reads table structure and contents from the database.
"""

import logging
from typing import Tuple

from ..db.base import Database, has_auto_increment_id
from .models import TableData, TableStructure

logger = logging.getLogger(__name__)


class SnapshotCapture:
    """Captures the post-installation database state."""

    def __init__(self, db: Database):
        """
        Initialize snapshot capture.

        Args:
            db: Database to read from
        """
        self.db = db

    def capture(self) -> Tuple[TableData, TableStructure]:
        """
        Read every table.

        Rows of tables with an auto-increment id are ordered by id so the
        reset engine can compare them row for row; other tables are read in
        whatever order the engine returns.

        Returns:
            (table data, table structure)
        """
        data: TableData = {}
        structure: TableStructure = {}

        for table in self.db.get_tables():
            columns = self.db.get_columns(table)
            structure[table] = columns
            if has_auto_increment_id(columns):
                data[table] = self.db.get_records(table, order_by="id")
            else:
                data[table] = self.db.get_records(table)

        logger.info(
            "Captured %d tables, %d rows",
            len(data), sum(len(rows) for rows in data.values()),
        )
        return data, structure
