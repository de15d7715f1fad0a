"""
Mock components for testing testreset.

The golden data describes a small installed site; MockDatabase stands in for
the engines that are not available in the test environment.
"""

from .golden_data import (
    PREFIX,
    SCHEMA,
    INSTALLED_ROWS,
    AUTO_INCREMENT_TABLES,
    MYSQL_TABLE_STATUS,
    MSSQL_UNUSED_IDENTITIES,
    VERSION_FILES,
)

from .mock_database import MockDatabase, id_column

__all__ = [
    # Database mock
    'MockDatabase',
    'id_column',
    # Golden data
    'PREFIX',
    'SCHEMA',
    'INSTALLED_ROWS',
    'AUTO_INCREMENT_TABLES',
    'MYSQL_TABLE_STATUS',
    'MSSQL_UNUSED_IDENTITIES',
    'VERSION_FILES',
]
