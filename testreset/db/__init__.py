"""
Database abstraction and adapters.
"""

from .base import Database, ColumnInfo, CONFIG_TABLE, has_auto_increment_id
from .sqlite import SqliteDatabase


def connect(database_config) -> Database:
    """
    Open a database from a DatabaseConfig.

    Args:
        database_config: config.DatabaseConfig

    Returns:
        Adapter for the configured engine
    """
    if database_config.type == "sqlite":
        return SqliteDatabase(database_config.path, prefix=database_config.prefix)

    if database_config.type == "postgres":
        from .postgres import PostgresDatabase
        return PostgresDatabase(
            prefix=database_config.prefix,
            host=database_config.host,
            port=database_config.port,
            user=database_config.user,
            password=database_config.password,
            dbname=database_config.name,
        )

    raise ValueError(f"Unsupported database type: {database_config.type}")


__all__ = [
    'Database',
    'ColumnInfo',
    'CONFIG_TABLE',
    'has_auto_increment_id',
    'SqliteDatabase',
    'connect',
]
