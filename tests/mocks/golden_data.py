"""
Golden Test Data - A small installed site for reset tests.

The schema mirrors what an installer leaves behind:
1. A config table (required for the site to count as installed)
2. Auto-increment tables with installed rows (user, course)
3. An auto-increment table left empty by the installer (log)
4. A table without an id column (user_preferences)

Also holds canned metadata rows for the engines that are only exercised
through the recording mock (MySQL, SQL Server).
"""

from typing import Dict, List, Any

PREFIX = "t_"

# =============================================================================
# SCHEMA
# =============================================================================

SCHEMA = [
    """CREATE TABLE t_config (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE,
        value TEXT
    )""",
    """CREATE TABLE t_course (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        fullname TEXT NOT NULL,
        visible INTEGER NOT NULL DEFAULT 1
    )""",
    """CREATE TABLE t_log (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        userid INTEGER NOT NULL,
        action TEXT NOT NULL
    )""",
    """CREATE TABLE t_user (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        username TEXT NOT NULL,
        email TEXT
    )""",
    """CREATE TABLE t_user_preferences (
        userid INTEGER NOT NULL,
        name TEXT NOT NULL,
        value TEXT
    )""",
]

# =============================================================================
# INSTALLED ROWS
# =============================================================================

INSTALLED_ROWS: Dict[str, List[Dict[str, Any]]] = {
    "config": [
        {"id": 1, "name": "siteidentifier", "value": "a1b2c3"},
        {"id": 2, "name": "release", "value": "4.5"},
    ],
    "course": [
        {"id": 1, "fullname": "Front page", "visible": 1},
    ],
    "log": [],
    "user": [
        {"id": 1, "username": "guest", "email": "root@localhost"},
        {"id": 2, "username": "admin", "email": "admin@example.com"},
    ],
    "user_preferences": [
        {"userid": 2, "name": "theme", "value": "boost"},
    ],
}

AUTO_INCREMENT_TABLES = ["config", "course", "log", "user"]

# =============================================================================
# ENGINE METADATA (mock only)
# =============================================================================

# SHOW TABLE STATUS LIKE 't_%'. The t1_user row is a LIKE wildcard false hit.
MYSQL_TABLE_STATUS = [
    {"name": "t_config", "rows": 2, "auto_increment": 3},
    {"name": "t_course", "rows": 1, "auto_increment": 2},
    {"name": "t_log", "rows": 0, "auto_increment": 1},
    {"name": "t_user", "rows": 3, "auto_increment": 4},
    {"name": "t_user_preferences", "rows": 1, "auto_increment": None},
    {"name": "t1_user", "rows": 0, "auto_increment": 1},
]

MSSQL_UNUSED_IDENTITIES = [
    {"name": "t_log"},
    {"name": "T_AUDIT"},
    {"name": "tx_log"},
]

VERSION_FILES = {
    "version.py": 'version = 2024100700\nrelease = "4.5 (Build: 20241007)"\n',
    "mod/forum/version.py": "version = 2024100701\n",
    "mod/quiz/version.py": "version = 2024100702\n",
}
