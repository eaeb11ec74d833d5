"""
# Database Package

Persistence layer for the blog CMS, built on **Motor** (async MongoDB driver).

- **`manager`**: the `DatabaseManager` singleton handling connection lifecycle,
  index bootstrap and default data.

The `db_manager` instance is created at import time without I/O; the connection is
opened during application startup via `db_manager.connect()`.

Attributes:
    db_manager (DatabaseManager): The global singleton instance for database access.
    DatabaseManager (class): The manager class (exported for type hinting).
"""

from blog_cms.database.manager import DatabaseManager, db_manager

__all__ = ["DatabaseManager", "db_manager"]
