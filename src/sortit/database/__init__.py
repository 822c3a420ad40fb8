"""Database layer for sortit application."""

from sortit.database.base import Database
from sortit.database.factories import create_sqlite_database
from sortit.database.sqlalchemy_db import SQLAlchemyDatabase

__all__ = ["Database", "SQLAlchemyDatabase", "create_sqlite_database"]
