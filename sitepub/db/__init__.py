"""Database archive of pipeline runs."""

from .connection import close_pools, conninfo, get_connection, get_connection_pool
from .init import init_database, validate_connection
from .runs import PostgresRunArchive

__all__ = [
    "PostgresRunArchive",
    "close_pools",
    "conninfo",
    "get_connection",
    "get_connection_pool",
    "init_database",
    "validate_connection",
]
