"""Postgres connection pools for the run archive."""

import os
from contextlib import contextmanager
from typing import Any, Dict, Generator

import psycopg
from psycopg.conninfo import make_conninfo
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

_pools: Dict[str, ConnectionPool] = {}


def conninfo(config: Dict[str, Any]) -> str:
    """Connection string for a postgres config section.

    A password found in the ``password_env`` variable wins over the inline one.
    """
    password_env = config.get("password_env")
    password = (os.environ.get(password_env) if password_env else None) or config.get("password")
    params = {
        "host": config.get("host", "localhost"),
        "port": config.get("port", 5432),
        "dbname": config.get("database", "sitepub"),
        "user": config.get("user", "sitepub_user"),
    }
    if password:
        params["password"] = password
    return make_conninfo(**params)


def get_connection_pool(config: Dict[str, Any]) -> ConnectionPool:
    """Pool for a config, created on first use and shared afterwards."""
    key = conninfo(config)
    pool = _pools.get(key)
    if pool is None:
        pool = ConnectionPool(
            key,
            min_size=1,
            max_size=4,
            kwargs={"row_factory": dict_row},
            open=True,
        )
        _pools[key] = pool
    return pool


@contextmanager
def get_connection(config: Dict[str, Any]) -> Generator[psycopg.Connection, None, None]:
    """Borrow a connection; it is committed on clean exit and rolled back on error."""
    with get_connection_pool(config).connection() as conn:
        yield conn


def close_pools() -> None:
    """Close every open pool."""
    while _pools:
        _, pool = _pools.popitem()
        pool.close()
