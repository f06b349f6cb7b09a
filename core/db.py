"""
core/db.py -- Persistence connector.

Opens the application's database connection once at startup. The connection
string comes from Settings.database_url; any SQLAlchemy URL works (SQLite for
local development, PostgreSQL/MySQL in deployment).

A failed connectivity check propagates out of connect_db() so the lifespan
aborts and the server never starts accepting requests against a dead store.

Layer rule: no imports from api/, web/, or auth/.
"""

from __future__ import annotations

import logging

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url

logger = logging.getLogger("profileapp.db")


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def connect_db(db_url: str) -> Engine:
    """Create an engine for db_url and verify it answers a trivial query.

    Returns the connected Engine. Raises sqlalchemy.exc.OperationalError (or
    the driver's equivalent) when the database is unreachable.
    """
    url = make_url(db_url)
    connect_args: dict = {}
    is_sqlite = url.get_backend_name() == "sqlite"
    if is_sqlite:
        connect_args["check_same_thread"] = False
    engine = create_engine(url, connect_args=connect_args, pool_pre_ping=not is_sqlite)
    if is_sqlite and url.database not in (None, "", ":memory:") and "mode=memory" not in str(url):
        event.listen(engine, "connect", _set_wal_mode)

    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    logger.info("Database connected (%s)", url.render_as_string(hide_password=True))
    return engine
