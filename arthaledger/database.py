"""SQLite connection handling and transaction scoping for the stores."""

from __future__ import annotations

import itertools
import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager

logger = logging.getLogger(__name__)

_savepoint_ids = itertools.count(1)


class RecordNotFoundError(LookupError):
    """Raised by a store when no row matches the lookup."""

    def __init__(self, message: str = "record not found") -> None:
        super().__init__(message)


def connect(path: str = ":memory:", echo: bool = False) -> sqlite3.Connection:
    """Open a database connection with rows addressable by column name.

    The connection runs in autocommit mode; use :func:`atomic` to group
    statements. With ``echo`` every executed statement is logged.
    """
    try:
        connection = sqlite3.connect(path, isolation_level=None)
    except sqlite3.Error as exc:
        raise sqlite3.OperationalError(f"failed to open database ({path}): {exc}") from exc

    connection.row_factory = sqlite3.Row
    connection.execute("PRAGMA foreign_keys = ON")
    if echo:
        connection.set_trace_callback(logger.info)

    logger.info("Connected to database %s", path)
    return connection


@contextmanager
def atomic(connection: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Run the block in a transaction, committing on success, rolling back on error.

    Nested use opens a savepoint so an inner failure only undoes the inner block.
    """
    if connection.in_transaction:
        name = f"sp_{next(_savepoint_ids)}"
        connection.execute(f"SAVEPOINT {name}")
        try:
            yield connection
        except BaseException:
            connection.execute(f"ROLLBACK TO SAVEPOINT {name}")
            connection.execute(f"RELEASE SAVEPOINT {name}")
            raise
        connection.execute(f"RELEASE SAVEPOINT {name}")
        return

    connection.execute("BEGIN")
    try:
        yield connection
    except BaseException:
        connection.execute("ROLLBACK")
        raise
    connection.execute("COMMIT")