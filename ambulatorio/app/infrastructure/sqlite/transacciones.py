from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Iterator

from ambulatorio.app.bootstrap_logging import get_logger

LOGGER = get_logger(__name__)


@contextmanager
def transaccion(connection: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """
    Unidad de trabajo todo-o-nada.

    BEGIN IMMEDIATE toma el bloqueo de escritura al inicio, de modo que la
    comprobación previa y la escritura ven el mismo estado. Si ya hay una
    transacción abierta, la operación se suma a ella.
    """
    if connection.in_transaction:
        yield connection
        return
    connection.execute("BEGIN IMMEDIATE")
    try:
        yield connection
    except BaseException:
        connection.execute("ROLLBACK")
        LOGGER.debug("transaccion_revertida")
        raise
    connection.execute("COMMIT")
