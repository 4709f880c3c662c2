from __future__ import annotations

import sqlite3
from pathlib import Path

from ambulatorio.app.common.search_utils import plegar_texto


def configurar_conexion(connection: sqlite3.Connection) -> None:
    """Aplica PRAGMAs recomendados y registra `plegar()` para las búsquedas."""
    connection.execute("PRAGMA foreign_keys = ON;")
    connection.execute("PRAGMA journal_mode = WAL;")
    connection.execute("PRAGMA synchronous = NORMAL;")
    connection.execute("PRAGMA temp_store = MEMORY;")
    connection.execute("PRAGMA busy_timeout = 5000;")
    connection.create_function("plegar", 1, plegar_texto, deterministic=True)


def abrir_conexion(db_path: str | Path) -> sqlite3.Connection:
    """
    Abre una conexión en modo autocommit.

    Las escrituras de varias filas se agrupan con `transaccion()`; fuera de
    ella cada sentencia es atómica por sí sola.
    """
    con = sqlite3.connect(Path(db_path).as_posix(), isolation_level=None, check_same_thread=False)
    con.row_factory = sqlite3.Row
    configurar_conexion(con)
    return con
