from __future__ import annotations

from pathlib import Path
import sqlite3
import threading

from ambulatorio.app.bootstrap_logging import get_logger
from ambulatorio.app.infrastructure.sqlite.sqlite_connection_config import abrir_conexion


LOGGER = get_logger(__name__)


class ProveedorConexionSqlitePorHilo:
    """Entrega una conexión SQLite por hilo para peticiones concurrentes."""

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)
        self._local = threading.local()
        self._lock = threading.Lock()
        self._abiertas: list[sqlite3.Connection] = []

    def obtener(self) -> sqlite3.Connection:
        conexion = getattr(self._local, "conexion", None)
        if conexion is None:
            conexion = abrir_conexion(self._db_path)
            self._local.conexion = conexion
            with self._lock:
                self._abiertas.append(conexion)
            LOGGER.debug(
                "sqlite_conexion_hilo_creada",
                extra={
                    "db_path": self._db_path.as_posix(),
                    "thread_name": threading.current_thread().name,
                },
            )
        return conexion

    def cerrar_conexion_del_hilo_actual(self) -> None:
        conexion = getattr(self._local, "conexion", None)
        if conexion is None:
            return
        try:
            conexion.close()
        finally:
            del self._local.conexion
            with self._lock:
                self._abiertas = [c for c in self._abiertas if c is not conexion]

    def cerrar_todas(self) -> None:
        with self._lock:
            abiertas, self._abiertas = self._abiertas, []
        for conexion in abiertas:
            conexion.close()
