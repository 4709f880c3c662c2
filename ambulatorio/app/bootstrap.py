# bootstrap.py
"""
Bootstrap de la base de datos del ambulatorio.

Responsabilidades:
- Resolver la ruta de la base de datos (argumento > entorno > defecto)
- Abrir la conexión con los PRAGMAs por conexión
- Aplicar schema.sql (idempotente)
- Sembrar datos de referencia solo si el archivo es nuevo

Cualquier fallo aquí es fatal: se propaga al arranque del proceso.
"""

from __future__ import annotations

import sqlite3
from os import getenv
from pathlib import Path

from ambulatorio.app.bootstrap_logging import get_logger
from ambulatorio.app.infrastructure.sqlite.semillas import aplicar_catalogo_permisos, aplicar_semillas
from ambulatorio.app.infrastructure.sqlite.sqlite_connection_config import abrir_conexion
from ambulatorio.app.infrastructure.sqlite.transacciones import transaccion


LOGGER = get_logger(__name__)

ENV_DB_PATH = "AMBULATORIO_DB_PATH"


# ---------------------------------------------------------------------
# Rutas del proyecto
# ---------------------------------------------------------------------


def project_root() -> Path:
    return Path(__file__).resolve().parent


def data_dir() -> Path:
    """Directorio por defecto de la base de datos."""
    return Path("./data")


def schema_path() -> Path:
    return project_root() / "infrastructure" / "sqlite" / "schema.sql"


def resolve_db_path(sqlite_path_arg: str | None = None, *, emit_log: bool = True) -> Path:
    """Resuelve la ruta SQLite desde arg/env/default con trazabilidad en logs."""
    if sqlite_path_arg:
        resolved = Path(sqlite_path_arg).expanduser().resolve()
        source = "arg"
    elif getenv(ENV_DB_PATH):
        resolved = Path(getenv(ENV_DB_PATH, "")).expanduser().resolve()
        source = "env"
    else:
        resolved = (data_dir() / "ambulatorio.db").expanduser().resolve()
        source = "default"
    if emit_log:
        LOGGER.info("db_path_resolved path=%s source=%s", resolved, source)
    return resolved


# ---------------------------------------------------------------------
# SQLite
# ---------------------------------------------------------------------


def _apply_schema(con: sqlite3.Connection) -> None:
    path = schema_path()
    if not path.exists():
        raise FileNotFoundError(f"No se encuentra schema.sql en {path}")
    con.executescript(path.read_text(encoding="utf-8"))
    with transaccion(con):
        aplicar_catalogo_permisos(con)


def abrir_base_datos(sqlite_path: str | None = None, *, seed: bool = True) -> sqlite3.Connection:
    """
    Devuelve una conexión lista para usar.

    La siembra se decide por la existencia previa del archivo, no por el
    número de filas.
    """
    target_path = resolve_db_path(sqlite_path)
    es_nueva = not target_path.exists()
    target_path.parent.mkdir(parents=True, exist_ok=True)

    con = abrir_conexion(target_path)
    try:
        _apply_schema(con)
        if es_nueva and seed:
            aplicar_semillas(con)
    except Exception:
        con.close()
        LOGGER.critical("db_bootstrap_failed path=%s", target_path)
        raise
    LOGGER.info("db_opened path=%s nueva=%s", target_path, es_nueva)
    return con
