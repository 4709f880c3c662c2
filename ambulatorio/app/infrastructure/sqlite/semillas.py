# infrastructure/sqlite/semillas.py
"""
Datos de referencia para una base de datos recién creada.

Solo se aplican cuando el archivo no existía antes de abrirlo; una tabla
vaciada a propósito no se vuelve a poblar.
"""

from __future__ import annotations

import sqlite3

from ambulatorio.app.bootstrap_logging import get_logger
from ambulatorio.app.domain.permisos import MODULOS_PERMISOS, ROLES_INICIALES
from ambulatorio.app.infrastructure.sqlite.transacciones import transaccion

LOGGER = get_logger(__name__)

EMPRESAS_INICIALES = (
    ("Innovatech", "J-12345678-9", "02121234567", "Av. Principal, Caracas"),
    ("Salud Total", "J-98765432-1", "02127654321", "Calle 2, Valencia"),
    ("Constructora Andes", "J-40000001-0", "02747778899", "Mérida"),
)

CIE10_INICIALES = (
    ("J00", "Rinofaringitis aguda [resfriado común]"),
    ("J02.9", "Faringitis aguda, no especificada"),
    ("A09X", "Diarrea y gastroenteritis de presunto origen infeccioso"),
    ("I10", "Hipertensión esencial (primaria)"),
    ("E11.9", "Diabetes mellitus no insulinodependiente, sin mención de complicación"),
)


def aplicar_catalogo_permisos(con: sqlite3.Connection) -> None:
    """Sincroniza la tabla de permisos con el catálogo (idempotente)."""
    for modulo, entradas in MODULOS_PERMISOS.items():
        for permiso, descripcion in entradas:
            con.execute(
                """
                INSERT INTO permisos (id, modulo, descripcion) VALUES (?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET modulo = excluded.modulo, descripcion = excluded.descripcion
                """,
                (permiso.value, modulo, descripcion),
            )


def aplicar_semillas(con: sqlite3.Connection) -> None:
    with transaccion(con):
        aplicar_catalogo_permisos(con)
        for rol_id, (nombre, descripcion, especialidad, permisos) in ROLES_INICIALES.items():
            con.execute(
                "INSERT OR IGNORE INTO roles (id, nombre, descripcion, tiene_especialidad) VALUES (?, ?, ?, ?)",
                (rol_id, nombre, descripcion, int(especialidad)),
            )
            con.executemany(
                "INSERT OR IGNORE INTO rol_permisos (rol_id, permiso_id) VALUES (?, ?)",
                [(rol_id, p.value) for p in sorted(permisos, key=lambda p: p.value)],
            )
        con.executemany(
            "INSERT OR IGNORE INTO empresas (nombre, rif, telefono, direccion) VALUES (?, ?, ?, ?)",
            EMPRESAS_INICIALES,
        )
        con.executemany(
            "INSERT OR IGNORE INTO cie10_codigos (codigo, descripcion) VALUES (?, ?)",
            CIE10_INICIALES,
        )
    LOGGER.info(
        "semillas_aplicadas",
        extra={"roles": len(ROLES_INICIALES), "empresas": len(EMPRESAS_INICIALES), "cie10": len(CIE10_INICIALES)},
    )
