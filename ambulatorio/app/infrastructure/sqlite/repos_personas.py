# infrastructure/sqlite/repos_personas.py
"""
Repositorio SQLite para Personas.

Responsabilidades:
- CRUD de personas
- Búsqueda por cédula/email para detectar colisiones
- Conversión fila <-> modelo de dominio

La unicidad de cédula y email se garantiza en la base de datos; una
violación se traduce a ConflictError.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Optional

from ambulatorio.app.domain.enums import Genero, Nacionalidad
from ambulatorio.app.domain.exceptions import ConflictError, ValidationError
from ambulatorio.app.domain.personas import Persona
from ambulatorio.app.infrastructure.sqlite.date_utils import (
    format_iso_date,
    format_iso_datetime,
    parse_iso_date,
    parse_iso_datetime,
)


logger = logging.getLogger(__name__)


class PersonasRepository:
    def __init__(self, connection: sqlite3.Connection) -> None:
        self._con = connection

    # --------------------------------------------------------------
    # CRUD
    # --------------------------------------------------------------

    def create(self, persona: Persona, *, creado_en: datetime) -> int:
        try:
            cur = self._con.execute(
                """
                INSERT INTO personas (
                    primer_nombre, segundo_nombre, primer_apellido, segundo_apellido,
                    nacionalidad, cedula_numero, fecha_nacimiento, genero,
                    telefono1, telefono2, email, direccion, representante_id, creado_en
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (*self._valores(persona), format_iso_datetime(creado_en)),
            )
        except sqlite3.IntegrityError as exc:
            raise _traducir_integridad(exc) from exc
        persona.id = int(cur.lastrowid)
        persona.creado_en = creado_en
        return persona.id

    def update(self, persona: Persona) -> None:
        if not persona.id:
            raise ValidationError("No se puede actualizar una persona sin id.")
        try:
            self._con.execute(
                """
                UPDATE personas SET
                    primer_nombre = ?, segundo_nombre = ?, primer_apellido = ?, segundo_apellido = ?,
                    nacionalidad = ?, cedula_numero = ?, fecha_nacimiento = ?, genero = ?,
                    telefono1 = ?, telefono2 = ?, email = ?, direccion = ?, representante_id = ?
                WHERE id = ?
                """,
                (*self._valores(persona), persona.id),
            )
        except sqlite3.IntegrityError as exc:
            raise _traducir_integridad(exc) from exc

    def delete(self, persona_id: int) -> bool:
        """Borrado físico; las FKs arrastran todo lo que cuelga de la persona."""
        cur = self._con.execute("DELETE FROM personas WHERE id = ?", (persona_id,))
        return cur.rowcount > 0

    def get_by_id(self, persona_id: int) -> Optional[Persona]:
        row = self._con.execute("SELECT * FROM personas WHERE id = ?", (persona_id,)).fetchone()
        return self._row_to_model(row) if row else None

    def exists(self, persona_id: int) -> bool:
        row = self._con.execute("SELECT 1 FROM personas WHERE id = ?", (persona_id,)).fetchone()
        return row is not None

    def get_id_by_cedula(self, nacionalidad: str, cedula_numero: str) -> Optional[int]:
        row = self._con.execute(
            "SELECT id FROM personas WHERE nacionalidad = ? AND cedula_numero = ?",
            (nacionalidad, cedula_numero),
        ).fetchone()
        return int(row["id"]) if row else None

    def get_id_by_email(self, email: str) -> Optional[int]:
        row = self._con.execute("SELECT id FROM personas WHERE email = ?", (email,)).fetchone()
        return int(row["id"]) if row else None

    # --------------------------------------------------------------
    # Mapping
    # --------------------------------------------------------------

    @staticmethod
    def _valores(persona: Persona) -> tuple:
        nacionalidad = Nacionalidad(persona.nacionalidad).value if persona.nacionalidad else None
        return (
            persona.primer_nombre,
            persona.segundo_nombre,
            persona.primer_apellido,
            persona.segundo_apellido,
            nacionalidad,
            persona.cedula_numero,
            format_iso_date(persona.fecha_nacimiento),
            Genero(persona.genero).value,
            persona.telefono1,
            persona.telefono2,
            persona.email,
            persona.direccion,
            persona.representante_id,
        )

    @staticmethod
    def _row_to_model(row: sqlite3.Row) -> Persona:
        return Persona(
            id=row["id"],
            primer_nombre=row["primer_nombre"],
            segundo_nombre=row["segundo_nombre"],
            primer_apellido=row["primer_apellido"],
            segundo_apellido=row["segundo_apellido"],
            nacionalidad=Nacionalidad(row["nacionalidad"]) if row["nacionalidad"] else None,
            cedula_numero=row["cedula_numero"],
            fecha_nacimiento=parse_iso_date(row["fecha_nacimiento"]),
            genero=Genero(row["genero"]),
            telefono1=row["telefono1"],
            telefono2=row["telefono2"],
            email=row["email"],
            direccion=row["direccion"],
            representante_id=row["representante_id"],
            creado_en=parse_iso_datetime(row["creado_en"]),
        )


def _traducir_integridad(exc: sqlite3.IntegrityError) -> Exception:
    mensaje = str(exc)
    logger.error("Error SQL en PersonasRepository: %s", mensaje)
    if "cedula_numero" in mensaje:
        return ConflictError("Ya existe una persona con esa cédula.")
    if "personas.email" in mensaje:
        return ConflictError("Ya existe una persona con ese email.")
    if "FOREIGN KEY" in mensaje:
        return ValidationError("El representante indicado no existe.", {"representante_id": "No existe."})
    return ConflictError("La persona entra en conflicto con un registro existente.")
