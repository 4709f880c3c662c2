# infrastructure/sqlite/repos_titulares.py
"""
Repositorio SQLite para titulares y sus beneficiarios.

Reglas de almacenamiento:
- Un titular por persona (persona_id UNIQUE).
- El par (persona, titular) de un beneficiario es único.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import List, Optional

from ambulatorio.app.domain.enums import TipoTitular
from ambulatorio.app.domain.exceptions import ConflictError, ValidationError
from ambulatorio.app.domain.personas import Beneficiario, Titular


logger = logging.getLogger(__name__)


class TitularesRepository:
    def __init__(self, connection: sqlite3.Connection) -> None:
        self._con = connection

    # --------------------------------------------------------------
    # Titulares
    # --------------------------------------------------------------

    def create(self, titular: Titular) -> int:
        try:
            cur = self._con.execute(
                """
                INSERT INTO titulares (persona_id, tipo, empresa_id, unidad_servicio, numero_ficha)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    titular.persona_id,
                    TipoTitular(titular.tipo).value,
                    titular.empresa_id,
                    titular.unidad_servicio,
                    titular.numero_ficha,
                ),
            )
        except sqlite3.IntegrityError as exc:
            logger.error("Error SQL en TitularesRepository.create: %s", exc)
            if "UNIQUE" in str(exc):
                raise ConflictError("La persona ya está registrada como titular.") from exc
            raise ValidationError("La persona o la empresa indicada no existe.") from exc
        titular.id = int(cur.lastrowid)
        return titular.id

    def update(self, titular: Titular) -> bool:
        try:
            cur = self._con.execute(
                """
                UPDATE titulares SET tipo = ?, empresa_id = ?, unidad_servicio = ?, numero_ficha = ?
                WHERE id = ?
                """,
                (
                    TipoTitular(titular.tipo).value,
                    titular.empresa_id,
                    titular.unidad_servicio,
                    titular.numero_ficha,
                    titular.id,
                ),
            )
        except sqlite3.IntegrityError as exc:
            logger.error("Error SQL en TitularesRepository.update: %s", exc)
            raise ValidationError("La empresa indicada no existe.", {"empresa_id": "No existe."}) from exc
        return cur.rowcount > 0

    def delete(self, titular_id: int) -> bool:
        cur = self._con.execute("DELETE FROM titulares WHERE id = ?", (titular_id,))
        return cur.rowcount > 0

    def get_by_id(self, titular_id: int) -> Optional[Titular]:
        row = self._con.execute("SELECT * FROM titulares WHERE id = ?", (titular_id,)).fetchone()
        return self._row_to_titular(row) if row else None

    def get_by_persona_id(self, persona_id: int) -> Optional[Titular]:
        row = self._con.execute("SELECT * FROM titulares WHERE persona_id = ?", (persona_id,)).fetchone()
        return self._row_to_titular(row) if row else None

    def count_beneficiarios(self, titular_id: int) -> int:
        row = self._con.execute(
            "SELECT COUNT(*) FROM beneficiarios WHERE titular_id = ?",
            (titular_id,),
        ).fetchone()
        return int(row[0])

    # --------------------------------------------------------------
    # Beneficiarios
    # --------------------------------------------------------------

    def add_beneficiario(self, beneficiario: Beneficiario) -> int:
        try:
            cur = self._con.execute(
                "INSERT INTO beneficiarios (persona_id, titular_id) VALUES (?, ?)",
                (beneficiario.persona_id, beneficiario.titular_id),
            )
        except sqlite3.IntegrityError as exc:
            logger.error("Error SQL en TitularesRepository.add_beneficiario: %s", exc)
            if "UNIQUE" in str(exc):
                raise ConflictError("La persona ya es beneficiaria de este titular.") from exc
            raise ValidationError("La persona o el titular indicado no existe.") from exc
        beneficiario.id = int(cur.lastrowid)
        return beneficiario.id

    def delete_beneficiario(self, beneficiario_id: int) -> bool:
        cur = self._con.execute("DELETE FROM beneficiarios WHERE id = ?", (beneficiario_id,))
        return cur.rowcount > 0

    def get_beneficiario(self, beneficiario_id: int) -> Optional[Beneficiario]:
        row = self._con.execute("SELECT * FROM beneficiarios WHERE id = ?", (beneficiario_id,)).fetchone()
        if row is None:
            return None
        return Beneficiario(id=row["id"], persona_id=row["persona_id"], titular_id=row["titular_id"])

    def exists_beneficiario(self, persona_id: int, titular_id: int) -> bool:
        row = self._con.execute(
            "SELECT 1 FROM beneficiarios WHERE persona_id = ? AND titular_id = ?",
            (persona_id, titular_id),
        ).fetchone()
        return row is not None

    def titulares_de_beneficiario(self, persona_id: int) -> List[Titular]:
        """Titulares de los que la persona es beneficiaria, en orden de alta del enlace."""
        rows = self._con.execute(
            """
            SELECT t.*
            FROM beneficiarios b
            JOIN titulares t ON t.id = b.titular_id
            WHERE b.persona_id = ?
            ORDER BY b.id
            """,
            (persona_id,),
        ).fetchall()
        return [self._row_to_titular(r) for r in rows]

    def list_beneficiarios(self, titular_id: int) -> List[Beneficiario]:
        rows = self._con.execute(
            "SELECT * FROM beneficiarios WHERE titular_id = ? ORDER BY id",
            (titular_id,),
        ).fetchall()
        return [Beneficiario(id=r["id"], persona_id=r["persona_id"], titular_id=r["titular_id"]) for r in rows]

    @staticmethod
    def _row_to_titular(row: sqlite3.Row) -> Titular:
        return Titular(
            id=row["id"],
            persona_id=row["persona_id"],
            tipo=TipoTitular(row["tipo"]),
            empresa_id=row["empresa_id"],
            unidad_servicio=row["unidad_servicio"],
            numero_ficha=row["numero_ficha"],
        )
