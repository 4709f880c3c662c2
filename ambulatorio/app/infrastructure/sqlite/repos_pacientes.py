from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Optional

from ambulatorio.app.domain.personas import Paciente
from ambulatorio.app.infrastructure.sqlite.date_utils import format_iso_datetime


class PacientesRepository:
    """Registro clínico 1:1 por persona."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._con = connection

    def asegurar(self, persona_id: int, *, ahora: datetime) -> Paciente:
        """
        Get-or-create idempotente.

        INSERT OR IGNORE sobre persona_id UNIQUE: dos flujos que llegan a la
        vez terminan leyendo la misma fila.
        """
        self._con.execute(
            "INSERT OR IGNORE INTO pacientes (persona_id, creado_en) VALUES (?, ?)",
            (persona_id, format_iso_datetime(ahora)),
        )
        paciente = self.get_by_persona_id(persona_id)
        if paciente is None:
            raise LookupError(f"No se pudo asegurar el paciente de la persona {persona_id}.")
        return paciente

    def get_by_id(self, paciente_id: int) -> Optional[Paciente]:
        row = self._con.execute("SELECT id, persona_id FROM pacientes WHERE id = ?", (paciente_id,)).fetchone()
        return Paciente(id=row["id"], persona_id=row["persona_id"]) if row else None

    def get_by_persona_id(self, persona_id: int) -> Optional[Paciente]:
        row = self._con.execute(
            "SELECT id, persona_id FROM pacientes WHERE persona_id = ?",
            (persona_id,),
        ).fetchone()
        return Paciente(id=row["id"], persona_id=row["persona_id"]) if row else None
