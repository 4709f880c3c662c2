# infrastructure/sqlite/repos_cola_espera.py
"""
Repositorio SQLite de la sala de espera.

El índice único parcial `ux_cola_espera_persona_activa` es el respaldo de
almacenamiento de la regla "como mucho una visita no completada por persona":
si dos altas concurrentes superan la comprobación previa, la segunda falla
aquí y se traduce a VisitaDuplicadaError.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Optional

from ambulatorio.app.domain.cola import VisitaCola
from ambulatorio.app.domain.enums import EstadoVisita, TipoCuenta, TipoPacienteCola, TipoServicio
from ambulatorio.app.domain.exceptions import ValidationError, VisitaDuplicadaError
from ambulatorio.app.infrastructure.sqlite.date_utils import format_iso_datetime, parse_iso_datetime


logger = logging.getLogger(__name__)


class ColaEsperaRepository:
    def __init__(self, connection: sqlite3.Connection) -> None:
        self._con = connection

    def create(self, visita: VisitaCola) -> int:
        try:
            cur = self._con.execute(
                """
                INSERT INTO cola_espera (
                    persona_id, paciente_id, titular_id, tipo_paciente, tipo_servicio,
                    tipo_cuenta, estado, hora_llegada, actualizado_en
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    visita.persona_id,
                    visita.paciente_id,
                    visita.titular_id,
                    visita.tipo_paciente.value,
                    visita.tipo_servicio.value,
                    visita.tipo_cuenta.value,
                    visita.estado.value,
                    format_iso_datetime(visita.hora_llegada),
                    format_iso_datetime(visita.hora_llegada),
                ),
            )
        except sqlite3.IntegrityError as exc:
            logger.error("Error SQL en ColaEsperaRepository.create: %s", exc)
            if "UNIQUE" in str(exc):
                raise VisitaDuplicadaError("La persona ya tiene una visita activa en la sala de espera.") from exc
            raise ValidationError("La persona o el paciente indicado no existe.") from exc
        visita.id = int(cur.lastrowid)
        return visita.id

    def get_by_id(self, visita_id: int) -> Optional[VisitaCola]:
        row = self._con.execute("SELECT * FROM cola_espera WHERE id = ?", (visita_id,)).fetchone()
        return self._row_to_model(row) if row else None

    def get_activa_por_persona(self, persona_id: int) -> Optional[VisitaCola]:
        row = self._con.execute(
            "SELECT * FROM cola_espera WHERE persona_id = ? AND estado != ? ORDER BY id DESC LIMIT 1",
            (persona_id, EstadoVisita.COMPLETADO.value),
        ).fetchone()
        return self._row_to_model(row) if row else None

    def update_estado(
        self,
        visita_id: int,
        *,
        desde: EstadoVisita,
        hacia: EstadoVisita,
        ahora: datetime,
    ) -> bool:
        """Cambio condicionado al estado actual; False si otra petición lo cambió antes."""
        cur = self._con.execute(
            "UPDATE cola_espera SET estado = ?, actualizado_en = ? WHERE id = ? AND estado = ?",
            (hacia.value, format_iso_datetime(ahora), visita_id, desde.value),
        )
        return cur.rowcount == 1

    def delete(self, visita_id: int) -> bool:
        cur = self._con.execute("DELETE FROM cola_espera WHERE id = ?", (visita_id,))
        return cur.rowcount > 0

    @staticmethod
    def _row_to_model(row: sqlite3.Row) -> VisitaCola:
        return VisitaCola(
            id=row["id"],
            persona_id=row["persona_id"],
            paciente_id=row["paciente_id"],
            titular_id=row["titular_id"],
            tipo_paciente=TipoPacienteCola(row["tipo_paciente"]),
            tipo_servicio=TipoServicio(row["tipo_servicio"]),
            tipo_cuenta=TipoCuenta(row["tipo_cuenta"]),
            estado=EstadoVisita(row["estado"]),
            hora_llegada=parse_iso_datetime(row["hora_llegada"]),
        )
