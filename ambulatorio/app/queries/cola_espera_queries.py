from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import List, Optional

import logging
import sqlite3

from ambulatorio.app.domain.enums import EstadoVisita
from ambulatorio.app.infrastructure.sqlite.date_utils import fin_del_dia, inicio_del_dia


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class VisitaColaRow:
    id: int
    persona_id: int
    paciente_id: int
    nombre_completo: str
    cedula: Optional[str]
    tipo_paciente: str
    tipo_servicio: str
    tipo_cuenta: str
    estado: str
    hora_llegada: str


class ColaEsperaQueries:
    """
    Instantánea sin estado de la sala de espera.

    Pensada para consultarse periódicamente: no hay token de versión ni
    deltas, cada llamada devuelve la lista completa.
    """

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._conn = connection

    def listar(self, *, dia: Optional[date] = None, incluir_completadas: bool = False) -> List[VisitaColaRow]:
        clauses: List[str] = []
        params: List[object] = []
        if not incluir_completadas:
            clauses.append("c.estado != ?")
            params.append(EstadoVisita.COMPLETADO.value)
        if dia is not None:
            clauses.append("c.hora_llegada BETWEEN ? AND ?")
            params.extend([inicio_del_dia(dia), fin_del_dia(dia)])
        sql = """
            SELECT c.id, c.persona_id, c.paciente_id, c.tipo_paciente, c.tipo_servicio, c.tipo_cuenta,
                   c.estado, c.hora_llegada,
                   p.primer_nombre || ' ' || p.primer_apellido AS nombre_completo,
                   p.nacionalidad, p.cedula_numero
            FROM cola_espera c
            JOIN personas p ON p.id = c.persona_id
        """
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY c.hora_llegada, c.id"
        try:
            rows = self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            logger.error("Error SQL en ColaEsperaQueries.listar: %s", exc)
            return []
        return [
            VisitaColaRow(
                id=r["id"],
                persona_id=r["persona_id"],
                paciente_id=r["paciente_id"],
                nombre_completo=r["nombre_completo"],
                cedula=f"{r['nacionalidad']}-{r['cedula_numero']}" if r["cedula_numero"] else None,
                tipo_paciente=r["tipo_paciente"],
                tipo_servicio=r["tipo_servicio"],
                tipo_cuenta=r["tipo_cuenta"],
                estado=r["estado"],
                hora_llegada=r["hora_llegada"],
            )
            for r in rows
        ]

    def contar_esperando(self) -> int:
        row = self._conn.execute(
            "SELECT COUNT(*) FROM cola_espera WHERE estado = ?",
            (EstadoVisita.ESPERANDO.value,),
        ).fetchone()
        return int(row[0])
