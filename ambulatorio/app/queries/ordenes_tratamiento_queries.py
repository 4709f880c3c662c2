from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import logging
import sqlite3

from ambulatorio.app.common.search_utils import is_searchable, like_plegado, normalize_search_text


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class OrdenTratamientoRow:
    id: int
    paciente_id: int
    nombre_paciente: str
    cedula: Optional[str]
    estado: str
    fecha_inicio: str
    fecha_fin: Optional[str]
    total_items: int
    total_ejecuciones: int


class OrdenesTratamientoQueries:
    def __init__(self, connection: sqlite3.Connection) -> None:
        self._conn = connection

    def listar(
        self,
        *,
        texto: Optional[str] = None,
        estado: Optional[str] = None,
        limit: int = 100,
    ) -> List[OrdenTratamientoRow]:
        clauses: List[str] = []
        params: List[object] = []
        texto = normalize_search_text(texto)
        if is_searchable(texto):
            like = like_plegado(texto)
            clauses.append(
                "(plegar(p.primer_nombre) LIKE ? ESCAPE '\\' OR plegar(p.primer_apellido) LIKE ? ESCAPE '\\'"
                " OR p.cedula_numero LIKE ? ESCAPE '\\')"
            )
            params.extend([like, like, like])
        if estado:
            clauses.append("o.estado = ?")
            params.append(estado)
        sql = """
            SELECT o.id, o.paciente_id, o.estado, o.fecha_inicio, o.fecha_fin,
                   p.primer_nombre || ' ' || p.primer_apellido AS nombre_paciente,
                   p.nacionalidad, p.cedula_numero,
                   (SELECT COUNT(*) FROM orden_tratamiento_items i WHERE i.orden_id = o.id) AS total_items,
                   (SELECT COUNT(*) FROM ejecuciones_tratamiento e WHERE e.orden_id = o.id) AS total_ejecuciones
            FROM ordenes_tratamiento o
            JOIN pacientes pa ON pa.id = o.paciente_id
            JOIN personas p ON p.id = pa.persona_id
        """
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY o.creado_en DESC, o.id DESC LIMIT ?"
        params.append(int(limit))
        try:
            rows = self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            logger.error("Error SQL en OrdenesTratamientoQueries.listar: %s", exc)
            return []
        return [
            OrdenTratamientoRow(
                id=r["id"],
                paciente_id=r["paciente_id"],
                nombre_paciente=r["nombre_paciente"],
                cedula=f"{r['nacionalidad']}-{r['cedula_numero']}" if r["cedula_numero"] else None,
                estado=r["estado"],
                fecha_inicio=r["fecha_inicio"],
                fecha_fin=r["fecha_fin"],
                total_items=int(r["total_items"]),
                total_ejecuciones=int(r["total_ejecuciones"]),
            )
            for r in rows
        ]
