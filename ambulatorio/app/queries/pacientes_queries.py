from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import logging
import sqlite3

from ambulatorio.app.common.search_utils import is_searchable, like_plegado, normalize_search_text


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PacienteListadoRow:
    paciente_id: int
    persona_id: int
    nombre_completo: str
    cedula: Optional[str]
    fecha_nacimiento: str
    es_titular: bool
    total_titulares: int
    total_consultas: int


class PacientesQueries:
    """Personas con registro clínico, anotadas con sus roles de afiliación."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._conn = connection

    def listar(self, *, texto: Optional[str] = None, limit: int = 200, offset: int = 0) -> List[PacienteListadoRow]:
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
        sql = """
            SELECT pa.id AS paciente_id, p.id AS persona_id,
                   p.primer_nombre || ' ' || p.primer_apellido AS nombre_completo,
                   p.nacionalidad, p.cedula_numero, p.fecha_nacimiento,
                   EXISTS (SELECT 1 FROM titulares t WHERE t.persona_id = p.id) AS es_titular,
                   (SELECT COUNT(*) FROM beneficiarios b WHERE b.persona_id = p.id) AS total_titulares,
                   (SELECT COUNT(*) FROM consultas c WHERE c.paciente_id = pa.id) AS total_consultas
            FROM pacientes pa
            JOIN personas p ON p.id = pa.persona_id
        """
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY p.primer_apellido, p.primer_nombre LIMIT ? OFFSET ?"
        params.extend([int(limit), int(offset)])
        try:
            rows = self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            logger.error("Error SQL en PacientesQueries.listar: %s", exc)
            return []
        return [
            PacienteListadoRow(
                paciente_id=r["paciente_id"],
                persona_id=r["persona_id"],
                nombre_completo=r["nombre_completo"],
                cedula=f"{r['nacionalidad']}-{r['cedula_numero']}" if r["cedula_numero"] else None,
                fecha_nacimiento=r["fecha_nacimiento"],
                es_titular=bool(r["es_titular"]),
                total_titulares=int(r["total_titulares"]),
                total_consultas=int(r["total_consultas"]),
            )
            for r in rows
        ]
