from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import logging
import sqlite3

from ambulatorio.app.common.search_utils import is_searchable, like_plegado, normalize_search_text


logger = logging.getLogger(__name__)

LIMITE_DIRECTORIO = 20

_NOMBRE_COMPLETO_SQL = (
    "p.primer_nombre || COALESCE(' ' || p.segundo_nombre, '') || ' ' || "
    "p.primer_apellido || COALESCE(' ' || p.segundo_apellido, '')"
)
_CEDULA_SQL = "(p.nacionalidad || '-' || p.cedula_numero)"


@dataclass(frozen=True, slots=True)
class TitularDeRow:
    titular_id: int
    persona_id: int
    nombre: str
    tipo: str


@dataclass(frozen=True, slots=True)
class DirectorioRow:
    persona_id: int
    nombre_completo: str
    cedula: Optional[str]
    fecha_nacimiento: str
    titular_id: Optional[int]
    tipo_titular: Optional[str]
    beneficiario_de: tuple[TitularDeRow, ...]

    @property
    def es_titular(self) -> bool:
        return self.titular_id is not None

    @property
    def es_beneficiario(self) -> bool:
        return bool(self.beneficiario_de)


class DirectorioQueries:
    """
    Búsqueda parcial de personas anotada con sus roles.

    Cada resultado incluye si la persona es titular y de qué titulares es
    beneficiaria, para que el llamador no necesite otra consulta.
    """

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._conn = connection

    def buscar(
        self,
        texto: Optional[str],
        *,
        listar_todo: bool = False,
        limit: int = LIMITE_DIRECTORIO,
        offset: int = 0,
    ) -> List[DirectorioRow]:
        texto = normalize_search_text(texto)
        params: List[object] = []
        where = ""
        orden = "p.primer_apellido, p.primer_nombre, p.id"
        if is_searchable(texto):
            like = like_plegado(texto)
            prefijo = like[1:]
            where = (
                f" WHERE plegar({_NOMBRE_COMPLETO_SQL}) LIKE ? ESCAPE '\\'"
                f" OR {_CEDULA_SQL} LIKE ? ESCAPE '\\'"
                " OR p.cedula_numero LIKE ? ESCAPE '\\'"
            )
            params.extend([like, like, like])
            orden = (
                f"CASE WHEN {_CEDULA_SQL} = ? OR p.cedula_numero = ? THEN 0"
                " WHEN plegar(p.primer_nombre) LIKE ? ESCAPE '\\' OR plegar(p.primer_apellido) LIKE ? ESCAPE '\\' THEN 1"
                f" ELSE 2 END, {orden}"
            )
            params.extend([texto.upper(), texto, prefijo, prefijo])
        elif not listar_todo:
            return []

        sql = (
            f"SELECT p.id, {_NOMBRE_COMPLETO_SQL} AS nombre_completo, p.nacionalidad, p.cedula_numero,"
            " p.fecha_nacimiento, t.id AS titular_id, t.tipo AS tipo_titular"
            " FROM personas p"
            " LEFT JOIN titulares t ON t.persona_id = p.id"
            f"{where}"
            f" ORDER BY {orden}"
            " LIMIT ? OFFSET ?"
        )
        params.extend([int(limit), max(int(offset), 0)])
        try:
            rows = self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            logger.error("Error SQL en DirectorioQueries.buscar: %s", exc)
            return []
        vinculos = self._titulares_de([int(r["id"]) for r in rows])
        return [
            DirectorioRow(
                persona_id=r["id"],
                nombre_completo=r["nombre_completo"],
                cedula=f"{r['nacionalidad']}-{r['cedula_numero']}" if r["cedula_numero"] else None,
                fecha_nacimiento=r["fecha_nacimiento"],
                titular_id=r["titular_id"],
                tipo_titular=r["tipo_titular"],
                beneficiario_de=tuple(vinculos.get(int(r["id"]), [])),
            )
            for r in rows
        ]

    def _titulares_de(self, personas_ids: List[int]) -> dict[int, List[TitularDeRow]]:
        if not personas_ids:
            return {}
        marcadores = ", ".join("?" for _ in personas_ids)
        rows = self._conn.execute(
            f"""
            SELECT b.persona_id AS beneficiario_persona_id, t.id AS titular_id, t.persona_id, t.tipo,
                   {_NOMBRE_COMPLETO_SQL} AS nombre
            FROM beneficiarios b
            JOIN titulares t ON t.id = b.titular_id
            JOIN personas p ON p.id = t.persona_id
            WHERE b.persona_id IN ({marcadores})
            ORDER BY b.id
            """,
            personas_ids,
        ).fetchall()
        resultado: dict[int, List[TitularDeRow]] = {}
        for r in rows:
            resultado.setdefault(int(r["beneficiario_persona_id"]), []).append(
                TitularDeRow(titular_id=r["titular_id"], persona_id=r["persona_id"], nombre=r["nombre"], tipo=r["tipo"])
            )
        return resultado
