from __future__ import annotations

import logging
import sqlite3
from typing import List, Optional

from ambulatorio.app.common.search_utils import is_searchable, like_plegado, normalize_search_text
from ambulatorio.app.domain.clinica import CodigoCie10
from ambulatorio.app.domain.exceptions import ConflictError, IntegrityError


logger = logging.getLogger(__name__)

_FILTRO_TEXTO = " WHERE codigo LIKE ? ESCAPE '\\' OR plegar(descripcion) LIKE ? ESCAPE '\\'"


class Cie10Repository:
    """Catálogo CIE-10. Un código usado en diagnósticos no se borra."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._con = connection

    def create(self, codigo: CodigoCie10) -> None:
        try:
            self._con.execute(
                "INSERT INTO cie10_codigos (codigo, descripcion) VALUES (?, ?)",
                (codigo.codigo, codigo.descripcion),
            )
        except sqlite3.IntegrityError as exc:
            logger.error("Error SQL en Cie10Repository.create: %s", exc)
            raise ConflictError("El código CIE-10 ya existe.") from exc

    def create_if_absent(self, codigo: CodigoCie10) -> bool:
        cur = self._con.execute(
            "INSERT OR IGNORE INTO cie10_codigos (codigo, descripcion) VALUES (?, ?)",
            (codigo.codigo, codigo.descripcion),
        )
        return cur.rowcount == 1

    def update_descripcion(self, codigo: str, descripcion: str) -> bool:
        cur = self._con.execute(
            "UPDATE cie10_codigos SET descripcion = ? WHERE codigo = ?",
            (descripcion, codigo),
        )
        return cur.rowcount > 0

    def delete(self, codigo: str) -> bool:
        try:
            cur = self._con.execute("DELETE FROM cie10_codigos WHERE codigo = ?", (codigo,))
        except sqlite3.IntegrityError as exc:
            logger.error("Error SQL en Cie10Repository.delete: %s", exc)
            raise IntegrityError(
                "No se puede eliminar el código porque está en uso en una o más consultas."
            ) from exc
        return cur.rowcount > 0

    def get(self, codigo: str) -> Optional[CodigoCie10]:
        row = self._con.execute("SELECT codigo, descripcion FROM cie10_codigos WHERE codigo = ?", (codigo,)).fetchone()
        return CodigoCie10(codigo=row["codigo"], descripcion=row["descripcion"]) if row else None

    def get_many(self, codigos: List[str]) -> dict[str, CodigoCie10]:
        if not codigos:
            return {}
        marcadores = ", ".join("?" for _ in codigos)
        rows = self._con.execute(
            f"SELECT codigo, descripcion FROM cie10_codigos WHERE codigo IN ({marcadores})",
            codigos,
        ).fetchall()
        return {r["codigo"]: CodigoCie10(codigo=r["codigo"], descripcion=r["descripcion"]) for r in rows}

    def en_uso(self, codigo: str) -> bool:
        row = self._con.execute(
            "SELECT 1 FROM consulta_diagnosticos WHERE codigo = ? LIMIT 1",
            (codigo,),
        ).fetchone()
        return row is not None

    def search(self, texto: Optional[str], *, limit: int = 10) -> List[CodigoCie10]:
        if not is_searchable(texto):
            return []
        patron = like_plegado(normalize_search_text(texto) or "")
        rows = self._con.execute(
            f"SELECT codigo, descripcion FROM cie10_codigos{_FILTRO_TEXTO} ORDER BY codigo LIMIT ?",
            (patron, patron, int(limit)),
        ).fetchall()
        return [CodigoCie10(codigo=r["codigo"], descripcion=r["descripcion"]) for r in rows]

    def list_page(self, texto: Optional[str] = None, *, limit: int = 10, offset: int = 0) -> tuple[List[CodigoCie10], int]:
        where = ""
        params: list[object] = []
        if is_searchable(texto):
            patron = like_plegado(normalize_search_text(texto) or "")
            where = _FILTRO_TEXTO
            params.extend([patron, patron])
        total = int(self._con.execute(f"SELECT COUNT(*) FROM cie10_codigos{where}", params).fetchone()[0])
        rows = self._con.execute(
            f"SELECT codigo, descripcion FROM cie10_codigos{where} ORDER BY codigo LIMIT ? OFFSET ?",
            [*params, int(limit), int(offset)],
        ).fetchall()
        return [CodigoCie10(codigo=r["codigo"], descripcion=r["descripcion"]) for r in rows], total
