from __future__ import annotations

import logging
import sqlite3
from typing import List, Optional

from ambulatorio.app.common.search_utils import is_searchable, like_plegado, normalize_search_text
from ambulatorio.app.domain.exceptions import ConflictError, ValidationError
from ambulatorio.app.domain.personas import Empresa


logger = logging.getLogger(__name__)


class EmpresasRepository:
    """Empresas afiliadas. Borrar una empresa deja a sus titulares sin empresa."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._con = connection

    def create(self, empresa: Empresa) -> int:
        try:
            cur = self._con.execute(
                "INSERT INTO empresas (nombre, rif, telefono, direccion) VALUES (?, ?, ?, ?)",
                (empresa.nombre, empresa.rif, empresa.telefono, empresa.direccion),
            )
        except sqlite3.IntegrityError as exc:
            logger.error("Error SQL en EmpresasRepository.create: %s", exc)
            raise ConflictError("Ya existe una empresa con ese RIF.") from exc
        empresa.id = int(cur.lastrowid)
        return empresa.id

    def update(self, empresa: Empresa) -> bool:
        if not empresa.id:
            raise ValidationError("No se puede actualizar una empresa sin id.")
        try:
            cur = self._con.execute(
                "UPDATE empresas SET nombre = ?, rif = ?, telefono = ?, direccion = ? WHERE id = ?",
                (empresa.nombre, empresa.rif, empresa.telefono, empresa.direccion, empresa.id),
            )
        except sqlite3.IntegrityError as exc:
            logger.error("Error SQL en EmpresasRepository.update: %s", exc)
            raise ConflictError("Ya existe una empresa con ese RIF.") from exc
        return cur.rowcount > 0

    def delete(self, empresa_id: int) -> bool:
        cur = self._con.execute("DELETE FROM empresas WHERE id = ?", (empresa_id,))
        return cur.rowcount > 0

    def get_by_id(self, empresa_id: int) -> Optional[Empresa]:
        row = self._con.execute("SELECT * FROM empresas WHERE id = ?", (empresa_id,)).fetchone()
        return self._row_to_model(row) if row else None

    def search(self, texto: Optional[str] = None, *, limit: int = 10, offset: int = 0) -> tuple[List[Empresa], int]:
        """Devuelve (página, total). Filtra por nombre o RIF si el texto tiene 2+ caracteres."""
        where = ""
        params: list[object] = []
        if is_searchable(texto):
            patron = like_plegado(normalize_search_text(texto) or "")
            where = " WHERE plegar(nombre) LIKE ? ESCAPE '\\' OR rif LIKE ? ESCAPE '\\'"
            params.extend([patron, patron])
        total = int(self._con.execute(f"SELECT COUNT(*) FROM empresas{where}", params).fetchone()[0])
        rows = self._con.execute(
            f"SELECT * FROM empresas{where} ORDER BY nombre LIMIT ? OFFSET ?",
            [*params, int(limit), int(offset)],
        ).fetchall()
        return [self._row_to_model(r) for r in rows], total

    @staticmethod
    def _row_to_model(row: sqlite3.Row) -> Empresa:
        return Empresa(
            id=row["id"],
            nombre=row["nombre"],
            rif=row["rif"],
            telefono=row["telefono"],
            direccion=row["direccion"],
        )
