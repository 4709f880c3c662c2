# infrastructure/sqlite/repos_roles.py
"""
Roles y su conjunto de permisos.

`permisos_de` se consulta en cada autorización: un cambio de permisos de un
rol afecta a las sesiones abiertas desde la siguiente petición.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Iterable, List, Optional

from ambulatorio.app.domain.exceptions import ConflictError, IntegrityError
from ambulatorio.app.domain.usuarios import Rol


logger = logging.getLogger(__name__)


class RolesRepository:
    def __init__(self, connection: sqlite3.Connection) -> None:
        self._con = connection

    def permisos_de(self, rol_id: str) -> frozenset[str]:
        rows = self._con.execute("SELECT permiso_id FROM rol_permisos WHERE rol_id = ?", (rol_id,)).fetchall()
        return frozenset(r["permiso_id"] for r in rows)

    def rol_de_usuario(self, usuario_id: int) -> Optional[str]:
        row = self._con.execute("SELECT rol_id FROM usuarios WHERE id = ?", (usuario_id,)).fetchone()
        return None if row is None else str(row["rol_id"])

    def get_by_id(self, rol_id: str) -> Optional[Rol]:
        row = self._con.execute(
            "SELECT id, nombre, descripcion, tiene_especialidad FROM roles WHERE id = ?",
            (rol_id,),
        ).fetchone()
        if row is None:
            return None
        return self._row_to_model(row, self.permisos_de(row["id"]))

    def list_all(self) -> List[Rol]:
        rows = self._con.execute(
            "SELECT id, nombre, descripcion, tiene_especialidad FROM roles ORDER BY nombre"
        ).fetchall()
        return [self._row_to_model(r, self.permisos_de(r["id"])) for r in rows]

    def create(self, rol: Rol) -> None:
        try:
            self._con.execute(
                "INSERT INTO roles (id, nombre, descripcion, tiene_especialidad) VALUES (?, ?, ?, ?)",
                (rol.id, rol.nombre, rol.descripcion, int(rol.tiene_especialidad)),
            )
        except sqlite3.IntegrityError as exc:
            logger.error("Error SQL en RolesRepository.create: %s", exc)
            raise ConflictError("Ya existe un rol con ese identificador o nombre.") from exc
        self.reemplazar_permisos(rol.id, rol.permisos)

    def update(self, rol: Rol) -> bool:
        try:
            cur = self._con.execute(
                "UPDATE roles SET nombre = ?, descripcion = ?, tiene_especialidad = ? WHERE id = ?",
                (rol.nombre, rol.descripcion, int(rol.tiene_especialidad), rol.id),
            )
        except sqlite3.IntegrityError as exc:
            logger.error("Error SQL en RolesRepository.update: %s", exc)
            raise ConflictError("Ya existe un rol con ese nombre.") from exc
        if cur.rowcount == 0:
            return False
        self.reemplazar_permisos(rol.id, rol.permisos)
        return True

    def reemplazar_permisos(self, rol_id: str, permisos: Iterable[str]) -> None:
        self._con.execute("DELETE FROM rol_permisos WHERE rol_id = ?", (rol_id,))
        self._con.executemany(
            "INSERT INTO rol_permisos (rol_id, permiso_id) VALUES (?, ?)",
            [(rol_id, p) for p in sorted(set(permisos))],
        )

    def delete(self, rol_id: str) -> bool:
        try:
            cur = self._con.execute("DELETE FROM roles WHERE id = ?", (rol_id,))
        except sqlite3.IntegrityError as exc:
            logger.error("Error SQL en RolesRepository.delete: %s", exc)
            raise IntegrityError("No se puede eliminar el rol porque tiene usuarios asignados.") from exc
        return cur.rowcount > 0

    def count_usuarios(self, rol_id: str) -> int:
        row = self._con.execute("SELECT COUNT(*) FROM usuarios WHERE rol_id = ?", (rol_id,)).fetchone()
        return int(row[0])

    def list_permisos_catalogo(self) -> List[tuple[str, str, str]]:
        rows = self._con.execute("SELECT id, modulo, descripcion FROM permisos ORDER BY modulo, id").fetchall()
        return [(r["id"], r["modulo"], r["descripcion"]) for r in rows]

    @staticmethod
    def _row_to_model(row: sqlite3.Row, permisos: frozenset[str]) -> Rol:
        return Rol(
            id=row["id"],
            nombre=row["nombre"],
            descripcion=row["descripcion"],
            tiene_especialidad=bool(row["tiene_especialidad"]),
            permisos=permisos,
        )
