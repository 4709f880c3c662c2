from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from ambulatorio.app.common.search_utils import is_searchable, like_plegado, normalize_search_text
from ambulatorio.app.domain.exceptions import ConflictError, ValidationError
from ambulatorio.app.domain.usuarios import Usuario
from ambulatorio.app.infrastructure.sqlite.date_utils import format_iso_datetime


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class UsuarioListadoRow:
    id: int
    username: str
    rol_id: str
    rol_nombre: str
    persona_id: Optional[int]
    nombre_persona: Optional[str]
    especialidad: Optional[str]


class UsuariosRepository:
    """Cuentas de acceso. El hash y la sal de la contraseña nunca salen de aquí."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._con = connection

    def create(self, usuario: Usuario, *, password_hash: bytes, password_salt: bytes, ahora: datetime) -> int:
        marca = format_iso_datetime(ahora)
        try:
            cur = self._con.execute(
                """
                INSERT INTO usuarios (
                    username, password_hash, password_salt, rol_id, persona_id, especialidad,
                    creado_en, actualizado_en
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    usuario.username,
                    sqlite3.Binary(password_hash),
                    sqlite3.Binary(password_salt),
                    usuario.rol_id,
                    usuario.persona_id,
                    usuario.especialidad,
                    marca,
                    marca,
                ),
            )
        except sqlite3.IntegrityError as exc:
            raise self._traducir_integridad(exc) from exc
        usuario.id = int(cur.lastrowid)
        return usuario.id

    def update(self, usuario: Usuario, *, ahora: datetime) -> bool:
        if usuario.id is None:
            raise ValueError("No se puede actualizar un usuario sin id.")
        try:
            cur = self._con.execute(
                """
                UPDATE usuarios
                SET username = ?, rol_id = ?, persona_id = ?, especialidad = ?, actualizado_en = ?
                WHERE id = ?
                """,
                (
                    usuario.username,
                    usuario.rol_id,
                    usuario.persona_id,
                    usuario.especialidad,
                    format_iso_datetime(ahora),
                    usuario.id,
                ),
            )
        except sqlite3.IntegrityError as exc:
            raise self._traducir_integridad(exc) from exc
        return cur.rowcount > 0

    def update_password(self, usuario_id: int, *, password_hash: bytes, password_salt: bytes, ahora: datetime) -> bool:
        cur = self._con.execute(
            """
            UPDATE usuarios
            SET password_hash = ?, password_salt = ?, intentos_fallidos = 0, bloqueado_hasta = NULL,
                actualizado_en = ?
            WHERE id = ?
            """,
            (sqlite3.Binary(password_hash), sqlite3.Binary(password_salt), format_iso_datetime(ahora), usuario_id),
        )
        return cur.rowcount > 0

    def get_password(self, usuario_id: int) -> Optional[tuple[bytes, bytes]]:
        row = self._con.execute(
            "SELECT password_hash, password_salt FROM usuarios WHERE id = ?",
            (usuario_id,),
        ).fetchone()
        return (bytes(row["password_hash"]), bytes(row["password_salt"])) if row else None

    def delete(self, usuario_id: int) -> bool:
        cur = self._con.execute("DELETE FROM usuarios WHERE id = ?", (usuario_id,))
        return cur.rowcount > 0

    def get_by_id(self, usuario_id: int) -> Optional[Usuario]:
        row = self._con.execute(
            "SELECT id, username, rol_id, persona_id, especialidad FROM usuarios WHERE id = ?",
            (usuario_id,),
        ).fetchone()
        return self._row_to_model(row) if row else None

    def get_by_username(self, username: str) -> Optional[Usuario]:
        row = self._con.execute(
            "SELECT id, username, rol_id, persona_id, especialidad FROM usuarios WHERE username = ?",
            (username.strip(),),
        ).fetchone()
        return self._row_to_model(row) if row else None

    def count(self) -> int:
        return int(self._con.execute("SELECT COUNT(*) FROM usuarios").fetchone()[0])

    def search(self, texto: Optional[str] = None, *, limit: int = 50, offset: int = 0) -> tuple[List[UsuarioListadoRow], int]:
        where = ""
        params: list[object] = []
        if is_searchable(texto):
            patron = like_plegado(normalize_search_text(texto) or "")
            where = (
                " WHERE u.username LIKE ? ESCAPE '\\'"
                " OR plegar(p.primer_nombre) LIKE ? ESCAPE '\\'"
                " OR plegar(p.primer_apellido) LIKE ? ESCAPE '\\'"
            )
            params.extend([patron, patron, patron])
        base = (
            " FROM usuarios u"
            " JOIN roles r ON r.id = u.rol_id"
            " LEFT JOIN personas p ON p.id = u.persona_id"
        )
        total = int(self._con.execute(f"SELECT COUNT(*){base}{where}", params).fetchone()[0])
        rows = self._con.execute(
            f"""
            SELECT u.id, u.username, u.rol_id, r.nombre AS rol_nombre, u.persona_id, u.especialidad,
                   p.primer_nombre, p.primer_apellido
            {base}{where}
            ORDER BY u.username
            LIMIT ? OFFSET ?
            """,
            [*params, int(limit), int(offset)],
        ).fetchall()
        return [
            UsuarioListadoRow(
                id=r["id"],
                username=r["username"],
                rol_id=r["rol_id"],
                rol_nombre=r["rol_nombre"],
                persona_id=r["persona_id"],
                nombre_persona=(
                    f"{r['primer_nombre']} {r['primer_apellido']}" if r["primer_nombre"] is not None else None
                ),
                especialidad=r["especialidad"],
            )
            for r in rows
        ], total

    @staticmethod
    def _row_to_model(row: sqlite3.Row) -> Usuario:
        return Usuario(
            id=row["id"],
            username=row["username"],
            rol_id=row["rol_id"],
            persona_id=row["persona_id"],
            especialidad=row["especialidad"],
        )

    @staticmethod
    def _traducir_integridad(exc: sqlite3.IntegrityError) -> Exception:
        logger.error("Error SQL en UsuariosRepository: %s", exc)
        mensaje = str(exc)
        if "usuarios.username" in mensaje:
            return ConflictError("El nombre de usuario ya está en uso.")
        if "usuarios.persona_id" in mensaje:
            return ConflictError("La persona ya tiene un usuario asociado.")
        return ValidationError("El rol o la persona indicados no existen.")
