from __future__ import annotations

import hashlib
import hmac
import os
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from ambulatorio.app.bootstrap_logging import get_logger

LOGGER = get_logger(__name__)

LONGITUD_MINIMA_PASSWORD = 8
ITERACIONES_PBKDF2 = 310_000


@dataclass(frozen=True)
class AuthResult:
    ok: bool
    locked: bool = False
    usuario_id: Optional[int] = None


class AuthService:
    """Verificación de credenciales con bloqueo temporal tras fallos repetidos."""

    def __init__(self, connection: sqlite3.Connection, *, max_attempts: int = 5, lock_seconds: int = 60) -> None:
        self._con = connection
        self._max_attempts = max_attempts
        self._lock_seconds = lock_seconds

    def verify(self, username: str, password: str) -> AuthResult:
        row = self._con.execute(
            "SELECT id, password_hash, password_salt, intentos_fallidos, bloqueado_hasta FROM usuarios WHERE username = ?",
            (username.strip(),),
        ).fetchone()
        if row is None:
            # Mismo coste que un usuario existente.
            _derive_hash(password, b"\x00" * 16)
            return AuthResult(ok=False)

        usuario_id = int(row["id"])
        bloqueado_hasta = row["bloqueado_hasta"]
        if bloqueado_hasta and datetime.fromisoformat(bloqueado_hasta) > datetime.now(timezone.utc):
            return AuthResult(ok=False, locked=True, usuario_id=usuario_id)

        if verificar_password(password, bytes(row["password_hash"]), bytes(row["password_salt"])):
            self._con.execute(
                "UPDATE usuarios SET intentos_fallidos = 0, bloqueado_hasta = NULL WHERE id = ?",
                (usuario_id,),
            )
            return AuthResult(ok=True, usuario_id=usuario_id)

        intentos = int(row["intentos_fallidos"]) + 1
        bloqueo = None
        if intentos >= self._max_attempts:
            bloqueo = (datetime.now(timezone.utc) + timedelta(seconds=self._lock_seconds)).isoformat()
            intentos = 0
            LOGGER.warning("usuario_bloqueado", extra={"usuario_id": usuario_id})
        self._con.execute(
            "UPDATE usuarios SET intentos_fallidos = ?, bloqueado_hasta = ? WHERE id = ?",
            (intentos, bloqueo, usuario_id),
        )
        return AuthResult(ok=False, locked=bloqueo is not None, usuario_id=usuario_id)


def hash_password(password: str) -> tuple[bytes, bytes]:
    salt = os.urandom(16)
    return _derive_hash(password, salt), salt


def verificar_password(password: str, expected_hash: bytes, salt: bytes) -> bool:
    return hmac.compare_digest(expected_hash, _derive_hash(password, salt))


def _derive_hash(password: str, salt: bytes) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, ITERACIONES_PBKDF2)
