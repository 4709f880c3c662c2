from __future__ import annotations

import base64
import hashlib
import json
import os
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from ambulatorio.app.application.security import SesionUsuario
from ambulatorio.app.domain.exceptions import UnauthorizedError

ENV_SESSION_SECRET = "AMBULATORIO_SESSION_SECRET"
ENV_SESSION_TTL = "AMBULATORIO_SESSION_TTL"
TTL_POR_DEFECTO = 8 * 60 * 60


class SelladorSesion:
    """
    Sella la sesión en un token opaco firmado y cifrado (Fernet).

    El token solo transporta identificadores; los permisos se resuelven en
    cada autorización a partir del rol.
    """

    def __init__(self, secreto: str, *, ttl_segundos: int = TTL_POR_DEFECTO) -> None:
        if not secreto:
            raise ValueError("El secreto de sesión no puede estar vacío.")
        clave = base64.urlsafe_b64encode(hashlib.sha256(secreto.encode("utf-8")).digest())
        self._fernet = Fernet(clave)
        self._ttl = ttl_segundos

    @classmethod
    def desde_entorno(cls) -> "SelladorSesion":
        secreto = os.getenv(ENV_SESSION_SECRET)
        if not secreto:
            raise RuntimeError(
                f"{ENV_SESSION_SECRET} no está definido. "
                "Configure un secreto para firmar las sesiones."
            )
        ttl = int(os.getenv(ENV_SESSION_TTL, str(TTL_POR_DEFECTO)))
        return cls(secreto, ttl_segundos=ttl)

    def sellar(self, sesion: SesionUsuario) -> str:
        payload = {
            "autenticado": sesion.autenticado,
            "usuario_id": sesion.usuario_id,
            "username": sesion.username,
            "rol_id": sesion.rol_id,
            "persona_id": sesion.persona_id,
            "nombre": sesion.nombre,
        }
        return self._fernet.encrypt(json.dumps(payload).encode("utf-8")).decode("ascii")

    def abrir(self, token: Optional[str]) -> SesionUsuario:
        if not token:
            return SesionUsuario.anonima()
        try:
            raw = self._fernet.decrypt(token.encode("ascii"), ttl=self._ttl)
        except (InvalidToken, UnicodeEncodeError) as exc:
            raise UnauthorizedError("La sesión no es válida o ha expirado.") from exc
        data = json.loads(raw)
        return SesionUsuario(
            usuario_id=data.get("usuario_id"),
            username=data.get("username", ""),
            rol_id=data.get("rol_id"),
            persona_id=data.get("persona_id"),
            nombre=data.get("nombre", ""),
            autenticado=bool(data.get("autenticado")),
        )
