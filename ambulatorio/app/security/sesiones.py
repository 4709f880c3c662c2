# security/sesiones.py
"""
Ciclo de vida de la sesión: iniciar, refrescar y cerrar.

La sesión es un objeto explícito que el llamador conserva y pasa a cada
caso de uso; aquí no se guarda ningún "usuario actual" global.
"""

from __future__ import annotations

from ambulatorio.app.application.security import SesionUsuario
from ambulatorio.app.bootstrap_logging import get_logger
from ambulatorio.app.container import AppContainer
from ambulatorio.app.domain.exceptions import CredencialesInvalidasError, UnauthorizedError
from ambulatorio.app.domain.usuarios import Usuario
from ambulatorio.app.infrastructure.sqlite.transacciones import transaccion
from ambulatorio.app.security.auth import AuthService

LOGGER = get_logger(__name__)

MENSAJE_CREDENCIALES = "Usuario o contraseña incorrectos."
MENSAJE_BLOQUEO = "Cuenta bloqueada temporalmente por intentos fallidos. Intente más tarde."


def nombre_para_sesion(container: AppContainer, usuario: Usuario) -> str:
    if usuario.persona_id is not None:
        persona = container.personas_repo.get_by_id(usuario.persona_id)
        if persona is not None:
            return persona.nombre_completo()
    return usuario.username


def sesion_desde_usuario(container: AppContainer, usuario: Usuario) -> SesionUsuario:
    return SesionUsuario(
        usuario_id=usuario.id,
        username=usuario.username,
        rol_id=usuario.rol_id,
        persona_id=usuario.persona_id,
        nombre=nombre_para_sesion(container, usuario),
        autenticado=True,
    )


class ServicioSesiones:
    def __init__(self, container: AppContainer, *, max_attempts: int = 5, lock_seconds: int = 60) -> None:
        self._c = container
        self._auth = AuthService(container.connection, max_attempts=max_attempts, lock_seconds=lock_seconds)

    def iniciar(self, username: str, password: str) -> SesionUsuario:
        with transaccion(self._c.connection):
            resultado = self._auth.verify(username, password)
        if resultado.locked:
            LOGGER.warning("login_fallido", extra={"motivo": "bloqueado", "usuario_id": resultado.usuario_id})
            raise UnauthorizedError(MENSAJE_BLOQUEO)
        if not resultado.ok:
            LOGGER.warning("login_fallido", extra={"motivo": "credenciales", "usuario_id": resultado.usuario_id})
            raise CredencialesInvalidasError(MENSAJE_CREDENCIALES)
        usuario = self._c.usuarios_repo.get_by_id(resultado.usuario_id)
        if usuario is None:
            raise CredencialesInvalidasError(MENSAJE_CREDENCIALES)
        sesion = sesion_desde_usuario(self._c, usuario)
        LOGGER.info("sesion_iniciada", extra={"usuario_id": usuario.id, "rol_id": usuario.rol_id})
        return sesion

    def refrescar(self, sesion: SesionUsuario) -> SesionUsuario:
        """Recarga la identidad cacheada; si el usuario ya no existe, la sesión queda cerrada."""
        self._c.control_acceso.exigir_sesion(sesion)
        usuario = self._c.usuarios_repo.get_by_id(sesion.usuario_id)
        if usuario is None:
            sesion.cerrar()
            raise UnauthorizedError("La cuenta de la sesión ya no existe.")
        sesion.refrescar(
            username=usuario.username,
            rol_id=usuario.rol_id,
            persona_id=usuario.persona_id,
            nombre=nombre_para_sesion(self._c, usuario),
        )
        return sesion

    def cerrar(self, sesion: SesionUsuario) -> None:
        usuario_id = sesion.usuario_id
        sesion.cerrar()
        LOGGER.info("sesion_cerrada", extra={"usuario_id": usuario_id})
