# application/usecases/usuarios.py
"""
Gestión de usuarios (permiso users.manage).

Reglas de identidad sobre el permiso:
- Nadie puede eliminar su propia cuenta.
- Siempre queda al menos un usuario con rol superusuario.
- Editar el propio usuario refresca la sesión en el acto.
"""

from __future__ import annotations

from typing import List, Optional

from ambulatorio.app.application.security import SesionUsuario
from ambulatorio.app.bootstrap_logging import get_logger
from ambulatorio.app.container import AppContainer
from ambulatorio.app.domain.exceptions import (
    ConflictError,
    CredencialesInvalidasError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from ambulatorio.app.domain.permisos import Permiso
from ambulatorio.app.domain.usuarios import ROL_SUPERUSUARIO, Usuario
from ambulatorio.app.infrastructure.sqlite.repos_usuarios import UsuarioListadoRow
from ambulatorio.app.infrastructure.sqlite.transacciones import transaccion
from ambulatorio.app.security.auth import LONGITUD_MINIMA_PASSWORD, hash_password, verificar_password
from ambulatorio.app.security.sesiones import nombre_para_sesion

LOGGER = get_logger(__name__)


def validar_password(password: str) -> None:
    if password is None or len(password) < LONGITUD_MINIMA_PASSWORD:
        raise ValidationError(
            f"La contraseña debe tener al menos {LONGITUD_MINIMA_PASSWORD} caracteres.",
            {"password": "Demasiado corta."},
        )


def _validar_referencias(c: AppContainer, usuario: Usuario) -> None:
    rol = c.roles_repo.get_by_id(usuario.rol_id)
    if rol is None:
        raise ValidationError("El rol indicado no existe.", {"rol_id": "No existe."})
    if not rol.tiene_especialidad:
        usuario.especialidad = None
    if usuario.persona_id is not None and not c.personas_repo.exists(usuario.persona_id):
        raise ValidationError("La persona indicada no existe.", {"persona_id": "No existe."})
    existente = c.usuarios_repo.get_by_username(usuario.username)
    if existente is not None and existente.id != usuario.id:
        raise ConflictError("El nombre de usuario ya está en uso.")


class CrearUsuarioUseCase:
    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(self, sesion: SesionUsuario, usuario: Usuario, password: str) -> int:
        self._c.control_acceso.autorizar(sesion, Permiso.USUARIOS_GESTIONAR)
        usuario.validar()
        validar_password(password)
        password_hash, salt = hash_password(password)
        with transaccion(self._c.connection):
            _validar_referencias(self._c, usuario)
            usuario_id = self._c.usuarios_repo.create(
                usuario,
                password_hash=password_hash,
                password_salt=salt,
                ahora=self._c.ahora(),
            )
        LOGGER.info("usuario_creado", extra={"usuario_id": usuario_id, "rol_id": usuario.rol_id})
        return usuario_id


class ActualizarUsuarioUseCase:
    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(self, sesion: SesionUsuario, usuario: Usuario) -> Usuario:
        self._c.control_acceso.autorizar(sesion, Permiso.USUARIOS_GESTIONAR)
        usuario.validar()
        with transaccion(self._c.connection):
            actual = self._c.usuarios_repo.get_by_id(usuario.id) if usuario.id else None
            if actual is None:
                raise NotFoundError("El usuario no existe.")
            _validar_referencias(self._c, usuario)
            if actual.rol_id == ROL_SUPERUSUARIO and usuario.rol_id != ROL_SUPERUSUARIO:
                if self._c.roles_repo.count_usuarios(ROL_SUPERUSUARIO) <= 1:
                    raise ConflictError("Debe quedar al menos un usuario con rol superusuario.")
            self._c.usuarios_repo.update(usuario, ahora=self._c.ahora())
        if usuario.id == sesion.usuario_id:
            sesion.refrescar(
                username=usuario.username,
                rol_id=usuario.rol_id,
                persona_id=usuario.persona_id,
                nombre=nombre_para_sesion(self._c, usuario),
            )
        return usuario


class EliminarUsuarioUseCase:
    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(self, sesion: SesionUsuario, usuario_id: int) -> None:
        self._c.control_acceso.autorizar(sesion, Permiso.USUARIOS_GESTIONAR)
        if usuario_id == sesion.usuario_id:
            raise UnauthorizedError("No puedes eliminar tu propia cuenta.")
        with transaccion(self._c.connection):
            usuario = self._c.usuarios_repo.get_by_id(usuario_id)
            if usuario is None:
                raise NotFoundError("El usuario no existe.")
            if usuario.rol_id == ROL_SUPERUSUARIO and self._c.roles_repo.count_usuarios(ROL_SUPERUSUARIO) <= 1:
                raise ConflictError("Debe quedar al menos un usuario con rol superusuario.")
            self._c.usuarios_repo.delete(usuario_id)
        LOGGER.info("usuario_eliminado", extra={"usuario_id": usuario_id})


class ListarUsuariosUseCase:
    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(
        self,
        sesion: SesionUsuario,
        texto: Optional[str] = None,
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[List[UsuarioListadoRow], int]:
        self._c.control_acceso.autorizar(sesion, Permiso.USUARIOS_GESTIONAR)
        return self._c.usuarios_repo.search(texto, limit=limit, offset=offset)


class RestablecerPasswordUseCase:
    """Un administrador fija una contraseña nueva y desbloquea la cuenta."""

    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(self, sesion: SesionUsuario, usuario_id: int, password_nueva: str) -> None:
        self._c.control_acceso.autorizar(sesion, Permiso.USUARIOS_GESTIONAR)
        validar_password(password_nueva)
        password_hash, salt = hash_password(password_nueva)
        with transaccion(self._c.connection):
            actualizado = self._c.usuarios_repo.update_password(
                usuario_id,
                password_hash=password_hash,
                password_salt=salt,
                ahora=self._c.ahora(),
            )
            if not actualizado:
                raise NotFoundError("El usuario no existe.")


class CambiarPasswordPropiaUseCase:
    """No requiere permiso: solo sesión y la contraseña actual."""

    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(self, sesion: SesionUsuario, password_actual: str, password_nueva: str) -> None:
        self._c.control_acceso.exigir_sesion(sesion)
        validar_password(password_nueva)
        with transaccion(self._c.connection):
            guardado = self._c.usuarios_repo.get_password(sesion.usuario_id)
            if guardado is None:
                raise NotFoundError("El usuario no existe.")
            if not verificar_password(password_actual, *guardado):
                raise CredencialesInvalidasError("La contraseña actual no es correcta.")
            password_hash, salt = hash_password(password_nueva)
            self._c.usuarios_repo.update_password(
                sesion.usuario_id,
                password_hash=password_hash,
                password_salt=salt,
                ahora=self._c.ahora(),
            )
        LOGGER.info("password_cambiada", extra={"usuario_id": sesion.usuario_id})


class CrearSuperusuarioInicialUseCase:
    """Alta del primer usuario de una instalación; no hay sesión que autorizar todavía."""

    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(self, username: str, password: str) -> int:
        usuario = Usuario(username=username, rol_id=ROL_SUPERUSUARIO)
        usuario.validar()
        validar_password(password)
        password_hash, salt = hash_password(password)
        with transaccion(self._c.connection):
            if self._c.usuarios_repo.count() > 0:
                raise ConflictError("Ya existen usuarios; use la gestión de usuarios con una sesión de superusuario.")
            _validar_referencias(self._c, usuario)
            usuario_id = self._c.usuarios_repo.create(
                usuario,
                password_hash=password_hash,
                password_salt=salt,
                ahora=self._c.ahora(),
            )
        LOGGER.info("superusuario_inicial_creado", extra={"usuario_id": usuario_id})
        return usuario_id
