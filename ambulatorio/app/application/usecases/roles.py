from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import List

from ambulatorio.app.application.security import ControlAcceso, SesionUsuario
from ambulatorio.app.domain.exceptions import ConflictError, IntegrityError, NotFoundError, ValidationError
from ambulatorio.app.domain.permisos import MODULOS_PERMISOS, Permiso
from ambulatorio.app.domain.usuarios import Rol
from ambulatorio.app.infrastructure.sqlite.repos_roles import RolesRepository
from ambulatorio.app.infrastructure.sqlite.transacciones import transaccion


def _normalizar_permisos(rol: Rol) -> None:
    conocidos = {p.value for p in Permiso}
    desconocidos = sorted(set(rol.permisos) - conocidos)
    if desconocidos:
        raise ValidationError(
            f"Permisos desconocidos: {', '.join(desconocidos)}.",
            {"permisos": "Identificador no reconocido."},
        )
    rol.permisos = frozenset(Permiso(p).value for p in rol.permisos)


@dataclass(frozen=True)
class CrearRolUseCase:
    connection: sqlite3.Connection
    repo: RolesRepository
    control_acceso: ControlAcceso

    def execute(self, sesion: SesionUsuario, rol: Rol) -> str:
        self.control_acceso.autorizar(sesion, Permiso.ROLES_GESTIONAR)
        rol.validar()
        _normalizar_permisos(rol)
        with transaccion(self.connection):
            if self.repo.get_by_id(rol.id) is not None:
                raise ConflictError("Ya existe un rol con ese identificador.")
            self.repo.create(rol)
        return rol.id


@dataclass(frozen=True)
class ActualizarRolUseCase:
    """Los cambios de permisos rigen desde la siguiente autorización de cualquier sesión."""

    connection: sqlite3.Connection
    repo: RolesRepository
    control_acceso: ControlAcceso

    def execute(self, sesion: SesionUsuario, rol: Rol) -> None:
        self.control_acceso.autorizar(sesion, Permiso.ROLES_GESTIONAR)
        rol.validar()
        _normalizar_permisos(rol)
        if rol.es_superusuario and rol.permisos != frozenset(p.value for p in Permiso):
            raise ConflictError("El rol superusuario conserva siempre todos los permisos.")
        with transaccion(self.connection):
            if not self.repo.update(rol):
                raise NotFoundError("El rol no existe.")


@dataclass(frozen=True)
class EliminarRolUseCase:
    connection: sqlite3.Connection
    repo: RolesRepository
    control_acceso: ControlAcceso

    def execute(self, sesion: SesionUsuario, rol_id: str) -> None:
        self.control_acceso.autorizar(sesion, Permiso.ROLES_GESTIONAR)
        with transaccion(self.connection):
            rol = self.repo.get_by_id(rol_id)
            if rol is None:
                raise NotFoundError("El rol no existe.")
            if rol.es_superusuario:
                raise ConflictError("El rol superusuario no se puede eliminar.")
            if self.repo.count_usuarios(rol_id) > 0:
                raise IntegrityError("No se puede eliminar el rol porque tiene usuarios asignados.")
            self.repo.delete(rol_id)


@dataclass(frozen=True)
class ListarRolesUseCase:
    repo: RolesRepository
    control_acceso: ControlAcceso

    def execute(self, sesion: SesionUsuario) -> List[Rol]:
        self.control_acceso.autorizar(sesion, Permiso.ROLES_GESTIONAR)
        return self.repo.list_all()


@dataclass(frozen=True)
class CatalogoPermisosUseCase:
    control_acceso: ControlAcceso

    def execute(self, sesion: SesionUsuario) -> dict[str, tuple[tuple[Permiso, str], ...]]:
        self.control_acceso.autorizar(sesion, Permiso.ROLES_GESTIONAR)
        return dict(MODULOS_PERMISOS)
