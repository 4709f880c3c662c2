from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from ambulatorio.app.bootstrap_logging import get_logger
from ambulatorio.app.domain.exceptions import UnauthorizedError
from ambulatorio.app.domain.permisos import Permiso

LOGGER = get_logger(__name__)


class LectorPermisosRol(Protocol):
    def permisos_de(self, rol_id: str) -> frozenset[str]:
        ...

    def rol_de_usuario(self, usuario_id: int) -> Optional[str]:
        ...


@dataclass(slots=True)
class SesionUsuario:
    """
    Contexto explícito de la sesión autenticada.

    Se crea al iniciar sesión, se pasa a cada caso de uso y se invalida al
    cerrar sesión. Nunca se lee de un estado global.
    """

    usuario_id: Optional[int] = None
    username: str = ""
    rol_id: Optional[str] = None
    persona_id: Optional[int] = None
    nombre: str = ""
    autenticado: bool = False

    @classmethod
    def anonima(cls) -> "SesionUsuario":
        return cls()

    @property
    def nombre_visible(self) -> str:
        return self.nombre or self.username

    def refrescar(
        self,
        *,
        username: str,
        rol_id: str,
        persona_id: Optional[int],
        nombre: str,
    ) -> None:
        self.username = username
        self.rol_id = rol_id
        self.persona_id = persona_id
        self.nombre = nombre

    def cerrar(self) -> None:
        self.usuario_id = None
        self.username = ""
        self.rol_id = None
        self.persona_id = None
        self.nombre = ""
        self.autenticado = False


class ControlAcceso:
    """
    Punto único de autorización: sesión -> rol -> permisos.

    El rol se relee de la cuenta en cada llamada; la sesión solo aporta el
    `usuario_id`. Si la cuenta ya no existe la sesión se cierra y se deniega.
    """

    def __init__(self, roles: LectorPermisosRol) -> None:
        self._roles = roles

    def exigir_sesion(self, sesion: SesionUsuario) -> None:
        if not sesion.autenticado or sesion.usuario_id is None or not sesion.rol_id:
            LOGGER.warning("acceso_denegado", extra={"motivo": "sin_sesion"})
            raise UnauthorizedError("Debe iniciar sesión para realizar esta acción.")
        rol_vigente = self._roles.rol_de_usuario(sesion.usuario_id)
        if rol_vigente is None:
            LOGGER.warning("acceso_denegado", extra={"motivo": "cuenta_inexistente", "usuario_id": sesion.usuario_id})
            sesion.cerrar()
            raise UnauthorizedError("La cuenta de la sesión ya no existe.")
        sesion.rol_id = rol_vigente

    def permisos_de(self, sesion: SesionUsuario) -> frozenset[Permiso]:
        if not sesion.autenticado or sesion.usuario_id is None:
            return frozenset()
        rol_id = self._roles.rol_de_usuario(sesion.usuario_id)
        if rol_id is None:
            return frozenset()
        return self._permisos_del_rol(rol_id)

    def tiene_permiso(self, sesion: SesionUsuario, permiso: Permiso) -> bool:
        return permiso in self.permisos_de(sesion)

    def autorizar(self, sesion: SesionUsuario, permiso: Permiso) -> None:
        self.exigir_sesion(sesion)
        if permiso in self._permisos_del_rol(sesion.rol_id):
            return
        LOGGER.warning(
            "acceso_denegado",
            extra={"permiso": permiso.value, "rol_id": sesion.rol_id, "usuario_id": sesion.usuario_id},
        )
        raise UnauthorizedError(f"No tienes permisos para ejecutar '{permiso.value}'.")

    def _permisos_del_rol(self, rol_id: str) -> frozenset[Permiso]:
        conocidos = {p.value for p in Permiso}
        return frozenset(Permiso(p) for p in self._roles.permisos_de(rol_id) if p in conocidos)
