from __future__ import annotations

from typing import List, Optional

from ambulatorio.app.application.security import SesionUsuario
from ambulatorio.app.container import AppContainer
from ambulatorio.app.domain.permisos import Permiso
from ambulatorio.app.queries.directorio_queries import LIMITE_DIRECTORIO, DirectorioRow
from ambulatorio.app.queries.pacientes_queries import PacienteListadoRow


class BuscarDirectorioUseCase:
    """
    Resuelve "qué persona" para cualquier flujo superior.

    Texto de menos de 2 caracteres devuelve [] salvo listar_todo=True.
    Los resultados se entregan por páginas de `limit` filas (20 por defecto);
    para recorrer el directorio completo se avanza `offset`.
    """

    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(
        self,
        sesion: SesionUsuario,
        texto: Optional[str],
        *,
        listar_todo: bool = False,
        limit: int = LIMITE_DIRECTORIO,
        offset: int = 0,
    ) -> List[DirectorioRow]:
        self._c.control_acceso.exigir_sesion(sesion)
        return self._c.queries.directorio.buscar(texto, listar_todo=listar_todo, limit=limit, offset=offset)


class ListarPacientesUseCase:
    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(
        self,
        sesion: SesionUsuario,
        texto: Optional[str] = None,
        *,
        limit: int = 200,
        offset: int = 0,
    ) -> List[PacienteListadoRow]:
        self._c.control_acceso.autorizar(sesion, Permiso.LISTA_PACIENTES_VER)
        return self._c.queries.pacientes.listar(texto=texto, limit=limit, offset=offset)
