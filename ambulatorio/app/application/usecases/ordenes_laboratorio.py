# application/usecases/ordenes_laboratorio.py
"""
Órdenes de laboratorio solicitadas desde una consulta registrada.

La cabecera y sus pruebas se escriben en una sola transacción; el paciente
se toma de la consulta, nunca del llamador.
"""

from __future__ import annotations

from typing import List

from ambulatorio.app.application.security import SesionUsuario
from ambulatorio.app.bootstrap_logging import get_logger
from ambulatorio.app.container import AppContainer
from ambulatorio.app.domain.clinica import OrdenLaboratorio
from ambulatorio.app.domain.enums import EstadoOrdenLaboratorio
from ambulatorio.app.domain.exceptions import NotFoundError
from ambulatorio.app.domain.permisos import Permiso
from ambulatorio.app.infrastructure.sqlite.transacciones import transaccion

LOGGER = get_logger(__name__)


class CrearOrdenLaboratorioUseCase:
    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(self, sesion: SesionUsuario, orden: OrdenLaboratorio) -> OrdenLaboratorio:
        self._c.control_acceso.autorizar(sesion, Permiso.CONSULTA_REALIZAR)
        orden.validar()
        orden.estado = EstadoOrdenLaboratorio.PENDIENTE
        try:
            with transaccion(self._c.connection):
                consulta = self._c.consultas_repo.get_by_id(orden.consulta_id)
                if consulta is None:
                    raise NotFoundError("La consulta no existe.")
                orden.paciente_id = consulta.paciente_id
                orden.fecha = self._c.ahora()
                self._c.ordenes_laboratorio_repo.create(orden)
        except Exception:
            orden.id = None
            orden.fecha = None
            for item in orden.items:
                item.id = None
                item.orden_id = None
            raise
        LOGGER.info(
            "orden_laboratorio_creada",
            extra={"orden_id": orden.id, "consulta_id": orden.consulta_id, "pruebas": len(orden.items)},
        )
        return orden


class ListarOrdenesLaboratorioUseCase:
    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(self, sesion: SesionUsuario, consulta_id: int) -> List[OrdenLaboratorio]:
        self._c.control_acceso.autorizar(sesion, Permiso.HCE_VER)
        if self._c.consultas_repo.get_by_id(consulta_id) is None:
            raise NotFoundError("La consulta no existe.")
        return self._c.ordenes_laboratorio_repo.list_by_consulta_id(consulta_id)
