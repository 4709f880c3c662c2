# application/usecases/tratamientos.py
"""
Órdenes de tratamiento y su bitácora de ejecuciones.

Una orden solo admite ejecuciones mientras está Activa. Completar o
cancelar es terminal para nuevas ejecuciones, pero el historial se sigue
pudiendo consultar.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from ambulatorio.app.application.security import SesionUsuario
from ambulatorio.app.bootstrap_logging import get_logger
from ambulatorio.app.container import AppContainer
from ambulatorio.app.domain.clinica import EjecucionTratamiento, OrdenTratamiento
from ambulatorio.app.domain.enums import EstadoOrdenTratamiento
from ambulatorio.app.domain.exceptions import ConflictError, NotFoundError, ValidationError
from ambulatorio.app.domain.permisos import Permiso
from ambulatorio.app.domain.value_objects import _coerce_enum, _require_non_empty
from ambulatorio.app.infrastructure.sqlite.transacciones import transaccion
from ambulatorio.app.queries.ordenes_tratamiento_queries import OrdenTratamientoRow

LOGGER = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class DetalleOrdenTratamiento:
    orden: OrdenTratamiento
    ejecuciones: List[EjecucionTratamiento]


class CrearOrdenTratamientoUseCase:
    """Orden independiente de una consulta (p. ej. indicaciones de enfermería)."""

    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(self, sesion: SesionUsuario, orden: OrdenTratamiento) -> OrdenTratamiento:
        self._c.control_acceso.autorizar(sesion, Permiso.CONSULTA_REALIZAR)
        orden.validar()
        orden.estado = EstadoOrdenTratamiento.ACTIVO
        with transaccion(self._c.connection):
            if self._c.pacientes_repo.get_by_id(orden.paciente_id) is None:
                raise ValidationError("El paciente indicado no existe.", {"paciente_id": "No existe."})
            orden.creado_en = self._c.ahora()
            self._c.ordenes_repo.create(orden)
        return orden


class RegistrarEjecucionUseCase:
    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(
        self,
        sesion: SesionUsuario,
        orden_id: int,
        observaciones: str,
        *,
        item_id: Optional[int] = None,
    ) -> EjecucionTratamiento:
        self._c.control_acceso.autorizar(sesion, Permiso.BITACORA_TRATAMIENTO)
        observaciones = _require_non_empty(observaciones, "observaciones")
        with transaccion(self._c.connection):
            orden = self._c.ordenes_repo.get_by_id(orden_id)
            if orden is None:
                raise NotFoundError("La orden de tratamiento no existe.")
            orden.exigir_activa()
            if item_id is not None and all(item.id != item_id for item in orden.items):
                raise ValidationError("El ítem no pertenece a la orden.", {"item_id": "No pertenece a la orden."})
            ejecucion = EjecucionTratamiento(
                orden_id=orden_id,
                item_id=item_id,
                observaciones=observaciones,
                ejecutado_por=sesion.nombre_visible,
                ejecutado_en=self._c.ahora(),
            )
            self._c.ordenes_repo.add_ejecucion(ejecucion)
            if item_id is not None:
                self._c.ordenes_repo.marcar_item_administrado(item_id)
        LOGGER.info("ejecucion_registrada", extra={"orden_id": orden_id, "ejecucion_id": ejecucion.id})
        return ejecucion


class CambiarEstadoOrdenUseCase:
    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(self, sesion: SesionUsuario, orden_id: int, estado: EstadoOrdenTratamiento | str) -> None:
        self._c.control_acceso.autorizar(sesion, Permiso.BITACORA_TRATAMIENTO)
        nuevo = _coerce_enum(EstadoOrdenTratamiento, estado, "estado")
        with transaccion(self._c.connection):
            orden = self._c.ordenes_repo.get_by_id(orden_id)
            if orden is None:
                raise NotFoundError("La orden de tratamiento no existe.")
            if orden.estado != EstadoOrdenTratamiento.ACTIVO:
                raise ConflictError(f"La orden ya está {orden.estado.value} y no admite cambios de estado.")
            if nuevo == EstadoOrdenTratamiento.ACTIVO:
                return
            if nuevo == EstadoOrdenTratamiento.COMPLETADO and self._c.ordenes_repo.count_ejecuciones(orden_id) == 0:
                raise ValidationError(
                    "Para completar la orden debe registrar al menos una ejecución.",
                    {"estado": "Sin ejecuciones."},
                )
            if not self._c.ordenes_repo.update_estado(orden_id, desde=EstadoOrdenTratamiento.ACTIVO, hacia=nuevo):
                raise ConflictError("La orden cambió de estado mientras se procesaba la petición.")
        LOGGER.info("orden_estado_cambiado", extra={"orden_id": orden_id, "estado": nuevo.value})


class ObtenerOrdenTratamientoUseCase:
    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(self, sesion: SesionUsuario, orden_id: int) -> DetalleOrdenTratamiento:
        self._c.control_acceso.autorizar(sesion, Permiso.BITACORA_TRATAMIENTO)
        orden = self._c.ordenes_repo.get_by_id(orden_id)
        if orden is None:
            raise NotFoundError("La orden de tratamiento no existe.")
        return DetalleOrdenTratamiento(orden=orden, ejecuciones=self._c.ordenes_repo.list_ejecuciones(orden_id))


class ListarOrdenesTratamientoUseCase:
    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(
        self,
        sesion: SesionUsuario,
        texto: Optional[str] = None,
        *,
        estado: Optional[EstadoOrdenTratamiento] = None,
    ) -> List[OrdenTratamientoRow]:
        self._c.control_acceso.autorizar(sesion, Permiso.BITACORA_TRATAMIENTO)
        return self._c.queries.ordenes_tratamiento.listar(texto=texto, estado=estado.value if estado else None)
