# application/usecases/cola_espera.py
"""
Casos de uso de la sala de espera.

Reglas:
- Como mucho una visita no completada por persona. Comprobación previa
  dentro de BEGIN IMMEDIATE + índice único parcial como respaldo.
- El tipo de cuenta se deriva, nunca se recibe:
  - titular: según su tipo (empleado / afiliado corporativo / privado).
  - beneficiario: según el titular del que depende. Si depende de varios
    titulares con tipos distintos, el llamador debe indicar titular_id.
- Esperando -> En Consulta se hace aquí; Completado solo al registrar la consulta.
- Una visita solo se retira de la cola mientras está Esperando.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from ambulatorio.app.application.security import SesionUsuario
from ambulatorio.app.bootstrap_logging import get_logger
from ambulatorio.app.container import AppContainer
from ambulatorio.app.domain.cola import VisitaCola, validar_transicion
from ambulatorio.app.domain.enums import EstadoVisita, TipoCuenta, TipoPacienteCola, TipoServicio
from ambulatorio.app.domain.exceptions import (
    ConflictError,
    NoAfiliadoError,
    NotFoundError,
    TitularAmbiguoError,
    ValidationError,
    VisitaDuplicadaError,
)
from ambulatorio.app.domain.permisos import Permiso
from ambulatorio.app.domain.personas import Titular
from ambulatorio.app.domain.value_objects import _coerce_enum
from ambulatorio.app.infrastructure.sqlite.transacciones import transaccion
from ambulatorio.app.queries.cola_espera_queries import VisitaColaRow

LOGGER = get_logger(__name__)


@dataclass(slots=True)
class EncolarVisitaRequest:
    persona_id: int
    tipo_servicio: TipoServicio | str
    # Solo para beneficiarios de varios titulares con tipos de cuenta distintos.
    titular_id: Optional[int] = None


@dataclass(frozen=True, slots=True)
class _Afiliacion:
    tipo_paciente: TipoPacienteCola
    tipo_cuenta: TipoCuenta
    titular_id: int


class EncolarVisitaUseCase:
    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(self, sesion: SesionUsuario, req: EncolarVisitaRequest) -> VisitaCola:
        self._c.control_acceso.autorizar(sesion, Permiso.COLA_GESTIONAR)
        tipo_servicio = _coerce_enum(TipoServicio, req.tipo_servicio, "tipo_servicio")
        try:
            with transaccion(self._c.connection):
                visita = self._encolar(req, tipo_servicio)
        except VisitaDuplicadaError:
            LOGGER.warning("visita_duplicada", extra={"persona_id": req.persona_id})
            raise
        LOGGER.info(
            "visita_encolada",
            extra={"visita_id": visita.id, "persona_id": visita.persona_id, "tipo_cuenta": visita.tipo_cuenta.value},
        )
        return visita

    def _encolar(self, req: EncolarVisitaRequest, tipo_servicio: TipoServicio) -> VisitaCola:
        if not self._c.personas_repo.exists(req.persona_id):
            raise NotFoundError("La persona no existe.")
        afiliacion = self._resolver_afiliacion(req.persona_id, req.titular_id)
        if self._c.cola_repo.get_activa_por_persona(req.persona_id) is not None:
            raise VisitaDuplicadaError("La persona ya tiene una visita activa en la sala de espera.")
        ahora = self._c.ahora()
        paciente = self._c.pacientes_repo.asegurar(req.persona_id, ahora=ahora)
        visita = VisitaCola(
            id=None,
            persona_id=req.persona_id,
            paciente_id=paciente.id,
            titular_id=afiliacion.titular_id,
            tipo_paciente=afiliacion.tipo_paciente,
            tipo_servicio=tipo_servicio,
            tipo_cuenta=afiliacion.tipo_cuenta,
            estado=EstadoVisita.ESPERANDO,
            hora_llegada=ahora,
        )
        self._c.cola_repo.create(visita)
        return visita

    def _resolver_afiliacion(self, persona_id: int, titular_id: Optional[int]) -> _Afiliacion:
        propio = self._c.titulares_repo.get_by_persona_id(persona_id)
        if propio is not None and titular_id in (None, propio.id):
            return _Afiliacion(
                tipo_paciente=TipoPacienteCola.TITULAR,
                tipo_cuenta=TipoCuenta.desde_tipo_titular(propio.tipo),
                titular_id=propio.id,
            )

        titulares = self._c.titulares_repo.titulares_de_beneficiario(persona_id)
        if not titulares:
            if titular_id is not None:
                raise ValidationError(
                    "La persona no es beneficiaria del titular indicado.",
                    {"titular_id": "Sin enlace."},
                )
            raise NoAfiliadoError("La persona no es titular ni beneficiario; no puede entrar en la sala de espera.")

        elegido = self._elegir_titular(titulares, titular_id)
        return _Afiliacion(
            tipo_paciente=TipoPacienteCola.BENEFICIARIO,
            tipo_cuenta=TipoCuenta.desde_tipo_titular(elegido.tipo),
            titular_id=elegido.id,
        )

    @staticmethod
    def _elegir_titular(titulares: List[Titular], titular_id: Optional[int]) -> Titular:
        if titular_id is not None:
            for titular in titulares:
                if titular.id == titular_id:
                    return titular
            raise ValidationError(
                "La persona no es beneficiaria del titular indicado.",
                {"titular_id": "Sin enlace."},
            )
        tipos = {TipoCuenta.desde_tipo_titular(t.tipo) for t in titulares}
        if len(tipos) > 1:
            raise TitularAmbiguoError(
                "La persona es beneficiaria de varios titulares con tipos de cuenta distintos. "
                "Indique el titular a utilizar.",
                [t.id for t in titulares],
            )
        return titulares[0]


class AvanzarEstadoVisitaUseCase:
    """Llamar a consulta: Esperando -> En Consulta."""

    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(self, sesion: SesionUsuario, visita_id: int, nuevo_estado: EstadoVisita | str) -> VisitaCola:
        self._c.control_acceso.autorizar(sesion, Permiso.COLA_GESTIONAR)
        nuevo = _coerce_enum(EstadoVisita, nuevo_estado, "estado")
        with transaccion(self._c.connection):
            visita = self._c.cola_repo.get_by_id(visita_id)
            if visita is None:
                raise NotFoundError("La visita no existe.")
            validar_transicion(visita.estado, nuevo)
            if nuevo == EstadoVisita.COMPLETADO:
                raise ConflictError("La visita se completa al registrar la consulta.")
            ahora = self._c.ahora()
            if not self._c.cola_repo.update_estado(visita_id, desde=visita.estado, hacia=nuevo, ahora=ahora):
                raise ConflictError("La visita cambió de estado mientras se procesaba la petición.")
            visita.estado = nuevo
        LOGGER.info("visita_estado_cambiado", extra={"visita_id": visita_id, "estado": nuevo.value})
        return visita


class RetirarVisitaUseCase:
    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(self, sesion: SesionUsuario, visita_id: int) -> None:
        self._c.control_acceso.autorizar(sesion, Permiso.COLA_GESTIONAR)
        with transaccion(self._c.connection):
            visita = self._c.cola_repo.get_by_id(visita_id)
            if visita is None:
                raise NotFoundError("La visita no existe.")
            if not visita.puede_retirarse():
                raise ConflictError(
                    f"Solo se puede retirar una visita en espera (estado actual: {visita.estado.value})."
                )
            self._c.cola_repo.delete(visita_id)


class ListarColaUseCase:
    """Instantánea completa de las visitas activas; el cliente la vuelve a pedir periódicamente."""

    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(self, sesion: SesionUsuario, *, incluir_completadas: bool = False) -> List[VisitaColaRow]:
        self._c.control_acceso.exigir_sesion(sesion)
        return self._c.queries.cola_espera.listar(incluir_completadas=incluir_completadas)


class ContarEsperandoUseCase:
    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(self, sesion: SesionUsuario) -> int:
        self._c.control_acceso.exigir_sesion(sesion)
        return self._c.queries.cola_espera.contar_esperando()
