# application/usecases/registrar_consulta.py
"""
Caso de uso: Registrar consulta.

Reglas:
- Validaciones duras (antes de tocar la base de datos):
  - motivo_consulta, enfermedad_actual y plan_tratamiento obligatorios
  - al menos un diagnóstico, sin códigos repetidos
  - documentos con contenido, orden de tratamiento con al menos un ítem

- Validaciones contra la base de datos:
  - el paciente debe existir (ValidationError)
  - los códigos CIE-10 deben existir en el catálogo (ValidationError)
  - la visita, si se indica, debe existir (NotFoundError), ser de ese
    paciente (ValidationError) y estar En Consulta (ConflictError)

Efectos (todo o nada, una sola transacción):
- Inserta la consulta, sus diagnósticos y sus documentos
- Inserta la orden de tratamiento con sus ítems, si la hay
- Pasa la visita a Completado (la visita se conserva como rastro)
"""

from __future__ import annotations

from typing import List

from ambulatorio.app.application.security import SesionUsuario
from ambulatorio.app.bootstrap_logging import get_logger
from ambulatorio.app.container import AppContainer
from ambulatorio.app.domain.clinica import Consulta, DiagnosticoConsulta
from ambulatorio.app.domain.cola import validar_transicion
from ambulatorio.app.domain.enums import EstadoVisita
from ambulatorio.app.domain.exceptions import ConflictError, NotFoundError, ValidationError
from ambulatorio.app.domain.permisos import Permiso
from ambulatorio.app.infrastructure.sqlite.transacciones import transaccion

LOGGER = get_logger(__name__)


class RegistrarConsultaUseCase:
    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(self, sesion: SesionUsuario, consulta: Consulta) -> Consulta:
        self._c.control_acceso.autorizar(sesion, Permiso.CONSULTA_REALIZAR)
        consulta.validar()
        try:
            with transaccion(self._c.connection):
                self._validar_referencias(consulta)
                self._persistir(consulta)
        except Exception as exc:
            LOGGER.warning(
                "consulta_revertida",
                extra={
                    "paciente_id": consulta.paciente_id,
                    "visita_id": consulta.visita_id,
                    "motivo": type(exc).__name__,
                },
            )
            _descartar_valores_revertidos(consulta)
            raise
        LOGGER.info(
            "consulta_registrada",
            extra={
                "consulta_id": consulta.id,
                "paciente_id": consulta.paciente_id,
                "visita_id": consulta.visita_id,
                "diagnosticos": len(consulta.diagnosticos),
                "documentos": len(consulta.documentos),
            },
        )
        return consulta

    def _validar_referencias(self, consulta: Consulta) -> None:
        if self._c.pacientes_repo.get_by_id(consulta.paciente_id) is None:
            raise ValidationError("El paciente indicado no existe.", {"paciente_id": "No existe."})
        if consulta.visita_id is not None:
            visita = self._c.cola_repo.get_by_id(consulta.visita_id)
            if visita is None:
                raise NotFoundError("La visita no existe.")
            if visita.paciente_id != consulta.paciente_id:
                raise ValidationError(
                    "La visita pertenece a otro paciente.",
                    {"visita_id": "No corresponde al paciente."},
                )
            validar_transicion(visita.estado, EstadoVisita.COMPLETADO)
        self._completar_diagnosticos(consulta.diagnosticos)

    def _completar_diagnosticos(self, diagnosticos: List[DiagnosticoConsulta]) -> None:
        catalogo = self._c.cie10_repo.get_many([d.codigo for d in diagnosticos])
        faltantes = [d.codigo for d in diagnosticos if d.codigo not in catalogo]
        if faltantes:
            raise ValidationError(
                f"Códigos CIE-10 inexistentes: {', '.join(faltantes)}.",
                {"diagnosticos": "Código no registrado en el catálogo."},
            )
        for diagnostico in diagnosticos:
            if not diagnostico.descripcion:
                diagnostico.descripcion = catalogo[diagnostico.codigo].descripcion

    def _persistir(self, consulta: Consulta) -> None:
        ahora = self._c.ahora()
        consulta.fecha = ahora
        consulta_id = self._c.consultas_repo.insertar_consulta(consulta)
        self._c.consultas_repo.insertar_diagnosticos(consulta_id, consulta.diagnosticos)
        for documento in consulta.documentos:
            documento.subido_en = ahora
        self._c.consultas_repo.insertar_documentos(consulta_id, consulta.documentos)

        orden = consulta.orden_tratamiento
        if orden is not None:
            orden.paciente_id = consulta.paciente_id
            orden.consulta_id = consulta_id
            orden.creado_en = ahora
            self._c.ordenes_repo.create(orden)

        if consulta.visita_id is not None:
            cerrada = self._c.cola_repo.update_estado(
                consulta.visita_id,
                desde=EstadoVisita.EN_CONSULTA,
                hacia=EstadoVisita.COMPLETADO,
                ahora=ahora,
            )
            if not cerrada:
                raise ConflictError("La visita cambió de estado mientras se registraba la consulta.")


def _descartar_valores_revertidos(consulta: Consulta) -> None:
    """Limpia ids y marcas de tiempo asignados por filas que no llegaron a confirmarse."""
    consulta.id = None
    consulta.fecha = None
    for diagnostico in consulta.diagnosticos:
        diagnostico.id = None
        diagnostico.consulta_id = None
    for documento in consulta.documentos:
        documento.id = None
        documento.consulta_id = None
        documento.subido_en = None
    orden = consulta.orden_tratamiento
    if orden is not None:
        orden.id = None
        orden.consulta_id = None
        orden.creado_en = None
        for item in orden.items:
            item.id = None
            item.orden_id = None
