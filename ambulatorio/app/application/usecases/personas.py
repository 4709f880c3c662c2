# application/usecases/personas.py
"""
Casos de uso del grafo de identidad: personas y registro clínico.

Reglas:
- La cédula (nacionalidad + número) y el email son únicos entre personas.
  Se comprueba antes de escribir y el índice UNIQUE actúa de respaldo.
- Borrar una persona es físico y arrastra por FK todo lo que cuelga de ella.
- El registro de paciente se crea una sola vez por persona (get-or-create).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, List, Mapping, Optional

from ambulatorio.app.application.security import SesionUsuario
from ambulatorio.app.bootstrap_logging import get_logger
from ambulatorio.app.container import AppContainer
from ambulatorio.app.domain.enums import Genero
from ambulatorio.app.domain.exceptions import ConflictError, DomainError, NotFoundError, ValidationError
from ambulatorio.app.domain.permisos import Permiso
from ambulatorio.app.domain.personas import Paciente, Persona
from ambulatorio.app.domain.value_objects import parse_cedula_completa
from ambulatorio.app.infrastructure.sqlite.transacciones import transaccion

LOGGER = get_logger(__name__)


@dataclass(slots=True)
class ResultadoImportacion:
    importados: int = 0
    omitidos: int = 0
    errores: List[str] = field(default_factory=list)


class CrearPersonaUseCase:
    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(self, sesion: SesionUsuario, persona: Persona) -> int:
        self._c.control_acceso.autorizar(sesion, Permiso.PERSONAS_GESTIONAR)
        ahora = self._c.ahora()
        persona.validar(hoy=ahora.date())
        with transaccion(self._c.connection):
            _validar_unicidad(self._c, persona)
            _validar_representante(self._c, persona)
            return self._c.personas_repo.create(persona, creado_en=ahora)


class ActualizarPersonaUseCase:
    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(self, sesion: SesionUsuario, persona: Persona) -> None:
        self._c.control_acceso.autorizar(sesion, Permiso.PERSONAS_GESTIONAR)
        if persona.id is None or not self._c.personas_repo.exists(persona.id):
            raise NotFoundError("La persona no existe.")
        persona.validar(hoy=self._c.ahora().date())
        with transaccion(self._c.connection):
            _validar_unicidad(self._c, persona)
            _validar_representante(self._c, persona)
            self._c.personas_repo.update(persona)


class EliminarPersonaUseCase:
    """Borrado administrativo: titular, beneficiarios, paciente, visitas y consultas caen en cascada."""

    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(self, sesion: SesionUsuario, persona_id: int) -> None:
        self._c.control_acceso.autorizar(sesion, Permiso.PERSONAS_GESTIONAR)
        with transaccion(self._c.connection):
            if not self._c.personas_repo.delete(persona_id):
                raise NotFoundError("La persona no existe.")
        LOGGER.info("persona_eliminada", extra={"persona_id": persona_id, "usuario_id": sesion.usuario_id})


class ObtenerPersonaUseCase:
    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(self, sesion: SesionUsuario, persona_id: int) -> Persona:
        self._c.control_acceso.exigir_sesion(sesion)
        persona = self._c.personas_repo.get_by_id(persona_id)
        if persona is None:
            raise NotFoundError("La persona no existe.")
        return persona


class AsegurarPacienteUseCase:
    """Devuelve el registro clínico de la persona, creándolo si es la primera vez."""

    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(self, sesion: SesionUsuario, persona_id: int) -> Paciente:
        self._c.control_acceso.exigir_sesion(sesion)
        with transaccion(self._c.connection):
            if not self._c.personas_repo.exists(persona_id):
                raise NotFoundError("La persona no existe.")
            return self._c.pacientes_repo.asegurar(persona_id, ahora=self._c.ahora())


class ImportarPersonasUseCase:
    """
    Alta masiva desde filas tipo CSV.

    Cada fila se guarda en su propia transacción: una fila inválida o
    duplicada se omite y no afecta a las demás.
    """

    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(self, sesion: SesionUsuario, filas: Iterable[Mapping[str, Any]]) -> ResultadoImportacion:
        self._c.control_acceso.autorizar(sesion, Permiso.PERSONAS_GESTIONAR)
        resultado = ResultadoImportacion()
        for numero, fila in enumerate(filas, start=1):
            try:
                persona = persona_desde_fila(fila)
                ahora = self._c.ahora()
                persona.validar(hoy=ahora.date())
                with transaccion(self._c.connection):
                    _validar_unicidad(self._c, persona)
                    _validar_representante(self._c, persona)
                    self._c.personas_repo.create(persona, creado_en=ahora)
            except DomainError as exc:
                resultado.omitidos += 1
                resultado.errores.append(f"Fila {numero}: {exc}")
                continue
            resultado.importados += 1
        LOGGER.info(
            "personas_importadas",
            extra={"importados": resultado.importados, "omitidos": resultado.omitidos},
        )
        return resultado


def persona_desde_fila(fila: Mapping[str, Any]) -> Persona:
    """Convierte una fila (cedula 'V-12345678', fecha ISO) en Persona sin validar."""
    nacionalidad: Optional[str] = None
    numero: Optional[str] = None
    cedula = (fila.get("cedula") or "").strip()
    if cedula:
        nacionalidad, numero = parse_cedula_completa(cedula)
    fecha_txt = (fila.get("fecha_nacimiento") or "").strip()
    try:
        fecha_nacimiento = date.fromisoformat(fecha_txt) if fecha_txt else None
    except ValueError:
        raise ValidationError(
            f"Fecha de nacimiento inválida: {fecha_txt!r}.",
            {"fecha_nacimiento": "Formato inválido."},
        ) from None
    return Persona(
        primer_nombre=fila.get("primer_nombre") or "",
        segundo_nombre=fila.get("segundo_nombre"),
        primer_apellido=fila.get("primer_apellido") or "",
        segundo_apellido=fila.get("segundo_apellido"),
        nacionalidad=nacionalidad,
        cedula_numero=numero,
        fecha_nacimiento=fecha_nacimiento,
        genero=fila.get("genero") or Genero.OTRO,
        telefono1=fila.get("telefono1"),
        telefono2=fila.get("telefono2"),
        email=fila.get("email"),
        direccion=fila.get("direccion"),
    )


def _validar_unicidad(c: AppContainer, persona: Persona) -> None:
    if persona.tiene_cedula():
        existente = c.personas_repo.get_id_by_cedula(persona.nacionalidad.value, persona.cedula_numero)
        if existente is not None and existente != persona.id:
            raise ConflictError("Ya existe una persona con esa cédula.")
    if persona.email:
        existente = c.personas_repo.get_id_by_email(persona.email)
        if existente is not None and existente != persona.id:
            raise ConflictError("Ya existe una persona con ese email.")


def _validar_representante(c: AppContainer, persona: Persona) -> None:
    if persona.representante_id is not None and not c.personas_repo.exists(persona.representante_id):
        raise ValidationError("El representante indicado no existe.", {"representante_id": "No existe."})
