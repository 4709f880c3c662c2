# domain/clinica.py
"""
Registro clínico: consultas, diagnósticos, documentos, órdenes de tratamiento
y órdenes de laboratorio.

Una consulta guardada es inmutable. Las órdenes de tratamiento aceptan
ejecuciones solo mientras están activas.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

from ambulatorio.app.domain.enums import (
    EstadoItemTratamiento,
    EstadoOrdenLaboratorio,
    EstadoOrdenTratamiento,
    TipoDocumentoClinico,
)
from ambulatorio.app.domain.exceptions import ConflictError, ValidationError
from ambulatorio.app.domain.value_objects import (
    _coerce_enum,
    _require_non_empty,
    _strip_or_none,
    normalizar_codigo_cie10,
)


@dataclass(slots=True)
class CodigoCie10:
    codigo: str
    descripcion: str

    def validar(self) -> None:
        self.codigo = normalizar_codigo_cie10(self.codigo)
        self.descripcion = _require_non_empty(self.descripcion, "descripcion")


@dataclass(slots=True)
class DiagnosticoConsulta:
    codigo: str
    descripcion: str
    id: Optional[int] = None
    consulta_id: Optional[int] = None


@dataclass(slots=True)
class DocumentoConsulta:
    nombre_archivo: str
    tipo_mime: str
    tipo_documento: TipoDocumentoClinico
    contenido: bytes
    descripcion: Optional[str] = None
    id: Optional[int] = None
    consulta_id: Optional[int] = None
    subido_en: Optional[datetime] = None

    def validar(self) -> None:
        self.nombre_archivo = _require_non_empty(self.nombre_archivo, "nombre_archivo")
        self.tipo_mime = _require_non_empty(self.tipo_mime, "tipo_mime")
        self.tipo_documento = _coerce_enum(TipoDocumentoClinico, self.tipo_documento, "tipo_documento")
        self.descripcion = _strip_or_none(self.descripcion)
        if not self.contenido:
            raise ValidationError(
                f"El documento {self.nombre_archivo} está vacío.",
                {"contenido": "Vacío."},
            )


@dataclass(slots=True)
class ItemOrdenTratamiento:
    procedimiento: str
    dosis: Optional[str] = None
    via: Optional[str] = None
    frecuencia: Optional[str] = None
    duracion: Optional[str] = None
    instrucciones: Optional[str] = None
    estado: EstadoItemTratamiento = EstadoItemTratamiento.PENDIENTE
    id: Optional[int] = None
    orden_id: Optional[int] = None

    def validar(self) -> None:
        self.procedimiento = _require_non_empty(self.procedimiento, "procedimiento")
        self.dosis = _strip_or_none(self.dosis)
        self.via = _strip_or_none(self.via)
        self.frecuencia = _strip_or_none(self.frecuencia)
        self.duracion = _strip_or_none(self.duracion)
        self.instrucciones = _strip_or_none(self.instrucciones)


@dataclass(slots=True)
class EjecucionTratamiento:
    orden_id: int
    observaciones: str
    ejecutado_por: str
    ejecutado_en: datetime
    item_id: Optional[int] = None
    id: Optional[int] = None


@dataclass(slots=True)
class OrdenTratamiento:
    paciente_id: int
    fecha_inicio: date
    fecha_fin: Optional[date] = None
    consulta_id: Optional[int] = None
    estado: EstadoOrdenTratamiento = EstadoOrdenTratamiento.ACTIVO
    items: List[ItemOrdenTratamiento] = field(default_factory=list)
    id: Optional[int] = None
    creado_en: Optional[datetime] = None

    def validar(self) -> None:
        if not self.items:
            raise ValidationError(
                "La orden de tratamiento requiere al menos un ítem.",
                {"items": "Vacío."},
            )
        for item in self.items:
            item.validar()
        if self.fecha_fin is not None and self.fecha_fin < self.fecha_inicio:
            raise ValidationError(
                "La vigencia de la orden es inválida: fin anterior al inicio.",
                {"fecha_fin": "Anterior a fecha_inicio."},
            )

    def exigir_activa(self) -> None:
        if self.estado != EstadoOrdenTratamiento.ACTIVO:
            raise ConflictError(
                f"La orden de tratamiento está {self.estado.value} y no admite nuevas ejecuciones."
            )


@dataclass(slots=True)
class ItemOrdenLaboratorio:
    prueba: str
    id: Optional[int] = None
    orden_id: Optional[int] = None


@dataclass(slots=True)
class OrdenLaboratorio:
    """Pruebas de laboratorio solicitadas en una consulta ya registrada."""

    consulta_id: int
    items: List[ItemOrdenLaboratorio] = field(default_factory=list)
    paciente_id: Optional[int] = None
    estado: EstadoOrdenLaboratorio = EstadoOrdenLaboratorio.PENDIENTE
    fecha: Optional[datetime] = None
    id: Optional[int] = None

    @classmethod
    def con_pruebas(cls, consulta_id: int, pruebas: List[str]) -> "OrdenLaboratorio":
        return cls(consulta_id=consulta_id, items=[ItemOrdenLaboratorio(prueba=p) for p in pruebas])

    @property
    def pruebas(self) -> List[str]:
        return [item.prueba for item in self.items]

    def validar(self) -> None:
        if not self.items:
            raise ValidationError(
                "La orden de laboratorio requiere al menos una prueba.",
                {"items": "Vacío."},
            )
        for item in self.items:
            item.prueba = _require_non_empty(item.prueba, "prueba")
        vistas: set[str] = set()
        repetidas = []
        for prueba in self.pruebas:
            clave = prueba.casefold()
            if clave in vistas:
                repetidas.append(prueba)
            vistas.add(clave)
        if repetidas:
            raise ValidationError(
                f"Pruebas repetidas en la orden: {', '.join(repetidas)}.",
                {"items": "Prueba repetida."},
            )


@dataclass(slots=True)
class Consulta:
    paciente_id: int
    motivo_consulta: str
    enfermedad_actual: str
    plan_tratamiento: str
    diagnosticos: List[DiagnosticoConsulta]
    visita_id: Optional[int] = None
    antecedentes: Optional[str] = None
    examen_fisico: Optional[str] = None
    signos_vitales: Optional[str] = None
    reposo: Optional[str] = None
    documentos: List[DocumentoConsulta] = field(default_factory=list)
    orden_tratamiento: Optional[OrdenTratamiento] = None
    fecha: Optional[datetime] = None
    id: Optional[int] = None

    def validar(self) -> None:
        """Valida todos los campos y reporta los errores juntos."""
        errores: dict[str, str] = {}
        for campo in ("motivo_consulta", "enfermedad_actual", "plan_tratamiento"):
            valor = _strip_or_none(getattr(self, campo))
            if valor is None:
                errores[campo] = "Obligatorio."
            else:
                setattr(self, campo, valor)
        if not self.diagnosticos:
            errores["diagnosticos"] = "Debe registrar al menos un diagnóstico."
        if errores:
            raise ValidationError("La consulta tiene campos inválidos.", errores)

        self.antecedentes = _strip_or_none(self.antecedentes)
        self.examen_fisico = _strip_or_none(self.examen_fisico)
        self.signos_vitales = _strip_or_none(self.signos_vitales)
        self.reposo = _strip_or_none(self.reposo)
        for diagnostico in self.diagnosticos:
            diagnostico.codigo = normalizar_codigo_cie10(diagnostico.codigo)
            diagnostico.descripcion = (diagnostico.descripcion or "").strip()
        codigos = [d.codigo for d in self.diagnosticos]
        if len(set(codigos)) != len(codigos):
            raise ValidationError("Hay diagnósticos repetidos.", {"diagnosticos": "Códigos repetidos."})
        for documento in self.documentos:
            documento.validar()
        if self.orden_tratamiento is not None:
            self.orden_tratamiento.validar()
