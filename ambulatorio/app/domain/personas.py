# domain/personas.py
"""
Grafo de identidad.

- Persona: identidad canónica, una sola fila por individuo real.
- Titular: persona que actúa como raíz de afiliación (1:1 con Persona).
- Beneficiario: enlace persona -> titular (par único).
- Paciente: sombra 1:1 de Persona, ancla estable de la historia clínica.
- Empresa: empleador de los titulares corporativos.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Any, Dict, Optional

from ambulatorio.app.domain.enums import Genero, Nacionalidad, TipoTitular
from ambulatorio.app.domain.exceptions import ValidationError
from ambulatorio.app.domain.value_objects import (
    _coerce_enum,
    _ensure_positive_id,
    _require_non_empty,
    _strip_or_none,
    _validate_email_basic,
    _validate_phone_basic,
    edad_en,
    validar_cedula_numero,
)

MAYORIA_DE_EDAD = 18


@dataclass(slots=True)
class Persona:
    id: Optional[int] = None
    primer_nombre: str = ""
    segundo_nombre: Optional[str] = None
    primer_apellido: str = ""
    segundo_apellido: Optional[str] = None
    nacionalidad: Optional[Nacionalidad] = None
    cedula_numero: Optional[str] = None
    fecha_nacimiento: Optional[date] = None
    genero: Genero = Genero.OTRO
    telefono1: Optional[str] = None
    telefono2: Optional[str] = None
    email: Optional[str] = None
    direccion: Optional[str] = None
    representante_id: Optional[int] = None
    creado_en: Optional[datetime] = None

    def validar(self, *, hoy: Optional[date] = None) -> None:
        """Normaliza campos y comprueba invariantes de la persona."""
        self.primer_nombre = _require_non_empty(self.primer_nombre, "primer_nombre")
        self.primer_apellido = _require_non_empty(self.primer_apellido, "primer_apellido")
        self.segundo_nombre = _strip_or_none(self.segundo_nombre)
        self.segundo_apellido = _strip_or_none(self.segundo_apellido)
        self.telefono1 = _strip_or_none(self.telefono1)
        self.telefono2 = _strip_or_none(self.telefono2)
        self.email = _strip_or_none(self.email)
        self.direccion = _strip_or_none(self.direccion)
        self.genero = _coerce_enum(Genero, self.genero, "genero")

        _validate_phone_basic(self.telefono1, "telefono1")
        _validate_phone_basic(self.telefono2, "telefono2")
        _validate_email_basic(self.email)

        if self.fecha_nacimiento is None:
            raise ValidationError("Campo obligatorio: fecha_nacimiento.", {"fecha_nacimiento": "Obligatorio."})
        referencia = hoy or date.today()
        if self.fecha_nacimiento > referencia:
            raise ValidationError(
                "La fecha de nacimiento no puede ser futura.",
                {"fecha_nacimiento": "Fecha futura."},
            )

        self._validar_cedula()
        if self.representante_id is not None:
            _ensure_positive_id(self.representante_id, "representante_id")
            if self.id is not None and self.representante_id == self.id:
                raise ValidationError(
                    "Una persona no puede ser su propio representante.",
                    {"representante_id": "Inválido."},
                )
        if not self.tiene_cedula() and self.representante_id is None:
            if edad_en(self.fecha_nacimiento, referencia) < MAYORIA_DE_EDAD:
                raise ValidationError(
                    "Un menor de edad sin cédula debe tener un representante.",
                    {"representante_id": "Obligatorio para menores sin cédula."},
                )

    def _validar_cedula(self) -> None:
        self.cedula_numero = _strip_or_none(self.cedula_numero)
        if self.nacionalidad is None and self.cedula_numero is None:
            return
        if self.nacionalidad is None or self.cedula_numero is None:
            raise ValidationError(
                "Nacionalidad y número de cédula deben indicarse juntos.",
                {"cedula_numero": "Incompleta."},
            )
        self.nacionalidad = _coerce_enum(Nacionalidad, self.nacionalidad, "nacionalidad")
        self.cedula_numero = validar_cedula_numero(self.cedula_numero)

    def tiene_cedula(self) -> bool:
        return self.nacionalidad is not None and self.cedula_numero is not None

    def cedula(self) -> Optional[str]:
        if not self.tiene_cedula():
            return None
        nacionalidad = Nacionalidad(self.nacionalidad).value
        return f"{nacionalidad}-{self.cedula_numero}"

    def nombre_completo(self) -> str:
        partes = (self.primer_nombre, self.segundo_nombre, self.primer_apellido, self.segundo_apellido)
        return " ".join(p for p in partes if p)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["nacionalidad"] = self.nacionalidad.value if self.nacionalidad else None
        d["genero"] = self.genero.value
        d["fecha_nacimiento"] = self.fecha_nacimiento.isoformat() if self.fecha_nacimiento else None
        d["creado_en"] = self.creado_en.isoformat() if self.creado_en else None
        return d


@dataclass(slots=True)
class Empresa:
    id: Optional[int] = None
    nombre: str = ""
    rif: str = ""
    telefono: str = ""
    direccion: str = ""

    def validar(self) -> None:
        self.nombre = _require_non_empty(self.nombre, "nombre")
        self.rif = _require_non_empty(self.rif, "rif").upper()
        self.telefono = _require_non_empty(self.telefono, "telefono")
        self.direccion = _require_non_empty(self.direccion, "direccion")
        _validate_phone_basic(self.telefono)


@dataclass(slots=True)
class Titular:
    id: Optional[int] = None
    persona_id: int = 0
    tipo: TipoTitular = TipoTitular.PRIVADO
    empresa_id: Optional[int] = None
    unidad_servicio: Optional[str] = None
    numero_ficha: Optional[str] = None

    def validar(self) -> None:
        _ensure_positive_id(self.persona_id, "persona_id")
        self.tipo = _coerce_enum(TipoTitular, self.tipo, "tipo")
        self.unidad_servicio = _strip_or_none(self.unidad_servicio)
        self.numero_ficha = _strip_or_none(self.numero_ficha)
        if self.tipo == TipoTitular.AFILIADO_CORPORATIVO:
            if self.empresa_id is None:
                raise ValidationError(
                    "Un afiliado corporativo requiere una empresa.",
                    {"empresa_id": "Obligatoria para afiliados corporativos."},
                )
            _ensure_positive_id(self.empresa_id, "empresa_id")
        elif self.empresa_id is not None:
            raise ValidationError(
                "Solo los afiliados corporativos se asocian a una empresa.",
                {"empresa_id": "No aplica para este tipo de titular."},
            )


@dataclass(slots=True)
class Beneficiario:
    id: Optional[int] = None
    persona_id: int = 0
    titular_id: int = 0

    def validar(self) -> None:
        _ensure_positive_id(self.persona_id, "persona_id")
        _ensure_positive_id(self.titular_id, "titular_id")


@dataclass(slots=True)
class Paciente:
    """Registro clínico estable de una persona (tabla SQL: pacientes)."""

    id: int
    persona_id: int
