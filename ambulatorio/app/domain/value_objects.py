"""Utilidades internas de dominio."""

from __future__ import annotations

import re
from datetime import date
from enum import Enum
from typing import Optional, Type, TypeVar

from ambulatorio.app.domain.exceptions import ValidationError


_CEDULA_NUMERO_RE = re.compile(r"^\d{6,9}$")
_CEDULA_COMPLETA_RE = re.compile(r"^(?P<nacionalidad>[VE])-(?P<numero>\d{6,9})$")
_CIE10_RE = re.compile(r"^[A-Z][0-9]{2}(\.?[0-9A-Z]{1,4})?$")

E = TypeVar("E", bound=Enum)


def _strip_or_none(value: Optional[str]) -> Optional[str]:
    """Normaliza strings opcionales: devuelve None si queda vacío tras strip()."""
    if value is None:
        return None
    v = value.strip()
    return v if v else None


def _require_non_empty(value: Optional[str], field_name: str) -> str:
    """Exige string no vacío; lanza ValidationError si no cumple."""
    v = (value or "").strip()
    if not v:
        raise ValidationError(f"Campo obligatorio: {field_name}.", {field_name: "Obligatorio."})
    return v


def _validate_email_basic(email: Optional[str]) -> None:
    """Validación básica de email (no pretende ser RFC completa)."""
    if email is None:
        return
    e = email.strip()
    if not e:
        return
    if "@" not in e or "." not in e.split("@")[-1]:
        raise ValidationError("Email no parece válido.", {"email": "Formato inválido."})


def _validate_phone_basic(phone: Optional[str], field_name: str = "telefono") -> None:
    """Teléfono: dígitos con un '+' inicial opcional."""
    if phone is None:
        return
    t = phone.strip().replace(" ", "").replace("-", "")
    if not t:
        return
    if not t.lstrip("+").isdigit():
        raise ValidationError("Teléfono debe ser numérico si se indica.", {field_name: "Solo dígitos."})


def _ensure_positive_id(value: Optional[int], field_name: str) -> None:
    """Exige id > 0; lanza ValidationError si no cumple."""
    if value is None or value <= 0:
        raise ValidationError(f"{field_name} inválido.", {field_name: "Id inválido."})


def _coerce_enum(enum_cls: Type[E], value: object, field_name: str) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        permitidos = ", ".join(str(item.value) for item in enum_cls)
        raise ValidationError(
            f"Valor inválido para {field_name}: {value!r}. Permitidos: {permitidos}.",
            {field_name: "Valor no permitido."},
        ) from None


def validar_cedula_numero(numero: str) -> str:
    limpio = numero.strip()
    if not _CEDULA_NUMERO_RE.match(limpio):
        raise ValidationError(
            "La cédula debe tener entre 6 y 9 dígitos.",
            {"cedula_numero": "Formato inválido."},
        )
    return limpio


def parse_cedula_completa(texto: str) -> tuple[str, str]:
    """Parsea 'V-12345678' → ('V', '12345678')."""
    match = _CEDULA_COMPLETA_RE.match(texto.strip().upper())
    if not match:
        raise ValidationError(
            f"Formato de cédula inválido: {texto!r}. Use V-######## o E-########.",
            {"cedula": "Formato inválido."},
        )
    return match.group("nacionalidad"), match.group("numero")


def normalizar_codigo_cie10(codigo: str) -> str:
    normalizado = _require_non_empty(codigo, "codigo").upper()
    if not _CIE10_RE.match(normalizado):
        raise ValidationError(
            f"Código CIE-10 inválido: {normalizado}.",
            {"codigo": "Formato CIE-10 inválido."},
        )
    return normalizado


def edad_en(fecha_nacimiento: date, referencia: date) -> int:
    years = referencia.year - fecha_nacimiento.year
    if (referencia.month, referencia.day) < (fecha_nacimiento.month, fecha_nacimiento.day):
        years -= 1
    return years
