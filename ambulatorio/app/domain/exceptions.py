# domain/exceptions.py
"""
Excepciones del dominio.

Propósito:
- Distinguir errores de reglas de negocio (dominio) de errores técnicos (DB/red).
- Permitir que la capa que consume los casos de uso muestre el mensaje tal cual.

Ninguna de estas excepciones es transitoria: no se reintentan automáticamente.
La única excepción es ConflictError producido por la restricción de unicidad
de la base de datos, que el llamador puede reintentar una vez con lectura fresca.
"""

from __future__ import annotations

from typing import Mapping, Optional


class DomainError(Exception):
    """Error base del dominio."""


class ValidationError(DomainError):
    """Entrada mal formada u obligatoria ausente."""

    def __init__(self, mensaje: str, errores: Optional[Mapping[str, str]] = None) -> None:
        super().__init__(mensaje)
        self.errores: dict[str, str] = dict(errores or {})


class ConflictError(DomainError):
    """Violación de unicidad: duplicados de cédula, par titular/beneficiario, visita activa."""


class NotFoundError(DomainError):
    """La operación apunta a un id inexistente."""


class UnauthorizedError(DomainError):
    """Permiso ausente o regla de propiedad incumplida."""


class IntegrityError(DomainError):
    """Intento de borrar/modificar una fila de catálogo que sigue en uso."""


class VisitaDuplicadaError(ConflictError):
    """La persona ya tiene una visita no completada en la cola."""


class NoAfiliadoError(ValidationError):
    """La persona no es titular ni beneficiario."""


class TitularAmbiguoError(ValidationError):
    """Beneficiario de varios titulares con tipos de cuenta distintos."""

    def __init__(self, mensaje: str, titulares_ids: list[int]) -> None:
        super().__init__(mensaje, {"titular_id": "Indique el titular a utilizar."})
        self.titulares_ids = titulares_ids


class CredencialesInvalidasError(UnauthorizedError):
    """Usuario inexistente o contraseña incorrecta (mismo mensaje en ambos casos)."""
