from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ambulatorio.app.domain.value_objects import _ensure_positive_id, _require_non_empty, _strip_or_none


ROL_SUPERUSUARIO = "superuser"


@dataclass(slots=True)
class Rol:
    id: str
    nombre: str
    descripcion: Optional[str] = None
    tiene_especialidad: bool = False
    permisos: frozenset[str] = field(default_factory=frozenset)

    def validar(self) -> None:
        self.id = _require_non_empty(self.id, "id").lower()
        self.nombre = _require_non_empty(self.nombre, "nombre")
        self.descripcion = _strip_or_none(self.descripcion)

    @property
    def es_superusuario(self) -> bool:
        return self.id == ROL_SUPERUSUARIO


@dataclass(slots=True)
class Usuario:
    username: str
    rol_id: str
    id: Optional[int] = None
    persona_id: Optional[int] = None
    especialidad: Optional[str] = None

    def validar(self) -> None:
        self.username = _require_non_empty(self.username, "username")
        self.rol_id = _require_non_empty(self.rol_id, "rol_id")
        self.especialidad = _strip_or_none(self.especialidad)
        if self.persona_id is not None:
            _ensure_positive_id(self.persona_id, "persona_id")
