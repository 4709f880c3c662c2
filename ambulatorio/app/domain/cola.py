# domain/cola.py
"""
Máquina de estados de una visita en sala de espera.

Esperando -> En Consulta -> Completado (terminal).
Completado solo se alcanza al registrar la consulta que cierra la visita.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ambulatorio.app.domain.enums import EstadoVisita, TipoCuenta, TipoPacienteCola, TipoServicio
from ambulatorio.app.domain.exceptions import ConflictError


TRANSICIONES_VISITA: dict[EstadoVisita, frozenset[EstadoVisita]] = {
    EstadoVisita.ESPERANDO: frozenset({EstadoVisita.EN_CONSULTA}),
    EstadoVisita.EN_CONSULTA: frozenset({EstadoVisita.COMPLETADO}),
    EstadoVisita.COMPLETADO: frozenset(),
}


def validar_transicion(actual: EstadoVisita, nuevo: EstadoVisita) -> None:
    if nuevo in TRANSICIONES_VISITA[actual]:
        return
    if actual == EstadoVisita.COMPLETADO:
        raise ConflictError("La visita ya está completada y no admite cambios.")
    raise ConflictError(f"Transición no permitida: {actual.value} -> {nuevo.value}.")


@dataclass(slots=True)
class VisitaCola:
    id: Optional[int]
    persona_id: int
    paciente_id: int
    tipo_paciente: TipoPacienteCola
    tipo_servicio: TipoServicio
    tipo_cuenta: TipoCuenta
    estado: EstadoVisita
    hora_llegada: datetime
    titular_id: Optional[int] = None

    @property
    def activa(self) -> bool:
        return self.estado != EstadoVisita.COMPLETADO

    def puede_retirarse(self) -> bool:
        return self.estado == EstadoVisita.ESPERANDO
