from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from ambulatorio.app.application.security import ControlAcceso, SesionUsuario
from ambulatorio.app.domain.enums import TipoCuenta
from ambulatorio.app.domain.exceptions import ValidationError
from ambulatorio.app.domain.permisos import Permiso
from ambulatorio.app.queries.reportes_queries import (
    IndicadoresDiarios,
    MorbilidadRow,
    ReporteOperativo,
    ReportesQueries,
)


def _validar_rango(desde: date, hasta: date) -> None:
    if hasta < desde:
        raise ValidationError("Rango de fechas inválido: 'hasta' es anterior a 'desde'.", {"hasta": "Anterior a desde."})


@dataclass(frozen=True)
class ReporteMorbilidadUseCase:
    queries: ReportesQueries
    control_acceso: ControlAcceso

    def execute(
        self,
        sesion: SesionUsuario,
        desde: date,
        hasta: date,
        *,
        tipo_cuenta: Optional[TipoCuenta] = None,
    ) -> List[MorbilidadRow]:
        self.control_acceso.autorizar(sesion, Permiso.REPORTES_VER)
        _validar_rango(desde, hasta)
        return self.queries.morbilidad(desde, hasta, tipo_cuenta=tipo_cuenta.value if tipo_cuenta else None)


@dataclass(frozen=True)
class ReporteOperativoUseCase:
    queries: ReportesQueries
    control_acceso: ControlAcceso

    def execute(self, sesion: SesionUsuario, desde: date, hasta: date) -> ReporteOperativo:
        self.control_acceso.autorizar(sesion, Permiso.REPORTES_VER)
        _validar_rango(desde, hasta)
        return self.queries.operativo(desde, hasta)


@dataclass(frozen=True)
class IndicadoresDiariosUseCase:
    queries: ReportesQueries
    control_acceso: ControlAcceso

    def execute(self, sesion: SesionUsuario, hoy: date) -> IndicadoresDiarios:
        self.control_acceso.autorizar(sesion, Permiso.REPORTES_VER)
        return self.queries.indicadores(hoy)
