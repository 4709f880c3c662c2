# queries/reportes_queries.py
"""
Agregados de solo lectura sobre consultas y sala de espera.

Los rangos de fechas son inclusivos en ambos extremos (día completo).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import List, Optional

import sqlite3

from ambulatorio.app.domain.enums import EstadoVisita
from ambulatorio.app.infrastructure.sqlite.date_utils import fin_del_dia, inicio_del_dia


@dataclass(frozen=True, slots=True)
class MorbilidadRow:
    codigo: str
    descripcion: str
    total: int


@dataclass(frozen=True, slots=True)
class ConsultasPorDiaRow:
    dia: str
    total: int


@dataclass(frozen=True, slots=True)
class ReporteOperativo:
    total_consultas: int
    estancia_promedio_segundos: Optional[float]
    consultas_por_dia: tuple[ConsultasPorDiaRow, ...]


@dataclass(frozen=True, slots=True)
class IndicadoresDiarios:
    visitas_esperando: int
    consultas_hoy: int
    personas_registradas_hoy: int


class ReportesQueries:
    def __init__(self, connection: sqlite3.Connection) -> None:
        self._conn = connection

    def morbilidad(self, desde: date, hasta: date, *, tipo_cuenta: Optional[str] = None) -> List[MorbilidadRow]:
        params: List[object] = [inicio_del_dia(desde), fin_del_dia(hasta)]
        join_visita = ""
        filtro_cuenta = ""
        if tipo_cuenta:
            join_visita = " JOIN cola_espera v ON v.id = c.visita_id"
            filtro_cuenta = " AND v.tipo_cuenta = ?"
            params.append(tipo_cuenta)
        rows = self._conn.execute(
            f"""
            SELECT d.codigo, MAX(d.descripcion) AS descripcion, COUNT(*) AS total
            FROM consulta_diagnosticos d
            JOIN consultas c ON c.id = d.consulta_id{join_visita}
            WHERE c.fecha BETWEEN ? AND ?{filtro_cuenta}
            GROUP BY d.codigo
            ORDER BY total DESC, d.codigo
            """,
            params,
        ).fetchall()
        return [MorbilidadRow(codigo=r["codigo"], descripcion=r["descripcion"], total=int(r["total"])) for r in rows]

    def operativo(self, desde: date, hasta: date) -> ReporteOperativo:
        rango = (inicio_del_dia(desde), fin_del_dia(hasta))
        total = int(
            self._conn.execute("SELECT COUNT(*) FROM consultas WHERE fecha BETWEEN ? AND ?", rango).fetchone()[0]
        )
        promedio = self._conn.execute(
            """
            SELECT AVG((julianday(c.fecha) - julianday(v.hora_llegada)) * 86400.0)
            FROM consultas c
            JOIN cola_espera v ON v.id = c.visita_id
            WHERE c.fecha BETWEEN ? AND ?
            """,
            rango,
        ).fetchone()[0]
        por_dia = self._conn.execute(
            """
            SELECT substr(fecha, 1, 10) AS dia, COUNT(*) AS total
            FROM consultas
            WHERE fecha BETWEEN ? AND ?
            GROUP BY dia
            ORDER BY dia
            """,
            rango,
        ).fetchall()
        return ReporteOperativo(
            total_consultas=total,
            estancia_promedio_segundos=round(float(promedio), 1) if promedio is not None else None,
            consultas_por_dia=tuple(ConsultasPorDiaRow(dia=r["dia"], total=int(r["total"])) for r in por_dia),
        )

    def indicadores(self, hoy: date) -> IndicadoresDiarios:
        rango = (inicio_del_dia(hoy), fin_del_dia(hoy))
        esperando = self._conn.execute(
            "SELECT COUNT(*) FROM cola_espera WHERE estado = ?",
            (EstadoVisita.ESPERANDO.value,),
        ).fetchone()[0]
        consultas = self._conn.execute(
            "SELECT COUNT(*) FROM consultas WHERE fecha BETWEEN ? AND ?",
            rango,
        ).fetchone()[0]
        personas = self._conn.execute(
            "SELECT COUNT(*) FROM personas WHERE creado_en BETWEEN ? AND ?",
            rango,
        ).fetchone()[0]
        return IndicadoresDiarios(
            visitas_esperando=int(esperando),
            consultas_hoy=int(consultas),
            personas_registradas_hoy=int(personas),
        )
