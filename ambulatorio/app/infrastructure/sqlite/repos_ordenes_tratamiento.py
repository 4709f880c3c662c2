# infrastructure/sqlite/repos_ordenes_tratamiento.py
"""
Repositorio SQLite para órdenes de tratamiento (cabecera + ítems + ejecuciones).
"""

from __future__ import annotations

import sqlite3
from typing import List, Optional

from ambulatorio.app.domain.clinica import EjecucionTratamiento, ItemOrdenTratamiento, OrdenTratamiento
from ambulatorio.app.domain.enums import EstadoItemTratamiento, EstadoOrdenTratamiento
from ambulatorio.app.infrastructure.sqlite.date_utils import (
    format_iso_date,
    format_iso_datetime,
    parse_iso_date,
    parse_iso_datetime,
)


class OrdenesTratamientoRepository:
    def __init__(self, connection: sqlite3.Connection) -> None:
        self._con = connection

    # --------------------------------------------------------------
    # Órdenes
    # --------------------------------------------------------------

    def create(self, orden: OrdenTratamiento) -> int:
        cur = self._con.execute(
            """
            INSERT INTO ordenes_tratamiento (paciente_id, consulta_id, estado, fecha_inicio, fecha_fin, creado_en)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                orden.paciente_id,
                orden.consulta_id,
                orden.estado.value,
                format_iso_date(orden.fecha_inicio),
                format_iso_date(orden.fecha_fin),
                format_iso_datetime(orden.creado_en),
            ),
        )
        orden.id = int(cur.lastrowid)
        for item in orden.items:
            self._insertar_item(orden.id, item)
        return orden.id

    def _insertar_item(self, orden_id: int, item: ItemOrdenTratamiento) -> None:
        cur = self._con.execute(
            """
            INSERT INTO orden_tratamiento_items (
                orden_id, procedimiento, dosis, via, frecuencia, duracion, instrucciones, estado
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                orden_id,
                item.procedimiento,
                item.dosis,
                item.via,
                item.frecuencia,
                item.duracion,
                item.instrucciones,
                item.estado.value,
            ),
        )
        item.id = int(cur.lastrowid)
        item.orden_id = orden_id

    def get_by_id(self, orden_id: int) -> Optional[OrdenTratamiento]:
        row = self._con.execute("SELECT * FROM ordenes_tratamiento WHERE id = ?", (orden_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_model(row, self.list_items(orden_id))

    def get_by_consulta_id(self, consulta_id: int) -> Optional[OrdenTratamiento]:
        row = self._con.execute(
            "SELECT * FROM ordenes_tratamiento WHERE consulta_id = ?",
            (consulta_id,),
        ).fetchone()
        if row is None:
            return None
        return self._row_to_model(row, self.list_items(int(row["id"])))

    def update_estado(
        self,
        orden_id: int,
        *,
        desde: EstadoOrdenTratamiento,
        hacia: EstadoOrdenTratamiento,
    ) -> bool:
        cur = self._con.execute(
            "UPDATE ordenes_tratamiento SET estado = ? WHERE id = ? AND estado = ?",
            (hacia.value, orden_id, desde.value),
        )
        return cur.rowcount == 1

    def list_items(self, orden_id: int) -> List[ItemOrdenTratamiento]:
        rows = self._con.execute(
            "SELECT * FROM orden_tratamiento_items WHERE orden_id = ? ORDER BY id",
            (orden_id,),
        ).fetchall()
        return [self._row_to_item(r) for r in rows]

    def marcar_item_administrado(self, item_id: int) -> None:
        self._con.execute(
            "UPDATE orden_tratamiento_items SET estado = ? WHERE id = ?",
            (EstadoItemTratamiento.ADMINISTRADO.value, item_id),
        )

    # --------------------------------------------------------------
    # Ejecuciones
    # --------------------------------------------------------------

    def add_ejecucion(self, ejecucion: EjecucionTratamiento) -> int:
        cur = self._con.execute(
            """
            INSERT INTO ejecuciones_tratamiento (orden_id, item_id, ejecutado_en, observaciones, ejecutado_por)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                ejecucion.orden_id,
                ejecucion.item_id,
                format_iso_datetime(ejecucion.ejecutado_en),
                ejecucion.observaciones,
                ejecucion.ejecutado_por,
            ),
        )
        ejecucion.id = int(cur.lastrowid)
        return ejecucion.id

    def count_ejecuciones(self, orden_id: int) -> int:
        row = self._con.execute(
            "SELECT COUNT(*) FROM ejecuciones_tratamiento WHERE orden_id = ?",
            (orden_id,),
        ).fetchone()
        return int(row[0])

    def list_ejecuciones(self, orden_id: int) -> List[EjecucionTratamiento]:
        rows = self._con.execute(
            "SELECT * FROM ejecuciones_tratamiento WHERE orden_id = ? ORDER BY ejecutado_en, id",
            (orden_id,),
        ).fetchall()
        return [
            EjecucionTratamiento(
                id=r["id"],
                orden_id=r["orden_id"],
                item_id=r["item_id"],
                ejecutado_en=parse_iso_datetime(r["ejecutado_en"]),
                observaciones=r["observaciones"],
                ejecutado_por=r["ejecutado_por"],
            )
            for r in rows
        ]

    # --------------------------------------------------------------
    # Mapping
    # --------------------------------------------------------------

    @staticmethod
    def _row_to_item(row: sqlite3.Row) -> ItemOrdenTratamiento:
        return ItemOrdenTratamiento(
            id=row["id"],
            orden_id=row["orden_id"],
            procedimiento=row["procedimiento"],
            dosis=row["dosis"],
            via=row["via"],
            frecuencia=row["frecuencia"],
            duracion=row["duracion"],
            instrucciones=row["instrucciones"],
            estado=EstadoItemTratamiento(row["estado"]),
        )

    @staticmethod
    def _row_to_model(row: sqlite3.Row, items: List[ItemOrdenTratamiento]) -> OrdenTratamiento:
        return OrdenTratamiento(
            id=row["id"],
            paciente_id=row["paciente_id"],
            consulta_id=row["consulta_id"],
            estado=EstadoOrdenTratamiento(row["estado"]),
            fecha_inicio=parse_iso_date(row["fecha_inicio"]),
            fecha_fin=parse_iso_date(row["fecha_fin"]),
            creado_en=parse_iso_datetime(row["creado_en"]),
            items=items,
        )
