# infrastructure/sqlite/repos_ordenes_laboratorio.py
"""
Repositorio SQLite para órdenes de laboratorio (cabecera + pruebas).
"""

from __future__ import annotations

import sqlite3
from typing import List, Optional

from ambulatorio.app.domain.clinica import ItemOrdenLaboratorio, OrdenLaboratorio
from ambulatorio.app.domain.enums import EstadoOrdenLaboratorio
from ambulatorio.app.infrastructure.sqlite.date_utils import format_iso_datetime, parse_iso_datetime


class OrdenesLaboratorioRepository:
    def __init__(self, connection: sqlite3.Connection) -> None:
        self._con = connection

    def create(self, orden: OrdenLaboratorio) -> int:
        cur = self._con.execute(
            "INSERT INTO ordenes_laboratorio (paciente_id, consulta_id, fecha, estado) VALUES (?, ?, ?, ?)",
            (orden.paciente_id, orden.consulta_id, format_iso_datetime(orden.fecha), orden.estado.value),
        )
        orden.id = int(cur.lastrowid)
        for item in orden.items:
            cur = self._con.execute(
                "INSERT INTO orden_laboratorio_items (orden_id, prueba) VALUES (?, ?)",
                (orden.id, item.prueba),
            )
            item.id = int(cur.lastrowid)
            item.orden_id = orden.id
        return orden.id

    def get_by_id(self, orden_id: int) -> Optional[OrdenLaboratorio]:
        row = self._con.execute("SELECT * FROM ordenes_laboratorio WHERE id = ?", (orden_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_model(row)

    def list_by_consulta_id(self, consulta_id: int) -> List[OrdenLaboratorio]:
        rows = self._con.execute(
            "SELECT * FROM ordenes_laboratorio WHERE consulta_id = ? ORDER BY fecha, id",
            (consulta_id,),
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def _items(self, orden_id: int) -> List[ItemOrdenLaboratorio]:
        rows = self._con.execute(
            "SELECT id, orden_id, prueba FROM orden_laboratorio_items WHERE orden_id = ? ORDER BY id",
            (orden_id,),
        ).fetchall()
        return [ItemOrdenLaboratorio(prueba=r["prueba"], id=r["id"], orden_id=r["orden_id"]) for r in rows]

    def _row_to_model(self, row: sqlite3.Row) -> OrdenLaboratorio:
        return OrdenLaboratorio(
            id=row["id"],
            paciente_id=row["paciente_id"],
            consulta_id=row["consulta_id"],
            fecha=parse_iso_datetime(row["fecha"]),
            estado=EstadoOrdenLaboratorio(row["estado"]),
            items=self._items(int(row["id"])),
        )
