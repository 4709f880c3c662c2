from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import sqlite3


@dataclass(frozen=True, slots=True)
class DocumentoResumenRow:
    id: int
    nombre_archivo: str
    tipo_mime: str
    tipo_documento: str
    descripcion: Optional[str]
    tamano_bytes: int
    subido_en: str


@dataclass(frozen=True, slots=True)
class OrdenResumenRow:
    id: int
    estado: str
    fecha_inicio: str
    fecha_fin: Optional[str]
    procedimientos: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class OrdenLaboratorioResumenRow:
    id: int
    fecha: str
    estado: str
    pruebas: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ConsultaHistoriaRow:
    id: int
    fecha: str
    motivo_consulta: str
    enfermedad_actual: str
    antecedentes: Optional[str]
    examen_fisico: Optional[str]
    signos_vitales: Optional[str]
    plan_tratamiento: str
    reposo: Optional[str]
    diagnosticos: tuple[tuple[str, str], ...]
    documentos: tuple[DocumentoResumenRow, ...]
    orden: Optional[OrdenResumenRow]
    ordenes_laboratorio: tuple[OrdenLaboratorioResumenRow, ...]


class HistoriaClinicaQueries:
    """
    Historia clínica de un paciente, de la consulta más reciente a la más antigua.

    Cada consulta trae sus diagnósticos, documentos (sin contenido), la orden de
    tratamiento y las órdenes de laboratorio que se pidieron desde ella.
    """

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._conn = connection

    def por_paciente(self, paciente_id: int) -> List[ConsultaHistoriaRow]:
        rows = self._conn.execute(
            "SELECT * FROM consultas WHERE paciente_id = ? ORDER BY fecha DESC, id DESC",
            (paciente_id,),
        ).fetchall()
        return [self._armar(r) for r in rows]

    def _armar(self, row: sqlite3.Row) -> ConsultaHistoriaRow:
        consulta_id = int(row["id"])
        diagnosticos = self._conn.execute(
            "SELECT codigo, descripcion FROM consulta_diagnosticos WHERE consulta_id = ? ORDER BY id",
            (consulta_id,),
        ).fetchall()
        documentos = self._conn.execute(
            """
            SELECT id, nombre_archivo, tipo_mime, tipo_documento, descripcion,
                   LENGTH(contenido) AS tamano_bytes, subido_en
            FROM consulta_documentos WHERE consulta_id = ? ORDER BY id
            """,
            (consulta_id,),
        ).fetchall()
        return ConsultaHistoriaRow(
            id=consulta_id,
            fecha=row["fecha"],
            motivo_consulta=row["motivo_consulta"],
            enfermedad_actual=row["enfermedad_actual"],
            antecedentes=row["antecedentes"],
            examen_fisico=row["examen_fisico"],
            signos_vitales=row["signos_vitales"],
            plan_tratamiento=row["plan_tratamiento"],
            reposo=row["reposo"],
            diagnosticos=tuple((d["codigo"], d["descripcion"]) for d in diagnosticos),
            documentos=tuple(
                DocumentoResumenRow(
                    id=d["id"],
                    nombre_archivo=d["nombre_archivo"],
                    tipo_mime=d["tipo_mime"],
                    tipo_documento=d["tipo_documento"],
                    descripcion=d["descripcion"],
                    tamano_bytes=int(d["tamano_bytes"]),
                    subido_en=d["subido_en"],
                )
                for d in documentos
            ),
            orden=self._orden_de(consulta_id),
            ordenes_laboratorio=self._laboratorio_de(consulta_id),
        )

    def _orden_de(self, consulta_id: int) -> Optional[OrdenResumenRow]:
        orden = self._conn.execute(
            "SELECT id, estado, fecha_inicio, fecha_fin FROM ordenes_tratamiento WHERE consulta_id = ?",
            (consulta_id,),
        ).fetchone()
        if orden is None:
            return None
        items = self._conn.execute(
            "SELECT procedimiento FROM orden_tratamiento_items WHERE orden_id = ? ORDER BY id",
            (orden["id"],),
        ).fetchall()
        return OrdenResumenRow(
            id=orden["id"],
            estado=orden["estado"],
            fecha_inicio=orden["fecha_inicio"],
            fecha_fin=orden["fecha_fin"],
            procedimientos=tuple(i["procedimiento"] for i in items),
        )

    def _laboratorio_de(self, consulta_id: int) -> tuple[OrdenLaboratorioResumenRow, ...]:
        ordenes = self._conn.execute(
            "SELECT id, fecha, estado FROM ordenes_laboratorio WHERE consulta_id = ? ORDER BY fecha, id",
            (consulta_id,),
        ).fetchall()
        resultado = []
        for orden in ordenes:
            pruebas = self._conn.execute(
                "SELECT prueba FROM orden_laboratorio_items WHERE orden_id = ? ORDER BY id",
                (orden["id"],),
            ).fetchall()
            resultado.append(
                OrdenLaboratorioResumenRow(
                    id=orden["id"],
                    fecha=orden["fecha"],
                    estado=orden["estado"],
                    pruebas=tuple(p["prueba"] for p in pruebas),
                )
            )
        return tuple(resultado)
