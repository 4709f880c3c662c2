# infrastructure/sqlite/repos_consultas.py
"""
Repositorio SQLite de consultas (cabecera + diagnósticos + documentos).

Las inserciones no hacen commit: el caso de uso las agrupa en una única
transacción junto con el cierre de la visita.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import List, Optional

from ambulatorio.app.domain.clinica import Consulta, DiagnosticoConsulta, DocumentoConsulta
from ambulatorio.app.domain.enums import TipoDocumentoClinico
from ambulatorio.app.domain.exceptions import ConflictError
from ambulatorio.app.infrastructure.sqlite.date_utils import format_iso_datetime, parse_iso_datetime


logger = logging.getLogger(__name__)


class ConsultasRepository:
    def __init__(self, connection: sqlite3.Connection) -> None:
        self._con = connection

    # --------------------------------------------------------------
    # Escritura
    # --------------------------------------------------------------

    def insertar_consulta(self, consulta: Consulta) -> int:
        try:
            cur = self._con.execute(
                """
                INSERT INTO consultas (
                    paciente_id, visita_id, fecha, motivo_consulta, enfermedad_actual,
                    antecedentes, examen_fisico, signos_vitales, plan_tratamiento, reposo
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    consulta.paciente_id,
                    consulta.visita_id,
                    format_iso_datetime(consulta.fecha),
                    consulta.motivo_consulta,
                    consulta.enfermedad_actual,
                    consulta.antecedentes,
                    consulta.examen_fisico,
                    consulta.signos_vitales,
                    consulta.plan_tratamiento,
                    consulta.reposo,
                ),
            )
        except sqlite3.IntegrityError as exc:
            logger.error("Error SQL en ConsultasRepository.insertar_consulta: %s", exc)
            raise ConflictError("La visita ya tiene una consulta registrada.") from exc
        consulta.id = int(cur.lastrowid)
        return consulta.id

    def insertar_diagnosticos(self, consulta_id: int, diagnosticos: List[DiagnosticoConsulta]) -> None:
        for diagnostico in diagnosticos:
            cur = self._con.execute(
                "INSERT INTO consulta_diagnosticos (consulta_id, codigo, descripcion) VALUES (?, ?, ?)",
                (consulta_id, diagnostico.codigo, diagnostico.descripcion),
            )
            diagnostico.id = int(cur.lastrowid)
            diagnostico.consulta_id = consulta_id

    def insertar_documentos(self, consulta_id: int, documentos: List[DocumentoConsulta]) -> None:
        for documento in documentos:
            cur = self._con.execute(
                """
                INSERT INTO consulta_documentos (
                    consulta_id, nombre_archivo, tipo_mime, tipo_documento, descripcion, contenido, subido_en
                )
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    consulta_id,
                    documento.nombre_archivo,
                    documento.tipo_mime,
                    TipoDocumentoClinico(documento.tipo_documento).value,
                    documento.descripcion,
                    sqlite3.Binary(documento.contenido),
                    format_iso_datetime(documento.subido_en),
                ),
            )
            documento.id = int(cur.lastrowid)
            documento.consulta_id = consulta_id

    # --------------------------------------------------------------
    # Lectura
    # --------------------------------------------------------------

    def get_by_id(self, consulta_id: int) -> Optional[Consulta]:
        row = self._con.execute("SELECT * FROM consultas WHERE id = ?", (consulta_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_model(row, self.list_diagnosticos(consulta_id), self.list_documentos(consulta_id))

    def get_by_visita_id(self, visita_id: int) -> Optional[Consulta]:
        row = self._con.execute("SELECT id FROM consultas WHERE visita_id = ?", (visita_id,)).fetchone()
        return self.get_by_id(int(row["id"])) if row else None

    def list_diagnosticos(self, consulta_id: int) -> List[DiagnosticoConsulta]:
        rows = self._con.execute(
            "SELECT id, consulta_id, codigo, descripcion FROM consulta_diagnosticos WHERE consulta_id = ? ORDER BY id",
            (consulta_id,),
        ).fetchall()
        return [
            DiagnosticoConsulta(id=r["id"], consulta_id=r["consulta_id"], codigo=r["codigo"], descripcion=r["descripcion"])
            for r in rows
        ]

    def list_documentos(self, consulta_id: int) -> List[DocumentoConsulta]:
        rows = self._con.execute(
            "SELECT * FROM consulta_documentos WHERE consulta_id = ? ORDER BY subido_en, id",
            (consulta_id,),
        ).fetchall()
        return [
            DocumentoConsulta(
                id=r["id"],
                consulta_id=r["consulta_id"],
                nombre_archivo=r["nombre_archivo"],
                tipo_mime=r["tipo_mime"],
                tipo_documento=TipoDocumentoClinico(r["tipo_documento"]),
                descripcion=r["descripcion"],
                contenido=bytes(r["contenido"]),
                subido_en=parse_iso_datetime(r["subido_en"]),
            )
            for r in rows
        ]

    @staticmethod
    def _row_to_model(
        row: sqlite3.Row,
        diagnosticos: List[DiagnosticoConsulta],
        documentos: List[DocumentoConsulta],
    ) -> Consulta:
        return Consulta(
            id=row["id"],
            paciente_id=row["paciente_id"],
            visita_id=row["visita_id"],
            fecha=parse_iso_datetime(row["fecha"]),
            motivo_consulta=row["motivo_consulta"],
            enfermedad_actual=row["enfermedad_actual"],
            antecedentes=row["antecedentes"],
            examen_fisico=row["examen_fisico"],
            signos_vitales=row["signos_vitales"],
            plan_tratamiento=row["plan_tratamiento"],
            reposo=row["reposo"],
            diagnosticos=diagnosticos,
            documentos=documentos,
        )
