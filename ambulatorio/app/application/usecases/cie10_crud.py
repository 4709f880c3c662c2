# application/usecases/cie10_crud.py
"""
Catálogo CIE-10.

Un código referenciado por algún diagnóstico no se borra nunca: la
comprobación previa da el mensaje y la FK RESTRICT es el respaldo.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional

from ambulatorio.app.application.security import ControlAcceso, SesionUsuario
from ambulatorio.app.application.usecases.personas import ResultadoImportacion
from ambulatorio.app.domain.clinica import CodigoCie10
from ambulatorio.app.domain.exceptions import ConflictError, DomainError, IntegrityError, NotFoundError
from ambulatorio.app.domain.permisos import Permiso
from ambulatorio.app.domain.value_objects import _require_non_empty, normalizar_codigo_cie10
from ambulatorio.app.infrastructure.sqlite.repos_cie10 import Cie10Repository
from ambulatorio.app.infrastructure.sqlite.transacciones import transaccion


@dataclass(frozen=True)
class CrearCodigoCie10UseCase:
    connection: sqlite3.Connection
    repo: Cie10Repository
    control_acceso: ControlAcceso

    def execute(self, sesion: SesionUsuario, codigo: CodigoCie10) -> str:
        self.control_acceso.autorizar(sesion, Permiso.CIE10_GESTIONAR)
        codigo.validar()
        with transaccion(self.connection):
            if self.repo.get(codigo.codigo) is not None:
                raise ConflictError("El código CIE-10 ya existe.")
            self.repo.create(codigo)
        return codigo.codigo


@dataclass(frozen=True)
class ActualizarCodigoCie10UseCase:
    connection: sqlite3.Connection
    repo: Cie10Repository
    control_acceso: ControlAcceso

    def execute(self, sesion: SesionUsuario, codigo: str, descripcion: str) -> None:
        self.control_acceso.autorizar(sesion, Permiso.CIE10_GESTIONAR)
        codigo = normalizar_codigo_cie10(codigo)
        descripcion = _require_non_empty(descripcion, "descripcion")
        with transaccion(self.connection):
            if not self.repo.update_descripcion(codigo, descripcion):
                raise NotFoundError("El código CIE-10 no existe.")


@dataclass(frozen=True)
class EliminarCodigoCie10UseCase:
    connection: sqlite3.Connection
    repo: Cie10Repository
    control_acceso: ControlAcceso

    def execute(self, sesion: SesionUsuario, codigo: str) -> None:
        self.control_acceso.autorizar(sesion, Permiso.CIE10_GESTIONAR)
        codigo = normalizar_codigo_cie10(codigo)
        with transaccion(self.connection):
            if self.repo.get(codigo) is None:
                raise NotFoundError("El código CIE-10 no existe.")
            if self.repo.en_uso(codigo):
                raise IntegrityError("No se puede eliminar el código porque está en uso en una o más consultas.")
            self.repo.delete(codigo)


@dataclass(frozen=True)
class ImportarCodigosCie10UseCase:
    """Filas {codigo, descripcion}; inválidas o ya existentes se omiten."""

    connection: sqlite3.Connection
    repo: Cie10Repository
    control_acceso: ControlAcceso

    def execute(self, sesion: SesionUsuario, filas: Iterable[Mapping[str, str]]) -> ResultadoImportacion:
        self.control_acceso.autorizar(sesion, Permiso.CIE10_GESTIONAR)
        resultado = ResultadoImportacion()
        with transaccion(self.connection):
            for numero, fila in enumerate(filas, start=1):
                codigo = CodigoCie10(codigo=fila.get("codigo") or "", descripcion=fila.get("descripcion") or "")
                try:
                    codigo.validar()
                except DomainError as exc:
                    resultado.omitidos += 1
                    resultado.errores.append(f"Fila {numero}: {exc}")
                    continue
                if self.repo.create_if_absent(codigo):
                    resultado.importados += 1
                else:
                    resultado.omitidos += 1
                    resultado.errores.append(f"Fila {numero}: el código {codigo.codigo} ya existe.")
        return resultado


@dataclass(frozen=True)
class BuscarCodigosCie10UseCase:
    repo: Cie10Repository
    control_acceso: ControlAcceso

    def execute(self, sesion: SesionUsuario, texto: Optional[str], *, limit: int = 10) -> List[CodigoCie10]:
        self.control_acceso.exigir_sesion(sesion)
        return self.repo.search(texto, limit=limit)


@dataclass(frozen=True)
class ListarCodigosCie10UseCase:
    repo: Cie10Repository
    control_acceso: ControlAcceso

    def execute(
        self,
        sesion: SesionUsuario,
        texto: Optional[str] = None,
        *,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[List[CodigoCie10], int]:
        self.control_acceso.exigir_sesion(sesion)
        return self.repo.list_page(texto, limit=limit, offset=offset)
