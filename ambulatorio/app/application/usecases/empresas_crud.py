from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import List, Optional

from ambulatorio.app.application.security import ControlAcceso, SesionUsuario
from ambulatorio.app.domain.exceptions import NotFoundError
from ambulatorio.app.domain.permisos import Permiso
from ambulatorio.app.domain.personas import Empresa
from ambulatorio.app.infrastructure.sqlite.repos_empresas import EmpresasRepository
from ambulatorio.app.infrastructure.sqlite.transacciones import transaccion


@dataclass(frozen=True)
class CrearEmpresaUseCase:
    connection: sqlite3.Connection
    repo: EmpresasRepository
    control_acceso: ControlAcceso

    def execute(self, sesion: SesionUsuario, empresa: Empresa) -> int:
        self.control_acceso.autorizar(sesion, Permiso.EMPRESAS_GESTIONAR)
        empresa.validar()
        with transaccion(self.connection):
            return self.repo.create(empresa)


@dataclass(frozen=True)
class ActualizarEmpresaUseCase:
    connection: sqlite3.Connection
    repo: EmpresasRepository
    control_acceso: ControlAcceso

    def execute(self, sesion: SesionUsuario, empresa: Empresa) -> None:
        self.control_acceso.autorizar(sesion, Permiso.EMPRESAS_GESTIONAR)
        empresa.validar()
        with transaccion(self.connection):
            if not self.repo.update(empresa):
                raise NotFoundError("La empresa no existe.")


@dataclass(frozen=True)
class EliminarEmpresaUseCase:
    """Los titulares de la empresa se conservan con empresa_id = NULL."""

    connection: sqlite3.Connection
    repo: EmpresasRepository
    control_acceso: ControlAcceso

    def execute(self, sesion: SesionUsuario, empresa_id: int) -> None:
        self.control_acceso.autorizar(sesion, Permiso.EMPRESAS_GESTIONAR)
        with transaccion(self.connection):
            if not self.repo.delete(empresa_id):
                raise NotFoundError("La empresa no existe.")


@dataclass(frozen=True)
class BuscarEmpresasUseCase:
    repo: EmpresasRepository
    control_acceso: ControlAcceso

    def execute(
        self,
        sesion: SesionUsuario,
        texto: Optional[str] = None,
        *,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[List[Empresa], int]:
        self.control_acceso.exigir_sesion(sesion)
        return self.repo.search(texto, limit=limit, offset=offset)
