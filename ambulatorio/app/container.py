from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from ambulatorio.app.application.security import ControlAcceso
from ambulatorio.app.infrastructure.sqlite.repos_cie10 import Cie10Repository
from ambulatorio.app.infrastructure.sqlite.repos_cola_espera import ColaEsperaRepository
from ambulatorio.app.infrastructure.sqlite.repos_consultas import ConsultasRepository
from ambulatorio.app.infrastructure.sqlite.repos_empresas import EmpresasRepository
from ambulatorio.app.infrastructure.sqlite.repos_ordenes_laboratorio import OrdenesLaboratorioRepository
from ambulatorio.app.infrastructure.sqlite.repos_ordenes_tratamiento import OrdenesTratamientoRepository
from ambulatorio.app.infrastructure.sqlite.repos_pacientes import PacientesRepository
from ambulatorio.app.infrastructure.sqlite.repos_personas import PersonasRepository
from ambulatorio.app.infrastructure.sqlite.repos_roles import RolesRepository
from ambulatorio.app.infrastructure.sqlite.repos_titulares import TitularesRepository
from ambulatorio.app.infrastructure.sqlite.repos_usuarios import UsuariosRepository
from ambulatorio.app.queries.cola_espera_queries import ColaEsperaQueries
from ambulatorio.app.queries.directorio_queries import DirectorioQueries
from ambulatorio.app.queries.historia_clinica_queries import HistoriaClinicaQueries
from ambulatorio.app.queries.ordenes_tratamiento_queries import OrdenesTratamientoQueries
from ambulatorio.app.queries.pacientes_queries import PacientesQueries
from ambulatorio.app.queries.reportes_queries import ReportesQueries


@dataclass(slots=True)
class QueriesHub:
    directorio: DirectorioQueries
    cola_espera: ColaEsperaQueries
    historia_clinica: HistoriaClinicaQueries
    ordenes_tratamiento: OrdenesTratamientoQueries
    pacientes: PacientesQueries
    reportes: ReportesQueries


@dataclass(slots=True)
class AppContainer:
    connection: sqlite3.Connection
    queries: QueriesHub

    personas_repo: PersonasRepository
    titulares_repo: TitularesRepository
    pacientes_repo: PacientesRepository
    empresas_repo: EmpresasRepository
    cola_repo: ColaEsperaRepository
    cie10_repo: Cie10Repository
    consultas_repo: ConsultasRepository
    ordenes_repo: OrdenesTratamientoRepository
    ordenes_laboratorio_repo: OrdenesLaboratorioRepository
    usuarios_repo: UsuariosRepository
    roles_repo: RolesRepository

    control_acceso: ControlAcceso
    reloj: Callable[[], datetime] = field(default=datetime.now)

    def ahora(self) -> datetime:
        return self.reloj().replace(microsecond=0)

    def close(self) -> None:
        self.connection.close()


def build_container(connection: sqlite3.Connection) -> AppContainer:
    connection.row_factory = sqlite3.Row
    queries = QueriesHub(
        directorio=DirectorioQueries(connection),
        cola_espera=ColaEsperaQueries(connection),
        historia_clinica=HistoriaClinicaQueries(connection),
        ordenes_tratamiento=OrdenesTratamientoQueries(connection),
        pacientes=PacientesQueries(connection),
        reportes=ReportesQueries(connection),
    )
    roles_repo = RolesRepository(connection)
    return AppContainer(
        connection=connection,
        queries=queries,
        personas_repo=PersonasRepository(connection),
        titulares_repo=TitularesRepository(connection),
        pacientes_repo=PacientesRepository(connection),
        empresas_repo=EmpresasRepository(connection),
        cola_repo=ColaEsperaRepository(connection),
        cie10_repo=Cie10Repository(connection),
        consultas_repo=ConsultasRepository(connection),
        ordenes_repo=OrdenesTratamientoRepository(connection),
        ordenes_laboratorio_repo=OrdenesLaboratorioRepository(connection),
        usuarios_repo=UsuariosRepository(connection),
        roles_repo=roles_repo,
        control_acceso=ControlAcceso(roles_repo),
    )
