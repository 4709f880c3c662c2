from __future__ import annotations

from typing import List

from ambulatorio.app.application.security import SesionUsuario
from ambulatorio.app.container import AppContainer
from ambulatorio.app.domain.clinica import DocumentoConsulta
from ambulatorio.app.domain.exceptions import NotFoundError
from ambulatorio.app.domain.permisos import Permiso
from ambulatorio.app.queries.historia_clinica_queries import ConsultaHistoriaRow


class ObtenerHistoriaClinicaUseCase:
    """Consultas de una persona, la más reciente primero. Sin registro clínico: lista vacía."""

    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(self, sesion: SesionUsuario, persona_id: int) -> List[ConsultaHistoriaRow]:
        self._c.control_acceso.autorizar(sesion, Permiso.HCE_VER)
        if not self._c.personas_repo.exists(persona_id):
            raise NotFoundError("La persona no existe.")
        paciente = self._c.pacientes_repo.get_by_persona_id(persona_id)
        if paciente is None:
            return []
        return self._c.queries.historia_clinica.por_paciente(paciente.id)


class ObtenerDocumentosConsultaUseCase:
    """Documentos con su contenido binario."""

    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(self, sesion: SesionUsuario, consulta_id: int) -> List[DocumentoConsulta]:
        self._c.control_acceso.autorizar(sesion, Permiso.HCE_VER)
        if self._c.consultas_repo.get_by_id(consulta_id) is None:
            raise NotFoundError("La consulta no existe.")
        return self._c.consultas_repo.list_documentos(consulta_id)
