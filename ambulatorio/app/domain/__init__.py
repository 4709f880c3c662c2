from ambulatorio.app.domain.clinica import (
    CodigoCie10,
    Consulta,
    DiagnosticoConsulta,
    DocumentoConsulta,
    EjecucionTratamiento,
    ItemOrdenLaboratorio,
    ItemOrdenTratamiento,
    OrdenLaboratorio,
    OrdenTratamiento,
)
from ambulatorio.app.domain.cola import VisitaCola
from ambulatorio.app.domain.personas import Beneficiario, Empresa, Paciente, Persona, Titular
from ambulatorio.app.domain.usuarios import Rol, Usuario
from ambulatorio.app.domain.enums import *  # noqa: F401,F403
from ambulatorio.app.domain.exceptions import *  # noqa: F401,F403

__all__ = [
    "Persona",
    "Titular",
    "Beneficiario",
    "Paciente",
    "Empresa",
    "VisitaCola",
    "Consulta",
    "DiagnosticoConsulta",
    "DocumentoConsulta",
    "OrdenTratamiento",
    "ItemOrdenTratamiento",
    "EjecucionTratamiento",
    "OrdenLaboratorio",
    "ItemOrdenLaboratorio",
    "CodigoCie10",
    "Rol",
    "Usuario",
]
