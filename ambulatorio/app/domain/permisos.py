# domain/permisos.py
"""
Catálogo tipado de permisos, agrupados por módulo.

Los roles se guardan en base de datos como conjuntos de estos identificadores;
nunca se compara el nombre de un rol para decidir un acceso.
"""

from __future__ import annotations

from enum import Enum


class Permiso(str, Enum):
    ROLES_GESTIONAR = "roles.manage"
    USUARIOS_GESTIONAR = "users.manage"
    EMPRESAS_GESTIONAR = "companies.manage"
    CIE10_GESTIONAR = "cie10.manage"
    PERSONAS_GESTIONAR = "people.manage"
    TITULARES_GESTIONAR = "titulars.manage"
    BENEFICIARIOS_GESTIONAR = "beneficiaries.manage"
    LISTA_PACIENTES_VER = "patientlist.view"
    AGENDA_GESTIONAR = "agenda.manage"
    COLA_GESTIONAR = "waitlist.manage"
    CONSULTA_REALIZAR = "consultation.perform"
    HCE_VER = "hce.view"
    BITACORA_TRATAMIENTO = "treatmentlog.manage"
    REPORTES_VER = "reports.view"


MODULOS_PERMISOS: dict[str, tuple[tuple[Permiso, str], ...]] = {
    "Seguridad": (
        (Permiso.ROLES_GESTIONAR, "Gestionar roles y permisos"),
        (Permiso.USUARIOS_GESTIONAR, "Gestionar usuarios"),
    ),
    "Parametrización": (
        (Permiso.EMPRESAS_GESTIONAR, "Gestionar empresas"),
        (Permiso.CIE10_GESTIONAR, "Gestionar catálogo CIE-10"),
    ),
    "Admisión": (
        (Permiso.PERSONAS_GESTIONAR, "Gestionar personas"),
        (Permiso.TITULARES_GESTIONAR, "Gestionar titulares"),
        (Permiso.BENEFICIARIOS_GESTIONAR, "Gestionar beneficiarios"),
        (Permiso.LISTA_PACIENTES_VER, "Ver lista de pacientes"),
    ),
    "Atención": (
        (Permiso.AGENDA_GESTIONAR, "Gestionar agenda"),
        (Permiso.COLA_GESTIONAR, "Gestionar sala de espera"),
        (Permiso.CONSULTA_REALIZAR, "Realizar consultas"),
        (Permiso.HCE_VER, "Ver historia clínica"),
        (Permiso.BITACORA_TRATAMIENTO, "Gestionar bitácora de tratamientos"),
    ),
    "Reportes": (
        (Permiso.REPORTES_VER, "Ver reportes"),
    ),
}


def modulo_de(permiso: Permiso) -> str:
    for modulo, entradas in MODULOS_PERMISOS.items():
        if any(p == permiso for p, _ in entradas):
            return modulo
    raise KeyError(permiso)


# Roles iniciales de una instalación nueva.
ROLES_INICIALES: dict[str, tuple[str, str, bool, frozenset[Permiso]]] = {
    "superuser": ("Superusuario", "Acceso total al sistema", False, frozenset(Permiso)),
    "administrator": (
        "Administrador",
        "Gestión administrativa",
        False,
        frozenset(
            {
                Permiso.EMPRESAS_GESTIONAR,
                Permiso.CIE10_GESTIONAR,
                Permiso.REPORTES_VER,
                Permiso.PERSONAS_GESTIONAR,
                Permiso.TITULARES_GESTIONAR,
                Permiso.BENEFICIARIOS_GESTIONAR,
                Permiso.LISTA_PACIENTES_VER,
                Permiso.COLA_GESTIONAR,
            }
        ),
    ),
    "asistencial": (
        "Asistencial",
        "Admisión y sala de espera",
        False,
        frozenset(
            {
                Permiso.PERSONAS_GESTIONAR,
                Permiso.TITULARES_GESTIONAR,
                Permiso.BENEFICIARIOS_GESTIONAR,
                Permiso.LISTA_PACIENTES_VER,
                Permiso.COLA_GESTIONAR,
                Permiso.EMPRESAS_GESTIONAR,
            }
        ),
    ),
    "doctor": (
        "Doctor",
        "Atención médica",
        True,
        frozenset(
            {
                Permiso.CONSULTA_REALIZAR,
                Permiso.HCE_VER,
                Permiso.BITACORA_TRATAMIENTO,
                Permiso.REPORTES_VER,
                Permiso.COLA_GESTIONAR,
            }
        ),
    ),
    "enfermera": (
        "Enfermera",
        "Enfermería y bitácora",
        False,
        frozenset({Permiso.BITACORA_TRATAMIENTO, Permiso.COLA_GESTIONAR}),
    ),
}
