from __future__ import annotations

import difflib
import itertools
import pprint
import sqlite3
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional

import pytest

from ambulatorio.app.application.security import SesionUsuario
from ambulatorio.app.application.usecases.cola_espera import (
    AvanzarEstadoVisitaUseCase,
    EncolarVisitaRequest,
    EncolarVisitaUseCase,
)
from ambulatorio.app.application.usecases.personas import CrearPersonaUseCase
from ambulatorio.app.application.usecases.titulares import AgregarBeneficiarioUseCase, CrearTitularUseCase
from ambulatorio.app.bootstrap import abrir_base_datos
from ambulatorio.app.container import AppContainer, build_container
from ambulatorio.app.domain.clinica import Consulta, DiagnosticoConsulta
from ambulatorio.app.domain.cola import VisitaCola
from ambulatorio.app.domain.enums import EstadoVisita, Genero, Nacionalidad, TipoServicio, TipoTitular
from ambulatorio.app.domain.personas import Persona, Titular
from ambulatorio.app.domain.usuarios import Usuario
from ambulatorio.app.infrastructure.sqlite.transacciones import transaccion
from ambulatorio.app.security import auth
from ambulatorio.app.security.auth import hash_password


AHORA = datetime(2024, 3, 15, 9, 30, 0)
PASSWORD_TEST = "clave-segura-1"


@pytest.fixture(autouse=True)
def _pbkdf2_rapido(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(auth, "ITERACIONES_PBKDF2", 1_000)


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "ambulatorio_test.sqlite"


@pytest.fixture()
def db_connection(db_path: Path) -> Iterator[sqlite3.Connection]:
    con = abrir_base_datos(str(db_path))
    try:
        yield con
    finally:
        con.close()


@pytest.fixture()
def container(db_connection: sqlite3.Connection) -> AppContainer:
    c = build_container(db_connection)
    c.reloj = lambda: AHORA
    return c


@pytest.fixture()
def crear_sesion(container: AppContainer) -> Callable[..., SesionUsuario]:
    """Da de alta un usuario con el rol indicado y devuelve su sesión autenticada."""

    def _crear(rol_id: str, username: Optional[str] = None, *, persona_id: Optional[int] = None) -> SesionUsuario:
        username = username or f"{rol_id}_test"
        usuario = Usuario(username=username, rol_id=rol_id, persona_id=persona_id)
        password_hash, salt = hash_password(PASSWORD_TEST)
        with transaccion(container.connection):
            container.usuarios_repo.create(usuario, password_hash=password_hash, password_salt=salt, ahora=AHORA)
        return SesionUsuario(
            usuario_id=usuario.id,
            username=username,
            rol_id=rol_id,
            persona_id=persona_id,
            nombre=username,
            autenticado=True,
        )

    return _crear


@pytest.fixture()
def sesion_superusuario(crear_sesion) -> SesionUsuario:
    return crear_sesion("superuser", "admin")


@pytest.fixture()
def sesion_asistencial(crear_sesion) -> SesionUsuario:
    return crear_sesion("asistencial", "recepcion")


@pytest.fixture()
def sesion_doctor(crear_sesion) -> SesionUsuario:
    return crear_sesion("doctor", "dra_rojas")


@pytest.fixture()
def sesion_enfermera(crear_sesion) -> SesionUsuario:
    return crear_sesion("enfermera", "enf_lopez")


class Fabrica:
    """Altas de datos de prueba a través de los casos de uso reales."""

    def __init__(self, container: AppContainer, sesion: SesionUsuario) -> None:
        self.container = container
        self.sesion = sesion
        self._cedulas = itertools.count(20_000_001)

    def persona(self, primer_nombre: str = "Ana", primer_apellido: str = "Pérez", **overrides: Any) -> Persona:
        datos: Dict[str, Any] = {
            "primer_nombre": primer_nombre,
            "primer_apellido": primer_apellido,
            "nacionalidad": Nacionalidad.VENEZOLANO,
            "cedula_numero": str(next(self._cedulas)),
            "fecha_nacimiento": date(1985, 6, 1),
            "genero": Genero.FEMENINO,
        }
        datos.update(overrides)
        persona = Persona(**datos)
        CrearPersonaUseCase(self.container).execute(self.sesion, persona)
        return persona

    def titular(self, persona: Optional[Persona] = None, tipo: TipoTitular = TipoTitular.PRIVADO, **overrides: Any) -> Titular:
        persona = persona or self.persona()
        titular = Titular(persona_id=persona.id, tipo=tipo, **overrides)
        CrearTitularUseCase(self.container).execute(self.sesion, titular)
        return titular

    def beneficiario(self, persona: Persona, titular: Titular) -> int:
        return AgregarBeneficiarioUseCase(self.container).execute(self.sesion, persona.id, titular.id)

    def visita(
        self,
        persona_id: int,
        *,
        tipo_servicio: TipoServicio = TipoServicio.MEDICINA_GENERAL,
        titular_id: Optional[int] = None,
        en_consulta: bool = False,
    ) -> VisitaCola:
        visita = EncolarVisitaUseCase(self.container).execute(
            self.sesion,
            EncolarVisitaRequest(persona_id=persona_id, tipo_servicio=tipo_servicio, titular_id=titular_id),
        )
        if en_consulta:
            AvanzarEstadoVisitaUseCase(self.container).execute(self.sesion, visita.id, EstadoVisita.EN_CONSULTA)
            visita.estado = EstadoVisita.EN_CONSULTA
        return visita

    @staticmethod
    def consulta(paciente_id: int, *codigos: str, visita_id: Optional[int] = None, **overrides: Any) -> Consulta:
        """Consulta sin guardar; por defecto con un diagnóstico J02.9."""
        datos: Dict[str, Any] = {
            "paciente_id": paciente_id,
            "visita_id": visita_id,
            "motivo_consulta": "Fiebre y dolor de garganta",
            "enfermedad_actual": "Cuadro de 3 días de evolución",
            "plan_tratamiento": "Reposo e hidratación",
            "diagnosticos": [DiagnosticoConsulta(codigo=c, descripcion="") for c in (codigos or ("J02.9",))],
        }
        datos.update(overrides)
        return Consulta(**datos)


@pytest.fixture()
def fabrica(container: AppContainer, sesion_superusuario: SesionUsuario) -> Fabrica:
    return Fabrica(container, sesion_superusuario)


@pytest.fixture()
def snapshot_db(db_connection: sqlite3.Connection) -> Callable[[], Dict[str, List[tuple]]]:
    """Contenido completo de las tablas de la aplicación, para comparar antes/después."""

    def _snapshot() -> Dict[str, List[tuple]]:
        tablas = [
            r["name"]
            for r in db_connection.execute(
                "SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
            )
        ]
        return {
            tabla: [tuple(r) for r in db_connection.execute(f"SELECT * FROM {tabla} ORDER BY rowid")]
            for tabla in tablas
        }

    return _snapshot


@pytest.fixture()
def contar(db_connection: sqlite3.Connection) -> Callable[[str], int]:
    def _contar(tabla: str) -> int:
        return int(db_connection.execute(f"SELECT COUNT(*) FROM {tabla}").fetchone()[0])

    return _contar


@pytest.fixture()
def assert_expected_actual():
    def _format(value: Any) -> str:
        return pprint.pformat(value, width=120, sort_dicts=True)

    def _assert(expected: Any, actual: Any, *, message: str = "") -> None:
        if expected == actual:
            return
        expected_text = _format(expected)
        actual_text = _format(actual)
        diff = "\n".join(
            difflib.unified_diff(
                expected_text.splitlines(),
                actual_text.splitlines(),
                fromfile="expected",
                tofile="actual",
                lineterm="",
            )
        )
        prefix = f"{message}\n" if message else ""
        raise AssertionError(f"{prefix}Expected:\n{expected_text}\nActual:\n{actual_text}\nDiff:\n{diff}")

    return _assert
