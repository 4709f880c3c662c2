from __future__ import annotations

import re

import pytest

from ambulatorio.app.application.security import SesionUsuario
from ambulatorio.app.application.usecases.usuarios import (
    CambiarPasswordPropiaUseCase,
    CrearSuperusuarioInicialUseCase,
    RestablecerPasswordUseCase,
)
from ambulatorio.app.domain.exceptions import (
    ConflictError,
    CredencialesInvalidasError,
    UnauthorizedError,
    ValidationError,
)
from ambulatorio.app.security.sesion_token import ENV_SESSION_SECRET, ENV_SESSION_TTL, SelladorSesion
from ambulatorio.app.security.sesiones import MENSAJE_BLOQUEO, MENSAJE_CREDENCIALES, ServicioSesiones

PASSWORD = "clave-segura-1"


def test_iniciar_sesion_con_persona_vinculada(container, fabrica, crear_sesion) -> None:
    persona = fabrica.persona("Carmen", "Rojas")
    crear_sesion("doctor", "dra_rojas", persona_id=persona.id)

    sesion = ServicioSesiones(container).iniciar(" dra_rojas ", PASSWORD)

    assert sesion.autenticado is True
    assert sesion.rol_id == "doctor"
    assert sesion.nombre_visible == "Carmen Rojas"


def test_usuario_inexistente_y_password_incorrecta_dan_el_mismo_mensaje(container, sesion_asistencial) -> None:
    servicio = ServicioSesiones(container)

    with pytest.raises(CredencialesInvalidasError) as inexistente:
        servicio.iniciar("nadie", PASSWORD)
    with pytest.raises(CredencialesInvalidasError) as incorrecta:
        servicio.iniciar("recepcion", "otra-clave-9")

    assert str(inexistente.value) == str(incorrecta.value) == MENSAJE_CREDENCIALES


def test_bloqueo_tras_intentos_fallidos(container, sesion_asistencial) -> None:
    servicio = ServicioSesiones(container, max_attempts=2, lock_seconds=300)

    with pytest.raises(CredencialesInvalidasError):
        servicio.iniciar("recepcion", "mala-1234")
    with pytest.raises(UnauthorizedError, match=re.escape(MENSAJE_BLOQUEO)):
        servicio.iniciar("recepcion", "mala-1234")
    # Con la cuenta bloqueada ni la contraseña correcta entra.
    with pytest.raises(UnauthorizedError, match=re.escape(MENSAJE_BLOQUEO)):
        servicio.iniciar("recepcion", PASSWORD)


def test_restablecer_password_desbloquea(container, sesion_superusuario, sesion_asistencial) -> None:
    servicio = ServicioSesiones(container, max_attempts=1, lock_seconds=300)
    with pytest.raises(UnauthorizedError):
        servicio.iniciar("recepcion", "mala-1234")

    RestablecerPasswordUseCase(container).execute(sesion_superusuario, sesion_asistencial.usuario_id, "nueva-clave-7")

    assert servicio.iniciar("recepcion", "nueva-clave-7").usuario_id == sesion_asistencial.usuario_id


def test_cambiar_la_propia_password(container, sesion_enfermera) -> None:
    uc = CambiarPasswordPropiaUseCase(container)

    with pytest.raises(CredencialesInvalidasError):
        uc.execute(sesion_enfermera, "equivocada", "nueva-clave-7")
    with pytest.raises(ValidationError):
        uc.execute(sesion_enfermera, PASSWORD, "corta")
    uc.execute(sesion_enfermera, PASSWORD, "nueva-clave-7")

    servicio = ServicioSesiones(container)
    assert servicio.iniciar("enf_lopez", "nueva-clave-7").rol_id == "enfermera"
    with pytest.raises(CredencialesInvalidasError):
        servicio.iniciar("enf_lopez", PASSWORD)


def test_superusuario_inicial_solo_en_instalacion_vacia(container) -> None:
    uc = CrearSuperusuarioInicialUseCase(container)

    usuario_id = uc.execute("root", "clave-inicial-1")

    sesion = ServicioSesiones(container).iniciar("root", "clave-inicial-1")
    assert sesion.usuario_id == usuario_id
    assert sesion.rol_id == "superuser"
    with pytest.raises(ConflictError):
        uc.execute("otro", "clave-inicial-1")


def test_cerrar_sesion(container, sesion_doctor) -> None:
    ServicioSesiones(container).cerrar(sesion_doctor)

    assert sesion_doctor == SesionUsuario.anonima()
    with pytest.raises(UnauthorizedError):
        ServicioSesiones(container).refrescar(sesion_doctor)


def test_token_de_sesion_ida_y_vuelta() -> None:
    sellador = SelladorSesion("secreto-de-pruebas")
    sesion = SesionUsuario(usuario_id=7, username="dra_rojas", rol_id="doctor", nombre="Carmen Rojas", autenticado=True)

    token = sellador.sellar(sesion)

    assert "dra_rojas" not in token
    assert sellador.abrir(token) == sesion


def test_token_alterado_o_de_otro_secreto() -> None:
    token = SelladorSesion("secreto-a").sellar(SesionUsuario(usuario_id=1, username="x", rol_id="doctor", autenticado=True))

    with pytest.raises(UnauthorizedError):
        SelladorSesion("secreto-b").abrir(token)
    with pytest.raises(UnauthorizedError):
        SelladorSesion("secreto-a").abrir(token[:-4] + "AAAA")
    with pytest.raises(UnauthorizedError):
        SelladorSesion("secreto-a").abrir("ñ")


def test_token_expirado() -> None:
    sellador = SelladorSesion("secreto", ttl_segundos=-1)
    token = sellador.sellar(SesionUsuario(usuario_id=1, username="x", rol_id="doctor", autenticado=True))

    with pytest.raises(UnauthorizedError, match="expirado"):
        sellador.abrir(token)


def test_sin_token_la_sesion_es_anonima() -> None:
    sellador = SelladorSesion("secreto")

    assert sellador.abrir(None).autenticado is False
    assert sellador.abrir("") == SesionUsuario.anonima()


def test_sellador_desde_entorno(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(ENV_SESSION_SECRET, raising=False)
    with pytest.raises(RuntimeError, match=ENV_SESSION_SECRET):
        SelladorSesion.desde_entorno()
    with pytest.raises(ValueError):
        SelladorSesion("")

    monkeypatch.setenv(ENV_SESSION_SECRET, "desde-entorno")
    monkeypatch.setenv(ENV_SESSION_TTL, "60")
    sellador = SelladorSesion.desde_entorno()
    sesion = SesionUsuario(usuario_id=3, username="enf", rol_id="enfermera", autenticado=True)

    assert SelladorSesion("desde-entorno").abrir(sellador.sellar(sesion)) == sesion
