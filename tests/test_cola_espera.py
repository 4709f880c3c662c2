from __future__ import annotations

import sqlite3
import threading
from datetime import datetime, timedelta

import pytest

from ambulatorio.app.application.usecases.cola_espera import (
    AvanzarEstadoVisitaUseCase,
    ContarEsperandoUseCase,
    EncolarVisitaRequest,
    EncolarVisitaUseCase,
    ListarColaUseCase,
    RetirarVisitaUseCase,
)
from ambulatorio.app.application.usecases.empresas_crud import CrearEmpresaUseCase
from ambulatorio.app.application.usecases.registrar_consulta import RegistrarConsultaUseCase
from ambulatorio.app.container import build_container
from ambulatorio.app.domain.cola import VisitaCola
from ambulatorio.app.domain.enums import EstadoVisita, TipoCuenta, TipoPacienteCola, TipoServicio, TipoTitular
from ambulatorio.app.domain.exceptions import (
    ConflictError,
    NoAfiliadoError,
    NotFoundError,
    TitularAmbiguoError,
    ValidationError,
    VisitaDuplicadaError,
)
from ambulatorio.app.domain.personas import Empresa
from ambulatorio.app.infrastructure.sqlite.proveedor_conexion_sqlite import ProveedorConexionSqlitePorHilo
from ambulatorio.app.infrastructure.sqlite.transacciones import transaccion


def _encolar(container, sesion, persona_id, *, titular_id=None, servicio=TipoServicio.MEDICINA_GENERAL) -> VisitaCola:
    return EncolarVisitaUseCase(container).execute(
        sesion, EncolarVisitaRequest(persona_id=persona_id, tipo_servicio=servicio, titular_id=titular_id)
    )


def _empresa(container, sesion) -> int:
    uc = CrearEmpresaUseCase(container.connection, container.empresas_repo, container.control_acceso)
    return uc.execute(sesion, Empresa(nombre="Acme", rif="J-30000000-1", telefono="02125550000", direccion="Caracas"))


def test_titular_privado_entra_a_la_cola_y_no_puede_duplicarse(container, sesion_asistencial, fabrica) -> None:
    titular = fabrica.titular(tipo=TipoTitular.PRIVADO)

    visita = _encolar(container, sesion_asistencial, titular.persona_id)

    assert visita.estado == EstadoVisita.ESPERANDO
    assert visita.tipo_paciente == TipoPacienteCola.TITULAR
    assert visita.tipo_cuenta == TipoCuenta.PRIVADO
    assert visita.titular_id == titular.id
    assert container.pacientes_repo.get_by_persona_id(titular.persona_id).id == visita.paciente_id

    with pytest.raises(VisitaDuplicadaError):
        _encolar(container, sesion_asistencial, titular.persona_id, servicio=TipoServicio.ENFERMERIA)

    filas = ListarColaUseCase(container).execute(sesion_asistencial)
    assert [f.id for f in filas] == [visita.id]


def test_beneficiario_hereda_tipo_de_cuenta_del_titular(container, sesion_asistencial, fabrica) -> None:
    empresa_id = _empresa(container, fabrica.sesion)
    titular = fabrica.titular(tipo=TipoTitular.AFILIADO_CORPORATIVO, empresa_id=empresa_id)
    hijo = fabrica.persona("Hijo", "Corporativo")
    fabrica.beneficiario(hijo, titular)

    visita = _encolar(container, sesion_asistencial, hijo.id, servicio="consulta pediatrica")

    assert visita.tipo_paciente == TipoPacienteCola.BENEFICIARIO
    assert visita.tipo_cuenta == TipoCuenta.AFILIADO_CORPORATIVO
    assert visita.tipo_servicio == TipoServicio.CONSULTA_PEDIATRICA
    assert visita.titular_id == titular.id


def test_empleado_interno_cuenta_como_empleado(container, sesion_asistencial, fabrica) -> None:
    titular = fabrica.titular(tipo=TipoTitular.EMPLEADO_INTERNO)

    assert _encolar(container, sesion_asistencial, titular.persona_id).tipo_cuenta == TipoCuenta.EMPLEADO


def test_persona_sin_afiliacion_no_entra(container, sesion_asistencial, fabrica, contar) -> None:
    persona = fabrica.persona()

    with pytest.raises(NoAfiliadoError):
        _encolar(container, sesion_asistencial, persona.id)

    assert contar("cola_espera") == 0
    assert contar("pacientes") == 0


def test_persona_inexistente(container, sesion_asistencial) -> None:
    with pytest.raises(NotFoundError):
        _encolar(container, sesion_asistencial, 999)


def test_servicio_desconocido(container, sesion_asistencial, fabrica) -> None:
    titular = fabrica.titular()

    with pytest.raises(ValidationError):
        _encolar(container, sesion_asistencial, titular.persona_id, servicio="odontologia")


def test_beneficiario_de_titulares_con_cuentas_distintas_debe_elegir(container, sesion_asistencial, fabrica) -> None:
    hija = fabrica.persona("Hija", "Mixta")
    empleado = fabrica.titular(fabrica.persona("Padre", "Mixto"), tipo=TipoTitular.EMPLEADO_INTERNO)
    privado = fabrica.titular(fabrica.persona("Madre", "Mixta"), tipo=TipoTitular.PRIVADO)
    fabrica.beneficiario(hija, empleado)
    fabrica.beneficiario(hija, privado)

    with pytest.raises(TitularAmbiguoError) as exc_info:
        _encolar(container, sesion_asistencial, hija.id)
    assert exc_info.value.titulares_ids == [empleado.id, privado.id]

    visita = _encolar(container, sesion_asistencial, hija.id, titular_id=privado.id)
    assert visita.tipo_cuenta == TipoCuenta.PRIVADO
    assert visita.titular_id == privado.id


def test_beneficiario_de_titulares_con_misma_cuenta_usa_el_primero(container, sesion_asistencial, fabrica) -> None:
    hijo = fabrica.persona("Hijo", "Privado")
    primero = fabrica.titular(fabrica.persona("Padre", "Privado"))
    segundo = fabrica.titular(fabrica.persona("Madre", "Privada"))
    fabrica.beneficiario(hijo, primero)
    fabrica.beneficiario(hijo, segundo)

    visita = _encolar(container, sesion_asistencial, hijo.id)

    assert visita.titular_id == primero.id
    assert visita.tipo_cuenta == TipoCuenta.PRIVADO


def test_titular_indicado_sin_enlace_es_rechazado(container, sesion_asistencial, fabrica) -> None:
    hijo = fabrica.persona("Hijo", "Uno")
    fabrica.beneficiario(hijo, fabrica.titular(fabrica.persona("Padre", "Uno")))
    ajeno = fabrica.titular(fabrica.persona("Ajeno", "Dos"))

    with pytest.raises(ValidationError):
        _encolar(container, sesion_asistencial, hijo.id, titular_id=ajeno.id)


def test_titular_que_tambien_es_beneficiario_entra_como_titular(container, sesion_asistencial, fabrica) -> None:
    persona = fabrica.persona("Doble", "Rol")
    propio = fabrica.titular(persona, tipo=TipoTitular.EMPLEADO_INTERNO)
    fabrica.beneficiario(persona, fabrica.titular(fabrica.persona("Cónyuge", "Rol")))

    visita = _encolar(container, sesion_asistencial, persona.id)

    assert visita.tipo_paciente == TipoPacienteCola.TITULAR
    assert visita.titular_id == propio.id
    assert visita.tipo_cuenta == TipoCuenta.EMPLEADO


def test_avance_de_estados(container, sesion_asistencial, fabrica) -> None:
    titular = fabrica.titular()
    visita = _encolar(container, sesion_asistencial, titular.persona_id)
    avanzar = AvanzarEstadoVisitaUseCase(container)

    with pytest.raises(ConflictError):
        avanzar.execute(sesion_asistencial, visita.id, EstadoVisita.COMPLETADO)

    en_consulta = avanzar.execute(sesion_asistencial, visita.id, "En Consulta")
    assert en_consulta.estado == EstadoVisita.EN_CONSULTA

    with pytest.raises(ConflictError, match="registrar la consulta"):
        avanzar.execute(sesion_asistencial, visita.id, EstadoVisita.COMPLETADO)
    with pytest.raises(ConflictError):
        avanzar.execute(sesion_asistencial, visita.id, EstadoVisita.ESPERANDO)
    with pytest.raises(ValidationError):
        avanzar.execute(sesion_asistencial, visita.id, "Perdida")
    with pytest.raises(NotFoundError):
        avanzar.execute(sesion_asistencial, 999, EstadoVisita.EN_CONSULTA)
    assert container.cola_repo.get_by_id(visita.id).estado == EstadoVisita.EN_CONSULTA


def test_visita_completada_no_admite_cambios_y_permite_volver(container, sesion_doctor, fabrica) -> None:
    titular = fabrica.titular()
    visita = fabrica.visita(titular.persona_id, en_consulta=True)
    RegistrarConsultaUseCase(container).execute(sesion_doctor, fabrica.consulta(visita.paciente_id, visita_id=visita.id))

    with pytest.raises(ConflictError, match="completada"):
        AvanzarEstadoVisitaUseCase(container).execute(sesion_doctor, visita.id, EstadoVisita.EN_CONSULTA)
    with pytest.raises(ConflictError):
        RetirarVisitaUseCase(container).execute(sesion_doctor, visita.id)

    nueva = fabrica.visita(titular.persona_id)
    assert nueva.id != visita.id
    assert nueva.paciente_id == visita.paciente_id


def test_retirar_solo_en_espera(container, sesion_asistencial, fabrica, contar) -> None:
    primero = fabrica.titular()
    segundo = fabrica.titular()
    en_espera = _encolar(container, sesion_asistencial, primero.persona_id)
    llamada = _encolar(container, sesion_asistencial, segundo.persona_id)
    AvanzarEstadoVisitaUseCase(container).execute(sesion_asistencial, llamada.id, EstadoVisita.EN_CONSULTA)

    RetirarVisitaUseCase(container).execute(sesion_asistencial, en_espera.id)
    with pytest.raises(ConflictError):
        RetirarVisitaUseCase(container).execute(sesion_asistencial, llamada.id)
    with pytest.raises(NotFoundError):
        RetirarVisitaUseCase(container).execute(sesion_asistencial, en_espera.id)

    assert contar("cola_espera") == 1
    # Tras retirarse puede volver a entrar.
    assert _encolar(container, sesion_asistencial, primero.persona_id).estado == EstadoVisita.ESPERANDO


def test_listado_por_hora_de_llegada_sin_completadas(container, sesion_asistencial, sesion_doctor, fabrica) -> None:
    base = datetime(2024, 3, 15, 8, 0, 0)
    ids = []
    for minutos in (30, 0, 15):
        titular = fabrica.titular()
        container.reloj = lambda m=minutos: base + timedelta(minutes=m)
        ids.append(_encolar(container, sesion_asistencial, titular.persona_id).id)
    AvanzarEstadoVisitaUseCase(container).execute(sesion_asistencial, ids[1], EstadoVisita.EN_CONSULTA)
    visita = container.cola_repo.get_by_id(ids[1])
    RegistrarConsultaUseCase(container).execute(sesion_doctor, fabrica.consulta(visita.paciente_id, visita_id=visita.id))

    filas = ListarColaUseCase(container).execute(sesion_asistencial)
    todas = ListarColaUseCase(container).execute(sesion_asistencial, incluir_completadas=True)

    assert [f.id for f in filas] == [ids[2], ids[0]]
    assert [f.hora_llegada for f in filas] == ["2024-03-15 08:15:00", "2024-03-15 08:30:00"]
    assert [f.id for f in todas] == [ids[1], ids[2], ids[0]]
    assert ContarEsperandoUseCase(container).execute(sesion_asistencial) == 2
    assert filas[0].cedula.startswith("V-")


def test_indice_parcial_impide_dos_visitas_activas(container, db_connection, sesion_asistencial, fabrica) -> None:
    titular = fabrica.titular()
    visita = _encolar(container, sesion_asistencial, titular.persona_id)

    with pytest.raises(sqlite3.IntegrityError):
        db_connection.execute(
            """
            INSERT INTO cola_espera (persona_id, paciente_id, titular_id, tipo_paciente, tipo_servicio,
                                     tipo_cuenta, estado, hora_llegada, actualizado_en)
            VALUES (?, ?, ?, 'titular', 'medicina general', 'Privado', 'En Consulta',
                    '2024-03-15 10:00:00', '2024-03-15 10:00:00')
            """,
            (titular.persona_id, visita.paciente_id, titular.id),
        )

    duplicada = VisitaCola(
        id=None,
        persona_id=visita.persona_id,
        paciente_id=visita.paciente_id,
        tipo_paciente=visita.tipo_paciente,
        tipo_servicio=visita.tipo_servicio,
        tipo_cuenta=visita.tipo_cuenta,
        estado=EstadoVisita.ESPERANDO,
        hora_llegada=visita.hora_llegada,
        titular_id=visita.titular_id,
    )
    with pytest.raises(VisitaDuplicadaError):
        with transaccion(container.connection):
            container.cola_repo.create(duplicada)


def test_encolado_concurrente_deja_una_sola_visita(db_path, container, sesion_asistencial, fabrica, contar) -> None:
    titular = fabrica.titular()
    proveedor = ProveedorConexionSqlitePorHilo(db_path)
    barrera = threading.Barrier(2)
    resultados: list[object] = []
    lock = threading.Lock()

    def _worker() -> None:
        local = build_container(proveedor.obtener())
        local.reloj = container.reloj
        try:
            barrera.wait(timeout=5)
            visita = _encolar(local, sesion_asistencial, titular.persona_id)
            resultado: object = visita.id
        except Exception as exc:  # noqa: BLE001
            resultado = exc
        finally:
            proveedor.cerrar_conexion_del_hilo_actual()
        with lock:
            resultados.append(resultado)

    hilos = [threading.Thread(target=_worker, name=f"recepcion-{i}") for i in range(2)]
    for hilo in hilos:
        hilo.start()
    for hilo in hilos:
        hilo.join()

    assert sum(isinstance(r, int) for r in resultados) == 1
    assert sum(isinstance(r, VisitaDuplicadaError) for r in resultados) == 1
    assert contar("cola_espera") == 1
