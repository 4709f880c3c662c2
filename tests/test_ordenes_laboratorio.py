from __future__ import annotations

import sqlite3

import pytest

from ambulatorio.app.application.usecases.historia_clinica import ObtenerHistoriaClinicaUseCase
from ambulatorio.app.application.usecases.ordenes_laboratorio import (
    CrearOrdenLaboratorioUseCase,
    ListarOrdenesLaboratorioUseCase,
)
from ambulatorio.app.application.usecases.registrar_consulta import RegistrarConsultaUseCase
from ambulatorio.app.domain.clinica import ItemOrdenLaboratorio, OrdenLaboratorio
from ambulatorio.app.domain.enums import EstadoOrdenLaboratorio
from ambulatorio.app.domain.exceptions import NotFoundError, UnauthorizedError, ValidationError

_TABLAS_LABORATORIO = ("ordenes_laboratorio", "orden_laboratorio_items")


@pytest.fixture()
def consulta_registrada(container, sesion_doctor, fabrica):
    titular = fabrica.titular(fabrica.persona("Rosa", "Paz"))
    visita = fabrica.visita(titular.persona_id, en_consulta=True)
    consulta = RegistrarConsultaUseCase(container).execute(
        sesion_doctor, fabrica.consulta(visita.paciente_id, "E11.9", visita_id=visita.id)
    )
    return titular, consulta


def test_orden_de_laboratorio_toma_el_paciente_de_la_consulta(container, sesion_doctor, consulta_registrada, contar) -> None:
    _, consulta = consulta_registrada
    orden = OrdenLaboratorio.con_pruebas(consulta.id, [" Hemoglobina Glicosilada (HbA1c) ", "Creatinina"])

    CrearOrdenLaboratorioUseCase(container).execute(sesion_doctor, orden)

    guardada = container.ordenes_laboratorio_repo.get_by_id(orden.id)
    assert guardada.paciente_id == consulta.paciente_id
    assert guardada.estado == EstadoOrdenLaboratorio.PENDIENTE
    assert guardada.fecha == container.ahora()
    assert guardada.pruebas == ["Hemoglobina Glicosilada (HbA1c)", "Creatinina"]
    assert all(item.orden_id == orden.id for item in orden.items)
    assert contar("orden_laboratorio_items") == 2


def test_ordenes_de_laboratorio_en_la_historia_clinica(container, sesion_doctor, consulta_registrada) -> None:
    titular, consulta = consulta_registrada
    crear = CrearOrdenLaboratorioUseCase(container)
    primera = crear.execute(sesion_doctor, OrdenLaboratorio.con_pruebas(consulta.id, ["Glicemia en Ayunas"]))
    segunda = crear.execute(sesion_doctor, OrdenLaboratorio.con_pruebas(consulta.id, ["Urea", "Ácido Úrico"]))

    historia = ObtenerHistoriaClinicaUseCase(container).execute(sesion_doctor, titular.persona_id)
    listadas = ListarOrdenesLaboratorioUseCase(container).execute(sesion_doctor, consulta.id)

    assert [(o.id, o.pruebas) for o in historia[0].ordenes_laboratorio] == [
        (primera.id, ("Glicemia en Ayunas",)),
        (segunda.id, ("Urea", "Ácido Úrico")),
    ]
    assert historia[0].ordenes_laboratorio[0].estado == "Pendiente"
    assert [o.id for o in listadas] == [primera.id, segunda.id]


def test_consulta_sin_ordenes_de_laboratorio(container, sesion_doctor, consulta_registrada) -> None:
    titular, consulta = consulta_registrada

    assert ObtenerHistoriaClinicaUseCase(container).execute(sesion_doctor, titular.persona_id)[0].ordenes_laboratorio == ()
    assert ListarOrdenesLaboratorioUseCase(container).execute(sesion_doctor, consulta.id) == []


@pytest.mark.parametrize(
    "pruebas",
    [
        [],
        ["Urea", "   "],
        ["Urea", "UREA"],
    ],
)
def test_pruebas_invalidas_no_escriben_nada(container, sesion_doctor, consulta_registrada, contar, pruebas) -> None:
    _, consulta = consulta_registrada

    with pytest.raises(ValidationError):
        CrearOrdenLaboratorioUseCase(container).execute(sesion_doctor, OrdenLaboratorio.con_pruebas(consulta.id, pruebas))

    for tabla in _TABLAS_LABORATORIO:
        assert contar(tabla) == 0, tabla


def test_consulta_inexistente(container, sesion_doctor, contar) -> None:
    orden = OrdenLaboratorio.con_pruebas(999, ["Urea"])

    with pytest.raises(NotFoundError):
        CrearOrdenLaboratorioUseCase(container).execute(sesion_doctor, orden)
    with pytest.raises(NotFoundError):
        ListarOrdenesLaboratorioUseCase(container).execute(sesion_doctor, 999)

    assert orden.id is None
    assert contar("ordenes_laboratorio") == 0


def test_fallo_tras_insertar_revierte_cabecera_y_pruebas(
    container, sesion_doctor, consulta_registrada, monkeypatch, contar
) -> None:
    _, consulta = consulta_registrada
    repo = container.ordenes_laboratorio_repo
    crear_real = repo.create

    def _crea_y_falla(orden: OrdenLaboratorio) -> int:
        crear_real(orden)
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(repo, "create", _crea_y_falla)
    orden = OrdenLaboratorio(consulta_id=consulta.id, items=[ItemOrdenLaboratorio("Urea"), ItemOrdenLaboratorio("Creatinina")])

    with pytest.raises(sqlite3.OperationalError):
        CrearOrdenLaboratorioUseCase(container).execute(sesion_doctor, orden)

    for tabla in _TABLAS_LABORATORIO:
        assert contar(tabla) == 0, tabla
    assert (orden.id, orden.fecha) == (None, None)
    assert [(i.id, i.orden_id) for i in orden.items] == [(None, None), (None, None)]
    assert not container.connection.in_transaction


def test_solo_quien_atiende_consultas_pide_laboratorio(
    container, sesion_enfermera, sesion_asistencial, consulta_registrada, contar
) -> None:
    _, consulta = consulta_registrada

    for sesion in (sesion_enfermera, sesion_asistencial):
        with pytest.raises(UnauthorizedError, match="consultation.perform"):
            CrearOrdenLaboratorioUseCase(container).execute(sesion, OrdenLaboratorio.con_pruebas(consulta.id, ["Urea"]))
    with pytest.raises(UnauthorizedError, match="hce.view"):
        ListarOrdenesLaboratorioUseCase(container).execute(sesion_enfermera, consulta.id)
    assert contar("ordenes_laboratorio") == 0
