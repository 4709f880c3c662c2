from __future__ import annotations

from datetime import date, datetime

import pytest

from ambulatorio.app.application.usecases.registrar_consulta import RegistrarConsultaUseCase
from ambulatorio.app.application.usecases.reportes import (
    IndicadoresDiariosUseCase,
    ReporteMorbilidadUseCase,
    ReporteOperativoUseCase,
)
from ambulatorio.app.domain.enums import TipoCuenta, TipoTitular
from ambulatorio.app.domain.exceptions import UnauthorizedError, ValidationError
from ambulatorio.app.queries.reportes_queries import ConsultasPorDiaRow, MorbilidadRow


def _en(container, *args: int) -> None:
    momento = datetime(*args)
    container.reloj = lambda: momento


@pytest.fixture()
def jornada(container, sesion_doctor, fabrica):
    """Dos consultas con visita el 15/03 y una sin visita el 16/03."""
    registrar = RegistrarConsultaUseCase(container)

    _en(container, 2024, 3, 15, 9, 30)
    privada = fabrica.visita(fabrica.titular(fabrica.persona("Rosa", "Paz")).persona_id, en_consulta=True)
    _en(container, 2024, 3, 15, 9, 40)
    corporativo = fabrica.titular(fabrica.persona("Mario", "Luna"), tipo=TipoTitular.AFILIADO_CORPORATIVO, empresa_id=1)
    corporativa = fabrica.visita(corporativo.persona_id, en_consulta=True)

    _en(container, 2024, 3, 15, 9, 50)
    registrar.execute(sesion_doctor, fabrica.consulta(privada.paciente_id, "J02.9", "I10", visita_id=privada.id))
    _en(container, 2024, 3, 15, 10, 0)
    registrar.execute(sesion_doctor, fabrica.consulta(corporativa.paciente_id, "J02.9", visita_id=corporativa.id))
    _en(container, 2024, 3, 16, 8, 0)
    registrar.execute(sesion_doctor, fabrica.consulta(privada.paciente_id, "E11.9"))
    return privada, corporativa


def test_morbilidad_por_rango(container, sesion_doctor, jornada, assert_expected_actual) -> None:
    uc = ReporteMorbilidadUseCase(container.queries.reportes, container.control_acceso)

    assert_expected_actual(
        [
            MorbilidadRow("J02.9", "Faringitis aguda, no especificada", 2),
            MorbilidadRow("E11.9", "Diabetes mellitus no insulinodependiente, sin mención de complicación", 1),
            MorbilidadRow("I10", "Hipertensión esencial (primaria)", 1),
        ],
        uc.execute(sesion_doctor, date(2024, 3, 15), date(2024, 3, 16)),
    )
    assert [r.codigo for r in uc.execute(sesion_doctor, date(2024, 3, 16), date(2024, 3, 16))] == ["E11.9"]
    assert uc.execute(sesion_doctor, date(2024, 3, 17), date(2024, 3, 31)) == []


def test_morbilidad_por_tipo_de_cuenta(container, sesion_doctor, jornada) -> None:
    uc = ReporteMorbilidadUseCase(container.queries.reportes, container.control_acceso)
    desde, hasta = date(2024, 3, 1), date(2024, 3, 31)

    corporativa = uc.execute(sesion_doctor, desde, hasta, tipo_cuenta=TipoCuenta.AFILIADO_CORPORATIVO)
    privada = uc.execute(sesion_doctor, desde, hasta, tipo_cuenta=TipoCuenta.PRIVADO)

    assert [(r.codigo, r.total) for r in corporativa] == [("J02.9", 1)]
    assert [(r.codigo, r.total) for r in privada] == [("I10", 1), ("J02.9", 1)]
    assert uc.execute(sesion_doctor, desde, hasta, tipo_cuenta=TipoCuenta.EMPLEADO) == []


def test_reporte_operativo(container, sesion_doctor, jornada) -> None:
    reporte = ReporteOperativoUseCase(container.queries.reportes, container.control_acceso).execute(
        sesion_doctor, date(2024, 3, 15), date(2024, 3, 16)
    )

    assert reporte.total_consultas == 3
    assert reporte.estancia_promedio_segundos == pytest.approx(1200.0)
    assert reporte.consultas_por_dia == (ConsultasPorDiaRow("2024-03-15", 2), ConsultasPorDiaRow("2024-03-16", 1))


def test_reporte_operativo_sin_datos(container, sesion_doctor) -> None:
    reporte = ReporteOperativoUseCase(container.queries.reportes, container.control_acceso).execute(
        sesion_doctor, date(2024, 3, 15), date(2024, 3, 15)
    )

    assert reporte.total_consultas == 0
    assert reporte.estancia_promedio_segundos is None
    assert reporte.consultas_por_dia == ()


def test_indicadores_del_dia(container, sesion_doctor, fabrica, jornada) -> None:
    _en(container, 2024, 3, 15, 11, 0)
    fabrica.visita(fabrica.titular(fabrica.persona("Nora", "Vega")).persona_id)
    uc = IndicadoresDiariosUseCase(container.queries.reportes, container.control_acceso)

    hoy = uc.execute(sesion_doctor, date(2024, 3, 15))
    otro_dia = uc.execute(sesion_doctor, date(2024, 3, 17))

    assert (hoy.visitas_esperando, hoy.consultas_hoy, hoy.personas_registradas_hoy) == (1, 2, 3)
    assert (otro_dia.consultas_hoy, otro_dia.personas_registradas_hoy) == (0, 0)


def test_rango_invertido_y_permisos(container, sesion_doctor, sesion_asistencial) -> None:
    morbilidad = ReporteMorbilidadUseCase(container.queries.reportes, container.control_acceso)

    with pytest.raises(ValidationError):
        morbilidad.execute(sesion_doctor, date(2024, 3, 16), date(2024, 3, 15))
    with pytest.raises(ValidationError):
        ReporteOperativoUseCase(container.queries.reportes, container.control_acceso).execute(
            sesion_doctor, date(2024, 3, 16), date(2024, 3, 15)
        )
    with pytest.raises(UnauthorizedError):
        morbilidad.execute(sesion_asistencial, date(2024, 3, 1), date(2024, 3, 31))
