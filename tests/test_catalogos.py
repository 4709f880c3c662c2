from __future__ import annotations

import pytest

from ambulatorio.app.application.usecases.cie10_crud import (
    ActualizarCodigoCie10UseCase,
    BuscarCodigosCie10UseCase,
    CrearCodigoCie10UseCase,
    EliminarCodigoCie10UseCase,
    ImportarCodigosCie10UseCase,
    ListarCodigosCie10UseCase,
)
from ambulatorio.app.application.usecases.empresas_crud import (
    ActualizarEmpresaUseCase,
    BuscarEmpresasUseCase,
    CrearEmpresaUseCase,
    EliminarEmpresaUseCase,
)
from ambulatorio.app.application.usecases.registrar_consulta import RegistrarConsultaUseCase
from ambulatorio.app.domain.clinica import CodigoCie10
from ambulatorio.app.domain.exceptions import (
    ConflictError,
    IntegrityError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from ambulatorio.app.domain.personas import Empresa


def _cie10(container, cls):
    return cls(container.connection, container.cie10_repo, container.control_acceso)


def _empresas(container, cls):
    return cls(container.connection, container.empresas_repo, container.control_acceso)


def test_crear_codigo_normaliza_y_rechaza_duplicados(container, sesion_superusuario) -> None:
    crear = _cie10(container, CrearCodigoCie10UseCase)

    assert crear.execute(sesion_superusuario, CodigoCie10(" k29.7 ", "Gastritis, no especificada")) == "K29.7"
    with pytest.raises(ConflictError):
        crear.execute(sesion_superusuario, CodigoCie10("K29.7", "Otra"))
    with pytest.raises(ValidationError):
        crear.execute(sesion_superusuario, CodigoCie10("29K", "Formato inválido"))
    with pytest.raises(ValidationError):
        crear.execute(sesion_superusuario, CodigoCie10("K30", "  "))


def test_actualizar_descripcion(container, sesion_superusuario) -> None:
    actualizar = _cie10(container, ActualizarCodigoCie10UseCase)

    actualizar.execute(sesion_superusuario, "i10", "Hipertensión arterial esencial")

    assert container.cie10_repo.get("I10").descripcion == "Hipertensión arterial esencial"
    with pytest.raises(NotFoundError):
        actualizar.execute(sesion_superusuario, "Z00", "No existe")


def test_codigo_en_uso_no_se_elimina(container, sesion_superusuario, sesion_doctor, fabrica) -> None:
    titular = fabrica.titular()
    paciente = container.pacientes_repo.asegurar(titular.persona_id, ahora=container.ahora())
    RegistrarConsultaUseCase(container).execute(sesion_doctor, fabrica.consulta(paciente.id, "I10"))
    eliminar = _cie10(container, EliminarCodigoCie10UseCase)

    with pytest.raises(IntegrityError):
        eliminar.execute(sesion_superusuario, "I10")
    eliminar.execute(sesion_superusuario, "a09x")

    assert container.cie10_repo.get("I10") is not None
    assert container.cie10_repo.get("A09X") is None
    with pytest.raises(NotFoundError):
        eliminar.execute(sesion_superusuario, "A09X")


def test_importar_omite_invalidos_y_existentes(container, sesion_superusuario, contar) -> None:
    filas = [
        {"codigo": "K29.7", "descripcion": "Gastritis, no especificada"},
        {"codigo": "J00", "descripcion": "Duplicado del catálogo inicial"},
        {"codigo": "???", "descripcion": "Inválido"},
        {"codigo": "N39.0", "descripcion": ""},
        {"codigo": "r51", "descripcion": "Cefalea"},
    ]

    resultado = _cie10(container, ImportarCodigosCie10UseCase).execute(sesion_superusuario, filas)

    assert (resultado.importados, resultado.omitidos) == (2, 3)
    assert [e.split(":")[0] for e in resultado.errores] == ["Fila 2", "Fila 3", "Fila 4"]
    assert contar("cie10_codigos") == 7
    assert container.cie10_repo.get("R51").descripcion == "Cefalea"


def test_busqueda_y_listado_de_codigos(container, sesion_enfermera) -> None:
    buscar = BuscarCodigosCie10UseCase(container.cie10_repo, container.control_acceso)
    listar = ListarCodigosCie10UseCase(container.cie10_repo, container.control_acceso)

    assert [c.codigo for c in buscar.execute(sesion_enfermera, "aguda")] == ["J00", "J02.9"]
    assert buscar.execute(sesion_enfermera, "J") == []
    pagina, total = listar.execute(sesion_enfermera, limit=2, offset=1)
    assert total == 5
    assert [c.codigo for c in pagina] == ["E11.9", "I10"]


def test_gestion_del_catalogo_requiere_permiso(container, sesion_doctor) -> None:
    with pytest.raises(UnauthorizedError):
        _cie10(container, CrearCodigoCie10UseCase).execute(sesion_doctor, CodigoCie10("K30", "Dispepsia"))
    with pytest.raises(UnauthorizedError):
        _empresas(container, EliminarEmpresaUseCase).execute(sesion_doctor, 1)


def test_ciclo_de_vida_de_una_empresa(container, sesion_asistencial) -> None:
    empresa = Empresa(nombre="Farmacorp", rif="j-11111111-1", telefono="0212-555 1234", direccion="Caracas")

    empresa_id = _empresas(container, CrearEmpresaUseCase).execute(sesion_asistencial, empresa)

    assert container.empresas_repo.get_by_id(empresa_id).rif == "J-11111111-1"
    with pytest.raises(ConflictError):
        _empresas(container, CrearEmpresaUseCase).execute(
            sesion_asistencial, Empresa(nombre="Copia", rif="J-11111111-1", telefono="0212", direccion="X")
        )

    empresa.direccion = "Valencia"
    _empresas(container, ActualizarEmpresaUseCase).execute(sesion_asistencial, empresa)
    assert container.empresas_repo.get_by_id(empresa_id).direccion == "Valencia"

    _empresas(container, EliminarEmpresaUseCase).execute(sesion_asistencial, empresa_id)
    assert container.empresas_repo.get_by_id(empresa_id) is None
    with pytest.raises(NotFoundError):
        _empresas(container, EliminarEmpresaUseCase).execute(sesion_asistencial, empresa_id)


def test_empresa_con_datos_invalidos(container, sesion_asistencial) -> None:
    crear = _empresas(container, CrearEmpresaUseCase)

    with pytest.raises(ValidationError):
        crear.execute(sesion_asistencial, Empresa(nombre="Sin RIF", telefono="0212", direccion="X"))
    with pytest.raises(ValidationError):
        crear.execute(sesion_asistencial, Empresa(nombre="Tel", rif="J-2", telefono="abc", direccion="X"))
    with pytest.raises(NotFoundError):
        _empresas(container, ActualizarEmpresaUseCase).execute(
            sesion_asistencial, Empresa(id=999, nombre="X", rif="J-3", telefono="0212", direccion="X")
        )


def test_buscar_empresas(container, sesion_enfermera) -> None:
    buscar = BuscarEmpresasUseCase(container.empresas_repo, container.control_acceso)

    encontradas, total = buscar.execute(sesion_enfermera, "innova")
    todas, total_todas = buscar.execute(sesion_enfermera, "x")

    assert total == 1
    assert encontradas[0].nombre == "Innovatech"
    assert total_todas == 3
    assert [e.nombre for e in todas] == ["Constructora Andes", "Innovatech", "Salud Total"]
