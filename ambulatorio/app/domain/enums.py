from __future__ import annotations

from enum import Enum


class Nacionalidad(str, Enum):
    VENEZOLANO = "V"
    EXTRANJERO = "E"


class Genero(str, Enum):
    MASCULINO = "Masculino"
    FEMENINO = "Femenino"
    OTRO = "Otro"


class TipoTitular(str, Enum):
    EMPLEADO_INTERNO = "internal_employee"
    AFILIADO_CORPORATIVO = "corporate_affiliate"
    PRIVADO = "private"


class TipoCuenta(str, Enum):
    EMPLEADO = "Empleado"
    AFILIADO_CORPORATIVO = "Afiliado Corporativo"
    PRIVADO = "Privado"

    @classmethod
    def desde_tipo_titular(cls, tipo: TipoTitular) -> "TipoCuenta":
        return _CUENTA_POR_TITULAR[tipo]


_CUENTA_POR_TITULAR = {
    TipoTitular.EMPLEADO_INTERNO: TipoCuenta.EMPLEADO,
    TipoTitular.AFILIADO_CORPORATIVO: TipoCuenta.AFILIADO_CORPORATIVO,
    TipoTitular.PRIVADO: TipoCuenta.PRIVADO,
}


class TipoPacienteCola(str, Enum):
    TITULAR = "titular"
    BENEFICIARIO = "beneficiario"


class TipoServicio(str, Enum):
    MEDICINA_GENERAL = "medicina general"
    CONSULTA_PEDIATRICA = "consulta pediatrica"
    ENFERMERIA = "servicio de enfermeria"


class EstadoVisita(str, Enum):
    ESPERANDO = "Esperando"
    EN_CONSULTA = "En Consulta"
    COMPLETADO = "Completado"


class EstadoOrdenTratamiento(str, Enum):
    ACTIVO = "Activo"
    COMPLETADO = "Completado"
    CANCELADO = "Cancelado"


class EstadoItemTratamiento(str, Enum):
    PENDIENTE = "Pendiente"
    ADMINISTRADO = "Administrado"


class EstadoOrdenLaboratorio(str, Enum):
    PENDIENTE = "Pendiente"
    COMPLETADO = "Completado"


class TipoDocumentoClinico(str, Enum):
    LABORATORIO = "laboratorio"
    IMAGENOLOGIA = "imagenologia"
    INFORME_MEDICO = "informe medico"
    OTRO = "otro"
