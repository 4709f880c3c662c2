from __future__ import annotations

from typing import List

from ambulatorio.app.application.security import SesionUsuario
from ambulatorio.app.container import AppContainer
from ambulatorio.app.domain.enums import TipoTitular
from ambulatorio.app.domain.exceptions import ConflictError, IntegrityError, NotFoundError, ValidationError
from ambulatorio.app.domain.permisos import Permiso
from ambulatorio.app.domain.personas import Beneficiario, Titular
from ambulatorio.app.infrastructure.sqlite.transacciones import transaccion


class CrearTitularUseCase:
    """Convierte una persona existente en titular (uno por persona)."""

    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(self, sesion: SesionUsuario, titular: Titular) -> int:
        self._c.control_acceso.autorizar(sesion, Permiso.TITULARES_GESTIONAR)
        titular.validar()
        with transaccion(self._c.connection):
            if not self._c.personas_repo.exists(titular.persona_id):
                raise NotFoundError("La persona no existe.")
            if self._c.titulares_repo.get_by_persona_id(titular.persona_id) is not None:
                raise ConflictError("La persona ya está registrada como titular.")
            _validar_empresa(self._c, titular)
            return self._c.titulares_repo.create(titular)


class ActualizarTitularUseCase:
    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(self, sesion: SesionUsuario, titular: Titular) -> None:
        self._c.control_acceso.autorizar(sesion, Permiso.TITULARES_GESTIONAR)
        actual = self._c.titulares_repo.get_by_id(titular.id) if titular.id else None
        if actual is None:
            raise NotFoundError("El titular no existe.")
        # La persona de un titular no se reasigna.
        titular.persona_id = actual.persona_id
        titular.validar()
        with transaccion(self._c.connection):
            _validar_empresa(self._c, titular)
            self._c.titulares_repo.update(titular)


class EliminarTitularUseCase:
    """Quita el rol de titular (la persona se conserva)."""

    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(self, sesion: SesionUsuario, titular_id: int) -> None:
        self._c.control_acceso.autorizar(sesion, Permiso.TITULARES_GESTIONAR)
        with transaccion(self._c.connection):
            if self._c.titulares_repo.get_by_id(titular_id) is None:
                raise NotFoundError("El titular no existe.")
            if self._c.titulares_repo.count_beneficiarios(titular_id) > 0:
                raise IntegrityError("No se puede eliminar el titular porque tiene beneficiarios asociados.")
            self._c.titulares_repo.delete(titular_id)


class AgregarBeneficiarioUseCase:
    """
    Enlaza una persona como beneficiaria de un titular.

    Solo se rechaza el par repetido; una persona puede depender de varios
    titulares mediante enlaces distintos.
    """

    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(self, sesion: SesionUsuario, persona_id: int, titular_id: int) -> int:
        self._c.control_acceso.autorizar(sesion, Permiso.BENEFICIARIOS_GESTIONAR)
        beneficiario = Beneficiario(persona_id=persona_id, titular_id=titular_id)
        beneficiario.validar()
        with transaccion(self._c.connection):
            titular = self._c.titulares_repo.get_by_id(titular_id)
            if titular is None:
                raise NotFoundError("El titular no existe.")
            if not self._c.personas_repo.exists(persona_id):
                raise NotFoundError("La persona no existe.")
            if titular.persona_id == persona_id:
                raise ValidationError(
                    "Un titular no puede ser beneficiario de sí mismo.",
                    {"persona_id": "Es el propio titular."},
                )
            if self._c.titulares_repo.exists_beneficiario(persona_id, titular_id):
                raise ConflictError("La persona ya es beneficiaria de este titular.")
            return self._c.titulares_repo.add_beneficiario(beneficiario)


class QuitarBeneficiarioUseCase:
    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(self, sesion: SesionUsuario, beneficiario_id: int) -> None:
        self._c.control_acceso.autorizar(sesion, Permiso.BENEFICIARIOS_GESTIONAR)
        with transaccion(self._c.connection):
            if not self._c.titulares_repo.delete_beneficiario(beneficiario_id):
                raise NotFoundError("El enlace de beneficiario no existe.")


class ListarBeneficiariosUseCase:
    def __init__(self, container: AppContainer) -> None:
        self._c = container

    def execute(self, sesion: SesionUsuario, titular_id: int) -> List[Beneficiario]:
        self._c.control_acceso.exigir_sesion(sesion)
        if self._c.titulares_repo.get_by_id(titular_id) is None:
            raise NotFoundError("El titular no existe.")
        return self._c.titulares_repo.list_beneficiarios(titular_id)


def _validar_empresa(c: AppContainer, titular: Titular) -> None:
    if titular.tipo != TipoTitular.AFILIADO_CORPORATIVO:
        return
    if c.empresas_repo.get_by_id(titular.empresa_id) is None:
        raise ValidationError("La empresa indicada no existe.", {"empresa_id": "No existe."})
