from __future__ import annotations

import argparse
import getpass
import os
import sys
import uuid
from datetime import date
from typing import Optional, Sequence

from ambulatorio.app.application.security import SesionUsuario
from ambulatorio.app.application.usecases.cola_espera import ListarColaUseCase
from ambulatorio.app.application.usecases.reportes import ReporteMorbilidadUseCase
from ambulatorio.app.application.usecases.usuarios import CrearSuperusuarioInicialUseCase
from ambulatorio.app.bootstrap import abrir_base_datos
from ambulatorio.app.bootstrap_logging import configure_logging_from_env, contexto_peticion, get_logger, set_run_context
from ambulatorio.app.container import AppContainer, build_container
from ambulatorio.app.crash_handler import install_global_exception_hook
from ambulatorio.app.domain.enums import TipoCuenta
from ambulatorio.app.domain.exceptions import DomainError
from ambulatorio.app.security.sesiones import ServicioSesiones


LOGGER = get_logger(__name__)

ENV_PASSWORD = "AMBULATORIO_PASSWORD"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ambulatorio", description="Herramientas de línea de comandos del ambulatorio")
    parser.add_argument("--db-path", default=None, help="Ruta SQLite (por defecto AMBULATORIO_DB_PATH o ./data)")
    sub = parser.add_subparsers(dest="comando", required=True)

    sub.add_parser("init-db", help="Crea el esquema y siembra los datos de referencia si la base es nueva")

    crear = sub.add_parser("crear-superusuario", help="Crea el primer usuario con rol superusuario")
    crear.add_argument("--username", required=True)

    cola = sub.add_parser("cola", help="Muestra la sala de espera")
    cola.add_argument("--username", required=True)

    morbilidad = sub.add_parser("reporte-morbilidad", help="Frecuencia de diagnósticos CIE-10 en un rango")
    morbilidad.add_argument("--username", required=True)
    morbilidad.add_argument("--desde", required=True, type=date.fromisoformat)
    morbilidad.add_argument("--hasta", required=True, type=date.fromisoformat)
    morbilidad.add_argument("--tipo-cuenta", default=None, choices=[t.value for t in TipoCuenta])
    return parser


def _leer_password() -> str:
    return os.getenv(ENV_PASSWORD) or getpass.getpass("Contraseña: ")


def _iniciar_sesion(container: AppContainer, username: str) -> SesionUsuario:
    return ServicioSesiones(container).iniciar(username, _leer_password())


def _cmd_crear_superusuario(container: AppContainer, args: argparse.Namespace) -> int:
    usuario_id = CrearSuperusuarioInicialUseCase(container).execute(args.username, _leer_password())
    print(f"Superusuario creado (id={usuario_id}).")
    return 0


def _cmd_cola(container: AppContainer, args: argparse.Namespace) -> int:
    sesion = _iniciar_sesion(container, args.username)
    with contexto_peticion(sesion.username):
        filas = ListarColaUseCase(container).execute(sesion)
    for fila in filas:
        print(f"{fila.hora_llegada}  {fila.estado:<12} {fila.tipo_cuenta:<21} {fila.tipo_servicio:<24} {fila.nombre_completo}")
    print(f"Total: {len(filas)}")
    return 0


def _cmd_reporte_morbilidad(container: AppContainer, args: argparse.Namespace) -> int:
    sesion = _iniciar_sesion(container, args.username)
    tipo_cuenta = TipoCuenta(args.tipo_cuenta) if args.tipo_cuenta else None
    uc = ReporteMorbilidadUseCase(container.queries.reportes, container.control_acceso)
    with contexto_peticion(sesion.username):
        filas = uc.execute(sesion, args.desde, args.hasta, tipo_cuenta=tipo_cuenta)
    for fila in filas:
        print(f"{fila.codigo:<8} {fila.total:>5}  {fila.descripcion}")
    return 0


_COMANDOS = {
    "crear-superusuario": _cmd_crear_superusuario,
    "cola": _cmd_cola,
    "reporte-morbilidad": _cmd_reporte_morbilidad,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging_from_env("ambulatorio-cli")
    set_run_context(uuid.uuid4().hex[:8])
    install_global_exception_hook(LOGGER)

    con = abrir_base_datos(args.db_path)
    container = build_container(con)
    try:
        if args.comando == "init-db":
            print("Base de datos lista.")
            return 0
        return _COMANDOS[args.comando](container, args)
    except DomainError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        container.close()


if __name__ == "__main__":
    raise SystemExit(main())
