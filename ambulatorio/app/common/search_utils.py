from __future__ import annotations

import unicodedata
from typing import Optional

LONGITUD_MINIMA_BUSQUEDA = 2


def normalize_search_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    text = value.strip()
    return text or None


def is_searchable(value: Optional[str], *, minimo: int = LONGITUD_MINIMA_BUSQUEDA) -> bool:
    """True si el texto alcanza la longitud mínima para filtrar."""
    text = normalize_search_text(value)
    return text is not None and len(text) >= minimo


def plegar_texto(value: Optional[str]) -> Optional[str]:
    """
    Forma comparable de un texto: sin tildes ni diferencias de mayúsculas.

    SQLite solo ignora mayúsculas en ASCII; las búsquedas comparan
    `plegar(columna)` contra el patrón ya plegado en Python.
    """
    if value is None:
        return None
    descompuesto = unicodedata.normalize("NFKD", str(value))
    sin_marcas = "".join(c for c in descompuesto if not unicodedata.combining(c))
    return sin_marcas.casefold()


def like_value(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def like_plegado(text: str) -> str:
    return like_value(plegar_texto(text) or "")
