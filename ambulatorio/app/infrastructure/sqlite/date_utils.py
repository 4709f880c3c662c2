from __future__ import annotations

from datetime import date, datetime
from typing import Optional


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    return date.fromisoformat(value[:10])


def format_iso_date(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)


def format_iso_datetime(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.replace(microsecond=0).isoformat(sep=" ")


def inicio_del_dia(value: date) -> str:
    return f"{value.isoformat()} 00:00:00"


def fin_del_dia(value: date) -> str:
    return f"{value.isoformat()} 23:59:59"
