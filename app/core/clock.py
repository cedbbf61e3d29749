from __future__ import annotations

from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from app.core.config import APP_TIMEZONE


def local_now() -> datetime:
    """Horário local "naive" no fuso configurado (APP_TIMEZONE)."""
    if APP_TIMEZONE:
        return datetime.now(ZoneInfo(APP_TIMEZONE)).replace(tzinfo=None)
    return datetime.now()


def day_bounds(day: date) -> tuple[datetime, datetime]:
    # 00:00:00.000 até 23:59:59.999
    start = datetime.combine(day, time.min)
    end = datetime.combine(day, time(23, 59, 59, 999000))
    return start, end


def to_local_naive(value: datetime) -> datetime:
    """Converte datetime com fuso para o horário local "naive" usado nas colunas."""
    if value.tzinfo is None:
        return value
    if APP_TIMEZONE:
        return value.astimezone(ZoneInfo(APP_TIMEZONE)).replace(tzinfo=None)
    return value.astimezone().replace(tzinfo=None)
