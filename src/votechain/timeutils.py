"""Utilidades de tiempo: formato de timestamps y tiempo restante.

Time utilities: timestamp display, remaining time, and picker conversion.
"""

from __future__ import annotations

import time
from datetime import datetime, timedelta, tzinfo
from typing import Optional, Union

from dateutil import parser as date_parser

PLACEHOLDER = "—"

PickerValue = Union[datetime, str, int, float, None]


def now_seconds() -> int:
    """Segundos epoch del reloj de pared.

    English: Wall-clock epoch seconds.
    """
    return int(time.time())


def format_timestamp(timestamp: Optional[int], tz: Optional[tzinfo] = None) -> str:
    """Formatea un timestamp epoch para mostrar, p. ej. ``Oct 17, 2026, 02:30 PM``.

    English: Format an epoch timestamp for display. Unknown or zero values
    render as a dash placeholder.
    """
    if not timestamp:
        return PLACEHOLDER
    moment = datetime.fromtimestamp(int(timestamp), tz=tz)
    return f"{moment:%b} {moment.day}, {moment:%Y, %I:%M %p}"


def time_remaining(end_time: Optional[int], now: Optional[int] = None) -> Optional[timedelta]:
    """Duración hasta ``end_time`` o ``None`` si ya terminó.

    English: Duration until ``end_time``, or ``None`` once it has passed.
    """
    current = now_seconds() if now is None else now
    diff = int(end_time or 0) - current
    if diff <= 0:
        return None
    return timedelta(seconds=diff)


def format_time_remaining(end_time: Optional[int], now: Optional[int] = None) -> Optional[str]:
    """Etiqueta compacta del tiempo restante (``2d 3h left``).

    English: Compact remaining-time label.
    """
    remaining = time_remaining(end_time, now)
    if remaining is None:
        return None
    seconds = int(remaining.total_seconds())
    days, rest = divmod(seconds, 86400)
    hours, rest = divmod(rest, 3600)
    minutes = rest // 60
    if days > 0:
        return f"{days}d {hours}h left"
    if hours > 0:
        return f"{hours}h {minutes}m left"
    return f"{minutes}m left"


def to_epoch_seconds(value: PickerValue, tz: Optional[tzinfo] = None) -> Optional[int]:
    """Convierte un valor de selector de fecha a segundos epoch enteros.

    Acepta ``datetime``, cadenas ISO (``2026-10-17T14:30``) o números epoch.
    Los valores sin zona se interpretan en ``tz`` o en la zona local.

    English:
        Convert a date picker value to integer epoch seconds. Blank values
        give ``None``; unparseable strings raise ``ValueError``.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("Boolean is not a valid time value")
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.isdigit():
            return int(text)
        value = date_parser.isoparse(text)
    if value.tzinfo is None and tz is not None:
        value = value.replace(tzinfo=tz)
    return int(value.timestamp())


def shorten_identifier(value: str) -> str:
    """Devuelve identificador acortado (``0x1234…abcd``).

    English: Return a shortened identifier for display and redacted logs.
    """
    if len(value) <= 10:
        return value
    return f"{value[:6]}…{value[-4:]}"
