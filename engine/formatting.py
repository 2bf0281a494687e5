"""Display strings for the fixed es-ES locale."""
from datetime import date
from typing import Optional

from engine.models import CalendarEvent, check_month

MONTH_NAMES = [
    'Enero', 'Febrero', 'Marzo', 'Abril', 'Mayo', 'Junio',
    'Julio', 'Agosto', 'Septiembre', 'Octubre', 'Noviembre', 'Diciembre'
]
WEEKDAY_NAMES = [
    'lunes', 'martes', 'miércoles', 'jueves', 'viernes', 'sábado', 'domingo'
]
WEEKDAY_HEADERS = ['Lun', 'Mar', 'Mié', 'Jue', 'Vie', 'Sáb', 'Dom']

PRIORITY_LABELS = {
    'low': 'Baja',
    'medium': 'Media',
    'high': 'Alta',
}


def format_month_title(year: int, month: int) -> str:
    """'Enero 2025' for a zero-indexed month."""
    check_month(month)
    return f"{MONTH_NAMES[month]} {year}"


def format_long_date(year: int, month: int, day: int) -> str:
    """Long date as shown above the day list, e.g. 'miércoles, 1 de enero de 2025'."""
    check_month(month)
    weekday = WEEKDAY_NAMES[date(year, month + 1, day).weekday()]
    return f"{weekday}, {day} de {MONTH_NAMES[month].lower()} de {year}"


def priority_text(priority: str) -> str:
    return PRIORITY_LABELS.get(priority, PRIORITY_LABELS['medium'])


def event_tooltip(event: CalendarEvent) -> str:
    if event.time:
        return f"{event.time} - {event.title}"
    return event.title


def event_time_label(event: CalendarEvent) -> Optional[str]:
    if not event.time:
        return None
    if event.duration:
        return f"{event.time} ({event.duration} min)"
    return event.time


def overflow_label(count: int) -> Optional[str]:
    if count <= 0:
        return None
    return f"+{count} más"
