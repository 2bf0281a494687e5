"""Validation and normalization of user event form data."""
import logging
import time
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

from engine.errors import ValidationError
from engine.models import DEFAULT_PRIORITY, PRIORITIES, USER_EVENT_TYPES, UserEvent

logger = logging.getLogger(__name__)

TITLE_REQUIRED_MESSAGE = 'El título del evento es obligatorio'
TYPE_REQUIRED_MESSAGE = 'Por favor selecciona un tipo de evento'


class EventIdGenerator:
    """Creation-timestamp ids, strictly increasing within one generator."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock
        self._last = 0

    def __call__(self) -> str:
        candidate = int(self.clock() * 1000)
        if candidate <= self._last:
            candidate = self._last + 1
        self._last = candidate
        return str(candidate)


class EventValidator:
    """Turns raw form values into a valid UserEvent."""

    MAX_TITLE_LENGTH = 200
    MAX_DESCRIPTION_LENGTH = 2000

    def __init__(self, id_generator: Optional[Callable[[], str]] = None):
        self.id_generator = id_generator or EventIdGenerator()

    def build_event(
        self,
        form: Mapping[str, Any],
        event_id: Optional[str] = None
    ) -> UserEvent:
        """
        Validate form data and build a user event.

        Args:
            form: Raw values keyed by title, type, time, duration,
                description and priority
            event_id: Id of the event being edited, None for a new event

        Returns:
            UserEvent ready for EventStore.upsert

        Raises:
            ValidationError: if a field is missing or malformed
        """
        title = str(form.get('title') or '').strip()
        if not title:
            raise ValidationError(TITLE_REQUIRED_MESSAGE, field='title')

        event_type = str(form.get('type') or '').strip()
        if not event_type or event_type not in USER_EVENT_TYPES:
            raise ValidationError(TYPE_REQUIRED_MESSAGE, field='type')

        priority = str(form.get('priority') or DEFAULT_PRIORITY).strip()
        if priority not in PRIORITIES:
            raise ValidationError(
                f"Prioridad no válida: {priority}", field='priority'
            )

        event = UserEvent(
            id=event_id or self.id_generator(),
            title=title[:self.MAX_TITLE_LENGTH],
            type=event_type,
            time=self._normalize_time(form.get('time')),
            duration=self._normalize_duration(form.get('duration')),
            description=str(form.get('description') or '').strip()[:self.MAX_DESCRIPTION_LENGTH],
            priority=priority,
        )
        logger.debug(f"Validated event '{event.title}' ({event.id})")
        return event

    def _normalize_time(self, value: Any) -> Optional[str]:
        """
        Normalize time to 24-hour format (HH:MM).

        Args:
            value: Time string in various formats, empty for no time

        Returns:
            24-hour formatted time string or None when no time was given
        """
        if value is None:
            return None
        time_str = str(value).strip()
        if not time_str:
            return None

        time_formats = [
            '%H:%M',         # 24-hour format
            '%I:%M %p',      # 12-hour format with AM/PM
            '%I:%M%p',       # 12-hour format without space
            '%H:%M:%S',      # 24-hour with seconds
        ]

        for fmt in time_formats:
            try:
                time_obj = datetime.strptime(time_str, fmt)
                return time_obj.strftime('%H:%M')
            except ValueError:
                continue

        raise ValidationError(f"Hora no válida: {time_str}", field='time')

    def _normalize_duration(self, value: Any) -> Optional[int]:
        if value is None or str(value).strip() == '':
            return None
        try:
            duration = int(str(value).strip())
        except ValueError:
            raise ValidationError(
                f"Duración no válida: {value}", field='duration'
            ) from None
        if duration < 0:
            raise ValidationError(
                f"Duración no válida: {value}", field='duration'
            )
        return duration
