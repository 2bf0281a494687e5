"""Data models for the month calendar engine."""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from engine.errors import PreconditionViolation

GRID_CELLS = 42
MAX_CELL_EVENTS = 3

HOLIDAY_TYPE = 'holiday'
USER_EVENT_TYPES = ('work', 'personal', 'meeting', 'birthday', 'reminder', 'other')
PRIORITIES = ('low', 'medium', 'high')
DEFAULT_PRIORITY = 'medium'


def check_month(month: int) -> None:
    """Reject month indexes outside 0 (January) .. 11 (December)."""
    if not isinstance(month, int) or not 0 <= month <= 11:
        raise PreconditionViolation(f"Month index out of range: {month!r}")


def date_key(year: int, month: int, day: int) -> str:
    """
    Build the canonical YYYY-MM-DD key for a calendar date.

    Args:
        year: Four digit year
        month: Zero-indexed month (0 = January)
        day: Day of month

    Returns:
        Zero-padded date key
    """
    return f"{year:04d}-{month + 1:02d}-{day:02d}"


def parse_date_key(key: str) -> Tuple[int, int, int]:
    """Split a date key back into (year, zero-indexed month, day)."""
    year, month, day = (int(part) for part in key.split('-'))
    return year, month - 1, day


def check_date(year: int, month: int, day: int) -> date:
    """
    Build the date of a (year, zero-indexed month, day) triple.

    Raises:
        PreconditionViolation: if the triple is not a calendar date
    """
    check_month(month)
    try:
        return date(year, month + 1, day)
    except (TypeError, ValueError) as e:
        raise PreconditionViolation(
            f"Not a calendar date: {year}-{month + 1}-{day}: {e}"
        ) from None


def is_canonical_date_key(key: str) -> bool:
    """True if key is the zero-padded YYYY-MM-DD key of a real date."""
    try:
        year, month, day = parse_date_key(key)
        check_date(year, month, day)
    except (ValueError, PreconditionViolation):
        return False
    return date_key(year, month, day) == key


def check_time(value: Any) -> Optional[str]:
    """
    Accept a stored HH:MM time.

    Returns:
        The time string, or None for an absent or empty time

    Raises:
        ValueError: if value is not an HH:MM string
    """
    if value is None or value == '':
        return None
    if not isinstance(value, str) or len(value) != 5:
        raise ValueError(f"time must be an HH:MM string: {value!r}")
    datetime.strptime(value, '%H:%M')
    return value


@dataclass(frozen=True)
class Anchor:
    """The (year, month) pair shown as the current month of the grid."""
    year: int
    month: int

    def __post_init__(self):
        check_month(self.month)

    @classmethod
    def from_date(cls, value: date) -> 'Anchor':
        return cls(value.year, value.month - 1)

    def previous(self) -> 'Anchor':
        if self.month == 0:
            return Anchor(self.year - 1, 11)
        return Anchor(self.year, self.month - 1)

    def next(self) -> 'Anchor':
        if self.month == 11:
            return Anchor(self.year + 1, 0)
        return Anchor(self.year, self.month + 1)


@dataclass
class UserEvent:
    """Event created and edited by the user."""
    id: str
    title: str
    type: str
    time: Optional[str] = None
    duration: Optional[int] = None
    description: str = ''
    priority: str = DEFAULT_PRIORITY

    @property
    def read_only(self) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        """Persisted representation (no read-only flag)."""
        return {
            'id': self.id,
            'title': self.title,
            'type': self.type,
            'time': self.time,
            'duration': self.duration,
            'description': self.description,
            'priority': self.priority,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'UserEvent':
        """
        Rebuild an event from its persisted representation.

        Accepts the browser shape where absent time and duration were
        stored as empty strings and duration as a numeric string.

        Raises:
            KeyError: if id or title is missing
            ValueError: if id or title is empty, duration is not numeric
                or time is not an HH:MM string
        """
        event_id = str(data['id'])
        title = str(data['title'])
        if not event_id or not title.strip():
            raise ValueError('event id and title must be non-empty')

        duration = data.get('duration')
        if duration in (None, ''):
            duration = None
        else:
            duration = int(duration)
            if duration < 0:
                raise ValueError(f"negative duration: {duration}")

        return cls(
            id=event_id,
            title=title,
            type=str(data.get('type') or 'other'),
            time=check_time(data.get('time')),
            duration=duration,
            description=data.get('description') or '',
            priority=data.get('priority') or DEFAULT_PRIORITY,
        )


@dataclass(frozen=True)
class HolidayEvent:
    """Generated, read-only holiday entry. Never persisted."""
    id: str
    title: str
    description: str = ''
    region: Optional[str] = None
    type: str = HOLIDAY_TYPE
    time: Optional[str] = None
    duration: Optional[int] = None
    priority: str = 'low'

    @property
    def read_only(self) -> bool:
        return True


CalendarEvent = Union[HolidayEvent, UserEvent]


def is_holiday(event: CalendarEvent) -> bool:
    return isinstance(event, HolidayEvent)


@dataclass(frozen=True)
class HolidayMap:
    """Holidays of one year keyed by date key."""
    year: int
    include_regional: bool
    entries: Mapping[str, Tuple[HolidayEvent, ...]] = field(default_factory=dict)

    def get(self, key: str) -> List[HolidayEvent]:
        return list(self.entries.get(key, ()))

    def keys(self) -> List[str]:
        return list(self.entries.keys())

    def __contains__(self, key: object) -> bool:
        return key in self.entries

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class CalendarCell:
    """One day of the 6x7 month grid."""
    year: int
    month: int
    day: int
    date_key: str
    is_other_month: bool
    is_today: bool
    is_past: bool
    events: Tuple[CalendarEvent, ...] = ()
    overflow_count: int = 0

    @property
    def all_events_count(self) -> int:
        return len(self.events) + self.overflow_count
