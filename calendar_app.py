"""Command handlers wiring the calendar engine for a presentation layer."""
import json
import logging
import os
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, List, Mapping, Optional

from engine.errors import PersistenceError, PreconditionViolation, ValidationError
from engine.event_validator import EventValidator
from engine.formatting import (
    WEEKDAY_HEADERS,
    event_time_label,
    event_tooltip,
    format_long_date,
    format_month_title,
    overflow_label,
    priority_text,
)
from engine.grid_builder import CalendarGridBuilder
from engine.models import (
    Anchor,
    CalendarCell,
    CalendarEvent,
    HolidayMap,
    check_date,
    date_key,
    parse_date_key,
)
from generator.holiday_generator import HolidayGenerator
from storage.blob_store import FileBlobStore, MemoryBlobStore
from storage.dynamodb_blob_store import DynamoDBBlobStore
from storage.event_store import DEFAULT_BLOB_KEY, EventStore

logger = logging.getLogger(__name__)

NO_DATE_SELECTED_MESSAGE = 'Por favor selecciona un día primero'
SAVE_FAILED_WARNING = 'Error al guardar los eventos. Por favor, intenta de nuevo.'
EVENT_NOT_FOUND_MESSAGE = 'El evento no existe'


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


@dataclass
class AppConfig:
    """Runtime settings read from the environment."""
    store_backend: str = 'file'
    data_dir: str = '~/.calendar'
    table_name: str = 'calendar-blobs'
    blob_key: str = DEFAULT_BLOB_KEY
    include_regional_holidays: bool = True
    log_level: str = 'INFO'


def load_config(environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Read AppConfig from environment variables."""
    env = os.environ if environ is None else environ
    return AppConfig(
        store_backend=env.get('CALENDAR_STORE_BACKEND', 'file').lower(),
        data_dir=env.get('CALENDAR_DATA_DIR', '~/.calendar'),
        table_name=env.get('CALENDAR_TABLE_NAME', 'calendar-blobs'),
        blob_key=env.get('CALENDAR_BLOB_KEY', DEFAULT_BLOB_KEY),
        include_regional_holidays=(
            env.get('INCLUDE_REGIONAL_HOLIDAYS', 'true').lower() == 'true'
        ),
        log_level=env.get('LOG_LEVEL', 'INFO'),
    )


@dataclass
class MonthView:
    year: int
    month: int
    title: str
    weekday_headers: List[str]
    cells: List[CalendarCell]
    overflow_labels: Dict[str, str] = field(default_factory=dict)


@dataclass
class EventItem:
    """An event of the day list with its display strings."""
    event: CalendarEvent
    tooltip: str
    time_label: Optional[str]
    priority_label: str

    @classmethod
    def from_event(cls, event: CalendarEvent) -> 'EventItem':
        return cls(
            event=event,
            tooltip=event_tooltip(event),
            time_label=event_time_label(event),
            priority_label=priority_text(event.priority),
        )


@dataclass
class DayView:
    date_key: str
    title: str
    events: List[CalendarEvent]
    items: List[EventItem] = field(default_factory=list)


@dataclass
class CommandResult:
    """Outcome of a submit or delete command."""
    ok: bool
    message: Optional[str] = None
    warning: Optional[str] = None
    event: Optional[CalendarEvent] = None
    month_view: Optional[MonthView] = None
    day_view: Optional[DayView] = None
    errors: Dict[str, str] = field(default_factory=dict)


class CalendarApp:
    """Explicit command handlers over the calendar engine."""

    def __init__(
        self,
        event_store: EventStore,
        holiday_generator: HolidayGenerator,
        grid_builder: Optional[CalendarGridBuilder] = None,
        validator: Optional[EventValidator] = None,
        today_provider: Callable[[], date] = date.today
    ):
        self.event_store = event_store
        self.holiday_generator = holiday_generator
        self.today_provider = today_provider
        self.grid_builder = grid_builder or CalendarGridBuilder(today_provider)
        self.validator = validator or EventValidator()

        self.anchor = Anchor.from_date(today_provider())
        self.selected_date_key: Optional[str] = None
        self._holidays: Optional[HolidayMap] = None

    @property
    def holidays(self) -> HolidayMap:
        """Holidays of the anchor year, rebuilt only when the year changes."""
        if self._holidays is None or self._holidays.year != self.anchor.year:
            self._holidays = self.holiday_generator.build(self.anchor.year)
            logger.info(f"Generated holidays for {self.anchor.year}")
        return self._holidays

    def _holidays_for(self, year: int) -> HolidayMap:
        # Dates selected in an adjacent year get a one-off build
        if year == self.anchor.year:
            return self.holidays
        return self.holiday_generator.build(year)

    def month_view(self) -> MonthView:
        cells = self.grid_builder.build_grid(
            self.anchor.year, self.anchor.month, self.event_store, self.holidays
        )
        return MonthView(
            year=self.anchor.year,
            month=self.anchor.month,
            title=format_month_title(self.anchor.year, self.anchor.month),
            weekday_headers=list(WEEKDAY_HEADERS),
            cells=cells,
            overflow_labels={
                cell.date_key: overflow_label(cell.overflow_count)
                for cell in cells
                if cell.overflow_count
            },
        )

    def day_view(self) -> Optional[DayView]:
        if self.selected_date_key is None:
            return None
        year, month, day = parse_date_key(self.selected_date_key)
        events = self.grid_builder.day_events(
            self.selected_date_key, self.event_store, self._holidays_for(year)
        )
        return DayView(
            date_key=self.selected_date_key,
            title=format_long_date(year, month, day),
            events=events,
            items=[EventItem.from_event(event) for event in events],
        )

    def on_navigate(self, action: str) -> MonthView:
        """
        Move the anchor month.

        Args:
            action: 'previous', 'next' or 'today'

        Returns:
            MonthView of the new anchor

        Raises:
            PreconditionViolation: for an unknown action
        """
        if action == 'previous':
            self.anchor = self.anchor.previous()
        elif action == 'next':
            self.anchor = self.anchor.next()
        elif action == 'today':
            self.anchor = Anchor.from_date(self.today_provider())
        else:
            raise PreconditionViolation(f"Unknown navigation action: {action!r}")

        logger.info(
            f"Navigated {action} to {self.anchor.year}-{self.anchor.month + 1:02d}"
        )
        return self.month_view()

    def on_select_date(self, year: int, month: int, day: int) -> DayView:
        """
        Select a date and return its event list.

        Args:
            year: Year of the date
            month: Zero-indexed month
            day: Day of month

        Raises:
            PreconditionViolation: if the triple is not a calendar date;
                the previous selection is kept
        """
        check_date(year, month, day)
        self.selected_date_key = date_key(year, month, day)
        return self.day_view()

    def on_submit_event(
        self,
        form: Mapping[str, Any],
        event_id: Optional[str] = None
    ) -> CommandResult:
        """
        Create or update a user event on the selected date.

        Args:
            form: Raw form values
            event_id: Id of the event being edited, None to create one

        Returns:
            CommandResult; ok is False when validation failed

        Raises:
            PreconditionViolation: if event_id names a holiday
        """
        if self.selected_date_key is None:
            return CommandResult(
                ok=False,
                message=NO_DATE_SELECTED_MESSAGE,
                errors={'date': NO_DATE_SELECTED_MESSAGE}
            )

        key = self.selected_date_key
        if event_id is not None:
            self._reject_holiday(key, event_id)
            if self.event_store.find(key, event_id) is None:
                return CommandResult(ok=False, message=EVENT_NOT_FOUND_MESSAGE)

        try:
            event = self.validator.build_event(form, event_id=event_id)
        except ValidationError as e:
            logger.info(f"Rejected event form: {e.message}")
            return CommandResult(
                ok=False,
                message=e.message,
                errors={e.field or 'form': e.message}
            )

        self.event_store.upsert(key, event)
        warning = self._save()
        return self._result(event=event, warning=warning)

    def on_delete_event(self, event_id: str) -> CommandResult:
        """
        Delete a user event from the selected date.

        Raises:
            PreconditionViolation: if event_id names a holiday
        """
        if self.selected_date_key is None:
            return CommandResult(ok=False, message=NO_DATE_SELECTED_MESSAGE)

        key = self.selected_date_key
        self._reject_holiday(key, event_id)

        event = self.event_store.find(key, event_id)
        if event is None or not self.event_store.remove(key, event_id):
            return CommandResult(ok=False, message=EVENT_NOT_FOUND_MESSAGE)

        warning = self._save()
        return self._result(event=event, warning=warning)

    def _reject_holiday(self, key: str, event_id: str) -> None:
        holidays = self._holidays_for(parse_date_key(key)[0])
        if any(h.id == event_id for h in holidays.get(key)):
            raise PreconditionViolation(f"Holiday {event_id} is read-only")

    def _save(self) -> Optional[str]:
        # Edits stay in memory when the write fails
        try:
            self.event_store.save()
        except PersistenceError as e:
            logger.error(f"Events kept in memory only: {e}", exc_info=True)
            return SAVE_FAILED_WARNING
        return None

    def _result(self, event: CalendarEvent, warning: Optional[str]) -> CommandResult:
        return CommandResult(
            ok=True,
            warning=warning,
            event=event,
            month_view=self.month_view(),
            day_view=self.day_view(),
        )


def create_blob_store(config: AppConfig):
    """Instantiate the blob store backend named in the configuration."""
    if config.store_backend == 'memory':
        return MemoryBlobStore()
    if config.store_backend == 'dynamodb':
        return DynamoDBBlobStore(table_name=config.table_name)
    if config.store_backend == 'file':
        return FileBlobStore(config.data_dir)
    raise ValueError(f"Unknown store backend: {config.store_backend}")


def create_app(
    config: Optional[AppConfig] = None,
    today_provider: Callable[[], date] = date.today
) -> CalendarApp:
    """
    Build a CalendarApp from configuration and load its events.

    Args:
        config: Settings, read from the environment when omitted
        today_provider: Source of the real current date

    Returns:
        CalendarApp with its event store loaded
    """
    config = config or load_config()
    setup_logging(config.log_level)

    logger.info(
        f"Starting calendar with {config.store_backend} store "
        f"(regional holidays: {config.include_regional_holidays})"
    )

    event_store = EventStore(create_blob_store(config), blob_key=config.blob_key)
    app = CalendarApp(
        event_store=event_store,
        holiday_generator=HolidayGenerator(
            include_regional=config.include_regional_holidays
        ),
        today_provider=today_provider,
    )
    event_store.load()
    return app
