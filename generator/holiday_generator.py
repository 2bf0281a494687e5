"""Holiday generator for the national and regional calendar overlay."""
import hashlib
import logging
from datetime import date, timedelta
from typing import Dict, List, Mapping, Optional, Tuple

from dateutil.easter import EASTER_WESTERN, easter

from engine.models import HolidayEvent, HolidayMap, date_key

logger = logging.getLogger(__name__)


class HolidayGenerator:
    """Builds the read-only holiday entries of a given year."""

    # (month, day, title) with 1-indexed months
    NATIONAL_HOLIDAYS = [
        (1, 1, 'Año Nuevo'),
        (1, 6, 'Epifanía del Señor'),
        (5, 1, 'Fiesta del Trabajo'),
        (8, 15, 'Asunción de la Virgen'),
        (10, 12, 'Fiesta Nacional de España'),
        (11, 1, 'Todos los Santos'),
        (12, 6, 'Día de la Constitución'),
        (12, 8, 'Inmaculada Concepción'),
        (12, 25, 'Navidad'),
    ]
    GOOD_FRIDAY_TITLE = 'Viernes Santo'

    REGION = 'Cataluña'
    REGIONAL_HOLIDAYS = [
        (9, 11, 'Diada Nacional de Catalunya'),
        (12, 26, 'Sant Esteve'),
    ]

    def __init__(
        self,
        include_regional: bool = True,
        good_friday_overrides: Optional[Mapping[int, Tuple[int, int]]] = None
    ):
        """
        Initialize the holiday generator.

        Args:
            include_regional: Add the regional holidays to every build
            good_friday_overrides: Optional {year: (month, day)} table that
                takes precedence over the computed Good Friday date
        """
        self.include_regional = include_regional
        self.good_friday_overrides = dict(good_friday_overrides or {})

    def build(self, year: int) -> HolidayMap:
        """
        Build the holiday map of one year.

        Args:
            year: Calendar year

        Returns:
            HolidayMap with keys in chronological order
        """
        dated: List[Tuple[date, int, HolidayEvent]] = []

        for month, day, title in self.NATIONAL_HOLIDAYS:
            dated.append(self._entry(date(year, month, day), title, None))

        dated.append(
            self._entry(self.good_friday(year), self.GOOD_FRIDAY_TITLE, None)
        )

        if self.include_regional:
            for month, day, title in self.REGIONAL_HOLIDAYS:
                dated.append(
                    self._entry(date(year, month, day), title, self.REGION)
                )

        # National entries first when two holidays share a date
        dated.sort(key=lambda item: (item[0], item[1]))

        entries: Dict[str, Tuple[HolidayEvent, ...]] = {}
        for day_value, _, holiday in dated:
            key = date_key(day_value.year, day_value.month - 1, day_value.day)
            entries[key] = entries.get(key, ()) + (holiday,)

        logger.debug(
            f"Built {len(dated)} holidays for {year} "
            f"(regional={self.include_regional})"
        )
        return HolidayMap(
            year=year,
            include_regional=self.include_regional,
            entries=entries
        )

    def good_friday(self, year: int) -> date:
        """Good Friday of a year: the override if present, else Easter - 2."""
        if year in self.good_friday_overrides:
            month, day = self.good_friday_overrides[year]
            return date(year, month, day)
        return easter(year, EASTER_WESTERN) - timedelta(days=2)

    def _entry(
        self,
        day_value: date,
        title: str,
        region: Optional[str]
    ) -> Tuple[date, int, HolidayEvent]:
        key = date_key(day_value.year, day_value.month - 1, day_value.day)
        description = (
            f"Festivo regional ({region})" if region else 'Festivo nacional'
        )
        holiday = HolidayEvent(
            id=self.generate_holiday_id(key, title),
            title=title,
            description=description,
            region=region,
        )
        return day_value, 1 if region else 0, holiday

    @staticmethod
    def generate_holiday_id(key: str, title: str) -> str:
        """
        Generate a deterministic identifier for a holiday.

        Args:
            key: Date key of the holiday
            title: Holiday title

        Returns:
            'holiday-' followed by 16 hex characters of a SHA256 hash
        """
        composite = f"{key}|{title}"
        hash_obj = hashlib.sha256(composite.encode('utf-8'))
        return f"holiday-{hash_obj.hexdigest()[:16]}"
