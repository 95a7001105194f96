"""Date parsing and league date-range utilities."""
import math
import re
from dataclasses import dataclass
from datetime import date
from typing import Optional

from core.exceptions import ValidationFailed

ISO_DATE_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')


@dataclass(frozen=True)
class DateWindow:
    """Inclusive date range used to filter entries and challenges."""
    start_date: date
    end_date: date

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


class DateRangeService:
    """Service for date parsing and league window calculations."""

    @staticmethod
    def parse_date(value, field_name: str = 'date') -> date:
        """Parse a YYYY-MM-DD string (or the date part of an ISO timestamp).

        Args:
            value: String or date
            field_name: Name used in the error message

        Returns:
            date object

        Raises:
            ValidationFailed: when the value is not a valid calendar date

        Example:
            >>> DateRangeService.parse_date('2026-02-04T18:30:00Z')
            date(2026, 2, 4)
        """
        if isinstance(value, date):
            return value
        if not isinstance(value, str):
            raise ValidationFailed(f"{field_name} must be a YYYY-MM-DD string")

        candidate = value.strip()
        if not ISO_DATE_RE.match(candidate):
            candidate = candidate[:10]
        if not ISO_DATE_RE.match(candidate):
            raise ValidationFailed(f"{field_name} must be in YYYY-MM-DD format")

        try:
            return date.fromisoformat(candidate)
        except ValueError:
            raise ValidationFailed(f"{field_name} is not a valid calendar date")

    @staticmethod
    def resolve_window(start_value=None, end_value=None) -> Optional[DateWindow]:
        """Build an explicit filter window only when BOTH bounds are given.

        A single bound is treated as no filter at all, not a half-open range.

        Example:
            >>> DateRangeService.resolve_window('2026-01-01', None) is None
            True
        """
        if not start_value or not end_value:
            return None
        start_date = DateRangeService.parse_date(start_value, 'startDate')
        end_date = DateRangeService.parse_date(end_value, 'endDate')
        if end_date < start_date:
            raise ValidationFailed("endDate must not be before startDate")
        return DateWindow(start_date=start_date, end_date=end_date)

    @staticmethod
    def league_weeks(start_date: date, end_date: date) -> int:
        """Number of weeks a league's rest-day budget is spread over.

        Partial weeks round up and one extra week is added, so a 28-day
        league counts as 5 weeks.

        Example:
            >>> DateRangeService.league_weeks(date(2026, 1, 1), date(2026, 1, 29))
            5
        """
        days = (end_date - start_date).days
        return math.ceil(days / 7) + 1
