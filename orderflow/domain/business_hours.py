"""Business-hours clock.

Converts wall-clock instants into working time. A business day runs from
09:00 to 17:00, Monday to Friday; weekend days and time outside the window
contribute nothing.

All arithmetic happens on the wall clock of the reference timezone, so an
8-hour business day stays 8 hours on daylight-saving changeover days.
"""

from datetime import date, datetime, time, timedelta, tzinfo

BUSINESS_START_HOUR = 9
BUSINESS_END_HOUR = 17
WORKING_WEEKDAYS = frozenset({0, 1, 2, 3, 4})  # Monday..Friday

_ZERO = timedelta()
_ONE_HOUR = timedelta(hours=1)


class BusinessHoursClock:
    """Working-hours arithmetic for a fixed daily business window.

    The clock is stateless and safe to share between threads and tasks.

    Args:
        start_hour: Hour the business window opens (inclusive).
        end_hour: Hour the business window closes (exclusive).
        tz: Reference timezone. Aware datetimes are converted to it before
            any computation and results are returned in it. Naive datetimes
            are taken to already be reference-local wall time. When None,
            aware datetimes are used in their own timezone.
        working_weekdays: ``date.weekday()`` numbers that are business days.
    """

    def __init__(
        self,
        start_hour: int = BUSINESS_START_HOUR,
        end_hour: int = BUSINESS_END_HOUR,
        tz: tzinfo | None = None,
        working_weekdays: frozenset[int] = WORKING_WEEKDAYS,
    ) -> None:
        if not 0 <= start_hour < end_hour <= 23:
            raise ValueError(
                f"Business window must satisfy 0 <= start < end <= 23, got {start_hour}-{end_hour}"
            )
        if not working_weekdays:
            raise ValueError("At least one working weekday is required")
        self.start_hour = start_hour
        self.end_hour = end_hour
        self.tz = tz
        self.working_weekdays = working_weekdays
        self._opens = time(start_hour)
        self._closes = time(end_hour)

    def __repr__(self) -> str:
        return (
            f"BusinessHoursClock({self.start_hour:02d}:00-{self.end_hour:02d}:00, "
            f"tz={self.tz!r})"
        )

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def is_business_day(self, day: date) -> bool:
        """Check whether a calendar day has a business window."""
        return day.weekday() in self.working_weekdays

    def is_business_time(self, instant: datetime) -> bool:
        """Check whether an instant falls inside a business window."""
        local = self._localize(instant)
        return self.is_business_day(local.date()) and self._opens <= local.time() < self._closes

    def normalize(self, instant: datetime) -> datetime:
        """Move an instant forward to the nearest valid business instant.

        Instants on a non-business day or at/after closing move to the next
        business day's opening; instants before opening on a business day
        snap to that day's opening. Business instants are returned as is.

        Args:
            instant: Instant to normalise.

        Returns:
            The earliest business instant not before ``instant``.
        """
        local = self._localize(instant)
        if not self.is_business_day(local.date()) or local.time() >= self._closes:
            return self._next_opening(local.date(), local.tzinfo)
        if local.time() < self._opens:
            return local.replace(hour=self.start_hour, minute=0, second=0, microsecond=0)
        return local

    # -------------------------------------------------------------------------
    # Arithmetic
    # -------------------------------------------------------------------------

    def elapsed_working_hours(self, start: datetime, end: datetime) -> float:
        """Working hours between two instants.

        Walks every calendar day from ``start``'s date to ``end``'s date
        inclusive and sums the overlap of each business window with
        ``[start, end]``.

        Args:
            start: Beginning of the interval.
            end: End of the interval.

        Returns:
            Fractional working hours; 0.0 when ``start >= end``.

        Raises:
            ValueError: If one instant is naive and the other aware while
                the clock has no reference timezone to read the naive one in.
        """
        if (start.tzinfo is None) != (end.tzinfo is None):
            if self.tz is None:
                raise ValueError(
                    "Cannot mix naive and timezone-aware instants without a reference timezone"
                )
            # Naive instants are reference-local wall time
            if start.tzinfo is None:
                start = start.replace(tzinfo=self.tz)
            else:
                end = end.replace(tzinfo=self.tz)
        start = self._localize(start)
        end = self._localize(end)
        if start.tzinfo is not None and end.tzinfo not in (None, start.tzinfo):
            end = end.astimezone(start.tzinfo)
        if start >= end:
            return 0.0

        total = _ZERO
        day = start.date()
        while day <= end.date():
            if self.is_business_day(day):
                opens, closes = self._window(day, start.tzinfo)
                slice_start = max(start, opens)
                slice_end = min(end, closes)
                if slice_end > slice_start:
                    total += slice_end - slice_start
            day += timedelta(days=1)
        return total / _ONE_HOUR

    def add_working_hours(self, start: datetime, hours: float) -> datetime:
        """Instant reached after ``hours`` of business time from ``start``.

        ``start`` is normalised first, then each business day contributes
        at most the time left until closing. Non-positive ``hours`` return
        the normalised start.

        Args:
            start: Instant to count from.
            hours: Working hours to add.

        Returns:
            The resulting instant in the reference timezone.
        """
        cursor = self.normalize(start)
        remaining = timedelta(hours=hours) if hours > 0 else _ZERO
        while remaining > _ZERO:
            _, closes = self._window(cursor.date(), cursor.tzinfo)
            available = closes - cursor
            if available >= remaining:
                return cursor + remaining
            remaining -= available
            cursor = self._next_opening(cursor.date(), cursor.tzinfo)
        return cursor

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _localize(self, instant: datetime) -> datetime:
        if self.tz is None or instant.tzinfo is None:
            return instant
        return instant.astimezone(self.tz)

    def _window(self, day: date, tz: tzinfo | None) -> tuple[datetime, datetime]:
        return (
            datetime.combine(day, self._opens, tzinfo=tz),
            datetime.combine(day, self._closes, tzinfo=tz),
        )

    def _next_opening(self, day: date, tz: tzinfo | None) -> datetime:
        day += timedelta(days=1)
        while not self.is_business_day(day):
            day += timedelta(days=1)
        return datetime.combine(day, self._opens, tzinfo=tz)


_default_clock = BusinessHoursClock()


def elapsed_working_hours(start: datetime, end: datetime) -> float:
    """Working hours between two instants on the default 09:00-17:00 clock."""
    return _default_clock.elapsed_working_hours(start, end)


def add_working_hours(start: datetime, hours: float) -> datetime:
    """Add working hours on the default 09:00-17:00 clock."""
    return _default_clock.add_working_hours(start, hours)
