"""
Business Calendar
==================

Holiday and business-hours calendars for SLA calculation.

Both calendars are built from plain in-memory records loaded by the
caller; they perform no I/O and hold no mutable state, so a single
instance can be shared between concurrent requests.
"""

from datetime import date, datetime, timedelta, tzinfo
from typing import Dict, Iterable, List, Optional

from helpdesk_sla.core.exceptions import (
    NoBusinessDayFoundException,
    ScheduleUnresolvableException,
    ValidationException,
)
from helpdesk_sla.sla.domain.entities import BusinessHoursSchedule, Holiday
from helpdesk_sla.sla.domain.value_objects import (
    BusinessWindow,
    HolidayOccurrence,
    Scope,
    Weekday,
    localize,
    parse_date,
)

DEFAULT_MAX_ITERATIONS = 366


class HolidayCalendar:
    """
    Resolves whether a calendar date is a holiday for a scope.

    Holidays are inherited downward: a global holiday applies to every
    department and unit, a department holiday to each of its units.
    """

    def __init__(self, holidays: Iterable[Holiday]):
        self._holidays = tuple(h for h in holidays if h.is_active)

    def __len__(self) -> int:
        return len(self._holidays)

    def holidays_on(self, day: date, scope: Scope) -> List[Holiday]:
        """
        Holiday records falling on ``day`` for ``scope``.

        Ordered unit-specific first, then department, then global.
        """
        matches = [
            h for h in self._holidays
            if h.applies_to(scope) and h.occurs_on(day)
        ]
        return sorted(matches, key=lambda h: h.specificity, reverse=True)

    def is_holiday(self, day: date, scope: Scope) -> bool:
        return any(
            h.applies_to(scope) and h.occurs_on(day)
            for h in self._holidays
        )

    def holidays_in_range(
        self,
        start,
        end,
        scope: Optional[Scope] = None,
        include_recurring: bool = True
    ) -> List[HolidayOccurrence]:
        """
        Expand holidays onto the dates of ``[start, end]``.

        Args:
            start: First date, as a date or ISO-8601 string
            end: Last date (inclusive), as a date or ISO-8601 string
            scope: Only holidays inherited by this scope; all when None
            include_recurring: Whether recurring holidays are expanded

        Returns:
            Occurrences sorted by date, then holiday name

        Raises:
            InvalidDateFormatException: if a bound cannot be parsed
            ValidationException: if start is after end
        """
        start_day = parse_date(start)
        end_day = parse_date(end)
        if start_day > end_day:
            raise ValidationException(
                "Start date must not be after end date",
                {"start_date": start_day.isoformat(), "end_date": end_day.isoformat()}
            )

        occurrences = []
        for holiday in self._holidays:
            if scope is not None and not holiday.applies_to(scope):
                continue
            if holiday.is_recurring and not include_recurring:
                continue
            for day in holiday.occurrences_between(start_day, end_day):
                occurrences.append(HolidayOccurrence(holiday=holiday, date=day))

        return sorted(occurrences, key=lambda o: (o.date, o.holiday.name))


class BusinessHoursCalendar:
    """
    Weekly business hours combined with the holiday calendar.

    The schedule for a scope is the most specific configured schedule
    that applies to it; when none applies, ``default_windows`` is used.
    """

    def __init__(
        self,
        schedules: Iterable[BusinessHoursSchedule],
        holidays: HolidayCalendar,
        tz: tzinfo,
        default_windows: Optional[Dict[Weekday, Optional[BusinessWindow]]] = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS
    ):
        self._schedules = tuple(schedules)
        self._default = (
            BusinessHoursSchedule(per_weekday=dict(default_windows))
            if default_windows is not None else None
        )
        self.holidays = holidays
        self.tz = tz
        self.max_iterations = max_iterations

    def schedule_for(self, scope: Scope) -> BusinessHoursSchedule:
        """
        Pick the schedule governing ``scope``.

        Raises:
            ScheduleUnresolvableException: when neither a scoped nor a
                default schedule is configured
        """
        candidates = [s for s in self._schedules if s.applies_to(scope)]
        if candidates:
            return max(candidates, key=lambda s: s.specificity)
        if self._default is not None:
            return self._default
        raise ScheduleUnresolvableException(
            "No business hours configuration found",
            scope.to_dict()
        )

    def window_for(self, day: date, scope: Scope) -> Optional[BusinessWindow]:
        """Open window on ``day``, None when closed or a holiday."""
        window = self.schedule_for(scope).window_for(day)
        if window is None or self.holidays.is_holiday(day, scope):
            return None
        return window

    def is_business_hours(self, instant: datetime, scope: Scope) -> bool:
        local = localize(instant, self.tz)
        window = self.window_for(local.date(), scope)
        if window is None:
            return False
        opens, closes = window.bounds_on(local.date(), self.tz)
        return opens <= local < closes

    def next_business_start(self, instant: datetime, scope: Scope) -> datetime:
        """
        Earliest open instant at or after ``instant``.

        Returns the instant itself when it is already inside business
        hours and today's opening time when it is before it.

        Raises:
            NoBusinessDayFoundException: if no open day is found within
                ``max_iterations`` days
        """
        local = localize(instant, self.tz)
        day = local.date()

        for _ in range(self.max_iterations):
            window = self.window_for(day, scope)
            if window is not None:
                opens, closes = window.bounds_on(day, self.tz)
                if local < closes:
                    return max(local, opens)
            day += timedelta(days=1)

        raise NoBusinessDayFoundException(
            self.max_iterations,
            {"from": local.isoformat(), **scope.to_dict()}
        )
