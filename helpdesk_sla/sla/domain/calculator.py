"""
Business Time Calculator
=========================

Advances instants through business hours and measures business time
between instants.

Pure functions of their inputs: no I/O, no mutable state.
"""

from datetime import datetime, timedelta

from helpdesk_sla.core.exceptions import ScheduleUnresolvableException, ValidationException
from helpdesk_sla.sla.domain.calendar import BusinessHoursCalendar
from helpdesk_sla.sla.domain.value_objects import RemainingTime, Scope, localize


def _minutes_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 60


class BusinessTimeAdvancer:
    """
    Business-time arithmetic over a ``BusinessHoursCalendar``.

    When ``business_hours_only`` is False every operation degrades to
    plain wall-clock arithmetic.
    """

    def __init__(self, calendar: BusinessHoursCalendar):
        self.calendar = calendar

    @property
    def tz(self):
        return self.calendar.tz

    def add_business_minutes(
        self,
        start: datetime,
        minutes: float,
        scope: Scope,
        business_hours_only: bool = True
    ) -> datetime:
        """
        Advance ``start`` by ``minutes`` of business time.

        A start outside business hours is first moved to the next
        business start without consuming any minutes. Each open block is
        then consumed up to its close before moving on to the next one.

        Args:
            start: Instant to start from (naive values are local time)
            minutes: Duration to add, must not be negative
            scope: Scope whose holidays and schedule apply
            business_hours_only: False for wall-clock arithmetic

        Returns:
            Resulting instant in the operating timezone

        Raises:
            ValidationException: if minutes is negative
            ScheduleUnresolvableException: if the calendar walk exceeds
                the iteration cap
        """
        if minutes < 0:
            raise ValidationException(
                "SLA minutes must not be negative",
                {"minutes": minutes}
            )

        current = localize(start, self.tz)
        if not business_hours_only:
            return current + timedelta(minutes=minutes)

        current = self.calendar.next_business_start(current, scope)
        remaining = float(minutes)

        for _ in range(self.calendar.max_iterations):
            window = self.calendar.window_for(current.date(), scope)
            _, closes = window.bounds_on(current.date(), self.tz)
            available = _minutes_between(current, closes)

            if remaining <= available:
                return current + timedelta(minutes=remaining)

            remaining -= available
            current = self.calendar.next_business_start(closes, scope)

        raise ScheduleUnresolvableException(
            f"Business time walk exceeded {self.calendar.max_iterations} iterations",
            {"start": localize(start, self.tz).isoformat(), "minutes": minutes}
        )

    def elapsed_business_minutes(
        self,
        start: datetime,
        end: datetime,
        scope: Scope,
        business_hours_only: bool = True
    ) -> float:
        """
        Business minutes between ``start`` and ``end``.

        Sums the overlap of ``[start, end)`` with each open window.
        Returns 0 when ``start`` is not before ``end``.

        Raises:
            ValidationException: if the span covers more calendar days
                than the calendar's iteration cap
        """
        start = localize(start, self.tz)
        end = localize(end, self.tz)
        if start >= end:
            return 0.0
        if not business_hours_only:
            return _minutes_between(start, end)

        span_days = (end.date() - start.date()).days
        if span_days > self.calendar.max_iterations:
            raise ValidationException(
                f"Business time span exceeds {self.calendar.max_iterations} days",
                {"start": start.isoformat(), "end": end.isoformat()}
            )

        total = 0.0
        day = start.date()
        while day <= end.date():
            window = self.calendar.window_for(day, scope)
            if window is not None:
                opens, closes = window.bounds_on(day, self.tz)
                lower, upper = max(opens, start), min(closes, end)
                if upper > lower:
                    total += _minutes_between(lower, upper)
            day += timedelta(days=1)

        return total

    def remaining_time(
        self,
        now: datetime,
        due_date: datetime,
        scope: Scope,
        business_hours_only: bool = True
    ) -> RemainingTime:
        """Business time left until ``due_date`` and whether it is overdue."""
        now = localize(now, self.tz)
        due_date = localize(due_date, self.tz)
        remaining = self.elapsed_business_minutes(now, due_date, scope, business_hours_only)
        return RemainingTime.evaluate(remaining, now, due_date)
