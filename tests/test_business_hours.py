# tests/test_business_hours.py
from datetime import date, datetime

import pytest

from helpdesk_sla.core.exceptions import (
    NoBusinessDayFoundException,
    ScheduleUnresolvableException,
    ValidationException,
)
from helpdesk_sla.sla.domain import (
    BusinessHoursCalendar,
    BusinessHoursSchedule,
    BusinessWindow,
    Holiday,
    HolidayCalendar,
    Scope,
    Weekday,
)
from tests.fakes import TZ, at


def test_window_parsing():
    window = BusinessWindow.from_strings("08:30", "17:00")
    assert window.minutes == 510
    assert str(window) == "08:30-17:00"
    assert BusinessWindow.from_strings("00:00", "24:00").minutes == 1440


@pytest.mark.parametrize("start,end", [("17:00", "08:00"), ("25:00", "26:00"), ("8am", "5pm")])
def test_invalid_windows_rejected(start, end):
    with pytest.raises(ValidationException):
        BusinessWindow.from_strings(start, end)


def test_is_business_hours_half_open(make_calendar):
    calendar = make_calendar()
    scope = Scope()
    assert calendar.is_business_hours(at(2024, 6, 3, 8, 0), scope)
    assert calendar.is_business_hours(at(2024, 6, 3, 16, 59), scope)
    assert not calendar.is_business_hours(at(2024, 6, 3, 17, 0), scope)
    assert not calendar.is_business_hours(at(2024, 6, 3, 7, 59), scope)
    assert not calendar.is_business_hours(at(2024, 6, 8, 10, 0), scope)


def test_holiday_closes_the_day(make_calendar):
    calendar = make_calendar(holidays=[Holiday(id=1, name="Closed", date=date(2024, 6, 3))])
    assert not calendar.is_business_hours(at(2024, 6, 3, 10, 0), Scope())
    assert calendar.next_business_start(at(2024, 6, 3, 10, 0), Scope()) == at(2024, 6, 4, 8, 0)


def test_naive_instants_are_local_time(make_calendar):
    calendar = make_calendar()
    assert calendar.is_business_hours(datetime(2024, 6, 3, 9, 0), Scope())


def test_next_business_start(make_calendar):
    calendar = make_calendar()
    scope = Scope()
    assert calendar.next_business_start(at(2024, 6, 3, 6, 0), scope) == at(2024, 6, 3, 8, 0)
    assert calendar.next_business_start(at(2024, 6, 3, 10, 15), scope) == at(2024, 6, 3, 10, 15)
    assert calendar.next_business_start(at(2024, 6, 3, 17, 0), scope) == at(2024, 6, 4, 8, 0)
    assert calendar.next_business_start(at(2024, 6, 7, 18, 0), scope) == at(2024, 6, 10, 8, 0)


def test_next_business_start_is_idempotent(make_calendar):
    calendar = make_calendar()
    first = calendar.next_business_start(at(2024, 6, 8, 12, 0), Scope())
    assert calendar.next_business_start(first, Scope()) == first
    assert calendar.is_business_hours(first, Scope())


def test_always_closed_calendar_hits_iteration_cap(make_calendar):
    closed = {weekday: None for weekday in Weekday}
    calendar = make_calendar(windows=closed, max_iterations=30)
    with pytest.raises(NoBusinessDayFoundException) as exc_info:
        calendar.next_business_start(at(2024, 6, 3, 9, 0), Scope())
    assert exc_info.value.max_iterations == 30


def test_most_specific_schedule_wins(make_calendar):
    department = BusinessHoursSchedule(
        per_weekday={Weekday.MONDAY: BusinessWindow.from_strings("07:00", "15:00")},
        scope_department_id=5,
    )
    unit = BusinessHoursSchedule(
        per_weekday={Weekday.MONDAY: BusinessWindow.from_strings("10:00", "12:00")},
        scope_unit_id=9,
        scope_department_id=5,
    )
    calendar = make_calendar(schedules=[department, unit])

    assert calendar.schedule_for(Scope(unit_id=9, department_id=5)) is unit
    assert calendar.schedule_for(Scope(unit_id=8, department_id=5)) is department
    assert calendar.schedule_for(Scope(department_id=6)).window_for(date(2024, 6, 3)) == \
        BusinessWindow.from_strings("08:00", "17:00")


def test_scoped_schedule_closes_unlisted_weekdays(make_calendar):
    schedule = BusinessHoursSchedule(
        per_weekday={Weekday.SATURDAY: BusinessWindow.from_strings("09:00", "13:00")},
        scope_department_id=5,
    )
    calendar = make_calendar(schedules=[schedule])
    scope = Scope(department_id=5)
    assert not calendar.is_business_hours(at(2024, 6, 3, 10, 0), scope)
    assert calendar.is_business_hours(at(2024, 6, 8, 10, 0), scope)


def test_no_schedule_at_all_is_unresolvable():
    calendar = BusinessHoursCalendar(schedules=[], holidays=HolidayCalendar([]), tz=TZ)
    with pytest.raises(ScheduleUnresolvableException):
        calendar.is_business_hours(at(2024, 6, 3, 9, 0), Scope())
