"""
SLA Value Objects
==================

Immutable value objects for SLA domain.

Value objects are defined by their attributes rather than an identity.
They are immutable and can be freely shared.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from enum import IntEnum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from helpdesk_sla.config import Priority, VALID_PRIORITIES
from helpdesk_sla.core.exceptions import (
    InvalidDateFormatException,
    ValidationException,
)

MINUTES_PER_DAY = 24 * 60


class Weekday(IntEnum):
    """Day of week, numbered like ``date.weekday()``."""
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @classmethod
    def of(cls, day: date) -> "Weekday":
        return cls(day.weekday())

    @classmethod
    def from_name(cls, name: str) -> "Weekday":
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValidationException(f"Unknown weekday '{name}'")


@dataclass(frozen=True)
class Scope:
    """
    The (unit, department) pair a holiday, schedule or policy applies to.

    A record scoped at ``(unit_id, department_id)`` applies to this scope
    when each of its non-null ids equals ours, so global records apply
    everywhere and department records apply to every unit of that
    department.
    """
    unit_id: Optional[int] = None
    department_id: Optional[int] = None

    def includes(self, unit_id: Optional[int], department_id: Optional[int]) -> bool:
        """Check whether a record scoped at (unit_id, department_id) applies here."""
        if unit_id is not None and unit_id != self.unit_id:
            return False
        if department_id is not None and department_id != self.department_id:
            return False
        return True

    @staticmethod
    def specificity(unit_id: Optional[int], department_id: Optional[int]) -> int:
        """
        Rank a record's scope: unit+department > unit > department > global.

        Records carrying both ids are ranked above either alone.
        """
        if unit_id is not None and department_id is not None:
            return 3
        if unit_id is not None:
            return 2
        if department_id is not None:
            return 1
        return 0

    def to_dict(self) -> dict:
        return {"unitId": self.unit_id, "departmentId": self.department_id}


@dataclass(frozen=True)
class TicketAttributes:
    """The ticket fields SLA policy selectors are matched against."""
    priority: Optional[str] = None
    service_item_id: Optional[int] = None
    service_catalog_id: Optional[int] = None
    department_id: Optional[int] = None


@dataclass(frozen=True)
class BusinessWindow:
    """Opening window of a single weekday, in minutes since local midnight."""
    start_minute: int
    end_minute: int

    def __post_init__(self):
        if not 0 <= self.start_minute < MINUTES_PER_DAY:
            raise ValidationException(
                f"Business hours start must be within the day, got {self.start_minute}"
            )
        if not 0 < self.end_minute <= MINUTES_PER_DAY:
            raise ValidationException(
                f"Business hours end must be within the day, got {self.end_minute}"
            )
        if self.start_minute >= self.end_minute:
            raise ValidationException(
                "Business hours start must be before end",
                {"start_minute": self.start_minute, "end_minute": self.end_minute}
            )

    @classmethod
    def from_strings(cls, start: str, end: str) -> "BusinessWindow":
        """Build a window from ``HH:MM`` strings (``24:00`` allowed as end)."""
        return cls(parse_minute_of_day(start), parse_minute_of_day(end))

    @property
    def minutes(self) -> int:
        return self.end_minute - self.start_minute

    def bounds_on(self, day: date, tz: tzinfo) -> Tuple[datetime, datetime]:
        """Opening and closing instants of this window on ``day``."""
        midnight = datetime.combine(day, time.min, tzinfo=tz)
        return (
            midnight + timedelta(minutes=self.start_minute),
            midnight + timedelta(minutes=self.end_minute),
        )

    def __str__(self) -> str:
        return f"{format_minute_of_day(self.start_minute)}-{format_minute_of_day(self.end_minute)}"


@dataclass(frozen=True)
class RemainingTime:
    """Business time left before a due date."""
    minutes: float
    hours: int
    is_overdue: bool

    @classmethod
    def evaluate(cls, remaining_minutes: float, now: datetime, due_date: datetime) -> "RemainingTime":
        """
        Classify remaining minutes.

        Overdue requires both an exhausted budget and a due date that has
        actually passed, so zero business minutes left over a weekend is
        not overdue until the due instant itself.
        """
        minutes = max(0.0, remaining_minutes)
        return cls(
            minutes=minutes,
            hours=math.floor(minutes / 60),
            is_overdue=minutes <= 0 and now >= due_date,
        )


@dataclass(frozen=True)
class HolidayOccurrence:
    """A holiday record expanded onto a concrete calendar date."""
    holiday: Any  # Holiday entity
    date: date

    @property
    def is_recurring_instance(self) -> bool:
        return self.holiday.is_recurring and self.holiday.date != self.date


@dataclass(frozen=True)
class SLATargets:
    """Response and resolution budgets, with where they came from."""
    response_time_minutes: int
    resolution_time_minutes: int
    business_hours_only: bool
    source: str
    policy: Any = None  # SLAPolicy entity, None for fallback targets
    response_due_date: Optional[datetime] = None
    resolution_due_date: Optional[datetime] = None


@dataclass(frozen=True)
class BusinessHoursStatus:
    """Whether a scope is open at an instant, and when it next opens."""
    checked_at: datetime
    scope: Scope
    is_business_hours: bool
    next_business_start: datetime


@dataclass(frozen=True)
class SLAComputation:
    """Result of resolving and computing a ticket's SLA."""
    policy: Any  # SLAPolicy entity
    scope: Scope
    due_date: datetime
    response_due_date: datetime
    remaining: RemainingTime


# ========== Parsing helpers ==========

def parse_minute_of_day(value: str) -> int:
    """Parse ``HH:MM`` into minutes since midnight."""
    try:
        hours, minutes = value.strip().split(":")
        hours, minutes = int(hours), int(minutes)
    except (AttributeError, ValueError):
        raise ValidationException(f"Invalid time format '{value}', expected HH:MM")
    if not (0 <= hours <= 24 and 0 <= minutes < 60) or (hours == 24 and minutes):
        raise ValidationException(f"Invalid time of day '{value}'")
    return hours * 60 + minutes


def format_minute_of_day(value: int) -> str:
    return f"{value // 60:02d}:{value % 60:02d}"


def parse_date(value: Any) -> date:
    """
    Coerce a date, datetime or ISO-8601 string into a calendar date.

    Raises:
        InvalidDateFormatException: when the value cannot be parsed
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            pass
    raise InvalidDateFormatException(value)


def parse_instant(value: Any, tz: tzinfo) -> datetime:
    """
    Coerce a datetime or ISO-8601 string into an aware datetime in ``tz``.

    Naive values are read as wall-clock time in ``tz``.

    Raises:
        InvalidDateFormatException: when the value cannot be parsed
    """
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip())
        except ValueError:
            raise InvalidDateFormatException(value)
    if not isinstance(value, datetime):
        raise InvalidDateFormatException(value)
    return localize(value, tz)


def localize(instant: datetime, tz: tzinfo) -> datetime:
    """Express ``instant`` in ``tz``; naive datetimes are taken as local."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=tz)
    return instant.astimezone(tz)


# ========== YAML configuration ==========

class WindowConfig(BaseModel):
    """Opening window as written in the configuration file."""
    start: str = Field(..., description="Opening time, HH:MM")
    end: str = Field(..., description="Closing time, HH:MM")

    def to_window(self) -> BusinessWindow:
        return BusinessWindow.from_strings(self.start, self.end)


class TargetConfig(BaseModel):
    """Fallback response/resolution budget for one priority."""
    response: int = Field(gt=0, description="Response time in minutes")
    resolution: int = Field(gt=0, description="Resolution time in minutes")


DEFAULT_WINDOWS: Dict[str, Optional[Dict[str, str]]] = {
    "monday": {"start": "08:00", "end": "17:00"},
    "tuesday": {"start": "08:00", "end": "17:00"},
    "wednesday": {"start": "08:00", "end": "17:00"},
    "thursday": {"start": "08:00", "end": "17:00"},
    "friday": {"start": "08:00", "end": "17:00"},
    "saturday": None,
    "sunday": None,
}

DEFAULT_FALLBACK_TARGETS: Dict[str, Dict[str, int]] = {
    Priority.URGENT: {"response": 15, "resolution": 120},
    Priority.HIGH: {"response": 60, "resolution": 240},
    Priority.MEDIUM: {"response": 120, "resolution": 480},
    Priority.LOW: {"response": 240, "resolution": 1440},
}


class SLAConfig(BaseModel):
    """
    SLA Configuration loaded from YAML.

    Holds the weekly schedule used when no scope has business hours
    configured in the database, and the per-priority targets callers
    may fall back to when no SLA policy matches a ticket.

    This is a value object - immutable and defined by its attributes.
    """
    default_business_hours: Dict[str, Optional[WindowConfig]] = Field(
        default_factory=lambda: {
            day: WindowConfig(**window) if window else None
            for day, window in DEFAULT_WINDOWS.items()
        },
        description="Opening window per weekday name, null when closed"
    )
    fallback_targets: Dict[str, TargetConfig] = Field(
        default_factory=lambda: {
            priority: TargetConfig(**target)
            for priority, target in DEFAULT_FALLBACK_TARGETS.items()
        },
        description="Fallback SLA targets in minutes by priority"
    )
    fallback_business_hours_only: bool = Field(
        default=False,
        description="Whether fallback targets count business hours only"
    )

    @field_validator("default_business_hours")
    @classmethod
    def validate_business_hours(
        cls, v: Dict[str, Optional[WindowConfig]]
    ) -> Dict[str, Optional[WindowConfig]]:
        """Validate weekday names and windows; unlisted days are closed."""
        normalized = {}
        for day, window in v.items():
            try:
                weekday = Weekday.from_name(day)
                if window is not None:
                    window.to_window()
            except ValidationException as e:
                raise ValueError(e.message)
            normalized[weekday.name.lower()] = window
        for weekday in Weekday:
            normalized.setdefault(weekday.name.lower(), None)
        return normalized

    @field_validator("fallback_targets")
    @classmethod
    def validate_fallback_targets(cls, v: Dict[str, TargetConfig]) -> Dict[str, TargetConfig]:
        """Validate fallback targets; missing priorities get defaults."""
        for priority, target in v.items():
            if priority not in VALID_PRIORITIES:
                raise ValueError(f"unknown priority '{priority}'")
            if target.response >= target.resolution:
                raise ValueError(
                    f"response must be less than resolution for priority '{priority}'"
                )

        for priority in VALID_PRIORITIES:
            if priority not in v:
                v[priority] = TargetConfig(**DEFAULT_FALLBACK_TARGETS[priority])

        return v

    def weekly_windows(self) -> Dict[Weekday, Optional[BusinessWindow]]:
        """Default schedule as weekday -> window (None when closed)."""
        return {
            Weekday.from_name(day): window.to_window() if window else None
            for day, window in self.default_business_hours.items()
        }

    def get_fallback_targets(self, priority: Optional[str]) -> TargetConfig:
        """Fallback targets for a priority, medium when unknown."""
        return self.fallback_targets.get(priority or Priority.MEDIUM,
                                         self.fallback_targets[Priority.MEDIUM])
