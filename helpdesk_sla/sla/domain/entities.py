"""
SLA Domain Entities
====================

Pure Python domain entities for SLA calculation.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, Iterator, Optional

from helpdesk_sla.config import Priority, TicketStatus, VALID_PRIORITIES
from helpdesk_sla.core.exceptions import ValidationException
from helpdesk_sla.sla.domain.value_objects import (
    BusinessWindow, Scope, TicketAttributes, Weekday
)


def _recurrence_frequency(rule: Optional[str]) -> Optional[str]:
    """Extract the FREQ component of an RRULE-style string."""
    if not rule:
        return None
    for part in rule.split(";"):
        key, _, value = part.partition("=")
        if key.strip().upper() == "FREQ":
            return value.strip().upper() or None
    return None


def _validate_scope_id(name: str, value: Optional[int]) -> None:
    if value is not None and value <= 0:
        raise ValidationException(f"{name} must be a positive integer")


@dataclass
class Holiday:
    """
    Holiday calendar entry.

    Scoped to a unit, a department, or neither (global). Recurring
    holidays carry an RRULE-style rule; only yearly recurrence is
    expanded, any other frequency never occurs beyond its anchor date.
    """

    id: Optional[int]
    name: str
    date: date
    is_recurring: bool = False
    recurrence_rule: Optional[str] = None
    scope_unit_id: Optional[int] = None
    scope_department_id: Optional[int] = None
    is_active: bool = True
    description: Optional[str] = None

    @property
    def frequency(self) -> Optional[str]:
        return _recurrence_frequency(self.recurrence_rule)

    @property
    def recurs_yearly(self) -> bool:
        return self.is_recurring and self.frequency == "YEARLY"

    @property
    def specificity(self) -> int:
        return Scope.specificity(self.scope_unit_id, self.scope_department_id)

    def applies_to(self, scope: Scope) -> bool:
        """Check whether this holiday is inherited by the given scope."""
        return scope.includes(self.scope_unit_id, self.scope_department_id)

    def occurrence_in(self, year: int) -> Optional[date]:
        """
        Date this holiday falls on in ``year``, if any.

        Yearly holidays are re-anchored onto the year, starting from the
        anchor year; a 29 February anchor is skipped in non-leap years.
        """
        if not self.recurs_yearly:
            return self.date if self.date.year == year else None
        if year < self.date.year:
            return None
        try:
            return self.date.replace(year=year)
        except ValueError:
            return None

    def occurs_on(self, day: date) -> bool:
        """Check whether this (active) holiday falls on ``day``."""
        if not self.is_active:
            return False
        return self.occurrence_in(day.year) == day

    def occurrences_between(self, start: date, end: date) -> Iterator[date]:
        """Yield each date in ``[start, end]`` this holiday falls on."""
        if not self.is_active:
            return
        for year in range(start.year, end.year + 1):
            occurrence = self.occurrence_in(year)
            if occurrence is not None and start <= occurrence <= end:
                yield occurrence

    def validate(self) -> None:
        """
        Validate an administratively created holiday.

        Raises:
            ValidationException: on a missing name, a recurring holiday
                without a rule, or a rule not starting with ``FREQ=``
        """
        if not self.name or not self.name.strip():
            raise ValidationException("Holiday name is required")
        if self.is_recurring and not self.recurrence_rule:
            raise ValidationException("Recurrence rule is required for recurring holidays")
        if self.recurrence_rule is not None:
            rule = self.recurrence_rule.strip()
            if not rule.upper().startswith("FREQ=") or len(rule) <= 5:
                raise ValidationException(
                    "Invalid recurrence rule format",
                    {"recurrence_rule": self.recurrence_rule}
                )
        _validate_scope_id("unitId", self.scope_unit_id)
        _validate_scope_id("departmentId", self.scope_department_id)


@dataclass
class BusinessHoursSchedule:
    """
    Weekly opening hours for a scope.

    Weekdays missing from ``per_weekday`` or mapped to None are closed.
    """

    per_weekday: Dict[Weekday, Optional[BusinessWindow]] = field(default_factory=dict)
    scope_unit_id: Optional[int] = None
    scope_department_id: Optional[int] = None

    @property
    def specificity(self) -> int:
        return Scope.specificity(self.scope_unit_id, self.scope_department_id)

    def applies_to(self, scope: Scope) -> bool:
        return scope.includes(self.scope_unit_id, self.scope_department_id)

    def window_for(self, day: date) -> Optional[BusinessWindow]:
        """Configured window for the weekday of ``day``, None when closed."""
        return self.per_weekday.get(Weekday.of(day))


@dataclass
class SLAPolicy:
    """
    Service-level agreement policy.

    Selector fields (service item, service catalog, department,
    priority) left as None act as wildcards. A policy with all four
    selectors None is the global default.
    """

    id: Optional[int]
    name: str
    response_time_minutes: int
    resolution_time_minutes: int
    service_item_id: Optional[int] = None
    service_catalog_id: Optional[int] = None
    department_id: Optional[int] = None
    priority: Optional[str] = None
    business_hours_only: bool = True
    is_active: bool = True
    created_at: Optional[datetime] = None
    description: Optional[str] = None

    def matches(self, attributes: TicketAttributes) -> bool:
        """Check that every non-null selector equals the ticket's attribute."""
        selectors = (
            (self.service_item_id, attributes.service_item_id),
            (self.service_catalog_id, attributes.service_catalog_id),
            (self.department_id, attributes.department_id),
            (self.priority, attributes.priority),
        )
        return all(wanted is None or wanted == actual for wanted, actual in selectors)

    def validate(self) -> None:
        """
        Validate an administratively created policy.

        Raises:
            ValidationException: on missing or non-positive times, a
                response time not below the resolution time, or an
                unknown priority
        """
        if not self.name or not self.name.strip():
            raise ValidationException("Name, response time, and resolution time are required")
        if self.response_time_minutes <= 0 or self.resolution_time_minutes <= 0:
            raise ValidationException("Response and resolution times must be positive numbers")
        if self.response_time_minutes >= self.resolution_time_minutes:
            raise ValidationException("Resolution time must be greater than response time")
        if self.priority is not None and self.priority not in VALID_PRIORITIES:
            raise ValidationException(f"Unknown priority '{self.priority}'")
        _validate_scope_id("serviceItemId", self.service_item_id)
        _validate_scope_id("serviceCatalogId", self.service_catalog_id)
        _validate_scope_id("departmentId", self.department_id)


@dataclass
class Ticket:
    """
    Snapshot of the ticket fields the SLA engine reads.

    Tickets are owned by the ticketing subsystem; the engine never
    modifies them.
    """

    id: Optional[int]
    created_at: datetime
    priority: Optional[str] = Priority.MEDIUM
    status: str = TicketStatus.OPEN
    service_item_id: Optional[int] = None
    service_catalog_id: Optional[int] = None
    department_id: Optional[int] = None
    unit_id: Optional[int] = None
    title: Optional[str] = None

    @property
    def scope(self) -> Scope:
        return Scope(unit_id=self.unit_id, department_id=self.department_id)

    @property
    def attributes(self) -> TicketAttributes:
        return TicketAttributes(
            priority=self.priority,
            service_item_id=self.service_item_id,
            service_catalog_id=self.service_catalog_id,
            department_id=self.department_id,
        )
