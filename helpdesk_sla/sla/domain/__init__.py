"""
SLA Domain Layer
================

Domain layer for the SLA business-hours engine.

Contains:
- Entities: Holiday, BusinessHoursSchedule, SLAPolicy, Ticket
- Value Objects: Scope, BusinessWindow, RemainingTime, SLAConfig
- Domain Services: HolidayCalendar, BusinessHoursCalendar,
  BusinessTimeAdvancer, SLAPolicyResolver, SLAEngine

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from helpdesk_sla.sla.domain.entities import (
    Holiday,
    BusinessHoursSchedule,
    SLAPolicy,
    Ticket,
)
from helpdesk_sla.sla.domain.value_objects import (
    Weekday,
    Scope,
    TicketAttributes,
    BusinessWindow,
    RemainingTime,
    HolidayOccurrence,
    SLATargets,
    BusinessHoursStatus,
    SLAComputation,
    SLAConfig,
    parse_date,
    parse_instant,
    localize,
)
from helpdesk_sla.sla.domain.calendar import HolidayCalendar, BusinessHoursCalendar
from helpdesk_sla.sla.domain.calculator import BusinessTimeAdvancer
from helpdesk_sla.sla.domain.policy_resolver import SLAPolicyResolver, SpecificityTier
from helpdesk_sla.sla.domain.engine import SLAEngine

__all__ = [
    # Entities
    "Holiday",
    "BusinessHoursSchedule",
    "SLAPolicy",
    "Ticket",
    # Value Objects
    "Weekday",
    "Scope",
    "TicketAttributes",
    "BusinessWindow",
    "RemainingTime",
    "HolidayOccurrence",
    "SLATargets",
    "BusinessHoursStatus",
    "SLAComputation",
    "SLAConfig",
    "parse_date",
    "parse_instant",
    "localize",
    # Domain Services
    "HolidayCalendar",
    "BusinessHoursCalendar",
    "BusinessTimeAdvancer",
    "SLAPolicyResolver",
    "SpecificityTier",
    "SLAEngine",
]
