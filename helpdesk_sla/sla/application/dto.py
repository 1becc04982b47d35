"""
SLA Application DTOs
=====================

Data Transfer Objects for SLA API layer.

These Pydantic models handle serialization/deserialization and validation
for API requests and responses. Field names are snake_case in Python and
camelCase on the wire.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from helpdesk_sla.sla.domain import (
    Holiday,
    HolidayOccurrence,
    RemainingTime,
    SLAPolicy,
    Scope,
    parse_date,
)


# ========== Type Aliases for Literals ==========
PriorityStr = Literal["low", "medium", "high", "urgent"]
SLASourceStr = Literal["policy", "fallback"]

# Columns that cannot be cleared by sending null in an update
REQUIRED_POLICY_FIELDS = (
    "name", "response_time_minutes", "resolution_time_minutes",
    "business_hours_only", "is_active",
)


class CamelModel(BaseModel):
    """Base model serialised with camelCase aliases."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ========== Request DTOs ==========

class CalculateDueDateRequest(CamelModel):
    """Request model for an ad-hoc due date calculation."""
    start_date: str = Field(..., min_length=1, description="Start instant, ISO-8601")
    sla_minutes: int = Field(..., ge=0, description="Minutes to add")
    department_id: Optional[int] = Field(None, gt=0, description="Department scope")
    unit_id: Optional[int] = Field(None, gt=0, description="Unit scope")
    business_hours_only: bool = Field(default=True, description="Count business hours only")


class CalculateRemainingRequest(CamelModel):
    """Request model for a ticket's remaining SLA time."""
    ticket_id: int = Field(..., gt=0, description="Ticket id")
    current_date: Optional[str] = Field(None, description="Reference instant, defaults to now")


class SLAPolicyCreateRequest(CamelModel):
    """Request model for creating an SLA policy."""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    service_item_id: Optional[int] = None
    service_catalog_id: Optional[int] = None
    department_id: Optional[int] = None
    priority: Optional[PriorityStr] = None
    response_time_minutes: int = Field(..., description="Minutes until first response")
    resolution_time_minutes: int = Field(..., description="Minutes until resolution")
    business_hours_only: bool = True

    def to_entity(self) -> SLAPolicy:
        return SLAPolicy(
            id=None,
            name=self.name.strip(),
            description=self.description,
            service_item_id=self.service_item_id,
            service_catalog_id=self.service_catalog_id,
            department_id=self.department_id,
            priority=self.priority,
            response_time_minutes=self.response_time_minutes,
            resolution_time_minutes=self.resolution_time_minutes,
            business_hours_only=self.business_hours_only,
        )


class SLAPolicyUpdateRequest(CamelModel):
    """
    Request model for a partial SLA policy update.

    Only fields present in the body are changed; selectors may be set
    to null explicitly to turn them into wildcards.
    """
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    service_item_id: Optional[int] = None
    service_catalog_id: Optional[int] = None
    department_id: Optional[int] = None
    priority: Optional[PriorityStr] = None
    response_time_minutes: Optional[int] = None
    resolution_time_minutes: Optional[int] = None
    business_hours_only: Optional[bool] = None
    is_active: Optional[bool] = None

    def changes(self) -> Dict[str, Any]:
        changes = self.model_dump(exclude_unset=True)
        for required in REQUIRED_POLICY_FIELDS:
            if changes.get(required, 0) is None:
                del changes[required]
        if "name" in changes:
            changes["name"] = changes["name"].strip()
        return changes


class HolidayEntryRequest(CamelModel):
    """One holiday as submitted by an administrator."""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    date: str = Field(..., description="Holiday date, YYYY-MM-DD")
    is_recurring: bool = False
    recurrence_rule: Optional[str] = Field(None, description="e.g. FREQ=YEARLY")

    @field_validator("recurrence_rule")
    @classmethod
    def blank_rule_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    def to_entity(
        self,
        unit_id: Optional[int] = None,
        department_id: Optional[int] = None
    ) -> Holiday:
        """
        Raises:
            InvalidDateFormatException: if the date cannot be parsed
        """
        return Holiday(
            id=None,
            name=self.name.strip(),
            description=self.description,
            date=parse_date(self.date),
            is_recurring=self.is_recurring,
            recurrence_rule=self.recurrence_rule,
            scope_unit_id=unit_id,
            scope_department_id=department_id,
        )


class HolidayCreateRequest(HolidayEntryRequest):
    """Request model for creating a holiday."""
    unit_id: Optional[int] = None
    department_id: Optional[int] = None


class HolidayBulkCreateRequest(CamelModel):
    """Request model for importing several holidays into one scope."""
    holidays: List[HolidayEntryRequest] = Field(..., min_length=1)
    unit_id: Optional[int] = None
    department_id: Optional[int] = None


class HolidayUpdateRequest(CamelModel):
    """Request model for a partial holiday update. The scope is fixed."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    date: Optional[str] = Field(None, description="Holiday date, YYYY-MM-DD")
    is_recurring: Optional[bool] = None
    recurrence_rule: Optional[str] = None
    is_active: Optional[bool] = None

    def changes(self) -> Dict[str, Any]:
        """
        Raises:
            InvalidDateFormatException: if the date cannot be parsed
        """
        changes = {
            key: value for key, value in self.model_dump(exclude_unset=True).items()
            if value is not None or key in ("description", "recurrence_rule")
        }
        if "name" in changes:
            changes["name"] = changes["name"].strip()
        if "date" in changes:
            changes["date"] = parse_date(changes["date"])
        if changes.get("recurrence_rule") is not None and not changes["recurrence_rule"].strip():
            changes["recurrence_rule"] = None
        return changes


# ========== Response DTOs ==========

class ScopeResponse(CamelModel):
    unit_id: Optional[int] = None
    department_id: Optional[int] = None

    @classmethod
    def from_domain(cls, scope: Scope) -> "ScopeResponse":
        return cls(unit_id=scope.unit_id, department_id=scope.department_id)


class DueDateResponse(CamelModel):
    """Response model for an ad-hoc due date calculation."""
    due_date: datetime
    scope: ScopeResponse
    business_hours_only: bool


class BusinessHoursStatusResponse(CamelModel):
    """Response model for business hours status."""
    is_business_hours: bool
    next_business_hour_start: datetime
    check_date: datetime
    scope: ScopeResponse


class RemainingTimeResponse(CamelModel):
    minutes: float
    hours: int
    is_overdue: bool

    @classmethod
    def from_domain(cls, remaining: RemainingTime) -> "RemainingTimeResponse":
        return cls(
            minutes=remaining.minutes,
            hours=remaining.hours,
            is_overdue=remaining.is_overdue,
        )


class SLAPolicyResponse(CamelModel):
    """Response model for an SLA policy."""
    id: int
    name: str
    description: Optional[str] = None
    service_item_id: Optional[int] = None
    service_catalog_id: Optional[int] = None
    department_id: Optional[int] = None
    priority: Optional[PriorityStr] = None
    response_time_minutes: int
    resolution_time_minutes: int
    business_hours_only: bool
    is_active: bool
    created_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, policy: SLAPolicy) -> "SLAPolicyResponse":
        return cls(
            id=policy.id,
            name=policy.name,
            description=policy.description,
            service_item_id=policy.service_item_id,
            service_catalog_id=policy.service_catalog_id,
            department_id=policy.department_id,
            priority=policy.priority,
            response_time_minutes=policy.response_time_minutes,
            resolution_time_minutes=policy.resolution_time_minutes,
            business_hours_only=policy.business_hours_only,
            is_active=policy.is_active,
            created_at=policy.created_at,
        )


class RemainingSLAResponse(CamelModel):
    """Response model for a ticket's remaining SLA time."""
    ticket_id: int
    policy: SLAPolicyResponse
    due_date: datetime
    response_due_date: datetime
    remaining_minutes: RemainingTimeResponse


class ApplicablePolicyResponse(CamelModel):
    """Response model for the policy governing a ticket."""
    ticket_id: int
    policy: SLAPolicyResponse
    specificity_tier: int = Field(..., description="1 (most specific) to 6 (global)")


class SLATargetsResponse(CamelModel):
    """Response model for a ticket's SLA targets."""
    ticket_id: int
    response_time_minutes: int
    resolution_time_minutes: int
    business_hours_only: bool
    source: SLASourceStr
    policy: Optional[SLAPolicyResponse] = None
    response_due_date: Optional[datetime] = None
    resolution_due_date: Optional[datetime] = None


class SLAPolicyListResponse(CamelModel):
    policies: List[SLAPolicyResponse]
    total: int


class PolicyDeleteResponse(CamelModel):
    policy_id: int
    deactivated: bool
    message: str


class HolidayResponse(CamelModel):
    """Response model for a holiday record."""
    id: Optional[int] = None
    name: str
    description: Optional[str] = None
    date: date
    is_recurring: bool
    recurrence_rule: Optional[str] = None
    unit_id: Optional[int] = None
    department_id: Optional[int] = None
    is_active: bool = True

    @classmethod
    def from_domain(cls, holiday: Holiday) -> "HolidayResponse":
        return cls(
            id=holiday.id,
            name=holiday.name,
            description=holiday.description,
            date=holiday.date,
            is_recurring=holiday.is_recurring,
            recurrence_rule=holiday.recurrence_rule,
            unit_id=holiday.scope_unit_id,
            department_id=holiday.scope_department_id,
            is_active=holiday.is_active,
        )


class HolidayOccurrenceResponse(CamelModel):
    """A holiday expanded onto a concrete date."""
    date: date
    is_recurring_instance: bool
    holiday: HolidayResponse

    @classmethod
    def from_domain(cls, occurrence: HolidayOccurrence) -> "HolidayOccurrenceResponse":
        return cls(
            date=occurrence.date,
            is_recurring_instance=occurrence.is_recurring_instance,
            holiday=HolidayResponse.from_domain(occurrence.holiday),
        )


class HolidayListResponse(CamelModel):
    start_date: date
    end_date: date
    holidays: List[HolidayOccurrenceResponse]
    total: int


class HolidayCheckResponse(CamelModel):
    date: date
    is_holiday: bool
    scope: ScopeResponse
    holidays: List[HolidayResponse] = Field(
        default_factory=list,
        description="Matching holidays, most specific scope first"
    )


class HolidayTemplateResponse(CamelModel):
    year: int
    holidays: List[HolidayResponse]


class HolidayBulkResponse(CamelModel):
    created: List[HolidayResponse]
    created_count: int
    skipped_count: int = Field(..., description="Entries skipped as duplicates")


class HolidayDeleteResponse(CamelModel):
    holiday_id: int
    deactivated: bool
    message: str
