"""
SLA Controllers (API Routes)
=============================

FastAPI routes for SLA calculation, SLA policies and the holiday calendar.

Controllers are thin - they delegate to application services.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk_sla.infrastructure.database import get_session
from helpdesk_sla.sla.application import (
    SLAService,
    HolidayService,
    IHolidayRepository,
    IBusinessHoursRepository,
    ISLAPolicyRepository,
    ITicketRepository,
    ISLAConfigProvider,
    CalculateDueDateRequest,
    CalculateRemainingRequest,
    SLAPolicyCreateRequest,
    SLAPolicyUpdateRequest,
    HolidayCreateRequest,
    HolidayBulkCreateRequest,
    HolidayUpdateRequest,
    ScopeResponse,
    DueDateResponse,
    BusinessHoursStatusResponse,
    RemainingTimeResponse,
    SLAPolicyResponse,
    RemainingSLAResponse,
    ApplicablePolicyResponse,
    SLATargetsResponse,
    SLAPolicyListResponse,
    PolicyDeleteResponse,
    HolidayResponse,
    HolidayOccurrenceResponse,
    HolidayListResponse,
    HolidayCheckResponse,
    HolidayTemplateResponse,
    HolidayBulkResponse,
    HolidayDeleteResponse,
)
from helpdesk_sla.sla.domain import SLAPolicyResolver, Scope, parse_date
from helpdesk_sla.sla.infrastructure import (
    SQLAlchemyHolidayRepository,
    SQLAlchemyBusinessHoursRepository,
    SQLAlchemySLAPolicyRepository,
    SQLAlchemyTicketRepository,
)
from helpdesk_sla.shared.infrastructure.logging import get_context_logger

sla_router = APIRouter(prefix="/sla", tags=["SLA"])
holiday_router = APIRouter(prefix="/holidays", tags=["Holidays"])


# ========== Example payloads for Swagger ==========

CALCULATE_EXAMPLE = {
    "startDate": "2024-06-07T16:50:00+08:00",
    "slaMinutes": 20,
    "departmentId": 5,
    "businessHoursOnly": True
}

REMAINING_RESPONSE_EXAMPLE = {
    "ticketId": 42,
    "policy": {
        "id": 3,
        "name": "IT Department - High",
        "departmentId": 5,
        "priority": "high",
        "responseTimeMinutes": 60,
        "resolutionTimeMinutes": 240,
        "businessHoursOnly": True,
        "isActive": True
    },
    "dueDate": "2024-06-10T12:00:00+08:00",
    "responseDueDate": "2024-06-10T09:00:00+08:00",
    "remainingMinutes": {"minutes": 150.0, "hours": 2, "isOverdue": False}
}


# ========== Dependencies ==========

async def get_holiday_repository(
    session: AsyncSession = Depends(get_session)
) -> IHolidayRepository:
    return SQLAlchemyHolidayRepository(session)


async def get_business_hours_repository(
    session: AsyncSession = Depends(get_session)
) -> IBusinessHoursRepository:
    return SQLAlchemyBusinessHoursRepository(session)


async def get_policy_repository(
    session: AsyncSession = Depends(get_session)
) -> ISLAPolicyRepository:
    return SQLAlchemySLAPolicyRepository(session)


async def get_ticket_repository(
    session: AsyncSession = Depends(get_session)
) -> ITicketRepository:
    return SQLAlchemyTicketRepository(session)


def get_config_provider(request: Request) -> ISLAConfigProvider:
    """SLA configuration manager created at startup."""
    return request.app.state.sla_config_manager


async def get_sla_service(
    holiday_repo: IHolidayRepository = Depends(get_holiday_repository),
    business_hours_repo: IBusinessHoursRepository = Depends(get_business_hours_repository),
    policy_repo: ISLAPolicyRepository = Depends(get_policy_repository),
    ticket_repo: ITicketRepository = Depends(get_ticket_repository),
    config_provider: ISLAConfigProvider = Depends(get_config_provider),
) -> SLAService:
    """Get SLA service instance."""
    return SLAService(holiday_repo, business_hours_repo, policy_repo, ticket_repo, config_provider)


async def get_holiday_service(
    holiday_repo: IHolidayRepository = Depends(get_holiday_repository),
) -> HolidayService:
    """Get holiday service instance."""
    return HolidayService(holiday_repo)


def _logger(request: Request):
    return get_context_logger(__name__, getattr(request.state, "correlation_id", None))


# ========== SLA Route Handlers ==========

@sla_router.post(
    "/calculate",
    response_model=DueDateResponse,
    summary="Calculate a due date",
    description="""
    Add `slaMinutes` to `startDate`.

    With `businessHoursOnly` (default) the clock only runs inside the
    business hours of the given unit/department, skipping nights,
    closed weekdays and holidays. Otherwise plain wall-clock minutes
    are added.
    """,
    responses={400: {"description": "Missing or malformed startDate / slaMinutes"}},
    openapi_extra={"requestBody": {"content": {"application/json": {"example": CALCULATE_EXAMPLE}}}}
)
async def calculate_due_date(
    body: CalculateDueDateRequest,
    service: SLAService = Depends(get_sla_service)
):
    scope = Scope(unit_id=body.unit_id, department_id=body.department_id)
    due_date = await service.calculate_due_date(
        body.start_date, body.sla_minutes, scope, body.business_hours_only
    )
    return DueDateResponse(
        due_date=due_date,
        scope=ScopeResponse.from_domain(scope),
        business_hours_only=body.business_hours_only,
    )


@sla_router.get(
    "/business-hours-status",
    response_model=BusinessHoursStatusResponse,
    summary="Check business hours",
)
async def business_hours_status(
    department_id: Optional[int] = Query(None, alias="departmentId"),
    unit_id: Optional[int] = Query(None, alias="unitId"),
    check_date: Optional[str] = Query(None, alias="checkDate", description="ISO-8601, defaults to now"),
    service: SLAService = Depends(get_sla_service)
):
    result = await service.business_hours_status(
        Scope(unit_id=unit_id, department_id=department_id), check_date
    )
    return BusinessHoursStatusResponse(
        is_business_hours=result.is_business_hours,
        next_business_hour_start=result.next_business_start,
        check_date=result.checked_at,
        scope=ScopeResponse.from_domain(result.scope),
    )


@sla_router.post(
    "/calculate-remaining",
    response_model=RemainingSLAResponse,
    summary="Remaining SLA time for a ticket",
    responses={
        200: {"content": {"application/json": {"example": REMAINING_RESPONSE_EXAMPLE}}},
        404: {"description": "Ticket or applicable SLA policy not found"},
    }
)
async def calculate_remaining(
    body: CalculateRemainingRequest,
    request: Request,
    service: SLAService = Depends(get_sla_service)
):
    computation = await service.calculate_remaining(body.ticket_id, body.current_date)

    _logger(request).info(
        "Remaining SLA time calculated",
        extra={"ticket_id": body.ticket_id, "is_overdue": computation.remaining.is_overdue}
    )

    return RemainingSLAResponse(
        ticket_id=body.ticket_id,
        policy=SLAPolicyResponse.from_domain(computation.policy),
        due_date=computation.due_date,
        response_due_date=computation.response_due_date,
        remaining_minutes=RemainingTimeResponse.from_domain(computation.remaining),
    )


@sla_router.get(
    "/policies/applicable/{ticket_id}",
    response_model=ApplicablePolicyResponse,
    summary="SLA policy governing a ticket",
    responses={404: {"description": "Ticket or applicable SLA policy not found"}}
)
async def applicable_policy(
    ticket_id: int,
    service: SLAService = Depends(get_sla_service)
):
    _, policy = await service.applicable_policy(ticket_id)
    return ApplicablePolicyResponse(
        ticket_id=ticket_id,
        policy=SLAPolicyResponse.from_domain(policy),
        specificity_tier=int(SLAPolicyResolver.tier_of(policy)),
    )


@sla_router.get(
    "/tickets/{ticket_id}/targets",
    response_model=SLATargetsResponse,
    summary="SLA targets for a ticket",
    description="Targets of the governing policy, or the configured per-priority fallback when none applies.",
    responses={404: {"description": "Ticket not found"}}
)
async def ticket_targets(
    ticket_id: int,
    service: SLAService = Depends(get_sla_service)
):
    targets = await service.ticket_targets(ticket_id)
    return SLATargetsResponse(
        ticket_id=ticket_id,
        response_time_minutes=targets.response_time_minutes,
        resolution_time_minutes=targets.resolution_time_minutes,
        business_hours_only=targets.business_hours_only,
        source=targets.source,
        policy=SLAPolicyResponse.from_domain(targets.policy) if targets.policy else None,
        response_due_date=targets.response_due_date,
        resolution_due_date=targets.resolution_due_date,
    )


@sla_router.get(
    "/policies",
    response_model=SLAPolicyListResponse,
    summary="List SLA policies",
)
async def list_policies(
    include_inactive: bool = Query(False, alias="includeInactive"),
    service: SLAService = Depends(get_sla_service)
):
    policies = await service.list_policies(include_inactive)
    return SLAPolicyListResponse(
        policies=[SLAPolicyResponse.from_domain(p) for p in policies],
        total=len(policies),
    )


@sla_router.post(
    "/policies",
    response_model=SLAPolicyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an SLA policy",
    responses={
        400: {"description": "Invalid policy"},
        409: {"description": "An active policy with this name exists"},
    }
)
async def create_policy(
    body: SLAPolicyCreateRequest,
    request: Request,
    service: SLAService = Depends(get_sla_service)
):
    policy = await service.create_policy(body.to_entity())
    _logger(request).info("SLA policy created via API", extra={"policy_id": policy.id})
    return SLAPolicyResponse.from_domain(policy)


@sla_router.get(
    "/policies/{policy_id}",
    response_model=SLAPolicyResponse,
    summary="Get an SLA policy",
    responses={404: {"description": "SLA policy not found"}}
)
async def get_policy(
    policy_id: int,
    service: SLAService = Depends(get_sla_service)
):
    return SLAPolicyResponse.from_domain(await service.get_policy(policy_id))


@sla_router.put(
    "/policies/{policy_id}",
    response_model=SLAPolicyResponse,
    summary="Update an SLA policy",
    description="Only the fields present in the body are changed.",
    responses={
        400: {"description": "Invalid policy"},
        404: {"description": "SLA policy not found"},
        409: {"description": "An active policy with this name exists"},
    }
)
async def update_policy(
    policy_id: int,
    body: SLAPolicyUpdateRequest,
    request: Request,
    service: SLAService = Depends(get_sla_service)
):
    policy = await service.update_policy(policy_id, body.changes())
    _logger(request).info("SLA policy updated via API", extra={"policy_id": policy_id})
    return SLAPolicyResponse.from_domain(policy)


@sla_router.delete(
    "/policies/{policy_id}",
    response_model=PolicyDeleteResponse,
    summary="Delete or deactivate an SLA policy",
    description="Policies are only deactivated while any ticket is still open.",
    responses={404: {"description": "SLA policy not found"}}
)
async def delete_policy(
    policy_id: int,
    service: SLAService = Depends(get_sla_service)
):
    deactivated = await service.delete_policy(policy_id)
    message = (
        "SLA policy deactivated (tickets still open)" if deactivated
        else "SLA policy deleted"
    )
    return PolicyDeleteResponse(policy_id=policy_id, deactivated=deactivated, message=message)


# ========== Holiday Route Handlers ==========

@holiday_router.get(
    "",
    response_model=HolidayListResponse,
    summary="Holidays in a date range",
    description="""
    Recurring holidays are expanded onto each year of the range.
    With `unitId` and/or `departmentId`, only holidays that apply to
    that scope (including inherited department and global ones) are listed.
    """,
    responses={400: {"description": "Malformed date or start after end"}}
)
async def list_holidays(
    start_date: str = Query(..., alias="startDate"),
    end_date: str = Query(..., alias="endDate"),
    department_id: Optional[int] = Query(None, alias="departmentId"),
    unit_id: Optional[int] = Query(None, alias="unitId"),
    include_recurring: bool = Query(True, alias="includeRecurring"),
    service: HolidayService = Depends(get_holiday_service)
):
    occurrences = await service.list_holidays(
        start_date, end_date, unit_id, department_id, include_recurring
    )
    return HolidayListResponse(
        start_date=parse_date(start_date),
        end_date=parse_date(end_date),
        holidays=[HolidayOccurrenceResponse.from_domain(o) for o in occurrences],
        total=len(occurrences),
    )


@holiday_router.get(
    "/check/{day}",
    response_model=HolidayCheckResponse,
    summary="Check whether a date is a holiday",
)
async def check_holiday(
    day: str,
    department_id: Optional[int] = Query(None, alias="departmentId"),
    unit_id: Optional[int] = Query(None, alias="unitId"),
    service: HolidayService = Depends(get_holiday_service)
):
    checked, holidays = await service.check_date(day, unit_id, department_id)
    return HolidayCheckResponse(
        date=checked,
        is_holiday=bool(holidays),
        scope=ScopeResponse(unit_id=unit_id, department_id=department_id),
        holidays=[HolidayResponse.from_domain(h) for h in holidays],
    )


@holiday_router.post(
    "",
    response_model=HolidayResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a holiday",
    responses={
        400: {"description": "Invalid holiday"},
        409: {"description": "Holiday already exists for this date and scope"},
    }
)
async def create_holiday(
    body: HolidayCreateRequest,
    request: Request,
    service: HolidayService = Depends(get_holiday_service)
):
    holiday = await service.create_holiday(body.to_entity(body.unit_id, body.department_id))
    _logger(request).info("Holiday created via API", extra={"holiday_id": holiday.id})
    return HolidayResponse.from_domain(holiday)


@holiday_router.post(
    "/bulk",
    response_model=HolidayBulkResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create several holidays",
    description="""
    All entries share the top-level `unitId`/`departmentId` scope.
    Entries whose date already holds an active holiday in that scope are
    skipped and counted in `skippedCount`.
    """,
    responses={400: {"description": "Empty list or invalid entry"}}
)
async def create_holidays(
    body: HolidayBulkCreateRequest,
    request: Request,
    service: HolidayService = Depends(get_holiday_service)
):
    created, skipped = await service.create_holidays([
        entry.to_entity(body.unit_id, body.department_id) for entry in body.holidays
    ])
    _logger(request).info(
        "Holidays imported via API",
        extra={"created": len(created), "skipped": skipped}
    )
    return HolidayBulkResponse(
        created=[HolidayResponse.from_domain(h) for h in created],
        created_count=len(created),
        skipped_count=skipped,
    )


@holiday_router.get(
    "/{holiday_id}",
    response_model=HolidayResponse,
    summary="Get a holiday",
    responses={404: {"description": "Holiday not found"}}
)
async def get_holiday(
    holiday_id: int,
    service: HolidayService = Depends(get_holiday_service)
):
    return HolidayResponse.from_domain(await service.get_holiday(holiday_id))


@holiday_router.put(
    "/{holiday_id}",
    response_model=HolidayResponse,
    summary="Update a holiday",
    description="Only the fields present in the body are changed. The scope is fixed.",
    responses={
        400: {"description": "Invalid holiday"},
        404: {"description": "Holiday not found"},
        409: {"description": "Holiday already exists for this date and scope"},
    }
)
async def update_holiday(
    holiday_id: int,
    body: HolidayUpdateRequest,
    service: HolidayService = Depends(get_holiday_service)
):
    return HolidayResponse.from_domain(
        await service.update_holiday(holiday_id, body.changes())
    )


@holiday_router.delete(
    "/{holiday_id}",
    response_model=HolidayDeleteResponse,
    summary="Deactivate a holiday",
    responses={404: {"description": "Holiday not found"}}
)
async def delete_holiday(
    holiday_id: int,
    service: HolidayService = Depends(get_holiday_service)
):
    await service.delete_holiday(holiday_id)
    return HolidayDeleteResponse(
        holiday_id=holiday_id,
        deactivated=True,
        message="Holiday deactivated",
    )


@holiday_router.get(
    "/templates/{year}",
    response_model=HolidayTemplateResponse,
    summary="National holiday template for a year",
    responses={400: {"description": "Year outside 2020-2030"}}
)
async def holiday_template(year: int):
    return HolidayTemplateResponse(
        year=year,
        holidays=[HolidayResponse.from_domain(h) for h in HolidayService.template(year)],
    )
