"""
SLA Application Layer
======================

Application layer for the SLA engine.

Contains:
- Services: Orchestrate business logic and coordinate with repositories
- DTOs: Data transfer objects for API serialization

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from helpdesk_sla.sla.application.dto import (
    CalculateDueDateRequest,
    CalculateRemainingRequest,
    SLAPolicyCreateRequest,
    SLAPolicyUpdateRequest,
    HolidayEntryRequest,
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
from helpdesk_sla.sla.application.services import (
    SLAService,
    HolidayService,
    IHolidayRepository,
    IBusinessHoursRepository,
    ISLAPolicyRepository,
    ITicketRepository,
    ISLAConfigProvider,
)

__all__ = [
    # DTOs
    "CalculateDueDateRequest",
    "CalculateRemainingRequest",
    "SLAPolicyCreateRequest",
    "SLAPolicyUpdateRequest",
    "HolidayEntryRequest",
    "HolidayCreateRequest",
    "HolidayBulkCreateRequest",
    "HolidayUpdateRequest",
    "ScopeResponse",
    "DueDateResponse",
    "BusinessHoursStatusResponse",
    "RemainingTimeResponse",
    "SLAPolicyResponse",
    "RemainingSLAResponse",
    "ApplicablePolicyResponse",
    "SLATargetsResponse",
    "SLAPolicyListResponse",
    "PolicyDeleteResponse",
    "HolidayResponse",
    "HolidayOccurrenceResponse",
    "HolidayListResponse",
    "HolidayCheckResponse",
    "HolidayTemplateResponse",
    "HolidayBulkResponse",
    "HolidayDeleteResponse",
    # Services
    "SLAService",
    "HolidayService",
    # Repository Interfaces
    "IHolidayRepository",
    "IBusinessHoursRepository",
    "ISLAPolicyRepository",
    "ITicketRepository",
    "ISLAConfigProvider",
]
