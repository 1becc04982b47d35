"""
SLA Infrastructure Layer
=========================

Infrastructure implementations for the SLA engine:
- Models: SQLAlchemy ORM models
- Repositories: Data access layer
- External: YAML configuration with file watching
"""

from helpdesk_sla.sla.infrastructure.models import (
    HolidayModel,
    BusinessHoursModel,
    SLAPolicyModel,
    TicketModel,
)
from helpdesk_sla.sla.infrastructure.repositories import (
    SQLAlchemyHolidayRepository,
    SQLAlchemyBusinessHoursRepository,
    SQLAlchemySLAPolicyRepository,
    SQLAlchemyTicketRepository,
)
from helpdesk_sla.sla.infrastructure.external import SLAConfigManager

__all__ = [
    "HolidayModel",
    "BusinessHoursModel",
    "SLAPolicyModel",
    "TicketModel",
    "SQLAlchemyHolidayRepository",
    "SQLAlchemyBusinessHoursRepository",
    "SQLAlchemySLAPolicyRepository",
    "SQLAlchemyTicketRepository",
    "SLAConfigManager",
]
