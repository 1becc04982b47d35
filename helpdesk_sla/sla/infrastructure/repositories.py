"""
SLA Infrastructure Repositories
=================================

Concrete implementations of repository interfaces using SQLAlchemy.

This layer contains the data access logic - how we store and retrieve
entities from the database. Rows are mapped to domain entities here so
nothing above this layer sees an ORM object.
"""

from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from helpdesk_sla.config import TERMINAL_STATUSES
from helpdesk_sla.core import RepositoryException, ValidationException
from helpdesk_sla.sla.application.services import (
    IBusinessHoursRepository,
    IHolidayRepository,
    ISLAPolicyRepository,
    ITicketRepository,
)
from helpdesk_sla.sla.domain import (
    BusinessHoursSchedule,
    BusinessWindow,
    Holiday,
    SLAPolicy,
    Ticket,
    Weekday,
)
from helpdesk_sla.sla.infrastructure.models import (
    BusinessHoursModel,
    HolidayModel,
    SLAPolicyModel,
    TicketModel,
)
from helpdesk_sla.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


def _scope_filter(column, value: Optional[int]):
    return column.is_(None) if value is None else column == value


# ========== Row mapping ==========

def holiday_from_model(model: HolidayModel) -> Holiday:
    return Holiday(
        id=model.id,
        name=model.name,
        description=model.description,
        date=model.holiday_date,
        is_recurring=model.is_recurring,
        recurrence_rule=model.recurrence_rule,
        scope_unit_id=model.unit_id,
        scope_department_id=model.department_id,
        is_active=model.is_active,
    )


def policy_from_model(model: SLAPolicyModel) -> SLAPolicy:
    return SLAPolicy(
        id=model.id,
        name=model.name,
        description=model.description,
        service_item_id=model.service_item_id,
        service_catalog_id=model.service_catalog_id,
        department_id=model.department_id,
        priority=model.priority,
        response_time_minutes=model.response_time_minutes,
        resolution_time_minutes=model.resolution_time_minutes,
        business_hours_only=model.business_hours_only,
        is_active=model.is_active,
        created_at=model.created_at,
    )


def ticket_from_model(model: TicketModel) -> Ticket:
    return Ticket(
        id=model.id,
        title=model.title,
        created_at=model.created_at,
        priority=model.priority,
        status=model.status,
        service_item_id=model.service_item_id,
        service_catalog_id=model.service_catalog_id,
        department_id=model.department_id,
        unit_id=model.unit_id,
    )


def schedules_from_models(models: List[BusinessHoursModel]) -> List[BusinessHoursSchedule]:
    """
    Group per-weekday rows into one schedule per scope.

    Rows with an invalid window are skipped and logged so that one bad
    row does not take the whole calendar down.
    """
    grouped: Dict[Tuple[Optional[int], Optional[int]], Dict[Weekday, BusinessWindow]] = defaultdict(dict)

    for model in models:
        key = (model.unit_id, model.department_id)
        try:
            grouped[key][Weekday(model.day_of_week)] = BusinessWindow.from_strings(
                model.start_time, model.end_time
            )
        except (ValueError, ValidationException) as e:
            logger.error(
                "Invalid business hours row skipped",
                extra={"row_id": model.id, "error": str(e)}
            )

    return [
        BusinessHoursSchedule(
            per_weekday=windows,
            scope_unit_id=unit_id,
            scope_department_id=department_id,
        )
        for (unit_id, department_id), windows in grouped.items()
    ]


# ========== Repositories ==========

class SQLAlchemyHolidayRepository(IHolidayRepository):
    """
    SQLAlchemy implementation of holiday repository.

    Handles persistence of Holiday entities using async SQLAlchemy.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def list_active(self) -> List[Holiday]:
        stmt = (
            select(HolidayModel)
            .where(HolidayModel.is_active.is_(True))
            .order_by(HolidayModel.holiday_date.asc(), HolidayModel.name.asc())
        )
        result = await self._session.execute(stmt)
        return [holiday_from_model(m) for m in result.scalars().all()]

    async def find_active(
        self,
        day: date,
        unit_id: Optional[int],
        department_id: Optional[int]
    ) -> Optional[Holiday]:
        stmt = select(HolidayModel).where(
            HolidayModel.holiday_date == day,
            HolidayModel.is_active.is_(True),
            _scope_filter(HolidayModel.unit_id, unit_id),
            _scope_filter(HolidayModel.department_id, department_id),
        ).limit(1)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return holiday_from_model(model) if model else None

    async def add(self, holiday: Holiday) -> Holiday:
        model = HolidayModel(
            name=holiday.name,
            description=holiday.description,
            holiday_date=holiday.date,
            is_recurring=holiday.is_recurring,
            recurrence_rule=holiday.recurrence_rule,
            unit_id=holiday.scope_unit_id,
            department_id=holiday.scope_department_id,
            is_active=holiday.is_active,
        )

        try:
            self._session.add(model)
            await self._session.flush()
        except SQLAlchemyError as e:
            raise RepositoryException("Failed to create holiday", {"error": str(e)})

        return holiday_from_model(model)

    async def _get_model(self, holiday_id: int) -> Optional[HolidayModel]:
        result = await self._session.execute(
            select(HolidayModel).where(HolidayModel.id == holiday_id)
        )
        return result.scalar_one_or_none()

    async def get_by_id(self, holiday_id: int) -> Optional[Holiday]:
        model = await self._get_model(holiday_id)
        return holiday_from_model(model) if model else None

    async def update(self, holiday: Holiday) -> Holiday:
        model = await self._get_model(holiday.id)
        if model is None:
            raise RepositoryException("Holiday disappeared during update", {"holiday_id": holiday.id})

        model.name = holiday.name
        model.description = holiday.description
        model.holiday_date = holiday.date
        model.is_recurring = holiday.is_recurring
        model.recurrence_rule = holiday.recurrence_rule
        model.is_active = holiday.is_active

        try:
            await self._session.flush()
        except SQLAlchemyError as e:
            raise RepositoryException("Failed to update holiday", {"error": str(e)})

        return holiday_from_model(model)

    async def deactivate(self, holiday_id: int) -> None:
        await self._session.execute(
            update(HolidayModel)
            .where(HolidayModel.id == holiday_id)
            .values(is_active=False)
        )
        await self._session.flush()


class SQLAlchemyBusinessHoursRepository(IBusinessHoursRepository):
    """SQLAlchemy implementation of business-hours repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def list_schedules(self) -> List[BusinessHoursSchedule]:
        stmt = select(BusinessHoursModel).where(BusinessHoursModel.is_active.is_(True))
        result = await self._session.execute(stmt)
        return schedules_from_models(list(result.scalars().all()))


class SQLAlchemySLAPolicyRepository(ISLAPolicyRepository):
    """
    SQLAlchemy implementation of SLA policy repository.

    Handles persistence of SLAPolicy entities.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def _get_model(self, policy_id: int) -> Optional[SLAPolicyModel]:
        result = await self._session.execute(
            select(SLAPolicyModel).where(SLAPolicyModel.id == policy_id)
        )
        return result.scalar_one_or_none()

    async def list(self, include_inactive: bool = False) -> List[SLAPolicy]:
        stmt = select(SLAPolicyModel)
        if not include_inactive:
            stmt = stmt.where(SLAPolicyModel.is_active.is_(True))
        stmt = stmt.order_by(SLAPolicyModel.created_at.desc(), SLAPolicyModel.id.desc())

        result = await self._session.execute(stmt)
        return [policy_from_model(m) for m in result.scalars().all()]

    async def get_by_id(self, policy_id: int) -> Optional[SLAPolicy]:
        model = await self._get_model(policy_id)
        return policy_from_model(model) if model else None

    async def get_active_by_name(self, name: str) -> Optional[SLAPolicy]:
        stmt = select(SLAPolicyModel).where(
            SLAPolicyModel.name == name,
            SLAPolicyModel.is_active.is_(True),
        ).limit(1)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return policy_from_model(model) if model else None

    async def add(self, policy: SLAPolicy) -> SLAPolicy:
        model = SLAPolicyModel(
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
        )

        try:
            self._session.add(model)
            await self._session.flush()
        except SQLAlchemyError as e:
            raise RepositoryException("Failed to create SLA policy", {"error": str(e)})

        return policy_from_model(model)

    async def update(self, policy: SLAPolicy) -> SLAPolicy:
        model = await self._get_model(policy.id)
        if model is None:
            raise RepositoryException("SLA policy disappeared during update", {"policy_id": policy.id})

        for attr in (
            "name", "description", "service_item_id", "service_catalog_id",
            "department_id", "priority", "response_time_minutes",
            "resolution_time_minutes", "business_hours_only", "is_active",
        ):
            setattr(model, attr, getattr(policy, attr))

        try:
            await self._session.flush()
        except SQLAlchemyError as e:
            raise RepositoryException("Failed to update SLA policy", {"error": str(e)})

        return policy_from_model(model)

    async def deactivate(self, policy_id: int) -> None:
        await self._session.execute(
            update(SLAPolicyModel)
            .where(SLAPolicyModel.id == policy_id)
            .values(is_active=False)
        )
        await self._session.flush()

    async def delete(self, policy_id: int) -> None:
        await self._session.execute(
            delete(SLAPolicyModel).where(SLAPolicyModel.id == policy_id)
        )
        await self._session.flush()


class SQLAlchemyTicketRepository(ITicketRepository):
    """Read-only access to the ticket fields the SLA engine needs."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, ticket_id: int) -> Optional[Ticket]:
        result = await self._session.execute(
            select(TicketModel).where(TicketModel.id == ticket_id)
        )
        model = result.scalar_one_or_none()
        return ticket_from_model(model) if model else None

    async def count_open(self) -> int:
        stmt = select(func.count(TicketModel.id)).where(
            TicketModel.status.not_in(TERMINAL_STATUSES)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one()
