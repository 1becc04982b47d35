"""
SLA Application Services
=========================

Application services orchestrate business logic and coordinate between
domain entities and repositories.

Following SOLID principles:
- Single Responsibility: Each service has one clear purpose
- Dependency Inversion: Depend on abstractions (repositories), not concrete implementations

Each call loads holidays, schedules and policies through the
repositories and hands plain values to the pure domain engine.
"""

from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from helpdesk_sla.config import SLASource, YEARLY_RECURRENCE, settings
from helpdesk_sla.core.exceptions import (
    ConflictException,
    NoApplicablePolicyException,
    ResourceNotFoundException,
    TicketNotFoundException,
    ValidationException,
)
from helpdesk_sla.sla.domain import (
    BusinessHoursCalendar,
    BusinessHoursSchedule,
    BusinessHoursStatus,
    BusinessTimeAdvancer,
    Holiday,
    HolidayCalendar,
    HolidayOccurrence,
    SLAComputation,
    SLAConfig,
    SLAEngine,
    SLAPolicy,
    SLAPolicyResolver,
    SLATargets,
    Scope,
    Ticket,
    localize,
    parse_date,
    parse_instant,
)
from helpdesk_sla.shared.infrastructure.logging import get_logger, log_latency

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class IHolidayRepository(ABC):
    """Interface for holiday calendar data access."""

    @abstractmethod
    async def list_active(self) -> List[Holiday]:
        """List every active holiday, recurring or not."""

    @abstractmethod
    async def find_active(
        self,
        day: date,
        unit_id: Optional[int],
        department_id: Optional[int]
    ) -> Optional[Holiday]:
        """Find an active holiday anchored on ``day`` with exactly this scope."""

    @abstractmethod
    async def get_by_id(self, holiday_id: int) -> Optional[Holiday]:
        """Get holiday by id, active or not."""

    @abstractmethod
    async def add(self, holiday: Holiday) -> Holiday:
        """Persist a new holiday and return it with its id."""

    @abstractmethod
    async def update(self, holiday: Holiday) -> Holiday:
        """Persist changes to an existing holiday."""

    @abstractmethod
    async def deactivate(self, holiday_id: int) -> None:
        """Mark holiday inactive."""


class IBusinessHoursRepository(ABC):
    """Interface for business-hours schedule access."""

    @abstractmethod
    async def list_schedules(self) -> List[BusinessHoursSchedule]:
        """List every configured schedule, one per scope."""


class ISLAPolicyRepository(ABC):
    """Interface for SLA policy data access."""

    @abstractmethod
    async def list(self, include_inactive: bool = False) -> List[SLAPolicy]:
        """List policies, active ones only by default."""

    @abstractmethod
    async def get_by_id(self, policy_id: int) -> Optional[SLAPolicy]:
        """Get policy by id."""

    @abstractmethod
    async def get_active_by_name(self, name: str) -> Optional[SLAPolicy]:
        """Get the active policy with this name."""

    @abstractmethod
    async def add(self, policy: SLAPolicy) -> SLAPolicy:
        """Persist a new policy and return it with its id."""

    @abstractmethod
    async def update(self, policy: SLAPolicy) -> SLAPolicy:
        """Persist changes to an existing policy."""

    @abstractmethod
    async def deactivate(self, policy_id: int) -> None:
        """Mark policy inactive."""

    @abstractmethod
    async def delete(self, policy_id: int) -> None:
        """Remove policy."""


class ITicketRepository(ABC):
    """Interface for the read-only ticket snapshot the SLA engine needs."""

    @abstractmethod
    async def get_by_id(self, ticket_id: int) -> Optional[Ticket]:
        """Get ticket by id."""

    @abstractmethod
    async def count_open(self) -> int:
        """Count tickets whose status is not terminal."""


class ISLAConfigProvider(ABC):
    """Interface for SLA configuration access."""

    @abstractmethod
    def get_config(self) -> SLAConfig:
        """Get current SLA configuration."""


# ========== Calendar assembly ==========

async def build_calendar(
    holiday_repository: IHolidayRepository,
    business_hours_repository: IBusinessHoursRepository,
    config_provider: ISLAConfigProvider,
    tz=None,
    max_iterations: Optional[int] = None
) -> BusinessHoursCalendar:
    """Load holidays and schedules into an in-memory business calendar."""
    holidays = await holiday_repository.list_active()
    schedules = await business_hours_repository.list_schedules()
    config = config_provider.get_config()

    return BusinessHoursCalendar(
        schedules=schedules,
        holidays=HolidayCalendar(holidays),
        tz=tz or settings.tzinfo,
        default_windows=config.weekly_windows(),
        max_iterations=max_iterations or settings.max_schedule_iterations,
    )


# ========== Application Services ==========

class SLAService:
    """
    Service for due-date calculation and SLA policy administration.

    Coordinates between domain logic and data access.
    """

    def __init__(
        self,
        holiday_repository: IHolidayRepository,
        business_hours_repository: IBusinessHoursRepository,
        policy_repository: ISLAPolicyRepository,
        ticket_repository: ITicketRepository,
        config_provider: ISLAConfigProvider,
        tz=None,
        max_iterations: Optional[int] = None
    ):
        self._holiday_repo = holiday_repository
        self._business_hours_repo = business_hours_repository
        self._policy_repo = policy_repository
        self._ticket_repo = ticket_repository
        self._config_provider = config_provider
        self._tz = tz or settings.tzinfo
        self._max_iterations = max_iterations

    async def _calendar(self) -> BusinessHoursCalendar:
        return await build_calendar(
            self._holiday_repo,
            self._business_hours_repo,
            self._config_provider,
            self._tz,
            self._max_iterations,
        )

    async def _engine(self) -> SLAEngine:
        calendar = await self._calendar()
        policies = await self._policy_repo.list()
        return SLAEngine(calendar, policies)

    async def _get_ticket(self, ticket_id: int) -> Ticket:
        ticket = await self._ticket_repo.get_by_id(ticket_id)
        if ticket is None:
            raise TicketNotFoundException(ticket_id)
        return ticket

    def _now(self, value: Any = None) -> datetime:
        if value is None:
            return datetime.now(self._tz)
        return parse_instant(value, self._tz)

    # ---------- Calculation ----------

    async def calculate_due_date(
        self,
        start_date: Any,
        sla_minutes: int,
        scope: Scope,
        business_hours_only: bool = True
    ) -> datetime:
        """
        Add SLA minutes to a start instant.

        Args:
            start_date: ISO-8601 string or datetime
            sla_minutes: Minutes to add
            scope: Unit/department whose calendar applies
            business_hours_only: Count only business time

        Returns:
            Due date in the operating timezone

        Raises:
            InvalidDateFormatException: if start_date cannot be parsed
        """
        start = parse_instant(start_date, self._tz)
        calendar = await self._calendar()
        advancer = BusinessTimeAdvancer(calendar)

        with log_latency(logger, "due_date_calculation", sla_minutes=sla_minutes):
            due_date = advancer.add_business_minutes(
                start, sla_minutes, scope, business_hours_only
            )

        return due_date

    async def business_hours_status(
        self,
        scope: Scope,
        check_date: Any = None
    ) -> BusinessHoursStatus:
        """Check whether a scope is open at an instant (now by default)."""
        instant = self._now(check_date)
        calendar = await self._calendar()

        return BusinessHoursStatus(
            checked_at=instant,
            scope=scope,
            is_business_hours=calendar.is_business_hours(instant, scope),
            next_business_start=calendar.next_business_start(instant, scope),
        )

    async def calculate_remaining(
        self,
        ticket_id: int,
        current_date: Any = None
    ) -> SLAComputation:
        """
        Resolve a ticket's policy and compute its remaining business time.

        Raises:
            TicketNotFoundException: if the ticket does not exist
            NoApplicablePolicyException: if no active policy matches
            ValidationException: if the reference instant lies further
                from the due date than the calendar walk allows
        """
        ticket = await self._get_ticket(ticket_id)
        now = self._now(current_date)
        engine = await self._engine()

        with log_latency(logger, "remaining_time_calculation", ticket_id=ticket_id):
            computation = engine.compute_due_date(ticket, now)

        logger.info(
            "SLA computed",
            extra={
                "ticket_id": ticket_id,
                "policy_id": computation.policy.id,
                "due_date": computation.due_date.isoformat(),
                "is_overdue": computation.remaining.is_overdue,
            }
        )
        return computation

    async def applicable_policy(self, ticket_id: int) -> Tuple[Ticket, SLAPolicy]:
        """
        Raises:
            TicketNotFoundException: if the ticket does not exist
            NoApplicablePolicyException: if no active policy matches
        """
        ticket = await self._get_ticket(ticket_id)
        policies = await self._policy_repo.list()
        policy = SLAPolicyResolver().resolve(ticket.attributes, policies)
        if policy is None:
            raise NoApplicablePolicyException(ticket_id)
        return ticket, policy

    async def ticket_targets(self, ticket_id: int) -> SLATargets:
        """
        SLA targets for a ticket, falling back to configured defaults.

        When no policy applies, the per-priority fallback targets from the
        SLA configuration are used instead of failing.
        """
        ticket = await self._get_ticket(ticket_id)
        policies = await self._policy_repo.list()
        calendar = await self._calendar()
        engine = SLAEngine(calendar, policies)

        policy = engine.resolver.resolve(ticket.attributes, policies)
        if policy is not None:
            response, resolution = policy.response_time_minutes, policy.resolution_time_minutes
            business_hours_only = policy.business_hours_only
            source = SLASource.POLICY
        else:
            config = self._config_provider.get_config()
            fallback = config.get_fallback_targets(ticket.priority)
            response, resolution = fallback.response, fallback.resolution
            business_hours_only = config.fallback_business_hours_only
            source = SLASource.FALLBACK
            logger.warning(
                "No SLA policy matched, using fallback targets",
                extra={"ticket_id": ticket_id, "priority": ticket.priority}
            )

        created_at = localize(ticket.created_at, self._tz)
        return SLATargets(
            response_time_minutes=response,
            resolution_time_minutes=resolution,
            business_hours_only=business_hours_only,
            source=source,
            policy=policy,
            response_due_date=engine.advancer.add_business_minutes(
                created_at, response, ticket.scope, business_hours_only
            ),
            resolution_due_date=engine.advancer.add_business_minutes(
                created_at, resolution, ticket.scope, business_hours_only
            ),
        )

    # ---------- Policy administration ----------

    async def list_policies(self, include_inactive: bool = False) -> List[SLAPolicy]:
        return await self._policy_repo.list(include_inactive=include_inactive)

    async def get_policy(self, policy_id: int) -> SLAPolicy:
        """
        Raises:
            ResourceNotFoundException: if the policy does not exist
        """
        policy = await self._policy_repo.get_by_id(policy_id)
        if policy is None:
            raise ResourceNotFoundException("SLA policy", policy_id)
        return policy

    async def _ensure_unique_name(self, policy: SLAPolicy) -> None:
        existing = await self._policy_repo.get_active_by_name(policy.name)
        if existing is not None and existing.id != policy.id:
            raise ConflictException(
                "SLA policy with this name already exists",
                {"name": policy.name, "existing_id": existing.id}
            )

    async def create_policy(self, policy: SLAPolicy) -> SLAPolicy:
        """
        Validate and persist a new SLA policy.

        Raises:
            ValidationException: if the policy is invalid
            ConflictException: if an active policy has the same name
        """
        policy.validate()
        await self._ensure_unique_name(policy)

        created = await self._policy_repo.add(policy)
        logger.info("SLA policy created", extra={"policy_id": created.id, "name": created.name})
        return created

    async def update_policy(self, policy_id: int, changes: Dict[str, Any]) -> SLAPolicy:
        """
        Apply a partial update to a policy.

        Args:
            policy_id: Policy to update
            changes: Field name -> new value, only for fields being changed

        Raises:
            ResourceNotFoundException: if the policy does not exist
            ValidationException: if the updated policy is invalid
            ConflictException: if another active policy has the new name
        """
        current = await self.get_policy(policy_id)
        updated = replace(current, **changes)
        updated.validate()
        if updated.is_active:
            await self._ensure_unique_name(updated)

        saved = await self._policy_repo.update(updated)
        logger.info(
            "SLA policy updated",
            extra={"policy_id": policy_id, "fields": sorted(changes)}
        )
        return saved

    async def delete_policy(self, policy_id: int) -> bool:
        """
        Delete a policy, or deactivate it while tickets are still open.

        Returns:
            True when the policy was deactivated, False when deleted

        Raises:
            ResourceNotFoundException: if the policy does not exist
        """
        await self.get_policy(policy_id)

        open_tickets = await self._ticket_repo.count_open()
        if open_tickets > 0:
            await self._policy_repo.deactivate(policy_id)
            logger.info(
                "SLA policy deactivated",
                extra={"policy_id": policy_id, "open_tickets": open_tickets}
            )
            return True

        await self._policy_repo.delete(policy_id)
        logger.info("SLA policy deleted", extra={"policy_id": policy_id})
        return False


# Fixed-date national holidays offered as a template
NATIONAL_HOLIDAYS = [
    ("New Year's Day", 1, 1),
    ("Labour Day", 5, 1),
    ("Pancasila Day", 6, 1),
    ("Independence Day", 8, 17),
    ("Christmas Day", 12, 25),
]
TEMPLATE_YEARS = (2020, 2030)


class HolidayService:
    """Service for holiday calendar queries and administration."""

    def __init__(self, holiday_repository: IHolidayRepository):
        self._holiday_repo = holiday_repository

    async def _calendar(self) -> HolidayCalendar:
        return HolidayCalendar(await self._holiday_repo.list_active())

    async def list_holidays(
        self,
        start_date: Any,
        end_date: Any,
        unit_id: Optional[int] = None,
        department_id: Optional[int] = None,
        include_recurring: bool = True
    ) -> List[HolidayOccurrence]:
        """
        Holidays falling within a date range.

        Without unit or department every holiday is listed; with either,
        only holidays inherited by that scope.
        """
        scope = None
        if unit_id is not None or department_id is not None:
            scope = Scope(unit_id=unit_id, department_id=department_id)

        calendar = await self._calendar()
        return calendar.holidays_in_range(start_date, end_date, scope, include_recurring)

    async def check_date(
        self,
        day: Any,
        unit_id: Optional[int] = None,
        department_id: Optional[int] = None
    ) -> Tuple[date, List[Holiday]]:
        """Holidays on a date for a scope, most specific first."""
        day = parse_date(day)
        calendar = await self._calendar()
        return day, calendar.holidays_on(day, Scope(unit_id=unit_id, department_id=department_id))

    async def create_holiday(self, holiday: Holiday) -> Holiday:
        """
        Validate and persist a holiday.

        Raises:
            ValidationException: if the holiday is invalid
            ConflictException: if an active holiday exists on the same
                date with the same scope
        """
        self._prepare(holiday)
        await self._ensure_date_free(holiday)

        created = await self._holiday_repo.add(holiday)
        logger.info(
            "Holiday created",
            extra={"holiday_id": created.id, "date": created.date.isoformat()}
        )
        return created

    async def create_holidays(self, holidays: List[Holiday]) -> Tuple[List[Holiday], int]:
        """
        Create several holidays at once, e.g. from a national template.

        Every entry is validated before anything is written. Entries that
        clash with an existing active holiday are skipped.

        Returns:
            The created holidays and the number skipped

        Raises:
            ValidationException: if any entry is invalid
        """
        if not holidays:
            raise ValidationException("Holidays list is required")
        for holiday in holidays:
            self._prepare(holiday)

        created = []
        for holiday in holidays:
            existing = await self._holiday_repo.find_active(
                holiday.date, holiday.scope_unit_id, holiday.scope_department_id
            )
            if existing is None:
                created.append(await self._holiday_repo.add(holiday))

        skipped = len(holidays) - len(created)
        logger.info("Holidays imported", extra={"created": len(created), "skipped": skipped})
        return created, skipped

    async def get_holiday(self, holiday_id: int) -> Holiday:
        """
        Raises:
            ResourceNotFoundException: if the holiday does not exist
        """
        holiday = await self._holiday_repo.get_by_id(holiday_id)
        if holiday is None:
            raise ResourceNotFoundException("Holiday", holiday_id)
        return holiday

    async def update_holiday(self, holiday_id: int, changes: Dict[str, Any]) -> Holiday:
        """
        Apply a partial update to a holiday. Its scope cannot change.

        Raises:
            ResourceNotFoundException: if the holiday does not exist
            ValidationException: if the updated holiday is invalid
            ConflictException: if another active holiday has the same
                date and scope
        """
        current = await self.get_holiday(holiday_id)
        updated = replace(current, **changes)
        self._prepare(updated)
        if updated.is_active:
            await self._ensure_date_free(updated)

        saved = await self._holiday_repo.update(updated)
        logger.info(
            "Holiday updated",
            extra={"holiday_id": holiday_id, "fields": sorted(changes)}
        )
        return saved

    async def delete_holiday(self, holiday_id: int) -> None:
        """
        Deactivate a holiday; it no longer affects any calendar.

        Raises:
            ResourceNotFoundException: if the holiday does not exist
        """
        await self.get_holiday(holiday_id)
        await self._holiday_repo.deactivate(holiday_id)
        logger.info("Holiday deactivated", extra={"holiday_id": holiday_id})

    @staticmethod
    def _prepare(holiday: Holiday) -> None:
        holiday.validate()
        if not holiday.is_recurring:
            holiday.recurrence_rule = None

    async def _ensure_date_free(self, holiday: Holiday) -> None:
        existing = await self._holiday_repo.find_active(
            holiday.date, holiday.scope_unit_id, holiday.scope_department_id
        )
        if existing is not None and existing.id != holiday.id:
            raise ConflictException(
                "Holiday already exists for this date and scope",
                {"date": holiday.date.isoformat(), "existing_id": existing.id}
            )

    @staticmethod
    def template(year: int) -> List[Holiday]:
        """
        National holiday template for a year (not persisted).

        Raises:
            ValidationException: if year is outside the supported range
        """
        low, high = TEMPLATE_YEARS
        if not low <= year <= high:
            raise ValidationException(
                f"Invalid year. Must be between {low} and {high}",
                {"year": year}
            )

        return [
            Holiday(
                id=None,
                name=name,
                date=date(year, month, day),
                is_recurring=True,
                recurrence_rule=YEARLY_RECURRENCE,
            )
            for name, month, day in NATIONAL_HOLIDAYS
        ]
