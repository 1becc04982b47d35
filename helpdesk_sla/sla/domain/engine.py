"""
SLA Engine
===========

Facade composing policy resolution and business-time calculation.
"""

from datetime import datetime
from typing import Iterable, Optional

from helpdesk_sla.core.exceptions import NoApplicablePolicyException
from helpdesk_sla.sla.domain.calculator import BusinessTimeAdvancer
from helpdesk_sla.sla.domain.calendar import BusinessHoursCalendar
from helpdesk_sla.sla.domain.entities import SLAPolicy, Ticket
from helpdesk_sla.sla.domain.policy_resolver import SLAPolicyResolver
from helpdesk_sla.sla.domain.value_objects import SLAComputation, localize


class SLAEngine:
    """
    Computes a ticket's due date from its governing policy.

    Holds only immutable inputs; every call is a pure computation, so
    failures can be retried freely by the caller.
    """

    def __init__(
        self,
        calendar: BusinessHoursCalendar,
        policies: Iterable[SLAPolicy],
        resolver: Optional[SLAPolicyResolver] = None
    ):
        self.calendar = calendar
        self.advancer = BusinessTimeAdvancer(calendar)
        self.resolver = resolver or SLAPolicyResolver()
        self._policies = tuple(policies)

    def resolve_policy(self, ticket: Ticket) -> SLAPolicy:
        """
        Raises:
            NoApplicablePolicyException: when no active policy matches
        """
        policy = self.resolver.resolve(ticket.attributes, self._policies)
        if policy is None:
            raise NoApplicablePolicyException(ticket.id)
        return policy

    def compute_due_date(
        self,
        ticket: Ticket,
        now: Optional[datetime] = None
    ) -> SLAComputation:
        """
        Resolve the ticket's policy and compute its deadlines.

        Args:
            ticket: Ticket snapshot
            now: Reference instant for remaining time, defaults to now

        Returns:
            SLAComputation with resolution and response due dates and
            the remaining business time

        Raises:
            NoApplicablePolicyException: when no active policy matches
            ScheduleUnresolvableException: when the calendar cannot be walked
        """
        policy = self.resolve_policy(ticket)
        scope = ticket.scope
        now = localize(now, self.calendar.tz) if now else datetime.now(self.calendar.tz)

        due_date = self.advancer.add_business_minutes(
            ticket.created_at,
            policy.resolution_time_minutes,
            scope,
            policy.business_hours_only
        )
        response_due_date = self.advancer.add_business_minutes(
            ticket.created_at,
            policy.response_time_minutes,
            scope,
            policy.business_hours_only
        )
        remaining = self.advancer.remaining_time(
            now, due_date, scope, policy.business_hours_only
        )

        return SLAComputation(
            policy=policy,
            scope=scope,
            due_date=due_date,
            response_due_date=response_due_date,
            remaining=remaining,
        )
