"""
SLA Policy Resolver
====================

Selects the single most specific SLA policy governing a ticket.
"""

from enum import IntEnum
from typing import Iterable, Optional, Tuple

from helpdesk_sla.sla.domain.entities import SLAPolicy
from helpdesk_sla.sla.domain.value_objects import TicketAttributes


class SpecificityTier(IntEnum):
    """Policy match levels, lower is more specific."""
    SERVICE_ITEM_PRIORITY = 1
    SERVICE_ITEM = 2
    DEPARTMENT_PRIORITY = 3
    DEPARTMENT = 4
    PRIORITY = 5
    GLOBAL = 6


class SLAPolicyResolver:
    """
    Filters candidate policies by ticket attributes and ranks them.

    A policy is a candidate when it is active and each of its non-null
    selectors equals the ticket's attribute. The candidate in the most
    specific tier wins; inside a tier the policy matching more selectors
    wins, a service catalog selector outranks a department one, and
    remaining ties go to the newest ``created_at``, then the highest id.
    """

    @staticmethod
    def tier_of(policy: SLAPolicy) -> SpecificityTier:
        has_priority = policy.priority is not None

        if policy.service_item_id is not None:
            return (SpecificityTier.SERVICE_ITEM_PRIORITY if has_priority
                    else SpecificityTier.SERVICE_ITEM)

        # department and service catalog selectors rank together
        if policy.department_id is not None or policy.service_catalog_id is not None:
            return (SpecificityTier.DEPARTMENT_PRIORITY if has_priority
                    else SpecificityTier.DEPARTMENT)

        if has_priority:
            return SpecificityTier.PRIORITY
        return SpecificityTier.GLOBAL

    @staticmethod
    def _rank_in_tier(policy: SLAPolicy) -> Tuple[int, bool, float, int]:
        """
        Order policies sharing a tier.

        More matched selectors first, then a service catalog selector
        over a department one, then newest ``created_at``, then highest id.
        """
        selectors = sum(
            value is not None
            for value in (policy.service_catalog_id, policy.department_id, policy.priority)
        )
        created = policy.created_at.timestamp() if policy.created_at else float("-inf")
        return selectors, policy.service_catalog_id is not None, created, policy.id or 0

    def candidates(
        self,
        attributes: TicketAttributes,
        policies: Iterable[SLAPolicy]
    ) -> list:
        return [p for p in policies if p.is_active and p.matches(attributes)]

    def resolve(
        self,
        attributes: TicketAttributes,
        policies: Iterable[SLAPolicy]
    ) -> Optional[SLAPolicy]:
        """
        Pick the governing policy.

        Args:
            attributes: Ticket selector values
            policies: Candidate policy records

        Returns:
            The most specific matching active policy, or None
        """
        matches = self.candidates(attributes, policies)
        if not matches:
            return None

        best_tier = min(self.tier_of(p) for p in matches)
        in_tier = [p for p in matches if self.tier_of(p) == best_tier]
        return max(in_tier, key=self._rank_in_tier)
