# tests/test_services.py
from datetime import date, datetime, timezone

import pytest

from helpdesk_sla.config import SLASource, TicketStatus
from helpdesk_sla.core.exceptions import (
    ConflictException,
    InvalidDateFormatException,
    NoApplicablePolicyException,
    ResourceNotFoundException,
    TicketNotFoundException,
    ValidationException,
)
from helpdesk_sla.sla.application import HolidayService
from helpdesk_sla.sla.domain import Holiday, SLAPolicy, Scope, Ticket
from tests.fakes import at


def make_policy(name="Global", **kwargs):
    kwargs.setdefault("response_time_minutes", 120)
    kwargs.setdefault("resolution_time_minutes", 480)
    return SLAPolicy(id=None, name=name, **kwargs)


async def test_calculate_due_date_parses_iso_string(sla_service):
    due = await sla_service.calculate_due_date("2024-06-07T16:50:00+08:00", 20, Scope())
    assert due == at(2024, 6, 10, 8, 10)


async def test_calculate_due_date_honours_scoped_holidays(sla_service, holiday_repo):
    holiday_repo.holidays.append(
        Holiday(id=1, name="Dept Day", date=date(2024, 6, 10), scope_department_id=5)
    )
    assert await sla_service.calculate_due_date("2024-06-07T16:50:00", 20, Scope(department_id=5)) == \
        at(2024, 6, 11, 8, 10)
    assert await sla_service.calculate_due_date("2024-06-07T16:50:00", 20, Scope(department_id=6)) == \
        at(2024, 6, 10, 8, 10)


async def test_calculate_due_date_rejects_malformed_start(sla_service):
    with pytest.raises(InvalidDateFormatException):
        await sla_service.calculate_due_date("next friday", 20, Scope())


async def test_business_hours_status(sla_service):
    status = await sla_service.business_hours_status(Scope(), "2024-06-08T10:00:00+08:00")
    assert not status.is_business_hours
    assert status.next_business_start == at(2024, 6, 10, 8, 0)


async def test_calculate_remaining(sla_service, policy_repo, ticket_repo):
    await policy_repo.add(make_policy())
    ticket_repo.tickets[42] = Ticket(id=42, created_at=at(2024, 6, 3, 9, 0))

    result = await sla_service.calculate_remaining(42, "2024-06-03T13:00:00+08:00")

    assert result.due_date == at(2024, 6, 3, 17, 0)
    assert result.remaining.minutes == 240
    assert not result.remaining.is_overdue


async def test_calculate_remaining_unknown_ticket(sla_service):
    with pytest.raises(TicketNotFoundException):
        await sla_service.calculate_remaining(404)


async def test_applicable_policy_without_match(sla_service, policy_repo, ticket_repo):
    await policy_repo.add(make_policy("Dept 6", department_id=6))
    ticket_repo.tickets[1] = Ticket(id=1, created_at=at(2024, 6, 3, 9, 0), department_id=5)
    with pytest.raises(NoApplicablePolicyException):
        await sla_service.applicable_policy(1)


async def test_ticket_targets_from_policy(sla_service, policy_repo, ticket_repo):
    await policy_repo.add(make_policy("IT", department_id=5, response_time_minutes=60,
                                      resolution_time_minutes=240))
    ticket_repo.tickets[1] = Ticket(id=1, created_at=at(2024, 6, 3, 9, 0), department_id=5)

    targets = await sla_service.ticket_targets(1)

    assert targets.source == SLASource.POLICY
    assert targets.policy.name == "IT"
    assert targets.response_due_date == at(2024, 6, 3, 10, 0)
    assert targets.resolution_due_date == at(2024, 6, 3, 13, 0)


async def test_ticket_targets_fall_back_to_configuration(sla_service, ticket_repo):
    ticket_repo.tickets[1] = Ticket(id=1, created_at=at(2024, 6, 8, 10, 0), priority="urgent")

    targets = await sla_service.ticket_targets(1)

    assert targets.source == SLASource.FALLBACK
    assert targets.policy is None
    assert (targets.response_time_minutes, targets.resolution_time_minutes) == (15, 120)
    assert not targets.business_hours_only
    assert targets.resolution_due_date == at(2024, 6, 8, 12, 0)


async def test_create_policy_rejects_duplicate_active_name(sla_service):
    await sla_service.create_policy(make_policy("Standard"))
    with pytest.raises(ConflictException):
        await sla_service.create_policy(make_policy("Standard"))


async def test_create_policy_validates(sla_service):
    with pytest.raises(ValidationException):
        await sla_service.create_policy(make_policy(response_time_minutes=500))


async def test_delete_policy_deactivates_while_tickets_open(sla_service, policy_repo, ticket_repo):
    created = await sla_service.create_policy(make_policy())
    ticket_repo.tickets[1] = Ticket(id=1, created_at=at(2024, 6, 3, 9, 0), status=TicketStatus.IN_PROGRESS)

    assert await sla_service.delete_policy(created.id) is True
    assert (await policy_repo.get_by_id(created.id)).is_active is False
    assert await sla_service.list_policies() == []
    assert len(await sla_service.list_policies(include_inactive=True)) == 1


async def test_delete_policy_removes_when_all_tickets_closed(sla_service, policy_repo, ticket_repo):
    created = await sla_service.create_policy(make_policy())
    ticket_repo.tickets[1] = Ticket(id=1, created_at=at(2024, 6, 3, 9, 0), status=TicketStatus.CLOSED)

    assert await sla_service.delete_policy(created.id) is False
    assert await policy_repo.get_by_id(created.id) is None


async def test_delete_unknown_policy(sla_service):
    with pytest.raises(ResourceNotFoundException):
        await sla_service.delete_policy(99)


async def test_create_holiday_conflict(holiday_service):
    await holiday_service.create_holiday(Holiday(id=None, name="Retreat", date=date(2024, 7, 1),
                                                 scope_department_id=5))
    with pytest.raises(ConflictException):
        await holiday_service.create_holiday(Holiday(id=None, name="Other", date=date(2024, 7, 1),
                                                     scope_department_id=5))
    # same date, different scope
    await holiday_service.create_holiday(Holiday(id=None, name="Global", date=date(2024, 7, 1)))


async def test_create_holiday_drops_rule_when_not_recurring(holiday_service):
    created = await holiday_service.create_holiday(Holiday(
        id=None, name="One-off", date=date(2024, 7, 2), recurrence_rule="FREQ=YEARLY"
    ))
    assert created.id is not None
    assert created.recurrence_rule is None


async def test_list_holidays_without_scope_lists_everything(holiday_service, holiday_repo):
    holiday_repo.holidays.extend([
        Holiday(id=1, name="Dept", date=date(2024, 3, 1), scope_department_id=5),
        Holiday(id=2, name="Unit", date=date(2024, 3, 2), scope_unit_id=9),
    ])
    assert len(await holiday_service.list_holidays("2024-03-01", "2024-03-31")) == 2
    assert len(await holiday_service.list_holidays("2024-03-01", "2024-03-31", department_id=5)) == 1


async def test_check_date(holiday_service, holiday_repo):
    holiday_repo.holidays.append(Holiday(id=1, name="Independence Day", date=date(2020, 8, 17),
                                         is_recurring=True, recurrence_rule="FREQ=YEARLY"))
    checked, holidays = await holiday_service.check_date("2024-08-17", unit_id=3)
    assert checked == date(2024, 8, 17)
    assert [h.name for h in holidays] == ["Independence Day"]


def test_holiday_template():
    holidays = HolidayService.template(2025)
    assert len(holidays) == 5
    assert all(h.recurs_yearly and h.date.year == 2025 for h in holidays)
    assert date(2025, 8, 17) in [h.date for h in holidays]


@pytest.mark.parametrize("year", [2019, 2031])
def test_holiday_template_year_range(year):
    with pytest.raises(ValidationException):
        HolidayService.template(year)


async def test_created_policy_gets_timestamp(sla_service):
    created = await sla_service.create_policy(make_policy())
    assert created.created_at <= datetime.now(timezone.utc)


async def test_get_policy(sla_service):
    created = await sla_service.create_policy(make_policy())
    assert (await sla_service.get_policy(created.id)).name == "Global"
    with pytest.raises(ResourceNotFoundException):
        await sla_service.get_policy(99)


async def test_update_policy_changes_only_given_fields(sla_service, policy_repo):
    created = await sla_service.create_policy(make_policy("IT", department_id=5, priority="high"))

    updated = await sla_service.update_policy(created.id, {"resolution_time_minutes": 600, "priority": None})

    assert updated.resolution_time_minutes == 600
    assert updated.priority is None
    assert updated.department_id == 5
    assert updated.response_time_minutes == 120
    assert (await policy_repo.get_by_id(created.id)).resolution_time_minutes == 600


async def test_update_policy_keeps_own_name(sla_service):
    created = await sla_service.create_policy(make_policy("Standard"))
    updated = await sla_service.update_policy(created.id, {"name": "Standard", "description": "v2"})
    assert updated.description == "v2"


async def test_update_policy_rejects_taken_name(sla_service):
    await sla_service.create_policy(make_policy("Standard"))
    other = await sla_service.create_policy(make_policy("Premium"))
    with pytest.raises(ConflictException):
        await sla_service.update_policy(other.id, {"name": "Standard"})


async def test_update_policy_validates_result(sla_service, policy_repo):
    created = await sla_service.create_policy(make_policy())
    with pytest.raises(ValidationException):
        await sla_service.update_policy(created.id, {"response_time_minutes": 480})
    assert (await policy_repo.get_by_id(created.id)).response_time_minutes == 120


async def test_update_unknown_policy(sla_service):
    with pytest.raises(ResourceNotFoundException):
        await sla_service.update_policy(99, {"name": "Ghost"})


async def test_update_holiday_moves_date(holiday_service, holiday_repo):
    created = await holiday_service.create_holiday(Holiday(id=None, name="Retreat", date=date(2024, 7, 1)))

    updated = await holiday_service.update_holiday(created.id, {"date": date(2024, 7, 3)})

    assert updated.date == date(2024, 7, 3)
    assert (await holiday_repo.find_active(date(2024, 7, 1), None, None)) is None
    assert (await holiday_repo.find_active(date(2024, 7, 3), None, None)).id == created.id


async def test_update_holiday_rejects_taken_date(holiday_service):
    await holiday_service.create_holiday(Holiday(id=None, name="A", date=date(2024, 7, 1)))
    second = await holiday_service.create_holiday(Holiday(id=None, name="B", date=date(2024, 7, 2)))
    with pytest.raises(ConflictException):
        await holiday_service.update_holiday(second.id, {"date": date(2024, 7, 1)})


async def test_update_holiday_requires_rule_when_made_recurring(holiday_service):
    created = await holiday_service.create_holiday(Holiday(id=None, name="A", date=date(2024, 7, 1)))
    with pytest.raises(ValidationException):
        await holiday_service.update_holiday(created.id, {"is_recurring": True})


async def test_update_unknown_holiday(holiday_service):
    with pytest.raises(ResourceNotFoundException):
        await holiday_service.update_holiday(99, {"name": "Ghost"})


async def test_delete_holiday_deactivates(holiday_service, holiday_repo):
    created = await holiday_service.create_holiday(Holiday(id=None, name="Retreat", date=date(2024, 7, 1)))

    await holiday_service.delete_holiday(created.id)

    assert (await holiday_repo.get_by_id(created.id)).is_active is False
    _, holidays = await holiday_service.check_date("2024-07-01")
    assert holidays == []
    # the date is free again
    await holiday_service.create_holiday(Holiday(id=None, name="Replacement", date=date(2024, 7, 1)))


async def test_delete_unknown_holiday(holiday_service):
    with pytest.raises(ResourceNotFoundException):
        await holiday_service.delete_holiday(99)


async def test_create_holidays_skips_existing_dates(holiday_service, holiday_repo):
    holiday_repo.holidays.append(Holiday(id=1, name="Labour Day", date=date(2025, 5, 1)))

    created, skipped = await holiday_service.create_holidays(HolidayService.template(2025))

    assert skipped == 1
    assert len(created) == 4
    assert date(2025, 5, 1) not in [h.date for h in created]
    assert len(holiday_repo.holidays) == 5


async def test_create_holidays_validates_before_writing(holiday_service, holiday_repo):
    batch = [
        Holiday(id=None, name="Fine", date=date(2025, 3, 1)),
        Holiday(id=None, name="Broken", date=date(2025, 3, 2), is_recurring=True),
    ]
    with pytest.raises(ValidationException):
        await holiday_service.create_holidays(batch)
    assert holiday_repo.holidays == []


async def test_create_holidays_requires_entries(holiday_service):
    with pytest.raises(ValidationException):
        await holiday_service.create_holidays([])
