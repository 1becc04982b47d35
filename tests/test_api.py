# tests/test_api.py
from datetime import date, datetime, timezone

from helpdesk_sla.config import TicketStatus
from helpdesk_sla.sla.domain import Holiday, SLAPolicy, Ticket
from tests.fakes import at


def test_calculate_due_date(client):
    response = client.post("/sla/calculate", json={
        "startDate": "2024-06-07T16:50:00+08:00",
        "slaMinutes": 20,
        "departmentId": 5,
    })
    assert response.status_code == 200
    body = response.json()
    assert body["dueDate"] == "2024-06-10T08:10:00+08:00"
    assert body["scope"] == {"unitId": None, "departmentId": 5}
    assert body["businessHoursOnly"] is True


def test_calculate_due_date_requires_minutes(client):
    response = client.post("/sla/calculate", json={"startDate": "2024-06-07T16:50:00+08:00"})
    assert response.status_code == 400
    assert "correlation_id" in response.json()


def test_calculate_due_date_rejects_negative_minutes(client):
    response = client.post("/sla/calculate", json={"startDate": "2024-06-07T16:50:00", "slaMinutes": -5})
    assert response.status_code == 400


def test_calculate_due_date_rejects_bad_date(client):
    response = client.post("/sla/calculate", json={"startDate": "yesterday", "slaMinutes": 5})
    assert response.status_code == 400
    assert "Invalid date format" in response.json()["detail"]


def test_business_hours_status(client):
    response = client.get("/sla/business-hours-status", params={"checkDate": "2024-06-03T09:00:00+08:00"})
    assert response.status_code == 200
    body = response.json()
    assert body["isBusinessHours"] is True
    assert body["nextBusinessHourStart"] == "2024-06-03T09:00:00+08:00"


def test_calculate_remaining(client, policy_repo, ticket_repo):
    policy_repo.policies.append(SLAPolicy(
        id=1, name="Global", response_time_minutes=60, resolution_time_minutes=240,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    ))
    ticket_repo.tickets[42] = Ticket(id=42, created_at=at(2024, 6, 7, 15, 0))

    response = client.post("/sla/calculate-remaining", json={
        "ticketId": 42,
        "currentDate": "2024-06-07T16:00:00+08:00",
    })

    assert response.status_code == 200
    body = response.json()
    assert body["ticketId"] == 42
    assert body["policy"]["resolutionTimeMinutes"] == 240
    assert body["dueDate"] == "2024-06-10T10:00:00+08:00"
    assert body["remainingMinutes"] == {"minutes": 180.0, "hours": 3, "isOverdue": False}


def test_calculate_remaining_unknown_ticket(client):
    response = client.post("/sla/calculate-remaining", json={"ticketId": 7})
    assert response.status_code == 404


def test_calculate_remaining_without_policy(client, ticket_repo):
    ticket_repo.tickets[7] = Ticket(id=7, created_at=at(2024, 6, 3, 9, 0))
    response = client.post("/sla/calculate-remaining", json={"ticketId": 7})
    assert response.status_code == 404
    assert "No applicable SLA policy" in response.json()["detail"]


def test_applicable_policy(client, policy_repo, ticket_repo):
    policy_repo.policies.extend([
        SLAPolicy(id=1, name="Global", response_time_minutes=60, resolution_time_minutes=480),
        SLAPolicy(id=2, name="IT", response_time_minutes=30, resolution_time_minutes=240, department_id=5),
    ])
    ticket_repo.tickets[3] = Ticket(id=3, created_at=at(2024, 6, 3, 9, 0), department_id=5)

    response = client.get("/sla/policies/applicable/3")

    assert response.status_code == 200
    assert response.json()["policy"]["name"] == "IT"
    assert response.json()["specificityTier"] == 4


def test_ticket_targets_fallback(client, ticket_repo):
    ticket_repo.tickets[3] = Ticket(id=3, created_at=at(2024, 6, 3, 9, 0), priority="high")
    response = client.get("/sla/tickets/3/targets")
    assert response.status_code == 200
    body = response.json()
    assert body["source"] == "fallback"
    assert body["resolutionTimeMinutes"] == 240
    assert body["policy"] is None


def test_create_and_list_policies(client):
    payload = {
        "name": "IT High",
        "departmentId": 5,
        "priority": "high",
        "responseTimeMinutes": 60,
        "resolutionTimeMinutes": 240,
    }
    response = client.post("/sla/policies", json=payload)
    assert response.status_code == 201
    assert response.json()["businessHoursOnly"] is True

    assert client.post("/sla/policies", json=payload).status_code == 409

    listing = client.get("/sla/policies").json()
    assert listing["total"] == 1
    assert listing["policies"][0]["name"] == "IT High"


def test_create_policy_invalid_times(client):
    response = client.post("/sla/policies", json={
        "name": "Broken",
        "responseTimeMinutes": 240,
        "resolutionTimeMinutes": 60,
    })
    assert response.status_code == 400
    assert response.json()["detail"] == "Resolution time must be greater than response time"


def test_delete_policy(client, policy_repo, ticket_repo):
    policy_repo.policies.append(SLAPolicy(id=5, name="Old", response_time_minutes=10,
                                          resolution_time_minutes=20))
    ticket_repo.tickets[1] = Ticket(id=1, created_at=at(2024, 6, 3, 9, 0), status=TicketStatus.OPEN)

    response = client.delete("/sla/policies/5")

    assert response.status_code == 200
    assert response.json()["deactivated"] is True
    assert client.delete("/sla/policies/99").status_code == 404


def test_list_holidays_expands_recurring(client, holiday_repo):
    holiday_repo.holidays.append(Holiday(id=1, name="New Year", date=date(2024, 1, 1),
                                         is_recurring=True, recurrence_rule="FREQ=YEARLY"))
    response = client.get("/holidays", params={"startDate": "2025-01-01", "endDate": "2026-12-31"})
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert [h["date"] for h in body["holidays"]] == ["2025-01-01", "2026-01-01"]
    assert body["holidays"][0]["isRecurringInstance"] is True


def test_list_holidays_rejects_inverted_range(client):
    response = client.get("/holidays", params={"startDate": "2025-01-02", "endDate": "2025-01-01"})
    assert response.status_code == 400


def test_check_holiday(client, holiday_repo):
    holiday_repo.holidays.append(Holiday(id=1, name="Retreat", date=date(2024, 6, 10),
                                         scope_department_id=5))
    assert client.get("/holidays/check/2024-06-10", params={"departmentId": 5}).json()["isHoliday"] is True
    assert client.get("/holidays/check/2024-06-10").json()["isHoliday"] is False
    assert client.get("/holidays/check/10-06-2024").status_code == 400


def test_create_holiday(client):
    payload = {"name": "Founders Day", "date": "2024-09-01", "isRecurring": True,
               "recurrenceRule": "FREQ=YEARLY"}
    response = client.post("/holidays", json=payload)
    assert response.status_code == 201
    assert response.json()["recurrenceRule"] == "FREQ=YEARLY"
    assert client.post("/holidays", json=payload).status_code == 409


def test_create_recurring_holiday_needs_rule(client):
    response = client.post("/holidays", json={"name": "X", "date": "2024-09-02", "isRecurring": True})
    assert response.status_code == 400


def test_holiday_template(client):
    response = client.get("/holidays/templates/2025")
    assert response.status_code == 200
    assert len(response.json()["holidays"]) == 5
    assert client.get("/holidays/templates/2035").status_code == 400


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"


def test_calculate_remaining_rejects_span_beyond_walk_limit(client, policy_repo, ticket_repo):
    policy_repo.policies.append(SLAPolicy(id=1, name="Global", response_time_minutes=60,
                                          resolution_time_minutes=240))
    ticket_repo.tickets[42] = Ticket(id=42, created_at=at(2024, 6, 7, 15, 0))

    response = client.post("/sla/calculate-remaining", json={
        "ticketId": 42,
        "currentDate": "2019-01-01T09:00:00+08:00",
    })

    assert response.status_code == 400


def test_get_policy(client, policy_repo):
    policy_repo.policies.append(SLAPolicy(id=5, name="IT", department_id=5,
                                          response_time_minutes=10, resolution_time_minutes=20))
    response = client.get("/sla/policies/5")
    assert response.status_code == 200
    assert response.json()["departmentId"] == 5
    assert client.get("/sla/policies/99").status_code == 404


def test_update_policy(client, policy_repo):
    policy_repo.policies.append(SLAPolicy(id=5, name="IT", department_id=5, priority="high",
                                          response_time_minutes=10, resolution_time_minutes=20))

    response = client.put("/sla/policies/5", json={"resolutionTimeMinutes": 90, "priority": None})

    assert response.status_code == 200
    body = response.json()
    assert body["resolutionTimeMinutes"] == 90
    assert body["responseTimeMinutes"] == 10
    assert body["priority"] is None
    assert body["departmentId"] == 5


def test_update_policy_errors(client, policy_repo):
    policy_repo.policies.extend([
        SLAPolicy(id=1, name="Standard", response_time_minutes=10, resolution_time_minutes=20),
        SLAPolicy(id=2, name="Premium", response_time_minutes=5, resolution_time_minutes=10),
    ])
    assert client.put("/sla/policies/2", json={"name": "Standard"}).status_code == 409
    assert client.put("/sla/policies/2", json={"responseTimeMinutes": 30}).status_code == 400
    assert client.put("/sla/policies/99", json={"name": "Ghost"}).status_code == 404


def test_update_policy_ignores_null_required_fields(client, policy_repo):
    policy_repo.policies.append(SLAPolicy(id=1, name="Standard", response_time_minutes=10,
                                          resolution_time_minutes=20))
    response = client.put("/sla/policies/1", json={"name": None, "responseTimeMinutes": None})
    assert response.status_code == 200
    assert response.json()["name"] == "Standard"
    assert response.json()["responseTimeMinutes"] == 10


def test_bulk_create_holidays(client, holiday_repo):
    holiday_repo.holidays.append(Holiday(id=1, name="Existing", date=date(2025, 3, 1),
                                         scope_department_id=5))

    response = client.post("/holidays/bulk", json={
        "departmentId": 5,
        "holidays": [
            {"name": "Retreat", "date": "2025-03-01"},
            {"name": "Offsite", "date": "2025-03-02"},
            {"name": "Anniversary", "date": "2025-04-10", "isRecurring": True, "recurrenceRule": "FREQ=YEARLY"},
        ],
    })

    assert response.status_code == 201
    body = response.json()
    assert body["createdCount"] == 2
    assert body["skippedCount"] == 1
    assert {h["departmentId"] for h in body["created"]} == {5}


def test_bulk_create_holidays_rejects_empty_list(client):
    assert client.post("/holidays/bulk", json={"holidays": []}).status_code == 400


def test_update_holiday(client, holiday_repo):
    holiday_repo.holidays.append(Holiday(id=1, name="Retreat", date=date(2024, 6, 10),
                                         scope_department_id=5))

    response = client.put("/holidays/1", json={"date": "2024-06-11", "description": "Moved"})

    assert response.status_code == 200
    body = response.json()
    assert body["date"] == "2024-06-11"
    assert body["description"] == "Moved"
    assert body["departmentId"] == 5
    assert client.put("/holidays/1", json={"date": "11/06/2024"}).status_code == 400
    assert client.put("/holidays/99", json={"name": "Ghost"}).status_code == 404


def test_delete_holiday(client, holiday_repo):
    holiday_repo.holidays.append(Holiday(id=1, name="Retreat", date=date(2024, 6, 10)))

    response = client.delete("/holidays/1")

    assert response.status_code == 200
    assert response.json()["deactivated"] is True
    assert client.get("/holidays/1").json()["isActive"] is False
    assert client.get("/holidays/check/2024-06-10").json()["isHoliday"] is False
    assert client.delete("/holidays/99").status_code == 404
