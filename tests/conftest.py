# tests/conftest.py
import pytest
from fastapi.testclient import TestClient

from helpdesk_sla.sla.application import HolidayService, SLAService
from helpdesk_sla.sla.domain import (
    BusinessHoursCalendar,
    BusinessTimeAdvancer,
    HolidayCalendar,
    SLAConfig,
)
from helpdesk_sla.sla.interfaces import controllers
from tests.fakes import (
    TZ,
    InMemoryBusinessHoursRepository,
    InMemoryHolidayRepository,
    InMemorySLAPolicyRepository,
    InMemoryTicketRepository,
    StaticConfigProvider,
)


@pytest.fixture
def default_windows():
    """Mon-Fri 08:00-17:00, weekend closed."""
    return SLAConfig().weekly_windows()


@pytest.fixture
def make_calendar(default_windows):
    def _make(holidays=(), schedules=(), windows=default_windows, max_iterations=366):
        return BusinessHoursCalendar(
            schedules=schedules,
            holidays=HolidayCalendar(holidays),
            tz=TZ,
            default_windows=windows,
            max_iterations=max_iterations,
        )
    return _make


@pytest.fixture
def make_advancer(make_calendar):
    def _make(**kwargs):
        return BusinessTimeAdvancer(make_calendar(**kwargs))
    return _make


@pytest.fixture
def holiday_repo():
    return InMemoryHolidayRepository()


@pytest.fixture
def business_hours_repo():
    return InMemoryBusinessHoursRepository()


@pytest.fixture
def policy_repo():
    return InMemorySLAPolicyRepository()


@pytest.fixture
def ticket_repo():
    return InMemoryTicketRepository()


@pytest.fixture
def config_provider():
    return StaticConfigProvider()


@pytest.fixture
def sla_service(holiday_repo, business_hours_repo, policy_repo, ticket_repo, config_provider):
    return SLAService(
        holiday_repo, business_hours_repo, policy_repo, ticket_repo, config_provider,
        tz=TZ, max_iterations=366,
    )


@pytest.fixture
def holiday_service(holiday_repo):
    return HolidayService(holiday_repo)


@pytest.fixture
def client(holiday_repo, business_hours_repo, policy_repo, ticket_repo, config_provider):
    from helpdesk_sla.main import app

    overrides = {
        controllers.get_holiday_repository: lambda: holiday_repo,
        controllers.get_business_hours_repository: lambda: business_hours_repo,
        controllers.get_policy_repository: lambda: policy_repo,
        controllers.get_ticket_repository: lambda: ticket_repo,
        controllers.get_config_provider: lambda: config_provider,
    }
    app.dependency_overrides.update(overrides)
    yield TestClient(app)
    app.dependency_overrides.clear()
