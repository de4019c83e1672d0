# tests/conftest.py
from datetime import datetime, timedelta, timezone

import pytest
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient

from foodshare.core.config import Settings
from foodshare.core.errors import NotificationError
from foodshare.main import create_app
from foodshare.repos.inmemory import InMemoryRepo
from foodshare.schemas import Actor, DonationDraft, Role
from foodshare.services.lifecycle import DonationLifecycle
from foodshare.services.notifications import Outbox

START = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Moves forward one second per reading so creation order is visible."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingSender:
    def __init__(self):
        self.sent = []
        self.fail = False

    async def send(self, msg):
        if self.fail:
            raise NotificationError("smtp down")
        self.sent.append(msg)


@pytest.fixture(scope="session")
def anyio_backend():
    # keep AnyIO on asyncio for the whole test session
    return "asyncio"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def repo(clock):
    return InMemoryRepo(clock=clock)


@pytest.fixture
def outbox(sender, clock):
    return Outbox(sender, clock=clock)


@pytest.fixture
def lifecycle(repo, outbox, clock):
    return DonationLifecycle(repo, outbox, clock=clock)


@pytest.fixture
def donor():
    return Actor(id="donor-1", name="Green Bistro", email="donor@example.com", phone="555-0100", role=Role.DONOR)


@pytest.fixture
def ngo():
    return Actor(
        id="ngo-1", name="Asha", email="asha@foodbank.org",
        organization_name="City Food Bank", role=Role.NGO,
    )


@pytest.fixture
def volunteer():
    return Actor(id="vol-1", name="Sam", email="sam@example.com", role=Role.VOLUNTEER)


@pytest.fixture
def make_draft(clock):
    def _make(**overrides) -> DonationDraft:
        fields = {
            "food_type": "Vegetable biryani",
            "category": "cooked-food",
            "quantity": "5",
            "unit": "kg",
            "description": "Lunch leftovers, packed in trays",
            "address": "14 Market Street",
            "available_until": (clock.now + timedelta(hours=24)).isoformat(),
        }
        fields.update(overrides)
        return DonationDraft(**fields)
    return _make


@pytest.fixture
def app(repo, sender, clock):
    return create_app(Settings(jwt_secret="test-secret"), repo=repo, sender=sender, clock=clock)


@pytest.fixture
async def test_client(app):
    async with LifespanManager(app):
        transport = ASGITransport(app=app, raise_app_exceptions=True)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
