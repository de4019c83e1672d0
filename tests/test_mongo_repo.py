import os
import uuid

import pytest

from foodshare.core.errors import ConflictError, NotFoundError
from foodshare.schemas import Claimant, DonationStatus
from foodshare.services.validation import validate_draft

MONGO_URI = os.getenv("FOODSHARE_TEST_MONGO_URI")

pytestmark = [
    pytest.mark.anyio,
    pytest.mark.skipif(not MONGO_URI, reason="FOODSHARE_TEST_MONGO_URI not set"),
]


@pytest.fixture
async def mongo_repo(clock):
    from motor.motor_asyncio import AsyncIOMotorClient

    from foodshare.core.db import ensure_indexes
    from foodshare.repos.mongo import MongoRepo

    client = AsyncIOMotorClient(MONGO_URI, tz_aware=True)
    db = client[f"foodshare_test_{uuid.uuid4().hex[:8]}"]
    await ensure_indexes(db)
    yield MongoRepo(db, clock=clock)
    await client.drop_database(db.name)
    client.close()


async def test_create_list_and_claim(mongo_repo, donor, ngo, volunteer, make_draft, clock):
    first = await mongo_repo.create(validate_draft(make_draft(food_type="Bread"), clock()), donor)
    second = await mongo_repo.create(validate_draft(make_draft(food_type="Milk"), clock()), donor)

    assert [d.id for d in await mongo_repo.list_available()] == [second, first]
    stored = await mongo_repo.get(first)
    assert stored.status is DonationStatus.AVAILABLE
    assert stored.created_at.tzinfo is not None

    claimant = Claimant(id=ngo.id, name=ngo.name, email=ngo.email)
    claimed = await mongo_repo.claim(first, claimant)
    assert claimed.claimed_by.id == ngo.id
    with pytest.raises(ConflictError):
        await mongo_repo.claim(first, Claimant(id=volunteer.id, name=volunteer.name, email=volunteer.email))

    assert [d.id for d in await mongo_repo.list_available()] == [second]
    assert len(await mongo_repo.list_by_owner(donor.id)) == 2


async def test_conditional_status_updates(mongo_repo, donor, make_draft, clock):
    did = await mongo_repo.create(validate_draft(make_draft(), clock()), donor)
    with pytest.raises(ConflictError):
        await mongo_repo.update_status(did, DonationStatus.COMPLETED, expected=DonationStatus.PICKED_UP)
    done = await mongo_repo.update_status(did, DonationStatus.COMPLETED)
    assert done.completed_at is not None
    with pytest.raises(NotFoundError):
        await mongo_repo.update_status("0" * 24, DonationStatus.COMPLETED)
    assert await mongo_repo.get("not-an-id") is None


async def test_users_are_unique_by_email(mongo_repo):
    doc = {"name": "A", "email": "A@Example.com", "password_hash": "x", "role": "ngo"}
    created = await mongo_repo.create_user(doc)
    assert (await mongo_repo.find_user_by_email("a@example.com"))["_id"] == created["_id"]
    assert (await mongo_repo.get_user(created["_id"]))["name"] == "A"
    with pytest.raises(ConflictError):
        await mongo_repo.create_user(doc)
