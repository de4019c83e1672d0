import asyncio
from datetime import timedelta

import pytest

from foodshare.core.clock import utcnow
from foodshare.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from foodshare.repos.inmemory import InMemoryRepo
from foodshare.schemas import Claimant, DonationStatus
from foodshare.services.lifecycle import DonationLifecycle
from foodshare.services.notifications import Outbox

pytestmark = pytest.mark.anyio


async def test_full_lifecycle(lifecycle, repo, donor, ngo, make_draft):
    did = await lifecycle.create(donor, make_draft(quantity="5", unit="kg"))
    d = await repo.get(did)
    assert d.status is DonationStatus.AVAILABLE
    assert (d.quantity, d.unit.value) == (5.0, "kg")
    assert (d.donor_id, d.donor_name, d.donor_email, d.donor_phone) == (
        donor.id, donor.name, donor.email, donor.phone)

    claimed = await lifecycle.claim(ngo, did)
    assert claimed.status is DonationStatus.CLAIMED
    assert claimed.claimed_by.id == ngo.id
    assert claimed.claimed_by.organization_name == "City Food Bank"
    assert claimed.claimed_at is not None

    picked = await lifecycle.mark_picked_up(donor, did)
    assert picked.status is DonationStatus.PICKED_UP
    assert picked.pickup_time is not None

    done = await lifecycle.complete(donor, did)
    assert done.status is DonationStatus.COMPLETED
    assert done.completed_at is not None

    with pytest.raises(ConflictError):
        await lifecycle.complete(donor, did)
    for step in (lifecycle.claim, lifecycle.mark_picked_up):
        with pytest.raises((ConflictError, AuthorizationError)):
            await step(ngo, did)
    assert (await repo.get(did)).status is DonationStatus.COMPLETED


async def test_created_at_is_not_before_the_call(donor, make_draft, sender):
    repo = InMemoryRepo()
    lifecycle = DonationLifecycle(repo, Outbox(sender))
    before = utcnow()
    did = await lifecycle.create(donor, make_draft(available_until=(before + timedelta(hours=3)).isoformat()))
    stored = await repo.get(did)
    assert stored.created_at >= before
    assert stored.status is DonationStatus.AVAILABLE


async def test_invalid_input_never_reaches_the_store(lifecycle, repo, donor, make_draft, outbox):
    with pytest.raises(ValidationError):
        await lifecycle.create(donor, make_draft(quantity="0"))
    assert repo.donations == {}
    assert outbox.pending == 0


async def test_only_donors_post(lifecycle, ngo, volunteer, make_draft):
    for actor in (ngo, volunteer):
        with pytest.raises(AuthorizationError):
            await lifecycle.create(actor, make_draft())


async def test_claim_rejected_when_not_available(lifecycle, repo, donor, ngo, volunteer, make_draft):
    did = await lifecycle.create(donor, make_draft())
    await lifecycle.claim(ngo, did)
    snapshot = await repo.get(did)
    with pytest.raises(ConflictError):
        await lifecycle.claim(volunteer, did)
    assert await repo.get(did) == snapshot


async def test_claim_rejected_when_expired(lifecycle, repo, clock, donor, ngo, make_draft):
    did = await lifecycle.create(donor, make_draft())
    clock.advance(hours=25)
    snapshot = await repo.get(did)
    with pytest.raises(ConflictError):
        await lifecycle.claim(ngo, did)
    assert await repo.get(did) == snapshot


async def test_donor_cannot_claim_own_donation(lifecycle, donor, make_draft):
    did = await lifecycle.create(donor, make_draft())
    with pytest.raises(AuthorizationError):
        await lifecycle.claim(donor, did)


async def test_claimant_may_confirm_pickup_but_not_complete(lifecycle, donor, ngo, volunteer, make_draft):
    did = await lifecycle.create(donor, make_draft())
    await lifecycle.claim(ngo, did)
    with pytest.raises(AuthorizationError):
        await lifecycle.mark_picked_up(volunteer, did)
    picked = await lifecycle.mark_picked_up(ngo, did)
    assert picked.status is DonationStatus.PICKED_UP
    with pytest.raises(AuthorizationError):
        await lifecycle.complete(ngo, did)


async def test_concurrent_claims_only_one_wins(lifecycle, repo, donor, ngo, volunteer, make_draft):
    did = await lifecycle.create(donor, make_draft())
    results = await asyncio.gather(
        lifecycle.claim(ngo, did),
        lifecycle.claim(volunteer, did),
        return_exceptions=True,
    )
    wins = [r for r in results if not isinstance(r, Exception)]
    losses = [r for r in results if isinstance(r, ConflictError)]
    assert len(wins) == 1 and len(losses) == 1
    stored = await repo.get(did)
    assert stored.claimed_by.id == wins[0].claimed_by.id


async def test_repo_claim_is_conditional(repo, lifecycle, donor, ngo, volunteer, make_draft):
    did = await lifecycle.create(donor, make_draft())
    first = Claimant(id=ngo.id, name=ngo.name, email=ngo.email)
    second = Claimant(id=volunteer.id, name=volunteer.name, email=volunteer.email)
    await repo.claim(did, first)
    with pytest.raises(ConflictError):
        await repo.claim(did, second)
    assert (await repo.get(did)).claimed_by.id == ngo.id


async def test_unknown_donation(lifecycle, ngo):
    with pytest.raises(NotFoundError):
        await lifecycle.claim(ngo, "missing")


async def test_notifications_are_queued_not_awaited(lifecycle, outbox, sender, donor, ngo, make_draft):
    did = await lifecycle.create(donor, make_draft())
    await lifecycle.claim(ngo, did)
    assert [e.message.kind for e in outbox.entries] == ["donation.created", "donation.claimed"]
    assert sender.sent == []
    await outbox.flush()
    assert [m.to_email for m in sender.sent] == [donor.email, ngo.email]
    assert "14 Market Street" in sender.sent[1].message


async def test_failed_email_does_not_undo_transitions(lifecycle, outbox, sender, repo, donor, ngo, make_draft):
    sender.fail = True
    did = await lifecycle.create(donor, make_draft())
    await lifecycle.claim(ngo, did)
    await outbox.flush()
    assert [e.status for e in outbox.entries] == ["failed", "failed"]
    assert (await repo.get(did)).status is DonationStatus.CLAIMED


async def test_listing_projections(lifecycle, repo, donor, ngo, make_draft):
    first = await lifecycle.create(donor, make_draft(food_type="Bread"))
    second = await lifecycle.create(donor, make_draft(food_type="Milk"))
    await lifecycle.claim(ngo, first)
    assert [d.id for d in await repo.list_available()] == [second]
    assert [d.id for d in await repo.list_by_owner(donor.id)] == [second, first]
    assert await repo.list_by_owner("nobody") == []


async def test_update_status_stamps_completion(repo, lifecycle, donor, make_draft):
    did = await lifecycle.create(donor, make_draft())
    done = await repo.update_status(did, DonationStatus.COMPLETED)
    assert done.completed_at is not None
    with pytest.raises(ConflictError):
        await repo.update_status(did, DonationStatus.COMPLETED, expected=DonationStatus.PICKED_UP)
