# foodshare/routers/donations.py
from typing import List

from fastapi import APIRouter, Depends, Query, status

from foodshare.core.errors import NotFoundError
from foodshare.core.security import get_current_actor
from foodshare.core.states import display_status, is_expired
from foodshare.deps import get_clock, get_lifecycle, get_repo
from foodshare.schemas import Actor, CreatedOut, Donation, DonationDraft, DonationOut
from foodshare.services.filters import filter_donations, parse_category, parse_status

router = APIRouter(prefix="/api/donations", tags=["donations"])


def _serialize(d: Donation, now) -> DonationOut:
    return DonationOut(
        **d.model_dump(),
        display_status=display_status(d, now),
        is_expired=is_expired(d, now),
    )


class ListFilters:
    def __init__(
        self,
        search: str = Query("", description="Substring of food type, description or address"),
        category: str = Query("all"),
        status_q: str = Query("all", alias="status"),
    ):
        self.search = search
        self.category = parse_category(category)
        self.status = parse_status(status_q)

    def apply(self, donations: List[Donation], now) -> List[DonationOut]:
        kept = filter_donations(donations, self.search, self.category, self.status, now=now)
        return [_serialize(d, now) for d in kept]


@router.post("", status_code=status.HTTP_201_CREATED, response_model=CreatedOut)
async def create_donation(
    body: DonationDraft,
    actor: Actor = Depends(get_current_actor),
    lifecycle=Depends(get_lifecycle),
):
    return {"id": await lifecycle.create(actor, body)}


@router.get("", response_model=List[DonationOut])
async def list_for_actor(
    filters: ListFilters = Depends(),
    actor: Actor = Depends(get_current_actor),
    repo=Depends(get_repo),
    clock=Depends(get_clock),
):
    """Donors see their own donations; everyone else sees what can be claimed."""
    if actor.is_donor:
        donations = await repo.list_by_owner(actor.id)
    else:
        donations = await repo.list_available()
    return filters.apply(donations, clock())


@router.get("/available", response_model=List[DonationOut])
async def list_available(
    filters: ListFilters = Depends(),
    actor: Actor = Depends(get_current_actor),
    repo=Depends(get_repo),
    clock=Depends(get_clock),
):
    return filters.apply(await repo.list_available(), clock())


@router.get("/mine", response_model=List[DonationOut])
async def list_mine(
    filters: ListFilters = Depends(),
    actor: Actor = Depends(get_current_actor),
    repo=Depends(get_repo),
    clock=Depends(get_clock),
):
    return filters.apply(await repo.list_by_owner(actor.id), clock())


@router.get("/{donation_id}", response_model=DonationOut)
async def get_donation(
    donation_id: str,
    actor: Actor = Depends(get_current_actor),
    repo=Depends(get_repo),
    clock=Depends(get_clock),
):
    donation = await repo.get(donation_id)
    if donation is None:
        raise NotFoundError("Donation not found")
    return _serialize(donation, clock())


# ---------- Lifecycle ops ----------
@router.post("/{donation_id}/claim", response_model=DonationOut)
async def claim(
    donation_id: str,
    actor: Actor = Depends(get_current_actor),
    lifecycle=Depends(get_lifecycle),
    clock=Depends(get_clock),
):
    return _serialize(await lifecycle.claim(actor, donation_id), clock())


@router.post("/{donation_id}/pickup", response_model=DonationOut)
async def mark_picked_up(
    donation_id: str,
    actor: Actor = Depends(get_current_actor),
    lifecycle=Depends(get_lifecycle),
    clock=Depends(get_clock),
):
    return _serialize(await lifecycle.mark_picked_up(actor, donation_id), clock())


@router.post("/{donation_id}/complete", response_model=DonationOut)
async def complete(
    donation_id: str,
    actor: Actor = Depends(get_current_actor),
    lifecycle=Depends(get_lifecycle),
    clock=Depends(get_clock),
):
    return _serialize(await lifecycle.complete(actor, donation_id), clock())
