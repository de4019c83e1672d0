from datetime import datetime
from typing import Optional

from foodshare.core.errors import AuthorizationError, ConflictError
from foodshare.schemas import Actor, Donation, DonationStatus, Role

LIFECYCLE = [
    DonationStatus.AVAILABLE,
    DonationStatus.CLAIMED,
    DonationStatus.PICKED_UP,
    DonationStatus.COMPLETED,
]

# "donor" and "claimant" are relations to the donation, not roles
TRANSITIONS = {
    (DonationStatus.AVAILABLE, DonationStatus.CLAIMED):   {"roles": [Role.NGO, Role.VOLUNTEER, Role.ADMIN]},
    (DonationStatus.CLAIMED,   DonationStatus.PICKED_UP): {"relations": ["donor", "claimant"]},
    (DonationStatus.PICKED_UP, DonationStatus.COMPLETED): {"relations": ["donor"]},
}


def next_status(status: DonationStatus) -> Optional[DonationStatus]:
    match status:
        case DonationStatus.AVAILABLE:
            return DonationStatus.CLAIMED
        case DonationStatus.CLAIMED:
            return DonationStatus.PICKED_UP
        case DonationStatus.PICKED_UP:
            return DonationStatus.COMPLETED
        case DonationStatus.COMPLETED | DonationStatus.EXPIRED:
            return None
        case _:
            raise ValueError(f"Unhandled donation status: {status!r}")


def is_expired(donation: Donation, now: datetime) -> bool:
    return donation.status == DonationStatus.AVAILABLE and now > donation.available_until


def display_status(donation: Donation, now: datetime) -> DonationStatus:
    if is_expired(donation, now):
        return DonationStatus.EXPIRED
    return donation.status


def relations(donation: Donation, actor: Actor) -> set[str]:
    rel = set()
    if donation.donor_id == actor.id:
        rel.add("donor")
    if donation.claimed_by is not None and donation.claimed_by.id == actor.id:
        rel.add("claimant")
    return rel


def can_transition(donation: Donation, dst: DonationStatus, actor: Actor) -> bool:
    rule = TRANSITIONS.get((donation.status, dst))
    if not rule:
        return False
    if "roles" in rule:
        return actor.role in rule["roles"] and donation.donor_id != actor.id
    return bool(set(rule["relations"]) & relations(donation, actor))


def check_transition(donation: Donation, dst: DonationStatus, actor: Actor, now: datetime) -> None:
    """Raise unless ``actor`` may move ``donation`` to ``dst`` right now."""
    src = donation.status
    if next_status(src) != dst:
        raise ConflictError(f"Transition {src.value} -> {dst.value} is not allowed")
    if not can_transition(donation, dst, actor):
        raise AuthorizationError(f"Transition {src.value} -> {dst.value} not allowed for this user")
    if dst == DonationStatus.CLAIMED and is_expired(donation, now):
        raise ConflictError("Donation has expired")


def transition_stamps(status: DonationStatus, now: datetime) -> dict:
    """Timestamp fields written alongside a move into ``status``."""
    match status:
        case DonationStatus.PICKED_UP:
            return {"pickup_time": now}
        case DonationStatus.COMPLETED:
            return {"completed_at": now}
        case DonationStatus.AVAILABLE | DonationStatus.CLAIMED | DonationStatus.EXPIRED:
            return {}
        case _:
            raise ValueError(f"Unhandled donation status: {status!r}")
