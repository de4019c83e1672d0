# foodshare/repos/inmemory.py
import uuid
from typing import Callable, Dict, List, Optional

from foodshare.core.clock import utcnow
from foodshare.core.errors import ConflictError, NotFoundError
from foodshare.core.states import transition_stamps
from foodshare.schemas import Actor, Claimant, Donation, DonationCreate, DonationStats, DonationStatus
from foodshare.services.stats import compute_stats


def _id() -> str:
    return uuid.uuid4().hex


class InMemoryRepo:
    """Dict-backed store with the same contract as ``MongoRepo``.

    Conditional writes never await between the status check and the
    assignment, so they are atomic on a single event loop.
    """

    def __init__(self, clock: Callable = utcnow):
        self.clock = clock
        self.users: Dict[str, dict] = {}
        self.users_by_email: Dict[str, str] = {}
        self.donations: Dict[str, Donation] = {}

    # Users
    async def create_user(self, doc: dict) -> dict:
        email = doc["email"].lower()
        if email in self.users_by_email:
            raise ConflictError("Email already registered")
        uid = _id()
        doc = {**doc, "_id": uid, "email": email, "created_at": self.clock()}
        self.users[uid] = doc
        self.users_by_email[email] = uid
        return doc

    async def find_user_by_email(self, email: str) -> Optional[dict]:
        uid = self.users_by_email.get(email.lower())
        return self.users.get(uid) if uid else None

    async def get_user(self, user_id: str) -> Optional[dict]:
        return self.users.get(user_id)

    # Donations
    async def create(self, content: DonationCreate, donor: Actor) -> str:
        did = _id()
        self.donations[did] = Donation(
            **content.model_dump(),
            id=did,
            donor_id=donor.id,
            donor_name=donor.name,
            donor_email=donor.email,
            donor_phone=donor.phone,
            created_at=self.clock(),
            status=DonationStatus.AVAILABLE,
        )
        return did

    async def get(self, donation_id: str) -> Optional[Donation]:
        d = self.donations.get(donation_id)
        return d.model_copy(deep=True) if d else None

    async def list_all(self) -> List[Donation]:
        return self._newest_first(self.donations.values())

    async def list_available(self) -> List[Donation]:
        return self._newest_first(d for d in self.donations.values() if d.status == DonationStatus.AVAILABLE)

    async def list_by_owner(self, donor_id: str) -> List[Donation]:
        return self._newest_first(d for d in self.donations.values() if d.donor_id == donor_id)

    async def update_status(self, donation_id: str, status: DonationStatus,
                            expected: Optional[DonationStatus] = None) -> Donation:
        d = self._require(donation_id)
        if expected is not None and d.status != expected:
            raise ConflictError(f"Donation is {d.status.value}, expected {expected.value}")
        updated = d.model_copy(update={"status": status, **transition_stamps(status, self.clock())})
        self.donations[donation_id] = updated
        return updated.model_copy(deep=True)

    async def claim(self, donation_id: str, claimant: Claimant) -> Donation:
        d = self._require(donation_id)
        if d.status != DonationStatus.AVAILABLE:
            raise ConflictError("Donation is no longer available")
        updated = d.model_copy(update={
            "status": DonationStatus.CLAIMED,
            "claimed_by": claimant,
            "claimed_at": self.clock(),
        })
        self.donations[donation_id] = updated
        return updated.model_copy(deep=True)

    async def compute_stats(self) -> DonationStats:
        return compute_stats(await self.list_all(), self.clock())

    def _require(self, donation_id: str) -> Donation:
        d = self.donations.get(donation_id)
        if d is None:
            raise NotFoundError("Donation not found")
        return d

    @staticmethod
    def _newest_first(items) -> List[Donation]:
        ordered = sorted(items, key=lambda d: d.created_at, reverse=True)
        return [d.model_copy(deep=True) for d in ordered]
