# foodshare/repos/mongo.py
import logging
from typing import Any, Callable, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from foodshare.core.clock import utcnow
from foodshare.core.errors import ConflictError, NotFoundError, PersistenceError
from foodshare.core.states import transition_stamps
from foodshare.schemas import Actor, Claimant, Donation, DonationCreate, DonationStats, DonationStatus
from foodshare.services.stats import compute_stats

logger = logging.getLogger(__name__)


def _oid(id_str: str) -> ObjectId:
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        raise NotFoundError("Donation not found")


def _to_donation(doc: Dict[str, Any]) -> Donation:
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id"))
    return Donation.model_validate(doc)


class MongoRepo:
    def __init__(self, db: AsyncIOMotorDatabase, clock: Callable = utcnow):
        self.db = db
        self.clock = clock

    @property
    def donations(self):
        return self.db.donations

    @property
    def users(self):
        return self.db.users

    # Users
    async def create_user(self, doc: dict) -> dict:
        doc = {**doc, "email": doc["email"].lower(), "created_at": self.clock()}
        try:
            res = await self.users.insert_one(doc)
        except DuplicateKeyError:
            raise ConflictError("Email already registered")
        except PyMongoError as ex:
            logger.error("user insert failed: %s", ex)
            raise PersistenceError("Could not create user") from ex
        doc["_id"] = str(res.inserted_id)
        return doc

    async def find_user_by_email(self, email: str) -> Optional[dict]:
        return self._user_out(await self._find_user({"email": email.lower()}))

    async def get_user(self, user_id: str) -> Optional[dict]:
        try:
            oid = ObjectId(user_id)
        except (InvalidId, TypeError):
            return None
        return self._user_out(await self._find_user({"_id": oid}))

    async def _find_user(self, query: dict) -> Optional[dict]:
        try:
            return await self.users.find_one(query)
        except PyMongoError as ex:
            logger.error("user lookup failed: %s", ex)
            raise PersistenceError("Could not load user") from ex

    @staticmethod
    def _user_out(doc: Optional[dict]) -> Optional[dict]:
        if doc is None:
            return None
        return {**doc, "_id": str(doc["_id"])}

    # Donations
    async def create(self, content: DonationCreate, donor: Actor) -> str:
        doc = {
            **content.model_dump(mode="python"),
            "donor_id": donor.id,
            "donor_name": donor.name,
            "donor_email": donor.email,
            "donor_phone": donor.phone,
            "created_at": self.clock(),
            "status": DonationStatus.AVAILABLE.value,
        }
        doc["category"] = content.category.value
        doc["unit"] = content.unit.value
        try:
            res = await self.donations.insert_one(doc)
        except PyMongoError as ex:
            logger.error("donation insert failed: %s", ex)
            raise PersistenceError("Could not save donation") from ex
        return str(res.inserted_id)

    async def get(self, donation_id: str) -> Optional[Donation]:
        try:
            oid = ObjectId(donation_id)
        except (InvalidId, TypeError):
            return None
        try:
            doc = await self.donations.find_one({"_id": oid})
        except PyMongoError as ex:
            logger.error("donation lookup failed: %s", ex)
            raise PersistenceError("Could not load donation") from ex
        return _to_donation(doc) if doc else None

    async def list_all(self) -> List[Donation]:
        return await self._find({})

    async def list_available(self) -> List[Donation]:
        return await self._find({"status": DonationStatus.AVAILABLE.value})

    async def list_by_owner(self, donor_id: str) -> List[Donation]:
        return await self._find({"donor_id": donor_id})

    async def _find(self, query: dict) -> List[Donation]:
        try:
            cur = self.donations.find(query).sort("created_at", -1)
            return [_to_donation(d) async for d in cur]
        except PyMongoError as ex:
            logger.error("donation query %s failed: %s", query, ex)
            raise PersistenceError("Could not load donations") from ex

    async def update_status(self, donation_id: str, status: DonationStatus,
                            expected: Optional[DonationStatus] = None) -> Donation:
        query: Dict[str, Any] = {"_id": _oid(donation_id)}
        if expected is not None:
            query["status"] = expected.value
        fields = {"status": status.value, **transition_stamps(status, self.clock())}
        doc = await self._conditional_set(query, fields)
        if doc is None:
            raise ConflictError(f"Donation is no longer {expected.value}")
        return _to_donation(doc)

    async def claim(self, donation_id: str, claimant: Claimant) -> Donation:
        query = {"_id": _oid(donation_id), "status": DonationStatus.AVAILABLE.value}
        fields = {
            "status": DonationStatus.CLAIMED.value,
            "claimed_by": claimant.model_dump(),
            "claimed_at": self.clock(),
        }
        doc = await self._conditional_set(query, fields)
        if doc is None:
            raise ConflictError("Donation is no longer available")
        return _to_donation(doc)

    async def _conditional_set(self, query: dict, fields: dict) -> Optional[dict]:
        """Single-document compare-and-set; None means the filter matched nothing."""
        try:
            doc = await self.donations.find_one_and_update(
                query, {"$set": fields}, return_document=ReturnDocument.AFTER
            )
            if doc is None and not await self.donations.count_documents({"_id": query["_id"]}, limit=1):
                raise NotFoundError("Donation not found")
        except PyMongoError as ex:
            logger.error("donation update failed: %s", ex)
            raise PersistenceError("Could not update donation") from ex
        return doc

    async def compute_stats(self) -> DonationStats:
        return compute_stats(await self.list_all(), self.clock())
