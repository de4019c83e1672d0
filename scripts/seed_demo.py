import asyncio
from datetime import timedelta

from foodshare.core.clock import utcnow
from foodshare.core.db import ensure_indexes, get_db
from foodshare.core.errors import ConflictError
from foodshare.core.security import actor_from_user, hash_password
from foodshare.repos.mongo import MongoRepo
from foodshare.schemas import DonationDraft
from foodshare.services.validation import validate_draft

USERS = [
    {"name": "Green Bistro", "email": "donor@foodshare.org", "role": "donor", "phone": "555-0100"},
    {"name": "City Food Bank", "email": "ngo@foodshare.org", "role": "ngo", "organization_name": "City Food Bank"},
    {"name": "Sam Rivera", "email": "volunteer@foodshare.org", "role": "volunteer"},
]


async def main():
    db = get_db()
    await ensure_indexes(db)
    repo = MongoRepo(db)

    users = {}
    for u in USERS:
        try:
            users[u["role"]] = await repo.create_user({**u, "password_hash": hash_password("demo123")})
        except ConflictError:
            users[u["role"]] = await repo.find_user_by_email(u["email"])
        print("User:", u["email"])

    donor = actor_from_user(users["donor"])
    content = validate_draft(DonationDraft(
        food_type="Vegetable biryani",
        category="cooked-food",
        quantity="12",
        unit="portions",
        description="Fresh from lunch service, packed in trays",
        address="14 Market Street",
        available_until=utcnow() + timedelta(hours=6),
        serving_size="12",
        allergens="nuts, dairy",
    ), utcnow())
    did = await repo.create(content, donor)
    print("Donation:", did)

if __name__ == "__main__":
    asyncio.run(main())
