# foodshare/services/filters.py
from datetime import datetime
from typing import Iterable, List, Optional

from foodshare.core.errors import ValidationError
from foodshare.core.states import display_status
from foodshare.schemas import Category, Donation, DonationStatus

ALL = "all"


def parse_category(value: Optional[str]) -> Optional[Category]:
    """``None`` means "all"."""
    if not value or value == ALL:
        return None
    try:
        return Category(value)
    except ValueError:
        raise ValidationError({"category": f"Unknown category '{value}'"})


def parse_status(value: Optional[str]) -> Optional[DonationStatus]:
    if not value or value == ALL:
        return None
    try:
        return DonationStatus(value)
    except ValueError:
        raise ValidationError({"status": f"Unknown status '{value}'"})


def matches_search(donation: Donation, needle: str) -> bool:
    needle = needle.lower()
    return (
        needle in donation.food_type.lower()
        or needle in donation.description.lower()
        or needle in donation.location.address.lower()
    )


def filter_donations(
    donations: Iterable[Donation],
    search: str = "",
    category: Optional[Category] = None,
    status: Optional[DonationStatus] = None,
    now: Optional[datetime] = None,
) -> List[Donation]:
    """
    Narrow ``donations`` by free text, category and status (all must hold).
    Input order is kept. When ``now`` is given the status filter compares the
    display status, so ``expired`` picks out stale available donations.
    """
    search = search or ""
    out = []
    for d in donations:
        if search and not matches_search(d, search):
            continue
        if category is not None and d.category != category:
            continue
        if status is not None:
            current = display_status(d, now) if now is not None else d.status
            if current != status:
                continue
        out.append(d)
    return out
