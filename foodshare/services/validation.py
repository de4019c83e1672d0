# foodshare/services/validation.py
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from foodshare.core.errors import ValidationError
from foodshare.schemas import DonationCreate, DonationDraft, Location


def _as_dt(v: Union[datetime, str, None]) -> Optional[datetime]:
    if v is None:
        return None
    if isinstance(v, str):
        v = v.strip()
        if not v:
            return None
        try:
            v = datetime.fromisoformat(v.replace("Z", "+00:00"))
        except ValueError:
            return None
    # form inputs carry no zone; read them as UTC
    if v.tzinfo is None:
        v = v.replace(tzinfo=timezone.utc)
    return v


def _as_positive_float(v: Union[float, str, None]) -> Optional[float]:
    try:
        x = float(v)
    except (TypeError, ValueError):
        return None
    if math.isnan(x) or math.isinf(x) or x <= 0:
        return None
    return x


def _as_serving_size(v: Any) -> Optional[int]:
    if isinstance(v, bool):
        return None
    try:
        x = float(str(v).strip())
    except (TypeError, ValueError):
        return None
    if math.isnan(x) or math.isinf(x):
        return None
    n = round(x)
    return n if n > 0 else None


def split_allergens(v: Any) -> List[str]:
    if isinstance(v, str):
        parts = v.split(",")
    elif isinstance(v, (list, tuple)):
        parts = [str(p) for p in v if p is not None]
    else:
        return []
    return [p.strip() for p in parts if p.strip()]


def validate_draft(draft: DonationDraft, now: datetime) -> DonationCreate:
    """
    Check a creation form and return the normalised content.
    All field problems are reported together in one ValidationError.
    """
    errors: Dict[str, str] = {}

    food_type = draft.food_type.strip()
    description = draft.description.strip()
    address = draft.address.strip()
    if not food_type:
        errors["food_type"] = "Food type is required"
    if not description:
        errors["description"] = "Description is required"
    if not address:
        errors["address"] = "Pickup location is required"

    quantity = _as_positive_float(draft.quantity)
    if quantity is None:
        errors["quantity"] = "Valid quantity is required"

    raw_until = draft.available_until
    available_until = _as_dt(raw_until)
    if raw_until is None or (isinstance(raw_until, str) and not raw_until.strip()):
        errors["available_until"] = "Available until date is required"
    elif available_until is None:
        errors["available_until"] = "Available until must be a valid date"
    elif available_until <= now:
        errors["available_until"] = "Available until must be in the future"

    if errors:
        raise ValidationError(errors)

    instructions = (draft.special_instructions or "").strip() or None
    return DonationCreate(
        food_type=food_type,
        category=draft.category,
        quantity=quantity,
        unit=draft.unit,
        description=description,
        location=Location(address=address, coordinates=draft.coordinates),
        available_until=available_until,
        serving_size=_as_serving_size(draft.serving_size),
        allergens=split_allergens(draft.allergens),
        special_instructions=instructions,
    )
