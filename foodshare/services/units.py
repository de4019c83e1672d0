# foodshare/services/units.py
from foodshare.schemas import Unit

# portions and items have no weight of their own; count each as half a kilo
KG_PER_PORTION = 0.5
KG_PER_ITEM = 0.5


def to_kg(qty: float, unit: Unit) -> float:
    if qty is None:
        return 0.0
    match unit:
        case Unit.KG:
            return float(qty)
        case Unit.PORTIONS:
            return float(qty) * KG_PER_PORTION
        case Unit.ITEMS:
            return float(qty) * KG_PER_ITEM
        case _:
            raise ValueError(f"Unhandled unit: {unit!r}")


def people_fed(qty: float, serving_size: int | None) -> float:
    """Unrounded; callers round once after summing."""
    if serving_size:
        return float(serving_size)
    return float(qty or 0)
