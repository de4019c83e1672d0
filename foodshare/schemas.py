from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, EmailStr, Field


# --------------------------
# Vocabularies
# --------------------------
class Role(str, Enum):
    DONOR = "donor"
    NGO = "ngo"
    VOLUNTEER = "volunteer"
    ADMIN = "admin"


class Category(str, Enum):
    COOKED_FOOD = "cooked-food"
    RAW_INGREDIENTS = "raw-ingredients"
    PACKAGED_FOOD = "packaged-food"
    BEVERAGES = "beverages"
    OTHER = "other"


class Unit(str, Enum):
    KG = "kg"
    PORTIONS = "portions"
    ITEMS = "items"


class DonationStatus(str, Enum):
    AVAILABLE = "available"
    CLAIMED = "claimed"
    PICKED_UP = "picked-up"
    COMPLETED = "completed"
    # display-only, never persisted by a transition
    EXPIRED = "expired"


# --------------------------
# Session / users
# --------------------------
class Actor(BaseModel):
    """The authenticated caller, passed explicitly into every lifecycle call."""

    id: str
    name: str
    email: EmailStr
    phone: Optional[str] = None
    organization_name: Optional[str] = None
    role: Role

    @property
    def is_donor(self) -> bool:
        return self.role == Role.DONOR


# admin accounts are provisioned, never self-registered
SignupRole = Literal["donor", "ngo", "volunteer"]


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: SignupRole = "donor"
    phone: Optional[str] = None
    organization_name: Optional[str] = None


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: Role
    email: EmailStr


# --------------------------
# Donations
# --------------------------
class Coordinates(BaseModel):
    lat: float
    lng: float


class Location(BaseModel):
    address: str
    coordinates: Optional[Coordinates] = None


class Claimant(BaseModel):
    id: str
    name: str
    email: EmailStr
    phone: Optional[str] = None
    organization_name: Optional[str] = None


class DonationDraft(BaseModel):
    """Raw creation form; everything is loose until ``validate_draft`` runs."""

    food_type: str = ""
    category: Category = Category.OTHER
    quantity: Union[float, str, None] = None
    unit: Unit = Unit.KG
    description: str = ""
    address: str = ""
    coordinates: Optional[Coordinates] = None
    available_until: Union[datetime, str, None] = None
    serving_size: Any = None
    allergens: Any = None
    special_instructions: Optional[str] = None


class DonationCreate(BaseModel):
    food_type: str
    category: Category
    quantity: float = Field(..., gt=0)
    unit: Unit
    description: str
    location: Location
    available_until: datetime
    serving_size: Optional[int] = None
    allergens: List[str] = []
    special_instructions: Optional[str] = None


class Donation(DonationCreate):
    id: str
    donor_id: str
    donor_name: str
    donor_email: EmailStr
    donor_phone: Optional[str] = None
    created_at: datetime
    status: DonationStatus = DonationStatus.AVAILABLE
    claimed_by: Optional[Claimant] = None
    claimed_at: Optional[datetime] = None
    pickup_time: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class DonationOut(Donation):
    display_status: DonationStatus
    is_expired: bool


class CreatedOut(BaseModel):
    id: str


# --------------------------
# Stats
# --------------------------
class MonthlyStat(BaseModel):
    month: str
    donations: int
    kg_saved: float
    people_fed: int


class ImpactStats(BaseModel):
    co2_kg: float
    water_litres: float
    land_m2: float
    energy_kwh: float


class DonationStats(BaseModel):
    total_donations: int
    total_kg_saved: float
    total_people_fed: int
    active_donations: int
    completed_donations: int
    monthly_stats: List[MonthlyStat]
    category_breakdown: Dict[str, int]
    impact: ImpactStats
