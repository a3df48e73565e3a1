from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator

from carmarket.models.user import Address, CamelModel

MIN_YEAR = 1900


class CarStatus(str, Enum):
    AVAILABLE = "available"
    SOLD = "sold"
    RENTED = "rented"
    UNDER_REVIEW = "under_review"


class Transmission(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"


class FuelType(str, Enum):
    PETROL = "petrol"
    DIESEL = "diesel"
    ELECTRIC = "electric"
    HYBRID = "hybrid"


class Location(CamelModel):
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None


class CarImage(CamelModel):
    url: str
    uploaded_at: Optional[datetime] = None


class Review(CamelModel):
    user_id: Optional[str] = None
    username: Optional[str] = None
    rating: Optional[float] = Field(default=None, ge=0, le=5)
    comment: Optional[str] = None
    created_at: Optional[datetime] = None


class CarCreate(CamelModel):
    """
    Listing body for create and update. There is no owner field: the owner
    always comes from the authenticated caller.
    """
    title: str = Field(max_length=100)
    description: str
    brand: str
    model: str
    year: int
    price: float = Field(ge=0)
    mileage: float = Field(ge=0)
    transmission: Transmission
    fuel_type: FuelType
    color: Optional[str] = None
    status: CarStatus = CarStatus.AVAILABLE
    features: List[str] = Field(default_factory=list)
    images: List[CarImage] = Field(default_factory=list)
    location: Optional[Location] = None

    @field_validator("title", "description", "brand", "model", "color")
    @classmethod
    def strip_text(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("Field cannot be empty")
        return value

    @field_validator("year")
    @classmethod
    def year_in_range(cls, value: int) -> int:
        latest = datetime.now(timezone.utc).year + 1
        if value < MIN_YEAR:
            raise ValueError("Year must be valid")
        if value > latest:
            raise ValueError("Year cannot be in future")
        return value


class OwnerSummary(CamelModel):
    id: str
    username: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    # Only filled in on single-listing fetches.
    phone: Optional[str] = None
    address: Optional[Address] = None


class Car(CamelModel):
    id: str
    title: str
    description: str
    brand: str
    model: str
    year: int
    price: float
    mileage: float
    transmission: Transmission
    fuel_type: FuelType
    color: Optional[str] = None
    status: CarStatus = CarStatus.AVAILABLE
    owner: OwnerSummary
    images: List[CarImage] = Field(default_factory=list)
    features: List[str] = Field(default_factory=list)
    location: Optional[Location] = None
    views: int = 0
    rating: float = Field(default=0, ge=0, le=5)
    reviews: List[Review] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def public(self) -> dict:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)
