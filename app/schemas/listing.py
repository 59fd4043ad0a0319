from typing import Annotated, List, Optional
from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from decimal import Decimal


def _normalize_amenities(v: Optional[List[str]]) -> Optional[List[str]]:
    """Strip, drop blanks and duplicates, keep first-seen order"""
    if v is None:
        return v
    seen = []
    for item in v:
        item = item.strip()
        if item and item not in seen:
            seen.append(item)
    return seen


Amenities = Annotated[List[str], AfterValidator(_normalize_amenities)]


class Coordinates(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class Address(BaseModel):
    street: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zip_code: str = Field(..., min_length=1)
    country: str = "United States"
    coordinates: Optional[Coordinates] = None

    @field_validator("street", "city", "state", "zip_code", "country")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()

    def one_line(self) -> str:
        return f"{self.street}, {self.city}, {self.state} {self.zip_code}, {self.country}"


class ListingCreate(BaseModel):
    address: Address
    instructions: str = Field(..., min_length=1)
    notes: Optional[str] = None
    floor: Optional[str] = None
    number: Optional[str] = None
    restriction: Optional[str] = None
    photo_url: Optional[str] = None
    is_available: bool = True
    price_per_hour: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    amenities: Amenities = Field(default_factory=list)


class ListingUpdate(BaseModel):
    address: Optional[Address] = None
    instructions: Optional[str] = Field(None, min_length=1)
    notes: Optional[str] = None
    floor: Optional[str] = None
    number: Optional[str] = None
    restriction: Optional[str] = None
    photo_url: Optional[str] = None
    is_available: Optional[bool] = None
    price_per_hour: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    amenities: Optional[Amenities] = None


class AvailabilityUpdate(BaseModel):
    is_available: bool


class Listing(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    owner_name: Optional[str] = None
    street: str
    city: str
    state: str
    zip_code: str
    country: str
    latitude: float
    longitude: float
    floor: Optional[str] = None
    number: Optional[str] = None
    restriction: Optional[str] = None
    instructions: str
    notes: Optional[str] = None
    photo_url: Optional[str] = None
    amenities: List[str] = Field(default_factory=list)
    price_per_hour: Decimal
    is_available: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class NearbyListing(Listing):
    distance_km: float


class MapMarker(BaseModel):
    id: int
    latitude: float
    longitude: float
    price_per_hour: Decimal
    is_available: bool
    owner_name: Optional[str] = None
