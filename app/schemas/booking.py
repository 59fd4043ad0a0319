from pydantic import BaseModel, ConfigDict, Field, model_validator
from datetime import datetime
from decimal import Decimal
from typing import Optional
from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    DECLINED = "declined"
    PAID = "paid"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BookingDecision(str, Enum):
    CONFIRM = "confirm"
    DECLINE = "decline"


class BookingRole(str, Enum):
    RENTER = "renter"
    OWNER = "owner"


class BookingCreate(BaseModel):
    listing_id: int
    start_time: datetime
    end_time: Optional[datetime] = None
    hours: Optional[float] = Field(None, gt=0, allow_inf_nan=False)

    @model_validator(mode="after")
    def end_or_hours(self):
        # The booking form sends a start plus a number of hours
        if self.end_time is None and self.hours is None:
            raise ValueError("Either end_time or hours is required")
        if self.end_time is not None and self.hours is not None:
            raise ValueError("Send either end_time or hours, not both")
        return self


class BookingAction(BaseModel):
    decision: BookingDecision


class Booking(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    listing_id: int
    listing_address: str
    renter_id: int
    owner_id: int
    renter_name: Optional[str] = None
    owner_name: Optional[str] = None
    start_time: datetime
    duration_hours: float
    price: Decimal
    status: BookingStatus
    cancelled_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BookingView(Booking):
    """A booking as seen by one of its two parties"""
    role: BookingRole
    counterpart_name: Optional[str] = None
