from typing import Optional
from pydantic import BaseModel, EmailStr, ConfigDict, Field
from datetime import datetime
from enum import Enum


class UserRole(str, Enum):
    OWNER = "owner"
    RENTER = "renter"


class UserCreate(BaseModel):
    email: EmailStr
    full_name: str = Field(..., min_length=1)
    phone: Optional[str] = None
    role: UserRole


class UserUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = None


class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    full_name: str
    email: EmailStr


class User(UserSummary):
    phone: Optional[str] = None
    role: UserRole
    created_at: datetime
    updated_at: Optional[datetime] = None
