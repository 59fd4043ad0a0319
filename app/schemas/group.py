from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import List, Optional
from enum import Enum

from app.schemas.friendship import ResponseDecision


class MembershipStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class GroupCreate(BaseModel):
    name: str
    invitee_ids: List[int] = Field(default_factory=list)


class GroupInvite(BaseModel):
    user_id: int


class GroupInviteAction(BaseModel):
    action: ResponseDecision


class GroupMember(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    group_id: int
    user_id: int
    sender_id: int
    status: MembershipStatus
    full_name: Optional[str] = None


class Group(BaseModel):
    id: int
    name: str
    created_by: int
    created_at: Optional[datetime] = None
    members: List[GroupMember] = Field(default_factory=list)


class GroupInvitation(BaseModel):
    id: int
    group_id: int
    group_name: str
    sender_id: int
    status: MembershipStatus
