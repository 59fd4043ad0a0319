from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union
from enum import Enum


class FriendshipStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class ResponseDecision(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"


# A friendship row read as a tagged value: directed while pending or
# rejected, an unordered pair (a < b) once accepted.
class PendingFriendship(BaseModel):
    kind: Literal["pending"] = "pending"
    id: int
    sender_id: int
    receiver_id: int


class AcceptedFriendship(BaseModel):
    kind: Literal["accepted"] = "accepted"
    id: int
    a: int
    b: int

    def other(self, user_id: int) -> int:
        return self.b if user_id == self.a else self.a


class RejectedFriendship(BaseModel):
    kind: Literal["rejected"] = "rejected"
    id: int
    sender_id: int
    receiver_id: int


FriendshipView = Annotated[
    Union[PendingFriendship, AcceptedFriendship, RejectedFriendship],
    Field(discriminator="kind")
]


def to_friendship_view(friendship) -> FriendshipView:
    """Build the tagged value for a Friendship row"""
    if friendship.status == FriendshipStatus.ACCEPTED:
        a, b = sorted((friendship.sender_id, friendship.receiver_id))
        return AcceptedFriendship(id=friendship.id, a=a, b=b)
    if friendship.status == FriendshipStatus.REJECTED:
        return RejectedFriendship(
            id=friendship.id,
            sender_id=friendship.sender_id,
            receiver_id=friendship.receiver_id
        )
    return PendingFriendship(
        id=friendship.id,
        sender_id=friendship.sender_id,
        receiver_id=friendship.receiver_id
    )


class UserSearchResult(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    full_name: str
    email: str
    is_friend: bool = False
    friendship_status: Optional[FriendshipStatus] = None


class FriendRequestCreate(BaseModel):
    receiver_id: int


class FriendRequestAction(BaseModel):
    action: ResponseDecision


class FriendRequestDetail(BaseModel):
    id: int
    status: FriendshipStatus
    created_at: Optional[datetime] = None
    sender: UserSearchResult
    receiver: UserSearchResult


class FriendsList(BaseModel):
    friends: List[UserSearchResult]
    total_count: int


class PendingRequests(BaseModel):
    sent_requests: List[FriendRequestDetail]
    received_requests: List[FriendRequestDetail]
    total_sent: int
    total_received: int
