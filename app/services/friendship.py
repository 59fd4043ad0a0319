from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional, Set
import logging

from app.repositories.friendship import FriendshipRepository
from app.repositories.user import UserRepository
from app.schemas.friendship import (
    UserSearchResult, FriendsList, PendingRequests, FriendRequestDetail,
    FriendshipStatus, FriendshipView, ResponseDecision, to_friendship_view
)
from app.utils.exceptions import (
    ValidationError, NotFoundError, NotAuthorized, InvalidState, DuplicateRequest
)

logger = logging.getLogger(__name__)


def _search_result(user, status: Optional[FriendshipStatus] = None) -> UserSearchResult:
    return UserSearchResult(
        id=user.id,
        full_name=user.full_name,
        email=user.email,
        is_friend=status == FriendshipStatus.ACCEPTED,
        friendship_status=status
    )


class FriendshipService:

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = FriendshipRepository(db)
        self.user_repo = UserRepository(db)

    async def search_users(self, query: str, current_user_id: int, limit: int = 20) -> List[UserSearchResult]:
        """Search users and include friendship status"""
        if not query or len(query.strip()) < 2:
            raise ValidationError("Search query must be at least 2 characters long")

        users = await self.user_repo.search(query.strip(), current_user_id, limit)
        statuses = {}
        for friendship in await self.repo.get_active_for_user(current_user_id):
            other_id = friendship.receiver_id if friendship.sender_id == current_user_id else friendship.sender_id
            statuses[other_id] = FriendshipStatus(friendship.status)

        return [_search_result(user, statuses.get(user.id)) for user in users]

    async def propose_friendship(self, sender_id: int, receiver_id: int) -> FriendshipView:
        """Send a friend request"""
        if sender_id == receiver_id:
            raise ValidationError("Cannot send friend request to yourself")

        if not await self.user_repo.get_by_id(receiver_id):
            raise NotFoundError("User not found")

        existing = await self.repo.get_active_between(sender_id, receiver_id)
        if existing:
            if existing.status == FriendshipStatus.PENDING:
                raise DuplicateRequest("Friend request already sent")
            raise DuplicateRequest("You are already friends with this user")

        friendship = await self.repo.create(sender_id, receiver_id)
        logger.info("Friend request %s: user %s -> user %s", friendship.id, sender_id, receiver_id)
        return to_friendship_view(friendship)

    async def respond_friendship(self, friendship_id: int, responder_id: int,
                                 decision: ResponseDecision) -> FriendshipView:
        """Accept or reject a friend request (receiver only)"""
        friendship = await self.repo.get_by_id(friendship_id)
        if not friendship:
            raise NotFoundError("Friend request not found")

        if friendship.receiver_id != responder_id:
            raise NotAuthorized("Only the receiver can respond to a friend request")

        if friendship.status != FriendshipStatus.PENDING:
            raise InvalidState(f"Friend request is already {friendship.status}")

        new_status = FriendshipStatus.ACCEPTED if decision == ResponseDecision.ACCEPT else FriendshipStatus.REJECTED
        friendship = await self.repo.set_status(friendship, new_status)
        logger.info("Friend request %s %s by user %s", friendship_id, new_status.value, responder_id)
        return to_friendship_view(friendship)

    async def remove_friendship(self, user_a: int, user_b: int) -> None:
        """Remove the active edge between two users; no-op when there is none"""
        friendship = await self.repo.get_active_between(user_a, user_b)
        if friendship is None:
            return
        await self.repo.delete(friendship)
        logger.info("Friendship between user %s and user %s removed", user_a, user_b)

    async def friend_ids(self, user_id: int) -> Set[int]:
        return await self.repo.get_friend_ids(user_id)

    async def get_friends_list(self, user_id: int, limit: int = 50, offset: int = 0) -> FriendsList:
        """Get list of user's friends"""
        friends, total_count = await self.repo.get_friends(user_id, limit, offset)
        return FriendsList(
            friends=[_search_result(friend, FriendshipStatus.ACCEPTED) for friend in friends],
            total_count=total_count
        )

    async def get_pending_requests(self, user_id: int) -> PendingRequests:
        """Get pending friend requests (sent and received)"""
        sent_requests, received_requests = await self.repo.get_pending_requests(user_id)

        def detail(req) -> FriendRequestDetail:
            return FriendRequestDetail(
                id=req.id,
                status=FriendshipStatus(req.status),
                created_at=req.created_at,
                sender=_search_result(req.sender),
                receiver=_search_result(req.receiver)
            )

        sent_list = [detail(req) for req in sent_requests]
        received_list = [detail(req) for req in received_requests]
        return PendingRequests(
            sent_requests=sent_list,
            received_requests=received_list,
            total_sent=len(sent_list),
            total_received=len(received_list)
        )
