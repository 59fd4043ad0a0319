from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import or_, and_, func, select
from sqlalchemy.orm import selectinload
from typing import List, Optional, Set, Tuple

from app.models.friendship import Friendship
from app.models.user import User
from app.schemas.friendship import FriendshipStatus

ACTIVE_STATUSES = (FriendshipStatus.PENDING.value, FriendshipStatus.ACCEPTED.value)


def _between(user1_id: int, user2_id: int):
    return or_(
        and_(Friendship.sender_id == user1_id, Friendship.receiver_id == user2_id),
        and_(Friendship.sender_id == user2_id, Friendship.receiver_id == user1_id)
    )


class FriendshipRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_active_between(self, user1_id: int, user2_id: int) -> Optional[Friendship]:
        """Get the pending or accepted edge between two users, either direction"""
        stmt = select(Friendship).where(
            and_(
                _between(user1_id, user2_id),
                Friendship.status.in_(ACTIVE_STATUSES)
            )
        ).order_by(Friendship.id.desc())
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def get_by_id(self, friendship_id: int) -> Optional[Friendship]:
        stmt = select(Friendship).where(Friendship.id == friendship_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, sender_id: int, receiver_id: int) -> Friendship:
        """Create a new pending friend request"""
        friendship = Friendship(
            sender_id=sender_id,
            receiver_id=receiver_id,
            status=FriendshipStatus.PENDING.value
        )
        self.db.add(friendship)
        await self.db.commit()
        await self.db.refresh(friendship)
        return friendship

    async def set_status(self, friendship: Friendship, status: FriendshipStatus) -> Friendship:
        friendship.status = status.value
        await self.db.commit()
        await self.db.refresh(friendship)
        return friendship

    async def delete(self, friendship: Friendship) -> None:
        await self.db.delete(friendship)
        await self.db.commit()

    async def get_friend_ids(self, user_id: int) -> Set[int]:
        """Ids of users with an accepted edge to user_id, either direction"""
        stmt = select(Friendship.sender_id, Friendship.receiver_id).where(
            and_(
                or_(Friendship.sender_id == user_id, Friendship.receiver_id == user_id),
                Friendship.status == FriendshipStatus.ACCEPTED.value
            )
        )
        result = await self.db.execute(stmt)
        return {
            receiver_id if sender_id == user_id else sender_id
            for sender_id, receiver_id in result.all()
        }

    async def get_active_for_user(self, user_id: int) -> List[Friendship]:
        stmt = select(Friendship).where(
            and_(
                or_(Friendship.sender_id == user_id, Friendship.receiver_id == user_id),
                Friendship.status.in_(ACTIVE_STATUSES)
            )
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_friends(self, user_id: int, limit: int = 50, offset: int = 0) -> Tuple[List[User], int]:
        """Get list of friends for a user with pagination"""
        friends_stmt = select(User).join(
            Friendship,
            or_(
                and_(Friendship.sender_id == user_id, Friendship.receiver_id == User.id),
                and_(Friendship.receiver_id == user_id, Friendship.sender_id == User.id)
            )
        ).where(
            Friendship.status == FriendshipStatus.ACCEPTED.value
        )

        count_stmt = select(func.count()).select_from(friends_stmt.subquery())
        count_result = await self.db.execute(count_stmt)
        total_count = count_result.scalar()

        friends_stmt = friends_stmt.order_by(User.full_name).offset(offset).limit(limit)
        friends_result = await self.db.execute(friends_stmt)
        friends = list(friends_result.scalars().all())

        return friends, total_count

    async def get_pending_requests(self, user_id: int) -> Tuple[List[Friendship], List[Friendship]]:
        """Get sent and received pending friend requests"""
        base = select(Friendship).options(
            selectinload(Friendship.sender),
            selectinload(Friendship.receiver)
        ).order_by(Friendship.created_at.desc(), Friendship.id.desc())

        sent_result = await self.db.execute(base.where(
            and_(
                Friendship.sender_id == user_id,
                Friendship.status == FriendshipStatus.PENDING.value
            )
        ))
        received_result = await self.db.execute(base.where(
            and_(
                Friendship.receiver_id == user_id,
                Friendship.status == FriendshipStatus.PENDING.value
            )
        ))

        return list(sent_result.scalars().all()), list(received_result.scalars().all())
