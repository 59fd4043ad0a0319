from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import or_, and_, select
from sqlalchemy.orm import selectinload
from typing import Iterable, List, Optional, Set

from app.models.group import LuckyGroup, GroupMember
from app.schemas.group import MembershipStatus


class GroupRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    def _group_query(self):
        # populate_existing so member lists reflect invites made earlier in the session
        return select(LuckyGroup).options(
            selectinload(LuckyGroup.members).selectinload(GroupMember.user)
        ).execution_options(populate_existing=True)

    async def create_with_creator(self, name: str, creator_id: int, invitee_ids: Iterable[int] = ()) -> LuckyGroup:
        """Create a group, its creator's accepted membership and any pending invites in one commit"""
        group = LuckyGroup(name=name, created_by=creator_id)
        group.members.append(GroupMember(
            user_id=creator_id,
            sender_id=creator_id,
            status=MembershipStatus.ACCEPTED.value
        ))
        for invitee_id in invitee_ids:
            group.members.append(GroupMember(
                user_id=invitee_id,
                sender_id=creator_id,
                status=MembershipStatus.PENDING.value
            ))
        self.db.add(group)
        await self.db.commit()
        return await self.get_by_id(group.id)

    async def get_by_id(self, group_id: int) -> Optional[LuckyGroup]:
        result = await self.db.execute(self._group_query().where(LuckyGroup.id == group_id))
        return result.scalar_one_or_none()

    async def get_membership(self, group_id: int, user_id: int) -> Optional[GroupMember]:
        stmt = select(GroupMember).where(
            and_(GroupMember.group_id == group_id, GroupMember.user_id == user_id)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_membership_by_id(self, membership_id: int) -> Optional[GroupMember]:
        stmt = select(GroupMember).options(
            selectinload(GroupMember.group),
            selectinload(GroupMember.user)
        ).where(GroupMember.id == membership_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def add_membership(self, group_id: int, user_id: int, sender_id: int,
                             status: MembershipStatus = MembershipStatus.PENDING) -> GroupMember:
        membership = GroupMember(
            group_id=group_id,
            user_id=user_id,
            sender_id=sender_id,
            status=status.value
        )
        self.db.add(membership)
        await self.db.commit()
        await self.db.refresh(membership, ["user", "created_at", "updated_at"])
        return membership

    async def set_membership_status(self, membership: GroupMember, status: MembershipStatus,
                                    sender_id: Optional[int] = None) -> GroupMember:
        membership.status = status.value
        if sender_id is not None:
            membership.sender_id = sender_id
        await self.db.commit()
        await self.db.refresh(membership, ["user", "status", "sender_id", "updated_at"])
        return membership

    async def delete_membership(self, membership: GroupMember) -> None:
        await self.db.delete(membership)
        await self.db.commit()

    async def get_co_member_ids(self, user_id: int) -> Set[int]:
        """Ids of accepted members of every group where user_id is an accepted member"""
        my_groups = select(GroupMember.group_id).where(
            and_(
                GroupMember.user_id == user_id,
                GroupMember.status == MembershipStatus.ACCEPTED.value
            )
        )
        stmt = select(GroupMember.user_id).where(
            and_(
                GroupMember.group_id.in_(my_groups),
                GroupMember.status == MembershipStatus.ACCEPTED.value
            )
        ).distinct()
        result = await self.db.execute(stmt)
        return set(result.scalars().all())

    async def get_user_groups(self, user_id: int) -> List[LuckyGroup]:
        """Groups the user created or belongs to as an accepted member"""
        member_of = select(GroupMember.group_id).where(
            and_(
                GroupMember.user_id == user_id,
                GroupMember.status == MembershipStatus.ACCEPTED.value
            )
        )
        stmt = self._group_query().where(
            or_(LuckyGroup.created_by == user_id, LuckyGroup.id.in_(member_of))
        ).order_by(LuckyGroup.id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_pending_invites(self, user_id: int) -> List[GroupMember]:
        stmt = select(GroupMember).options(
            selectinload(GroupMember.group)
        ).where(
            and_(
                GroupMember.user_id == user_id,
                GroupMember.status == MembershipStatus.PENDING.value
            )
        ).order_by(GroupMember.id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
