from sqlalchemy.ext.asyncio import AsyncSession
from typing import Iterable, List, Optional
import logging

from app.repositories.group import GroupRepository
from app.repositories.friendship import FriendshipRepository
from app.repositories.user import UserRepository
from app.models.group import LuckyGroup, GroupMember as GroupMemberModel
from app.schemas.group import Group, GroupMember, GroupInvitation, MembershipStatus
from app.schemas.friendship import ResponseDecision
from app.utils.exceptions import (
    ValidationError, NotFoundError, NotAuthorized, InvalidState, DuplicateRequest, AlreadyMember
)

logger = logging.getLogger(__name__)


def _member(membership: GroupMemberModel) -> GroupMember:
    return GroupMember(
        id=membership.id,
        group_id=membership.group_id,
        user_id=membership.user_id,
        sender_id=membership.sender_id,
        status=MembershipStatus(membership.status),
        full_name=membership.user.full_name if membership.user else None
    )


def _group(group: LuckyGroup) -> Group:
    return Group(
        id=group.id,
        name=group.name,
        created_by=group.created_by,
        created_at=group.created_at,
        members=[_member(m) for m in sorted(group.members, key=lambda m: m.id)]
    )


class GroupService:
    """Lucky groups: members of a group see each other's listings once accepted"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = GroupRepository(db)
        self.friendship_repo = FriendshipRepository(db)
        self.user_repo = UserRepository(db)

    async def _get_group(self, group_id: int) -> LuckyGroup:
        group = await self.repo.get_by_id(group_id)
        if not group:
            raise NotFoundError("Group not found")
        return group

    async def create_group(self, creator_id: int, name: str,
                           invitee_ids: Optional[Iterable[int]] = None) -> Group:
        """Create a group with its creator as an accepted member.

        Initial invitees must be accepted friends of the creator; they are
        invited (pending) in the same transaction that creates the group.
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Group name is required")

        invitees = []
        for invitee_id in invitee_ids or []:
            if invitee_id != creator_id and invitee_id not in invitees:
                invitees.append(invitee_id)
        if invitees:
            friend_ids = await self.friendship_repo.get_friend_ids(creator_id)
            strangers = [i for i in invitees if i not in friend_ids]
            if strangers:
                raise NotAuthorized("Initial members must be your friends")

        group = await self.repo.create_with_creator(name, creator_id, invitees)
        logger.info("Group %s created by user %s with %d invitees", group.id, creator_id, len(invitees))
        return _group(group)

    async def invite_to_group(self, group_id: int, inviter_id: int, invitee_id: int) -> GroupMember:
        """Invite a user; a previously rejected invite goes back to pending"""
        group = await self._get_group(group_id)
        if group.created_by != inviter_id:
            raise NotAuthorized("Only the group creator can invite members")

        if not await self.user_repo.get_by_id(invitee_id):
            raise NotFoundError("User not found")

        membership = await self.repo.get_membership(group_id, invitee_id)
        if membership is None:
            membership = await self.repo.add_membership(group_id, invitee_id, inviter_id)
        elif membership.status == MembershipStatus.PENDING:
            raise DuplicateRequest("Invitation already sent")
        elif membership.status == MembershipStatus.ACCEPTED:
            raise AlreadyMember("User is already in the group")
        else:
            membership = await self.repo.set_membership_status(
                membership, MembershipStatus.PENDING, sender_id=inviter_id
            )

        logger.info("User %s invited to group %s", invitee_id, group_id)
        return _member(membership)

    async def respond_group_invite(self, membership_id: int, responder_id: int,
                                   decision: ResponseDecision) -> GroupMember:
        """Accept or reject a group invitation (invitee only)"""
        membership = await self.repo.get_membership_by_id(membership_id)
        if not membership:
            raise NotFoundError("Invitation not found")

        if membership.user_id != responder_id:
            raise NotAuthorized("Only the invitee can respond to an invitation")

        if membership.status != MembershipStatus.PENDING:
            raise InvalidState(f"Invitation is already {membership.status}")

        new_status = MembershipStatus.ACCEPTED if decision == ResponseDecision.ACCEPT else MembershipStatus.REJECTED
        membership = await self.repo.set_membership_status(membership, new_status)
        logger.info("Invitation %s %s by user %s", membership_id, new_status.value, responder_id)
        return _member(membership)

    async def remove_member(self, group_id: int, requester_id: int, member_id: int) -> None:
        """Creator removes a member's record"""
        group = await self._get_group(group_id)
        if group.created_by != requester_id:
            raise NotAuthorized("Only the group creator can remove members")
        if member_id == group.created_by:
            raise NotAuthorized("The group creator cannot be removed")

        membership = await self.repo.get_membership(group_id, member_id)
        if not membership:
            raise NotFoundError("Member not found")

        await self.repo.delete_membership(membership)
        logger.info("User %s removed from group %s", member_id, group_id)

    async def leave_group(self, group_id: int, member_id: int) -> None:
        """An accepted non-creator member leaves the group"""
        group = await self._get_group(group_id)
        if group.created_by == member_id:
            raise NotAuthorized("The group creator cannot leave the group")

        membership = await self.repo.get_membership(group_id, member_id)
        if not membership or membership.status != MembershipStatus.ACCEPTED:
            raise NotFoundError("You are not a member of this group")

        await self.repo.delete_membership(membership)
        logger.info("User %s left group %s", member_id, group_id)

    async def get_group(self, group_id: int, user_id: int) -> Group:
        group = await self._get_group(group_id)
        # Pending invitees see the invitation, not the group
        members = {m.user_id for m in group.members if m.status == MembershipStatus.ACCEPTED}
        if user_id not in members:
            raise NotFoundError("Group not found")
        return _group(group)

    async def list_groups(self, user_id: int) -> List[Group]:
        return [_group(g) for g in await self.repo.get_user_groups(user_id)]

    async def pending_invites(self, user_id: int) -> List[GroupInvitation]:
        return [
            GroupInvitation(
                id=m.id,
                group_id=m.group_id,
                group_name=m.group.name,
                sender_id=m.sender_id,
                status=MembershipStatus(m.status)
            )
            for m in await self.repo.get_pending_invites(user_id)
        ]
