from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.core.database import get_db
from app.api.deps import get_current_user
from app.schemas.group import (
    Group, GroupCreate, GroupInvite, GroupInviteAction, GroupInvitation, GroupMember
)
from app.models.user import User as UserModel
from app.services.group import GroupService

router = APIRouter()


@router.post("/", response_model=Group, status_code=status.HTTP_201_CREATED)
async def create_group(
    group_data: GroupCreate,
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Create a lucky group; the creator joins automatically"""
    service = GroupService(db)
    return await service.create_group(current_user.id, group_data.name, group_data.invitee_ids)


@router.get("/", response_model=List[Group])
async def list_groups(
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Groups the current user created or joined"""
    service = GroupService(db)
    return await service.list_groups(current_user.id)


@router.get("/invitations", response_model=List[GroupInvitation])
async def list_invitations(
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Pending invitations addressed to the current user"""
    service = GroupService(db)
    return await service.pending_invites(current_user.id)


@router.put("/invitations/{membership_id}", response_model=GroupMember)
async def respond_to_invitation(
    membership_id: int,
    action_data: GroupInviteAction,
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Accept or reject a group invitation"""
    service = GroupService(db)
    return await service.respond_group_invite(membership_id, current_user.id, action_data.action)


@router.get("/{group_id}", response_model=Group)
async def get_group(
    group_id: int,
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = GroupService(db)
    return await service.get_group(group_id, current_user.id)


@router.post("/{group_id}/members", response_model=GroupMember, status_code=status.HTTP_201_CREATED)
async def invite_member(
    group_id: int,
    invite: GroupInvite,
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Invite a user to the group (creator only)"""
    service = GroupService(db)
    return await service.invite_to_group(group_id, current_user.id, invite.user_id)


@router.delete("/{group_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    group_id: int,
    user_id: int,
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Remove a member (creator only)"""
    service = GroupService(db)
    await service.remove_member(group_id, current_user.id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{group_id}/leave", status_code=status.HTTP_204_NO_CONTENT)
async def leave_group(
    group_id: int,
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Leave a group you were invited to"""
    service = GroupService(db)
    await service.leave_group(group_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
