from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.api.deps import get_current_user
from app.schemas.friendship import (
    FriendRequestCreate, FriendRequestAction, FriendsList, PendingRequests, FriendshipView
)
from app.models.user import User as UserModel
from app.services.friendship import FriendshipService

router = APIRouter()


@router.post("/requests", response_model=FriendshipView, status_code=status.HTTP_201_CREATED)
async def send_friend_request(
    request_data: FriendRequestCreate,
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Send a friend request to another user"""
    service = FriendshipService(db)
    return await service.propose_friendship(current_user.id, request_data.receiver_id)


@router.put("/requests/{request_id}", response_model=FriendshipView)
async def handle_friend_request(
    request_id: int,
    action_data: FriendRequestAction,
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Accept or reject a friend request"""
    service = FriendshipService(db)
    return await service.respond_friendship(request_id, current_user.id, action_data.action)


@router.get("/requests", response_model=PendingRequests)
async def get_pending_requests(
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get all pending friend requests (sent and received)"""
    service = FriendshipService(db)
    return await service.get_pending_requests(current_user.id)


@router.get("/", response_model=FriendsList)
async def get_friends(
    limit: int = Query(50, ge=1, le=100, description="Maximum number of friends to return"),
    offset: int = Query(0, ge=0, description="Number of friends to skip"),
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get list of current user's friends with pagination"""
    service = FriendshipService(db)
    return await service.get_friends_list(current_user.id, limit, offset)


@router.delete("/{friend_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unfriend_user(
    friend_id: int,
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Remove friendship (or a pending request) with another user"""
    service = FriendshipService(db)
    await service.remove_friendship(current_user.id, friend_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
