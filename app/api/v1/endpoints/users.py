from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.core.database import get_db
from app.api.deps import get_current_user, get_token_subject
from app.schemas.user import User, UserCreate, UserUpdate
from app.schemas.friendship import UserSearchResult
from app.models.user import User as UserModel
from app.repositories.user import UserRepository
from app.services.friendship import FriendshipService
from app.utils.exceptions import DuplicateRequest

router = APIRouter()


@router.post("/me", response_model=User, status_code=status.HTTP_201_CREATED)
async def create_profile(
    user_data: UserCreate,
    subject: str = Depends(get_token_subject),
    db: AsyncSession = Depends(get_db)
):
    """Create the profile for the authenticated identity (role is fixed afterwards)"""
    user_repo = UserRepository(db)
    if await user_repo.get_by_subject(subject):
        raise DuplicateRequest("Profile already exists")

    user = await user_repo.create(user_data, subject)
    if not user:
        raise DuplicateRequest("A user with this email already exists")
    return user


@router.get("/me", response_model=User)
async def get_current_user_profile(
    current_user: UserModel = Depends(get_current_user)
):
    """Get current user profile"""
    return current_user


@router.put("/me", response_model=User)
async def update_current_user(
    user_update: UserUpdate,
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Update current user profile"""
    user_repo = UserRepository(db)
    return await user_repo.update(current_user.id, user_update)


@router.get("/search", response_model=List[UserSearchResult])
async def search_users(
    q: str = Query(..., min_length=2, description="Search query (name or email)"),
    limit: int = Query(20, ge=1, le=50, description="Maximum number of results"),
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Search for users, tagged with their friendship status"""
    service = FriendshipService(db)
    return await service.search_users(q, current_user.id, limit)
