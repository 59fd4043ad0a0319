from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_, and_
from sqlalchemy.exc import IntegrityError

from app.models.user import User
from app.schemas.user import UserCreate, UserUpdate
from app.utils.search import LIKE_ESCAPE, contains_pattern


class UserRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, user_data: UserCreate, auth_subject: str) -> Optional[User]:
        """Create a user profile for an identity provider subject"""
        try:
            db_user = User(
                auth_subject=auth_subject,
                email=user_data.email,
                full_name=user_data.full_name,
                phone=user_data.phone,
                role=user_data.role.value
            )
            self.db.add(db_user)
            await self.db.commit()
            await self.db.refresh(db_user)
            return db_user
        except IntegrityError:
            await self.db.rollback()
            return None

    async def get_by_id(self, user_id: int) -> Optional[User]:
        """Get user by ID"""
        query = select(User).filter(User.id == user_id)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_subject(self, auth_subject: str) -> Optional[User]:
        """Get user by identity provider subject"""
        query = select(User).filter(User.auth_subject == auth_subject)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def search(self, query: str, exclude_user_id: int, limit: int = 20) -> List[User]:
        """Search users by full name or email"""
        pattern = contains_pattern(query)
        stmt = select(User).where(
            and_(
                User.id != exclude_user_id,
                or_(
                    User.full_name.ilike(pattern, escape=LIKE_ESCAPE),
                    User.email.ilike(pattern, escape=LIKE_ESCAPE)
                )
            )
        ).order_by(User.full_name).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def update(self, user_id: int, user_data: UserUpdate) -> Optional[User]:
        """Update user profile (role is immutable)"""
        user = await self.get_by_id(user_id)
        if not user:
            return None

        for field, value in user_data.model_dump(exclude_unset=True).items():
            setattr(user, field, value)

        await self.db.commit()
        await self.db.refresh(user)
        return user
