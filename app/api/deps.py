from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from app.core.config import settings
from app.core.database import get_db
from app.models.user import User
from app.repositories.user import UserRepository
from app.utils.exceptions import AuthenticationError, NotFoundError

bearer_scheme = HTTPBearer(auto_error=False)


def decode_subject(token: str) -> str:
    """Verify a token issued by the identity provider and return its subject"""
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            options={"verify_aud": settings.JWT_AUDIENCE is not None}
        )
    except JWTError:
        raise AuthenticationError("Could not validate credentials")

    subject = payload.get("sub")
    if not subject:
        raise AuthenticationError("Token has no subject")
    return str(subject)


async def get_token_subject(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> str:
    if credentials is None:
        raise AuthenticationError("Not authenticated")
    return decode_subject(credentials.credentials)


async def get_current_user(
    subject: str = Depends(get_token_subject),
    db: AsyncSession = Depends(get_db)
) -> User:
    """The profile behind the bearer token"""
    user = await UserRepository(db).get_by_subject(subject)
    if not user:
        raise NotFoundError("Profile not found, create it with POST /api/v1/users/me")
    return user
