from datetime import datetime, timedelta, timezone
import uuid
import logging

from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from focustube.config import settings
from focustube.database import get_db
from focustube.models.profile import Profile

logger = logging.getLogger(__name__)

# Tokens come from the hosted auth provider; tokenUrl is only for the OpenAPI docs
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)


def create_access_token(user_id, expires_delta: timedelta | None = None, **claims) -> str:
    to_encode = {"sub": str(user_id), **claims}
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict | None:
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT decode error: {e}")
        return None


async def get_current_user(
    token: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> Profile:
    """
    Resolve the bearer token to a Profile.
    First request of a new provider user creates their empty profile.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not token:
        logger.warning("No token provided in Authorization header")
        raise credentials_exception

    payload = decode_token(token)
    if payload is None:
        raise credentials_exception

    user_id: str | None = payload.get("sub")
    if user_id is None:
        logger.warning("Token has no 'sub' claim")
        raise credentials_exception

    try:
        uid = uuid.UUID(user_id)
    except ValueError:
        logger.warning(f"Invalid UUID format: {user_id}")
        raise credentials_exception

    result = await db.execute(select(Profile).where(Profile.id == uid))
    profile = result.scalar_one_or_none()
    if profile is None:
        profile = Profile(id=uid, email=payload.get("email"))
        db.add(profile)
        await db.flush()
        await db.refresh(profile)
        logger.info(f"Provisioned profile for new user {uid}")
    return profile
