from __future__ import annotations
import uuid
from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from challengr.db import get_session
from challengr.security import decode_token
from challengr.models.profile import Profile

security = HTTPBearer()

ROLES = ("admin", "moderator", "user")

async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    session: AsyncSession = Depends(get_session),
) -> Profile:
    token = credentials.credentials
    try:
        data = decode_token(token)
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid token")
    if data.get("type") != "access":
        raise HTTPException(status_code=401, detail="Wrong token type")
    try:
        user_id = uuid.UUID(str(data.get("sub")))
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid subject")

    role = data.get("role") if data.get("role") in ROLES else "user"
    premium = bool(data.get("premium", False))
    username = data.get("username")

    # The identity provider owns role/premium; mirror them onto the reputation account
    profile = await session.get(Profile, user_id, populate_existing=True)
    if profile is None:
        profile = Profile(user_id=user_id, username=username, role=role, is_premium=premium)
        session.add(profile)
        try:
            await session.commit()
        except IntegrityError:
            # first request of this user raced another one
            await session.rollback()
            profile = await session.get(Profile, user_id, populate_existing=True)
    elif (profile.role, profile.is_premium) != (role, premium) or (username and profile.username != username):
        profile.role = role
        profile.is_premium = premium
        if username:
            profile.username = username
        await session.commit()
    return profile

async def require_moderator(user: Profile = Depends(get_current_user)) -> Profile:
    if user.role not in ("admin", "moderator"):
        raise HTTPException(status_code=403, detail="Moderator access required")
    return user

async def require_admin(user: Profile = Depends(get_current_user)) -> Profile:
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
