"""
Session and couple resolution for Love Nest.

Every request re-derives the caller from the session token and, where needed,
the caller's couple from the store. Ids sent by the client are never used to
decide access.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import Cookie, Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from motor.motor_asyncio import AsyncIOMotorDatabase

import config
from database import get_database
from errors import NotFound, Unauthorized

security = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


def verify_password(password: str, hashed: str) -> bool:
    return bcrypt.checkpw(password.encode('utf-8'), hashed.encode('utf-8'))


def create_access_token(user_id: str) -> str:
    payload = {
        'sub': user_id,
        'exp': datetime.now(timezone.utc) + timedelta(days=config.SESSION_DAYS),
    }
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    session: Optional[str] = Cookie(default=None, alias=config.SESSION_COOKIE),
) -> str:
    """
    Extract the user id from the session token (bearer header or cookie)
    """
    token = credentials.credentials if credentials else session
    if not token:
        raise Unauthorized()

    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Session expired")
    except jwt.InvalidTokenError:
        raise Unauthorized("Invalid session")

    user_id = payload.get('sub')
    if not user_id:
        raise Unauthorized("Invalid session")
    return user_id


async def get_user(db: AsyncIOMotorDatabase, user_id: str) -> dict:
    user = await db.users.find_one({"id": user_id})
    if not user:
        raise NotFound("User not found")
    return user


async def get_current_user_profile(
    user_id: str = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
) -> dict:
    """
    Get current user's stored document
    """
    return await get_user(db, user_id)


@dataclass
class CoupleContext:
    """The caller and the couple they belong to"""
    user: dict
    couple: dict

    @property
    def user_id(self) -> str:
        return self.user["id"]

    @property
    def couple_id(self) -> str:
        return self.couple["id"]

    @property
    def partner_id(self) -> Optional[str]:
        return next((m for m in self.couple["member_ids"] if m != self.user_id), None)


async def get_current_couple(
    user: dict = Depends(get_current_user_profile),
    db: AsyncIOMotorDatabase = Depends(get_database),
) -> CoupleContext:
    """
    Guard for every couple-scoped endpoint: 404 when the caller is unpaired
    """
    couple = await db.couples.find_one({"member_ids": user["id"]})
    if not couple:
        raise NotFound("No couple found")
    return CoupleContext(user=user, couple=couple)
