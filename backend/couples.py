"""
Couple pairing: create, join, leave and re-date a couple.

A couple holds at most two members and a user belongs to at most one couple.
The first member is the creator and the only one allowed to change the start
date. Changing the date also changes the invite code.
"""
import logging
import uuid
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

import dates
from errors import AlreadyPaired, Conflict, CoupleFull, Forbidden, InvalidInput, InviteNotFound, NotFound, NotPaired
from invite_codes import decode_invite_code, derive_invite_code, normalize_code
from models import CoupleDetail, CoupleOut, UserOut

logger = logging.getLogger(__name__)

MAX_MEMBERS = 2


async def get_couple_for_user(db: AsyncIOMotorDatabase, user_id: str) -> Optional[dict]:
    """The caller's couple, or None when unpaired"""
    return await db.couples.find_one({"member_ids": user_id})


async def _ensure_unpaired(db: AsyncIOMotorDatabase, user_id: str):
    if await get_couple_for_user(db, user_id):
        raise AlreadyPaired()


async def _ensure_code_free(db: AsyncIOMotorDatabase, invite_code: str, couple_id: Optional[str] = None):
    holder = await db.couples.find_one({"invite_code": invite_code})
    if holder and holder["id"] != couple_id:
        raise Conflict("Invite code already in use, pick another start date")


async def create_couple(db: AsyncIOMotorDatabase, user_id: str, start_date: Optional[str]) -> dict:
    dates.parse_past_day(start_date)
    await _ensure_unpaired(db, user_id)

    invite_code = derive_invite_code(start_date)
    await _ensure_code_free(db, invite_code)

    couple = {
        "id": str(uuid.uuid4()),
        "member_ids": [user_id],
        "invite_code": invite_code,
        "start_date": start_date,
        "created_at": dates.utcnow(),
    }
    try:
        await db.couples.insert_one(couple)
    except DuplicateKeyError:
        raise Conflict("Invite code already in use, pick another start date")

    logger.info(f"Couple {couple['id']} created by {user_id}")
    return couple


async def join_couple(db: AsyncIOMotorDatabase, user_id: str, invite_code: Optional[str]) -> dict:
    code = normalize_code(invite_code)
    if not code:
        raise InvalidInput("Invite code required")

    await _ensure_unpaired(db, user_id)

    # Codes that do not decode to a date were never issued
    couple = None
    if decode_invite_code(code):
        couple = await db.couples.find_one({"invite_code": code})
    if not couple:
        raise InviteNotFound()
    if len(couple["member_ids"]) >= MAX_MEMBERS:
        raise CoupleFull()

    # Only matches while a single member is present, so two joiners cannot both land
    updated = await db.couples.find_one_and_update(
        {"id": couple["id"], "member_ids": {"$size": 1}},
        {"$push": {"member_ids": user_id}},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise CoupleFull()

    logger.info(f"User {user_id} joined couple {couple['id']}")
    return updated


async def leave_couple(db: AsyncIOMotorDatabase, user_id: str):
    couple = await get_couple_for_user(db, user_id)
    if not couple:
        raise NotPaired()

    remaining = [m for m in couple["member_ids"] if m != user_id]
    if remaining:
        await db.couples.update_one({"id": couple["id"]}, {"$pull": {"member_ids": user_id}})
    else:
        # Last one out removes the couple and frees its invite code
        await db.couples.delete_one({"id": couple["id"]})

    logger.info(f"User {user_id} left couple {couple['id']}")


async def update_start_date(db: AsyncIOMotorDatabase, user_id: str, start_date: Optional[str]) -> dict:
    dates.parse_past_day(start_date)

    couple = await get_couple_for_user(db, user_id)
    if not couple:
        raise NotFound("No couple found")
    if couple["member_ids"][0] != user_id:
        raise Forbidden("Only the couple's creator can change the start date")

    # The code is tied to the date: a new date invalidates the old invite
    invite_code = derive_invite_code(start_date)
    await _ensure_code_free(db, invite_code, couple["id"])
    try:
        updated = await db.couples.find_one_and_update(
            {"id": couple["id"]},
            {"$set": {"start_date": start_date, "invite_code": invite_code}},
            return_document=ReturnDocument.AFTER,
        )
    except DuplicateKeyError:
        raise Conflict("Invite code already in use, pick another start date")
    if not updated:
        raise NotFound("No couple found")

    logger.info(f"Couple {couple['id']} start date set to {start_date}")
    return updated


async def describe_couple(db: AsyncIOMotorDatabase, couple: dict) -> CoupleDetail:
    """Projection for GET /couple/me: members, creator and days together"""
    member_ids = couple.get("member_ids", [])
    users = await db.users.find({"id": {"$in": member_ids}}).to_list(None)
    by_id = {u["id"]: u for u in users}
    base = CoupleOut.from_doc(couple)
    return CoupleDetail(
        **base.model_dump(),
        creator_id=member_ids[0] if member_ids else None,
        members=[UserOut.from_doc(by_id[m]) for m in member_ids if m in by_id],
        days_together=dates.days_since(couple.get("start_date")),
    )
