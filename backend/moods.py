"""
Mood check-ins and the per-day "dominant mood".

A user may check in many times a day. The mood that represents the day is
derived on every read: highest intensity wins, the most recent event breaks
ties. It is never stored.
"""
import logging
import uuid
from typing import Iterable, List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

import dates
from errors import NotFound
from models import MOOD_EMOJI, MatchStatus, MoodMatchOut, MoodPair, MoodSnapshot, MoodTag

logger = logging.getLogger(__name__)

MIN_INTENSITY = 0
MAX_INTENSITY = 3


def clamp_intensity(value: int) -> int:
    return max(MIN_INTENSITY, min(MAX_INTENSITY, int(value)))


def dominance_key(event: dict):
    return (event["intensity"], event["created_at"])


def sort_by_dominance(events: Iterable[dict]) -> List[dict]:
    """Intensity descending, then newest first"""
    return sorted(events, key=dominance_key, reverse=True)


def pick_dominant(events: Iterable[dict]) -> Optional[dict]:
    events = list(events)
    if not events:
        return None
    return max(events, key=dominance_key)


async def record_mood(
    db: AsyncIOMotorDatabase,
    user_id: str,
    couple_id: str,
    mood: MoodTag,
    intensity: int,
    note: Optional[str] = None,
    event_id: Optional[str] = None,
) -> dict:
    """Insert a check-in for today, or correct one of the caller's events in place"""
    intensity = clamp_intensity(intensity)
    mood = MoodTag(mood).value

    if event_id:
        event = await db.mood_events.find_one_and_update(
            {"id": event_id, "user_id": user_id},
            {"$set": {"mood": mood, "intensity": intensity, "note": note or ""}},
            return_document=ReturnDocument.AFTER,
        )
        if not event:
            raise NotFound("Mood event not found")
        return event

    event = {
        "id": str(uuid.uuid4()),
        "couple_id": couple_id,
        "user_id": user_id,
        "date": dates.today_str(),
        "mood": mood,
        "intensity": intensity,
        "note": note or "",
        "created_at": dates.utcnow(),
    }
    await db.mood_events.insert_one(event)
    logger.info(f"Mood {mood}/{intensity} recorded for {user_id}")
    return event


async def get_events_for_day(db: AsyncIOMotorDatabase, user_id: Optional[str], day: str) -> List[dict]:
    if not user_id:
        return []
    events = await db.mood_events.find({"user_id": user_id, "date": day}).to_list(None)
    return sort_by_dominance(events)


async def get_dominant_mood(db: AsyncIOMotorDatabase, user_id: str, day: str) -> Optional[dict]:
    return pick_dominant(await get_events_for_day(db, user_id, day))


async def get_moods_for_day(db: AsyncIOMotorDatabase, user_id: str, partner_id: Optional[str], day: str) -> Tuple[List[dict], List[dict]]:
    """Both members' events for ``day``, each list dominant-first"""
    mine = await get_events_for_day(db, user_id, day)
    partners = await get_events_for_day(db, partner_id, day)
    return mine, partners


def classify_match(member_count: int, mine: Optional[dict], partners: Optional[dict]) -> MatchStatus:
    """Only the mood tags are compared; intensity does not matter"""
    if member_count < 2:
        return MatchStatus.WAITING
    if not mine and not partners:
        return MatchStatus.NONE
    if not mine or not partners:
        return MatchStatus.ONE_SIDED
    if mine["mood"] == partners["mood"]:
        return MatchStatus.MATCH
    return MatchStatus.MISMATCH


def _label(mood: str) -> str:
    return f"{MOOD_EMOJI.get(MoodTag(mood), '😊')} {mood}"


def match_message(status: MatchStatus, mine: Optional[dict], partners: Optional[dict], partner_name: Optional[str] = None) -> str:
    if status == MatchStatus.WAITING:
        return "Waiting for your partner to join"
    if status == MatchStatus.NONE:
        return "Neither of you has checked in today"
    if status == MatchStatus.ONE_SIDED:
        if mine:
            return "You checked in, your partner hasn't yet"
        return "Your partner checked in, you haven't yet"
    if status == MatchStatus.MATCH:
        return f"Same mood today: {_label(mine['mood'])}"
    return f"Different moods today: you {_label(mine['mood'])}, {partner_name or 'your partner'} {_label(partners['mood'])}"


async def get_today_mood_match(db: AsyncIOMotorDatabase, user_id: str, couple: dict) -> MoodMatchOut:
    member_count = len(couple.get("member_ids", []))
    if member_count < 2:
        status = MatchStatus.WAITING
        return MoodMatchOut(status=status, message=match_message(status, None, None))

    partner_id = next((m for m in couple["member_ids"] if m != user_id), None)
    today = dates.today_str()
    mine = await get_dominant_mood(db, user_id, today)
    partners = await get_dominant_mood(db, partner_id, today)

    status = classify_match(member_count, mine, partners)
    partner_name = None
    if status == MatchStatus.MISMATCH:
        partner = await db.users.find_one({"id": partner_id})
        partner_name = partner.get("name") if partner else None

    return MoodMatchOut(
        status=status,
        message=match_message(status, mine, partners, partner_name),
        moods=MoodPair(me=MoodSnapshot.from_doc(mine), partner=MoodSnapshot.from_doc(partners)),
    )
