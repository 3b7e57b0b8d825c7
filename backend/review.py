"""
Yearly mood review: one dominant mood per calendar day, for a heatmap.

The series is dense. Every day of the year is present, empty days as nulls,
because the heatmap lays days out by position.
"""
from typing import Dict, Iterable, List, Optional, Union

from motor.motor_asyncio import AsyncIOMotorDatabase

import dates
from errors import InvalidInput
from models import CoupleReviewDay, MoodSnapshot, ReviewDay, ReviewView


def parse_view(value: Optional[str]) -> ReviewView:
    try:
        return ReviewView(value or ReviewView.COUPLE.value)
    except ValueError:
        raise InvalidInput("view must be one of: me, partner, couple")


def parse_year(value: Optional[int]) -> int:
    year = value if value is not None else dates.today().year
    if not 1 <= year <= 9999:
        raise InvalidInput("year out of range")
    return year


def dominant_by_date(events: Iterable[dict]) -> Dict[str, dict]:
    """
    Sort once (date asc, intensity desc, newest first) and keep the first
    event seen for each date.
    """
    ordered = sorted(events, key=lambda e: e["created_at"], reverse=True)
    ordered.sort(key=lambda e: e["intensity"], reverse=True)
    ordered.sort(key=lambda e: e["date"])

    by_date = {}
    for event in ordered:
        by_date.setdefault(event["date"], event)
    return by_date


async def _events_in_year(db: AsyncIOMotorDatabase, couple_id: str, user_id: Optional[str], year: int) -> List[dict]:
    if not user_id:
        return []
    return await db.mood_events.find({
        "couple_id": couple_id,
        "user_id": user_id,
        "date": {"$gte": f"{year:04d}-01-01", "$lte": f"{year:04d}-12-31"},
    }).to_list(None)


async def build_year_series(
    db: AsyncIOMotorDatabase,
    couple: dict,
    user_id: str,
    year: int,
    view: ReviewView,
) -> List[Union[ReviewDay, CoupleReviewDay]]:
    partner_id = next((m for m in couple["member_ids"] if m != user_id), None)
    days = dates.days_in_year(year)

    if view == ReviewView.COUPLE:
        mine = dominant_by_date(await _events_in_year(db, couple["id"], user_id, year))
        partners = dominant_by_date(await _events_in_year(db, couple["id"], partner_id, year))
        return [
            CoupleReviewDay(
                date=day,
                me=MoodSnapshot.from_doc(mine.get(day)),
                partner=MoodSnapshot.from_doc(partners.get(day)),
            )
            for day in days
        ]

    subject = user_id if view == ReviewView.ME else partner_id
    moods = dominant_by_date(await _events_in_year(db, couple["id"], subject, year))
    series = []
    for day in days:
        event = moods.get(day)
        series.append(ReviewDay(
            date=day,
            mood=event["mood"] if event else None,
            intensity=event["intensity"] if event else None,
        ))
    return series
