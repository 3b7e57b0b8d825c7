"""
Daily quote for a couple.

One quote per couple per day. When none is stored, one is written (by
OpenAI when configured, otherwise picked from a fixed table by hashing the
date and couple id). Reads never fail: any error falls back to the table.
"""
import logging
import uuid
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from openai import AsyncOpenAI
from pymongo.errors import DuplicateKeyError, PyMongoError

import config
import dates
from models import QuoteOut, QuoteSource

logger = logging.getLogger(__name__)

FALLBACK_QUOTES = [
    "Is there anything you want to share with me today?",
    "Every day next to you is a beautiful day.",
    "I want to hear what you did today.",
    "Did you miss me today?",
    "How are you feeling today?",
    "I love you a little more every day.",
    "You are the best thing in my life.",
    "Is there something you want to tell me today?",
    "Every moment with you is worth remembering.",
    "You make my life mean something.",
    "Did today make you smile?",
    "You are always on my mind.",
    "You are my inspiration.",
    "What was the most fun part of your day?",
    "Tell me about your day, I'm listening.",
    "You are the best part of my day.",
    "I love how you make everything feel special.",
    "Do you remember our favourite moments together?",
    "I want to know everything about your day.",
    "You are the reason I wake up smiling.",
    "I love how you make hard things feel easy.",
    "You are the brightest star in my sky.",
    "I'm always here to listen to you.",
    "You make my heart beat faster.",
    "I love you for everything you are.",
    "You are the most important person to me.",
    "What are you thinking about right now?",
    "You are the best thing that ever happened to me.",
    "You are my perfect partner.",
    "You are where my happiness comes from.",
    "I love you more than you can imagine.",
    "You fill my life with colour.",
    "I want to hear every little thing about your day.",
    "You are the one I want to spend my life with.",
]


def string_hash(text: str) -> int:
    """31-multiplier string hash wrapped to a signed 32-bit integer"""
    value = 0
    for ch in text:
        value = (value * 31 + ord(ch)) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return value


def quote_index(day: str, couple_id: str) -> int:
    return abs(string_hash(day + couple_id)) % len(FALLBACK_QUOTES)


def fallback_quote(day: str, couple_id: str) -> str:
    return FALLBACK_QUOTES[quote_index(day, couple_id)]


async def generate_ai_quote() -> Optional[str]:
    """Ask OpenAI for a short loving prompt; None when not configured or on failure"""
    if not config.OPENAI_API_KEY:
        return None
    try:
        client = AsyncOpenAI(api_key=config.OPENAI_API_KEY)
        response = await client.chat.completions.create(
            model=config.OPENAI_MODEL,
            messages=[
                {"role": "system", "content": "You write one short, warm sentence a partner could read to start a conversation about their day."},
                {"role": "user", "content": "Write today's sentence for a couple's shared journal."},
            ],
            max_tokens=60,
            temperature=0.8,
        )
        text = (response.choices[0].message.content or "").strip()
        return text or None
    except Exception as e:
        logger.error(f"OpenAI API error: {e}")
        return None


async def get_quote_for_date(db: AsyncIOMotorDatabase, couple_id: str, day: str) -> QuoteOut:
    """Read-only lookup used by the day view"""
    try:
        quote = await db.daily_quotes.find_one({"couple_id": couple_id, "date": day})
    except PyMongoError as e:
        logger.error(f"Quote lookup failed: {e}")
        quote = None
    if quote:
        return QuoteOut(date=day, text=quote["text"], source=quote["source"])
    return QuoteOut(date=day, text=fallback_quote(day, couple_id), source=QuoteSource.FALLBACK)


async def get_today_quote(db: AsyncIOMotorDatabase, couple_id: str) -> QuoteOut:
    today = dates.today_str()
    try:
        quote = await db.daily_quotes.find_one({"couple_id": couple_id, "date": today})
        if quote:
            return QuoteOut(date=today, text=quote["text"], source=quote["source"])

        text = await generate_ai_quote()
        source = QuoteSource.PERSISTED if text else QuoteSource.FALLBACK
        quote = {
            "id": str(uuid.uuid4()),
            "couple_id": couple_id,
            "date": today,
            "text": text or fallback_quote(today, couple_id),
            "source": source.value,
            "created_at": dates.utcnow(),
        }
        try:
            await db.daily_quotes.insert_one(quote)
        except DuplicateKeyError:
            # The partner's request stored today's quote first
            quote = await db.daily_quotes.find_one({"couple_id": couple_id, "date": today}) or quote
        return QuoteOut(date=today, text=quote["text"], source=quote["source"])
    except PyMongoError as e:
        logger.error(f"Get quote error: {e}")
        return QuoteOut(date=today, text=fallback_quote(today, couple_id), source=QuoteSource.FALLBACK)
