"""
Posts, comments, reactions and chat messages, all scoped to one couple.
"""
import logging
import uuid
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

import dates
from errors import Forbidden, InvalidInput, NotFound
from models import CommentOut, MessageOut, PostImage, PostOut, ReactionOut, ReactionType

logger = logging.getLogger(__name__)

MAX_MESSAGE_PAGE = 100


async def users_by_id(db: AsyncIOMotorDatabase, user_ids: Iterable[str]) -> Dict[str, dict]:
    ids = list({uid for uid in user_ids if uid})
    if not ids:
        return {}
    users = await db.users.find({"id": {"$in": ids}}).to_list(None)
    return {u["id"]: u for u in users}


async def project_posts(db: AsyncIOMotorDatabase, posts: List[dict]) -> List[PostOut]:
    authors = await users_by_id(db, (p["author_id"] for p in posts))
    return [PostOut.from_doc(p, authors.get(p["author_id"])) for p in posts]


# =====================================================================================
# POSTS
# =====================================================================================

async def get_post(db: AsyncIOMotorDatabase, couple_id: str, post_id: str) -> dict:
    post = await db.posts.find_one({"id": post_id, "couple_id": couple_id})
    if not post:
        raise NotFound("Post not found")
    return post


async def save_post(
    db: AsyncIOMotorDatabase,
    user_id: str,
    couple_id: str,
    content: Optional[str],
    images: List[PostImage],
    post_id: Optional[str] = None,
) -> dict:
    """Create today's post, or edit one of the caller's posts when ``post_id`` is given"""
    if not content or not content.strip():
        raise InvalidInput("Content required")
    stored_images = [image.model_dump() for image in images]

    if post_id:
        post = await db.posts.find_one_and_update(
            {"id": post_id, "author_id": user_id, "couple_id": couple_id},
            {"$set": {"content": content, "images": stored_images}},
            return_document=ReturnDocument.AFTER,
        )
        if not post:
            raise NotFound("Post not found")
        return post

    post = {
        "id": str(uuid.uuid4()),
        "couple_id": couple_id,
        "author_id": user_id,
        "date": dates.today_str(),
        "content": content,
        "images": stored_images,
        "starred": False,
        "created_at": dates.utcnow(),
    }
    await db.posts.insert_one(post)
    return post


async def list_posts(
    db: AsyncIOMotorDatabase,
    user_id: str,
    couple: dict,
    range_: str = "week",
    author_filter: str = "both",
) -> List[dict]:
    if range_ not in ("week", "month"):
        raise InvalidInput("range must be week or month")
    if author_filter not in ("me", "partner", "both"):
        raise InvalidInput("filter must be me, partner or both")

    since = dates.month_ago() if range_ == "month" else dates.days_ago(7)
    query = {"couple_id": couple["id"], "date": {"$gte": since}}
    if author_filter == "me":
        query["author_id"] = user_id
    elif author_filter == "partner":
        partner_id = next((m for m in couple["member_ids"] if m != user_id), None)
        if not partner_id:
            return []
        query["author_id"] = partner_id

    return await db.posts.find(query).sort([("date", DESCENDING), ("created_at", DESCENDING)]).to_list(None)


async def list_starred_posts(db: AsyncIOMotorDatabase, couple_id: str) -> List[dict]:
    return await db.posts.find({"couple_id": couple_id, "starred": True}).sort(
        [("date", DESCENDING), ("created_at", DESCENDING)]
    ).to_list(None)


async def posts_for_day(db: AsyncIOMotorDatabase, couple_id: str, day: str) -> List[dict]:
    """All posts of a day. Several per author are allowed, so this is always a list."""
    return await db.posts.find({"couple_id": couple_id, "date": day}).sort("created_at", DESCENDING).to_list(None)


async def set_star(db: AsyncIOMotorDatabase, couple_id: str, post_id: str, starred: Optional[bool]) -> dict:
    post = await get_post(db, couple_id, post_id)
    value = (not post.get("starred", False)) if starred is None else bool(starred)
    await db.posts.update_one({"id": post_id}, {"$set": {"starred": value}})
    post["starred"] = value
    return post


async def delete_post(db: AsyncIOMotorDatabase, user_id: str, couple_id: str, post_id: str) -> dict:
    """
    Author-only delete. Children go first so an interrupted delete leaves a
    post without comments rather than comments without a post; reconcile.py
    sweeps anything left behind.
    """
    post = await get_post(db, couple_id, post_id)
    if post["author_id"] != user_id:
        raise Forbidden("Only the author can delete this post")

    await db.comments.delete_many({"post_id": post_id})
    await db.reactions.delete_many({"post_id": post_id})
    await db.posts.delete_one({"id": post_id})
    logger.info(f"Post {post_id} deleted by {user_id}")
    return post


# =====================================================================================
# COMMENTS
# =====================================================================================

async def list_comments(db: AsyncIOMotorDatabase, post_id: str) -> List[CommentOut]:
    comments = await db.comments.find({"post_id": post_id}).sort("created_at", ASCENDING).to_list(None)
    users = await users_by_id(db, (c["user_id"] for c in comments))
    return [CommentOut.from_doc(c, users.get(c["user_id"])) for c in comments]


async def add_comment(
    db: AsyncIOMotorDatabase,
    user_id: str,
    post_id: str,
    text: Optional[str],
    parent_comment_id: Optional[str] = None,
) -> dict:
    if not text or not text.strip():
        raise InvalidInput("Text required")

    if parent_comment_id:
        # Replies nest one level deep
        parent = await db.comments.find_one({"id": parent_comment_id, "post_id": post_id})
        if not parent or parent.get("parent_comment_id"):
            raise NotFound("Parent comment not found")

    comment = {
        "id": str(uuid.uuid4()),
        "post_id": post_id,
        "user_id": user_id,
        "text": text.strip(),
        "parent_comment_id": parent_comment_id,
        "created_at": dates.utcnow(),
    }
    await db.comments.insert_one(comment)
    return comment


# =====================================================================================
# REACTIONS
# =====================================================================================

async def list_reactions(db: AsyncIOMotorDatabase, user_id: str, post_id: str) -> dict:
    reactions = await db.reactions.find({"post_id": post_id}).to_list(None)
    users = await users_by_id(db, (r["user_id"] for r in reactions))

    grouped = {reaction_type.value: [] for reaction_type in ReactionType}
    mine = None
    for reaction in reactions:
        grouped[reaction["type"]].append(ReactionOut.from_doc(reaction, users.get(reaction["user_id"])))
        if reaction["user_id"] == user_id:
            mine = {"id": reaction["id"], "type": reaction["type"]}
    return {"reactions": grouped, "myReaction": mine}


async def react(db: AsyncIOMotorDatabase, user_id: str, post_id: str, reaction_type: Optional[ReactionType]) -> dict:
    """One reaction per user per post; reacting again replaces the type"""
    if reaction_type is None:
        raise InvalidInput("Invalid reaction type")
    query = {"post_id": post_id, "user_id": user_id}
    change = {"$set": {"type": ReactionType(reaction_type).value}}
    try:
        return await db.reactions.find_one_and_update(
            query,
            {**change, "$setOnInsert": {"id": str(uuid.uuid4()), "created_at": dates.utcnow()}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
    except DuplicateKeyError:
        # A simultaneous first reaction inserted the document; replace its type
        return await db.reactions.find_one_and_update(query, change, return_document=ReturnDocument.AFTER)


async def remove_reaction(db: AsyncIOMotorDatabase, user_id: str, post_id: str):
    await db.reactions.delete_one({"post_id": post_id, "user_id": user_id})


# =====================================================================================
# MESSAGES
# =====================================================================================

def encode_message_cursor(message: dict) -> str:
    """``<created_at ISO>|<id>``: the id orders messages sharing a timestamp"""
    return f"{message['created_at'].isoformat()}|{message['id']}"


def decode_message_cursor(value: Optional[str]) -> Optional[Tuple[datetime, str]]:
    if not value:
        return None
    stamp, _, message_id = value.partition("|")
    if not message_id:
        raise InvalidInput("Invalid cursor")
    return dates.parse_cursor(stamp), message_id


async def list_messages(db: AsyncIOMotorDatabase, couple_id: str, cursor: Optional[str] = None, limit: int = 50) -> dict:
    if not 1 <= limit <= MAX_MESSAGE_PAGE:
        raise InvalidInput(f"limit must be between 1 and {MAX_MESSAGE_PAGE}")

    query = {"couple_id": couple_id}
    before = decode_message_cursor(cursor)
    if before:
        created_at, message_id = before
        query["$or"] = [
            {"created_at": {"$lt": created_at}},
            {"created_at": created_at, "id": {"$lt": message_id}},
        ]

    page = await db.messages.find(query).sort(
        [("created_at", DESCENDING), ("id", DESCENDING)]
    ).limit(limit).to_list(None)
    senders = await users_by_id(db, (m["sender_id"] for m in page))
    next_cursor = encode_message_cursor(page[-1]) if len(page) == limit else None
    return {
        "messages": [MessageOut.from_doc(m, senders.get(m["sender_id"])) for m in reversed(page)],
        "nextCursor": next_cursor,
    }


async def send_message(
    db: AsyncIOMotorDatabase,
    user_id: str,
    couple_id: str,
    text: Optional[str] = None,
    image_url: Optional[str] = None,
    audio_url: Optional[str] = None,
) -> dict:
    text = text.strip() if text else None
    if not text and not image_url and not audio_url:
        raise InvalidInput("Text, image or audio required")

    message = {
        "id": str(uuid.uuid4()),
        "couple_id": couple_id,
        "sender_id": user_id,
        "text": text,
        "image_url": image_url,
        "audio_url": audio_url,
        "created_at": dates.utcnow(),
    }
    await db.messages.insert_one(message)
    return message
