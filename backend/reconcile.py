"""
Sweep comments and reactions whose post no longer exists.

Deleting a post removes its children in separate calls, so a crash in the
middle can leave some behind. Run this periodically (cron) to clean them up.
"""
import asyncio
import logging

from motor.motor_asyncio import AsyncIOMotorDatabase

from database import MongoPool

logger = logging.getLogger(__name__)


async def sweep_orphans(db: AsyncIOMotorDatabase) -> dict:
    """Delete comments and reactions pointing at missing posts. Returns the counts removed."""
    removed = {}
    for collection in ("comments", "reactions"):
        post_ids = await db[collection].distinct("post_id")
        existing = set(await db.posts.distinct("id", {"id": {"$in": post_ids}}))
        orphaned = [post_id for post_id in post_ids if post_id not in existing]
        if orphaned:
            result = await db[collection].delete_many({"post_id": {"$in": orphaned}})
            removed[collection] = result.deleted_count
        else:
            removed[collection] = 0
    return removed


async def main():
    pool = MongoPool()
    try:
        removed = await sweep_orphans(await pool.acquire())
        logger.info(f"Orphan sweep finished: {removed}")
    finally:
        pool.close()


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    asyncio.run(main())
