"""
MongoDB connection pool for the Love Nest backend
"""
import logging
from typing import Awaitable, Callable, Optional

from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

import config

logger = logging.getLogger(__name__)

HealthCheck = Callable[[AsyncIOMotorClient], Awaitable[bool]]


async def ping(client) -> bool:
    """Default health check: the server answers a ping"""
    try:
        await client.admin.command("ping")
        return True
    except PyMongoError as e:
        logger.warning(f"MongoDB ping failed: {e}")
        return False


def create_client() -> AsyncIOMotorClient:
    return AsyncIOMotorClient(
        config.MONGO_URL,
        serverSelectionTimeoutMS=config.MONGO_SERVER_SELECTION_TIMEOUT_MS,
        connectTimeoutMS=config.MONGO_CONNECT_TIMEOUT_MS,
        socketTimeoutMS=config.MONGO_SOCKET_TIMEOUT_MS,
        maxPoolSize=config.MONGO_MAX_POOL_SIZE,
        retryWrites=True,
        retryReads=True,
    )


class MongoPool:
    """
    Owns the process's Mongo client. The health check runs before every unit
    of work; a failed check or a reported connection failure drops the client
    and the next acquire builds a fresh one.
    """

    def __init__(
        self,
        client_factory: Callable[[], AsyncIOMotorClient] = create_client,
        db_name: str = config.DB_NAME,
        health_check: Optional[HealthCheck] = ping,
    ):
        self._client_factory = client_factory
        self._client = None
        self.db_name = db_name
        self.health_check = health_check

    @property
    def client(self):
        if self._client is None:
            self._client = self._client_factory()
            logger.info("MongoDB client created")
        return self._client

    async def acquire(self) -> AsyncIOMotorDatabase:
        client = self.client
        if self.health_check is not None and not await self.health_check(client):
            logger.warning("MongoDB connection not ready or stale, resetting...")
            self.reset()
            client = self.client
        return client[self.db_name]

    def reset(self):
        if self._client is not None:
            self._client.close()
        self._client = None

    def close(self):
        self.reset()


async def ensure_indexes(db: AsyncIOMotorDatabase):
    """Create the collections' indexes. Safe to run on every start."""
    await db.users.create_index("email", unique=True)
    await db.couples.create_index("invite_code", unique=True)
    await db.couples.create_index("member_ids")
    await db.mood_events.create_index([("couple_id", ASCENDING), ("date", ASCENDING)])
    await db.mood_events.create_index([("user_id", ASCENDING), ("date", ASCENDING)])
    await db.posts.create_index([("couple_id", ASCENDING), ("date", DESCENDING)])
    # Not unique: several posts per author per day are allowed
    await db.posts.create_index([("author_id", ASCENDING), ("date", ASCENDING)])
    await db.comments.create_index([("post_id", ASCENDING), ("created_at", DESCENDING)])
    await db.reactions.create_index([("post_id", ASCENDING), ("user_id", ASCENDING)], unique=True)
    await db.messages.create_index([("couple_id", ASCENDING), ("created_at", DESCENDING), ("id", DESCENDING)])
    await db.daily_quotes.create_index([("couple_id", ASCENDING), ("date", ASCENDING)], unique=True)


def get_pool(request: Request) -> MongoPool:
    return request.app.state.mongo


async def get_database(request: Request) -> AsyncIOMotorDatabase:
    """FastAPI dependency handing each request the pool's database"""
    return await get_pool(request).acquire()
