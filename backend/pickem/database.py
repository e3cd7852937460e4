"""
backend/pickem/database.py

Purpose:
    MongoDB connection bootstrap and index management for the survivor pool
    collections (roster, picks, weekly game results, survivor status).

Dependencies:
    - motor.motor_asyncio
    - pymongo
    - pickem.config
"""

import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError, OperationFailure

from pickem.config import settings

client: AsyncIOMotorClient = None
db: AsyncIOMotorDatabase = None

logger = logging.getLogger("pickem.database")


async def connect_db() -> None:
    global client, db
    client = AsyncIOMotorClient(
        settings.MONGO_URI,
        maxPoolSize=25,
        minPoolSize=5,
    )
    db = client[settings.MONGO_DB]
    await _ensure_indexes()


async def close_db() -> None:
    global client
    if client:
        client.close()


async def get_db() -> AsyncIOMotorDatabase:
    return db


async def _ensure_indexes() -> None:
    """Create indexes on startup. Idempotent."""

    # ---- Pool roster ----
    await db.pool_members.create_index("pool_id")

    # ---- Survivor picks: one pick per user per week ----
    try:
        await db.survivor_picks.create_index(
            [("pool_id", 1), ("user_id", 1), ("week", 1)],
            unique=True,
        )
    except (DuplicateKeyError, OperationFailure) as exc:
        logger.warning(
            "Skipped unique survivor pick index due to duplicate data: %s",
            exc,
        )
        await db.survivor_picks.create_index(
            [("pool_id", 1), ("user_id", 1), ("week", 1)],
            name="survivor_pick_lookup",
            unique=False,
        )

    # ---- Weekly game results ----
    await db.survivor_games.create_index([("week", 1), ("game_id", 1)], unique=True)
    await db.survivor_games.create_index([("week", 1), ("status", 1)])

    # ---- Survivor status: one document per user per pool ----
    # The unique key also makes conditional elimination upserts race-safe.
    await db.survivor_status.create_index([("pool_id", 1), ("user_id", 1)], unique=True)
    await db.survivor_status.create_index([("pool_id", 1), ("eliminated", 1)])
    await db.survivor_status.create_index([("pool_id", 1), ("eliminated_week", 1)])
