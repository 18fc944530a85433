"""
backend/tipster/database.py

Purpose:
    MongoDB connection bootstrap and index management for tips, accumulators
    and worker state.

Dependencies:
    - motor.motor_asyncio
    - pymongo
    - tipster.config
"""

import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError, OperationFailure

from tipster.config import settings

logger = logging.getLogger("tipster.database")

client: AsyncIOMotorClient = None
db: AsyncIOMotorDatabase = None


async def connect_db() -> None:
    global client, db
    client = AsyncIOMotorClient(
        settings.MONGO_URI,
        maxPoolSize=25,
        minPoolSize=1,
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
    """Create indexes on startup. Idempotent, safe to run repeatedly."""

    # ---- Tips ----
    # One tip per (league, match): duplicate generation is rejected here.
    try:
        await db.tips.create_index([("league", 1), ("match_id", 1)], unique=True)
    except (DuplicateKeyError, OperationFailure) as exc:
        logger.warning("Skipped unique tips index due to duplicate data: %s", exc)
        await db.tips.create_index(
            [("league", 1), ("match_id", 1)],
            name="league_match_lookup",
            unique=False,
        )
    # Settlement scan: pending + kicked off
    await db.tips.create_index([("status", 1), ("match_date", 1)])
    # Archive pass
    await db.tips.create_index([("archived", 1), ("match_date", 1)])

    # ---- Accumulators ----
    await db.accumulators.create_index("status")
    await db.accumulators.create_index("legs.tip_id")
    await db.accumulators.create_index([("match_date", 1), ("tier", 1), ("risk_level", 1)])
