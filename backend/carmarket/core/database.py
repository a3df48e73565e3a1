import logging

import motor.motor_asyncio
from fastapi import Request
from pymongo import ASCENDING, DESCENDING, TEXT

from carmarket.core.config import MONGO_URI, DATABASE_NAME

logger = logging.getLogger(__name__)


def create_client(uri: str = MONGO_URI) -> motor.motor_asyncio.AsyncIOMotorClient:
    return motor.motor_asyncio.AsyncIOMotorClient(uri, tz_aware=True)


def get_database(request: Request) -> motor.motor_asyncio.AsyncIOMotorDatabase:
    """
    Dependency: the database handle opened at startup and kept on app.state.
    """
    return request.app.state.db


async def ensure_indexes(db) -> None:
    await db["users"].create_index("username", unique=True)
    await db["users"].create_index("email", unique=True)
    await db["cars"].create_index(
        [("title", TEXT), ("description", TEXT), ("brand", TEXT), ("model", TEXT)],
        name="car_text_search",
    )
    await db["cars"].create_index([("owner", ASCENDING)])
    await db["cars"].create_index([("status", ASCENDING)])
    await db["cars"].create_index([("created_at", DESCENDING)])
    logger.info("Database indexes ensured on %s", db.name)
