import logging

import motor.motor_asyncio
from pymongo import ASCENDING, DESCENDING, TEXT

from config import settings

logger = logging.getLogger(__name__)

client = motor.motor_asyncio.AsyncIOMotorClient(settings.mongo_url)
db = client[settings.database_name]


def get_db():
    """FastAPI dependency returning the application database."""
    return db


async def ensure_indexes(database) -> None:
    """Create the indexes the catalog and request queries rely on."""
    await database.books.create_index(
        [("title", TEXT), ("author", TEXT), ("description", TEXT)],
        name="books_text",
    )
    await database.books.create_index([("owner", ASCENDING), ("createdAt", DESCENDING)])
    await database.books.create_index([("createdAt", DESCENDING)])

    await database.requests.create_index(
        [("requester", ASCENDING), ("book", ASCENDING), ("status", ASCENDING)]
    )
    await database.requests.create_index([("bookOwner", ASCENDING), ("createdAt", DESCENDING)])
    await database.requests.create_index([("requester", ASCENDING), ("createdAt", DESCENDING)])
    await database.requests.create_index([("status", ASCENDING)])

    await database.users.create_index("email", unique=True)
    logger.info("Database indexes ensured on %s", database.name)
