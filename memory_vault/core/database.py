# memory_vault/core/database.py

import motor.motor_asyncio
from motor.motor_asyncio import AsyncIOMotorDatabase
from contextlib import AbstractAsyncContextManager
from loguru import logger
from typing import Optional, cast

from memory_vault.core.config import settings
from memory_vault.core.exceptions import PersistenceError


def parse_db_name(uri: str, default: str) -> str:
    """Extracts the database name from a MongoDB URI path."""
    without_scheme = uri.split("://", 1)[-1]
    if "/" not in without_scheme:
        return default
    db_name = without_scheme.split("/", 1)[1].split("?")[0]
    if not db_name or "@" in db_name or len(db_name) > 63:
        return default
    return db_name


class MongoDbContext(AbstractAsyncContextManager):
    client: Optional[motor.motor_asyncio.AsyncIOMotorClient] = None
    db: Optional[AsyncIOMotorDatabase] = None

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()

    async def connect(self):
        """Establishes and verifies the connection to MongoDB."""
        if self.client is not None and self.db is not None:
            logger.info("MongoDB connection already established.")
            return

        logger.info("Connecting to MongoDB...")
        try:
            self.client = motor.motor_asyncio.AsyncIOMotorClient(
                settings.MONGODB_URI,
                uuidRepresentation='standard',
                tz_aware=True,
                serverSelectionTimeoutMS=5000,
            )
            await self.client.admin.command('ping')

            db_name = parse_db_name(settings.MONGODB_URI, settings.MONGODB_DEFAULT_DB)
            self.db = self.client[db_name]
            logger.success(f"MongoDB connection successful to database '{db_name}'.")
        except Exception as e:
            logger.critical(f"FATAL: Failed to connect to MongoDB: {e}")
            self.client = None
            self.db = None
            raise ConnectionError(f"MongoDB connection failed: {e}") from e

    async def disconnect(self):
        """Closes the MongoDB connection."""
        if self.client:
            logger.info("Closing MongoDB connection...")
            try:
                self.client.close()
                logger.info("MongoDB connection closed.")
            finally:
                self.client = None
                self.db = None

    def get_db(self) -> AsyncIOMotorDatabase:
        """Returns the database instance, raising if not connected."""
        if self.db is None:
            logger.critical("Attempted to get MongoDB instance, but it's not available.")
            raise RuntimeError("MongoDB database is not connected or initialized.")
        return cast(AsyncIOMotorDatabase, self.db)


mongo_manager = MongoDbContext()


async def get_database() -> AsyncIOMotorDatabase:
    """FastAPI dependency returning the connected database."""
    try:
        return mongo_manager.get_db()
    except RuntimeError as e:
        logger.error(f"Database dependency requested while disconnected: {e}")
        raise PersistenceError("Database connection not available", operation="connect") from e
