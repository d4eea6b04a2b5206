# memory_vault/modules/memories/repository.py

from typing import List

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING
from loguru import logger

from memory_vault.core.repository import BaseRepository
from memory_vault.core.database import get_database
from .models import MemoryInDB

COLLECTION_NAME = "memories"


class MemoryRepository(BaseRepository[MemoryInDB]):
    model = MemoryInDB
    collection_name = COLLECTION_NAME

    async def create_indexes(self):
        """Index backing the newest-first listing."""
        try:
            await self.collection.create_index([("created_at", DESCENDING)])
            logger.info(f"Indexes created/verified for collection: {self.collection_name}")
        except Exception as e:
            self._handle_db_exception(e, "create_indexes")

    async def list_newest_first(self) -> List[MemoryInDB]:
        """All memories, newest first. Ties on created_at fall back to insertion order (newest first)."""
        return await self.list_by(sort=[("created_at", DESCENDING), ("_id", DESCENDING)])


async def get_memory_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> MemoryRepository:
    """FastAPI dependency to get a MemoryRepository instance."""
    return MemoryRepository(db)
