# memory_vault/modules/groups/repository.py

from typing import List

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from memory_vault.core.repository import BaseRepository
from memory_vault.core.database import get_database
from .models import GroupInDB

COLLECTION_NAME = "groups"


class GroupRepository(BaseRepository[GroupInDB]):
    model = GroupInDB
    collection_name = COLLECTION_NAME

    async def list_all(self) -> List[GroupInDB]:
        """All groups in natural storage order."""
        return await self.list_by()


async def get_group_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> GroupRepository:
    """FastAPI dependency to get a GroupRepository instance."""
    return GroupRepository(db)
