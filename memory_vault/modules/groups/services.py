# memory_vault/modules/groups/services.py
from typing import List

from fastapi import Depends
from loguru import logger

from memory_vault.core.exceptions import NotFoundError
from .repository import GroupRepository, get_group_repository
from .models import GroupInDB, GroupCreateRequest, GroupUpdateRequest

ENTITY = "Group"


class GroupService:
    """Group CRUD. Memory ids are weak references and are never resolved or cascaded."""

    def __init__(self, repository: GroupRepository):
        self.repository = repository

    async def list_groups(self) -> List[GroupInDB]:
        return await self.repository.list_all()

    async def get_group(self, group_id: str) -> GroupInDB:
        group = await self.repository.get_by_id(group_id)
        if group is None:
            raise NotFoundError(ENTITY, group_id)
        return group

    async def create_group(self, payload: GroupCreateRequest) -> GroupInDB:
        group = await self.repository.create(payload.model_dump())
        logger.bind(group_id=str(group.id)).success(f"Group '{group.name}' created with {len(group.memory_ids)} memories.")
        return group

    async def update_group(self, group_id: str, payload: GroupUpdateRequest) -> GroupInDB:
        log = logger.bind(group_id=group_id)
        changes = payload.changes()
        updated = await self.repository.update(group_id, changes)
        if updated is None:
            log.warning("Group not found for update.")
            raise NotFoundError(ENTITY, group_id)
        log.success(f"Group updated. Fields: {sorted(changes)}")
        return updated

    async def delete_group(self, group_id: str) -> None:
        if not await self.repository.delete(group_id):
            raise NotFoundError(ENTITY, group_id)
        logger.bind(group_id=group_id).success("Group deleted.")


async def get_group_service(repository: GroupRepository = Depends(get_group_repository)) -> GroupService:
    return GroupService(repository)
