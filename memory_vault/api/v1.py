# memory_vault/api/v1.py
from fastapi import APIRouter

from memory_vault.modules.memories.routers import memories_router
from memory_vault.modules.groups.routers import groups_router

api_router = APIRouter()

api_router.include_router(memories_router, prefix="/memories")
api_router.include_router(groups_router, prefix="/groups")
