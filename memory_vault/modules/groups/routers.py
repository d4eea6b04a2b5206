# memory_vault/modules/groups/routers.py
from typing import List

from fastapi import APIRouter, Body, Depends, Path, status
from loguru import logger

from memory_vault.models.api_common import MessageResponse, ErrorResponse
from .models import GroupAPI, GroupCreateRequest, GroupUpdateRequest
from .services import GroupService, get_group_service

groups_router = APIRouter()

_ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
}


@groups_router.get(
    "",
    response_model=List[GroupAPI],
    summary="List groups",
    tags=["Groups"],
)
async def list_groups(service: GroupService = Depends(get_group_service)):
    return [GroupAPI.from_db(group) for group in await service.list_groups()]


@groups_router.get(
    "/{group_id}",
    response_model=GroupAPI,
    responses=_ERROR_RESPONSES,
    summary="Get a group by id",
    tags=["Groups"],
)
async def get_group(
    group_id: str = Path(..., description="Group id"),
    service: GroupService = Depends(get_group_service),
):
    return GroupAPI.from_db(await service.get_group(group_id))


@groups_router.post(
    "",
    response_model=GroupAPI,
    status_code=status.HTTP_201_CREATED,
    responses=_ERROR_RESPONSES,
    summary="Create a group",
    tags=["Groups"],
)
async def create_group(
    payload: GroupCreateRequest = Body(...),
    service: GroupService = Depends(get_group_service),
):
    logger.info(f"Endpoint: creating group '{payload.name}'...")
    return GroupAPI.from_db(await service.create_group(payload))


@groups_router.put(
    "/{group_id}",
    response_model=GroupAPI,
    responses=_ERROR_RESPONSES,
    summary="Update the fields present in the body",
    tags=["Groups"],
)
async def update_group(
    group_id: str = Path(..., description="Group id"),
    payload: GroupUpdateRequest = Body(...),
    service: GroupService = Depends(get_group_service),
):
    logger.info(f"Endpoint: updating group {group_id}...")
    return GroupAPI.from_db(await service.update_group(group_id, payload))


@groups_router.delete(
    "/{group_id}",
    response_model=MessageResponse,
    responses=_ERROR_RESPONSES,
    summary="Delete a group",
    tags=["Groups"],
)
async def delete_group(
    group_id: str = Path(..., description="Group id"),
    service: GroupService = Depends(get_group_service),
):
    logger.info(f"Endpoint: deleting group {group_id}...")
    await service.delete_group(group_id)
    return MessageResponse(message="Group deleted successfully")
