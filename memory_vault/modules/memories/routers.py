# memory_vault/modules/memories/routers.py
from typing import List, Optional, Type, TypeVar

from fastapi import APIRouter, Depends, File, Form, Path, UploadFile, status
from pydantic import BaseModel, ValidationError as PydanticValidationError
from loguru import logger

from memory_vault.core.exceptions import validation_error_from_pydantic
from memory_vault.models.api_common import MessageResponse, ErrorResponse
from .models import MemoryAPI, MemoryCreateRequest, MemoryUpdateRequest
from .services import MemoryService, ImageUpload, get_memory_service

RequestModel = TypeVar("RequestModel", bound=BaseModel)

memories_router = APIRouter()

_ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
}


def parse_form(model: Type[RequestModel], **fields) -> RequestModel:
    """Validates multipart form fields into a request model; absent fields stay absent."""
    present = {key: value for key, value in fields.items() if value is not None}
    try:
        return model.model_validate(present)
    except PydanticValidationError as e:
        raise validation_error_from_pydantic(e.errors()) from e


async def read_image(image: Optional[UploadFile]) -> Optional[ImageUpload]:
    if image is None:
        return None
    try:
        content = await image.read()
    finally:
        await image.close()
    return ImageUpload(content, image.filename) if content else None


@memories_router.get(
    "",
    response_model=List[MemoryAPI],
    summary="List memories, newest first",
    tags=["Memories"],
)
async def list_memories(service: MemoryService = Depends(get_memory_service)):
    memories = await service.list_memories()
    return [MemoryAPI.from_db(memory) for memory in memories]


@memories_router.get(
    "/{memory_id}",
    response_model=MemoryAPI,
    responses=_ERROR_RESPONSES,
    summary="Get a memory by id",
    tags=["Memories"],
)
async def get_memory(
    memory_id: str = Path(..., description="Memory id"),
    service: MemoryService = Depends(get_memory_service),
):
    return MemoryAPI.from_db(await service.get_memory(memory_id))


@memories_router.post(
    "",
    response_model=MemoryAPI,
    status_code=status.HTTP_201_CREATED,
    responses=_ERROR_RESPONSES,
    summary="Create a memory with its image",
    tags=["Memories"],
)
async def create_memory(
    title: Optional[str] = Form(None),
    date: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    special: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    service: MemoryService = Depends(get_memory_service),
):
    """Uploads the image to the media host, then stores the memory."""
    upload = await read_image(image)
    payload = parse_form(MemoryCreateRequest, title=title, date=date, description=description, special=special)
    logger.info(f"Endpoint: creating memory '{payload.title}'...")
    memory = await service.create_memory(payload, upload)
    return MemoryAPI.from_db(memory)


@memories_router.put(
    "/{memory_id}",
    response_model=MemoryAPI,
    responses=_ERROR_RESPONSES,
    summary="Update a memory, optionally replacing its image",
    tags=["Memories"],
)
async def update_memory(
    memory_id: str = Path(..., description="Memory id"),
    title: Optional[str] = Form(None),
    date: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    special: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    service: MemoryService = Depends(get_memory_service),
):
    upload = await read_image(image)
    payload = parse_form(MemoryUpdateRequest, title=title, date=date, description=description, special=special)
    logger.info(f"Endpoint: updating memory {memory_id}...")
    memory = await service.update_memory(memory_id, payload, upload)
    return MemoryAPI.from_db(memory)


@memories_router.delete(
    "/{memory_id}",
    response_model=MessageResponse,
    responses=_ERROR_RESPONSES,
    summary="Delete a memory and its image",
    tags=["Memories"],
)
async def delete_memory(
    memory_id: str = Path(..., description="Memory id"),
    service: MemoryService = Depends(get_memory_service),
):
    logger.info(f"Endpoint: deleting memory {memory_id}...")
    await service.delete_memory(memory_id)
    return MessageResponse(message="Memory deleted successfully")
