# memory_vault/modules/memories/services.py
"""Memory lifecycle: keeps each record and its hosted image consistent.

Ordering policy, applied step by step with no compensation:

* create: store the image, then insert the record. If the insert fails the
  stored image is left orphaned.
* update with a new image: delete the old image, store the new one, then
  write ``image_url``/``image_public_id`` together. A failed delete is logged
  and the update continues.
* delete: delete the image, then the record. A failed image delete is logged
  and the record is still removed.
"""
from typing import List, Optional

from fastapi import Depends
from loguru import logger

from memory_vault.core.exceptions import ValidationError, NotFoundError, DeleteError
from memory_vault.services.media_store import (
    MediaStore,
    SUPPORTED_IMAGE_FORMATS,
    ensure_supported_format,
    get_media_store,
)
from .repository import MemoryRepository, get_memory_repository
from .models import MemoryInDB, MemoryCreateRequest, MemoryUpdateRequest

ENTITY = "Memory"


class ImageUpload:
    """Raw image bytes received with a request."""

    def __init__(self, content: bytes, filename: Optional[str] = None):
        self.content = content
        self.filename = filename

    def __bool__(self) -> bool:
        return bool(self.content)


class MemoryService:
    def __init__(self, repository: MemoryRepository, media_store: MediaStore):
        self.repository = repository
        self.media_store = media_store

    async def list_memories(self) -> List[MemoryInDB]:
        return await self.repository.list_newest_first()

    async def get_memory(self, memory_id: str) -> MemoryInDB:
        memory = await self.repository.get_by_id(memory_id)
        if memory is None:
            raise NotFoundError(ENTITY, memory_id)
        return memory

    async def create_memory(self, payload: MemoryCreateRequest, image: Optional[ImageUpload]) -> MemoryInDB:
        """Stores the image, then persists the record pointing at it."""
        if not image:
            raise ValidationError("Image is required", field="image")

        log = logger.bind(title=payload.title)
        stored = await self.media_store.store(image.content, SUPPORTED_IMAGE_FORMATS, filename=image.filename)
        log = log.bind(public_id=stored.public_id)

        record = payload.model_dump()
        record["image_url"] = stored.url
        record["image_public_id"] = stored.public_id
        try:
            memory = await self.repository.create(record)
        except Exception:
            log.error("Record insert failed after image upload; image is orphaned at the media host.")
            raise

        log.success(f"Memory created: {memory.id}")
        return memory

    async def update_memory(
        self,
        memory_id: str,
        payload: MemoryUpdateRequest,
        image: Optional[ImageUpload] = None,
    ) -> MemoryInDB:
        """Applies the truthy fields of the payload and, if given, swaps the image."""
        memory = await self.get_memory(memory_id)
        log = logger.bind(memory_id=memory_id)

        changes = payload.changes()
        if image:
            # Reject a bad replacement before the old image is touched
            ensure_supported_format(image.content, SUPPORTED_IMAGE_FORMATS)
            await self._remove_image_best_effort(memory.image_public_id, log)
            stored = await self.media_store.store(image.content, SUPPORTED_IMAGE_FORMATS, filename=image.filename)
            changes["image_url"] = stored.url
            changes["image_public_id"] = stored.public_id

        updated = await self.repository.update(memory.id, changes)
        if updated is None:
            log.warning("Memory disappeared while being updated.")
            raise NotFoundError(ENTITY, memory_id)

        log.success(f"Memory updated. Fields: {sorted(changes)}")
        return updated

    async def delete_memory(self, memory_id: str) -> None:
        """Removes the image (best effort), then the record."""
        memory = await self.get_memory(memory_id)
        log = logger.bind(memory_id=memory_id)

        await self._remove_image_best_effort(memory.image_public_id, log)

        if not await self.repository.delete(memory.id):
            log.warning("Memory disappeared before it could be deleted.")
            raise NotFoundError(ENTITY, memory_id)
        log.success("Memory deleted.")

    async def _remove_image_best_effort(self, public_id: str, log) -> None:
        try:
            removed = await self.media_store.remove(public_id)
        except DeleteError as e:
            log.opt(exception=e).error(f"Failed to delete image {public_id} from media host; continuing.")
            return
        if not removed:
            log.warning(f"Image {public_id} was already missing at the media host.")


async def get_memory_service(
    repository: MemoryRepository = Depends(get_memory_repository),
    media_store: MediaStore = Depends(get_media_store),
) -> MemoryService:
    return MemoryService(repository, media_store)
