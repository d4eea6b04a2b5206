# memory_vault/modules/groups/models.py
from pydantic import BaseModel, Field, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from typing import List, Optional, Any
from datetime import datetime
from bson import ObjectId

from memory_vault.models.api_common import CamelModel


def _strip(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


# --- Request Models ---
class GroupCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    memory_ids: List[str] = Field(default_factory=list, description="Memory ids in display order; not checked against stored memories")

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value: Any) -> Any:
        return _strip(value)


class GroupUpdateRequest(BaseModel):
    """Only fields present in the request body are written.

    An explicit empty ``memoryIds`` clears the list; ``null`` is refused for
    ``name`` and ``memoryIds`` and clears ``description``.
    """
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    memory_ids: Optional[List[str]] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value: Any) -> Any:
        return _strip(value)

    @field_validator("name", "memory_ids")
    @classmethod
    def not_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("may not be null")
        return value

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


# --- Internal/DB Models ---
class GroupInDB(BaseModel):
    id: ObjectId = Field(alias="_id")
    name: str
    description: Optional[str] = None
    memory_ids: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)


# --- API Models ---
class GroupAPI(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    memory_ids: List[str] = []
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_db(cls, group: GroupInDB) -> "GroupAPI":
        return cls.model_validate({**group.model_dump(exclude={"id"}), "id": str(group.id)})
