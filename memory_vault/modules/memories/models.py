# memory_vault/modules/memories/models.py
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, Any
from datetime import datetime, date as CalendarDate
from bson import ObjectId

from memory_vault.models.api_common import CamelModel


def _as_calendar_date(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.date()
    return value


# --- Request Models ---
class MemoryCreateRequest(BaseModel):
    """Form fields accepted when creating a memory (the image travels separately)."""
    title: str = Field(..., min_length=1)
    date: CalendarDate
    description: str = Field(..., min_length=1)
    special: Optional[str] = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("special", mode="before")
    @classmethod
    def blank_special_is_none(cls, value: Any) -> Any:
        return value or None


class MemoryUpdateRequest(BaseModel):
    """Partial update. Blank values count as absent and keep the stored value."""
    title: Optional[str] = None
    date: Optional[CalendarDate] = None
    description: Optional[str] = None
    special: Optional[str] = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("title", "date", "description", "special", mode="before")
    @classmethod
    def blank_is_absent(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: Optional[str]) -> Optional[str]:
        return value.strip() if value else value

    def changes(self) -> dict:
        """Fields carrying a truthy value, ready for a $set."""
        return {key: value for key, value in self.model_dump().items() if value}


# --- Internal/DB Models ---
class MemoryInDB(BaseModel):
    id: ObjectId = Field(alias="_id")
    title: str
    date: CalendarDate
    description: str
    image_url: str
    image_public_id: str
    special: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    @field_validator("date", mode="before")
    @classmethod
    def date_from_datetime(cls, value: Any) -> Any:
        return _as_calendar_date(value)


# --- API Models ---
class MemoryAPI(CamelModel):
    id: str
    title: str
    date: CalendarDate
    description: str
    image_url: str
    image_public_id: str
    special: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_db(cls, memory: MemoryInDB) -> "MemoryAPI":
        return cls.model_validate({**memory.model_dump(exclude={"id"}), "id": str(memory.id)})
