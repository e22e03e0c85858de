"""
Collection and favorite model schemas.
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
from uuid import UUID

from models.generation import GenerationResponse

MAX_COLLECTION_NAME_LENGTH = 100
MAX_THUMBNAILS = 4


def _clean_description(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


class CollectionCreate(BaseModel):
    """Collection creation model."""
    name: str
    description: Optional[str] = Field(None, max_length=1000)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Collection name is required")
        if len(v) > MAX_COLLECTION_NAME_LENGTH:
            raise ValueError(f"Collection name must be {MAX_COLLECTION_NAME_LENGTH} characters or less")
        return v

    @field_validator('description')
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        return _clean_description(v)


class CollectionUpdate(CollectionCreate):
    """Collection update model; same rules as creation."""
    pass


class CollectionResponse(BaseModel):
    id: UUID
    user_id: UUID
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    item_count: int = 0
    thumbnail_images: List[str] = Field(default_factory=list)


class CollectionItem(GenerationResponse):
    """A generation inside a collection, with the favorite row that links it."""
    favorite_id: UUID


class CollectionDetail(CollectionResponse):
    items: List[CollectionItem] = Field(default_factory=list)


class MembershipUpdate(BaseModel):
    """Desired set of collections a generation should belong to."""
    collection_ids: List[UUID] = Field(default_factory=list)


class MembershipResponse(BaseModel):
    generation_id: UUID
    collection_ids: List[UUID]


class FavoriteToggleResponse(BaseModel):
    generation_id: UUID
    is_favorite: bool


class FavoriteListResponse(BaseModel):
    generation_ids: List[UUID]
