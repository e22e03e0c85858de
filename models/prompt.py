"""
Prompt library and public gallery model schemas.
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional, Dict
from datetime import datetime
from uuid import UUID
from enum import Enum

from models.generation import MAX_PROMPT_LENGTH

DEFAULT_PUBLIC_LIMIT = 50
MAX_PUBLIC_LIMIT = 100


class PromptSort(str, Enum):
    LIKES = "likes"
    RECENT = "recent"


class PromptCreate(BaseModel):
    """Save a prompt to the library."""
    prompt: str = Field(..., max_length=MAX_PROMPT_LENGTH)
    description: Optional[str] = Field(None, max_length=500)
    style: Optional[str] = Field(None, max_length=50)
    is_public: bool = False
    example_image_url: Optional[str] = None

    @field_validator('prompt')
    @classmethod
    def validate_prompt(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Prompt cannot be empty")
        return v

    @field_validator('description', 'style', 'example_image_url')
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


class PromptResponse(BaseModel):
    id: UUID
    user_id: UUID
    prompt: str
    description: Optional[str] = None
    style: Optional[str] = None
    is_public: bool = False
    example_image_url: Optional[str] = None
    likes_count: int = 0
    created_at: Optional[datetime] = None


class ShareLinks(BaseModel):
    """Share URL for a public prompt plus social share intents."""
    prompt_id: UUID
    share_url: str
    share_text: str
    intents: Dict[str, str]
