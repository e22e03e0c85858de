"""
Generation model schemas for image generation requests, variations and history.
"""
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, Dict, Any, List
from datetime import datetime
from uuid import UUID
from enum import Enum

from models.fal_config import (
    ASPECT_RATIOS, STYLE_PROMPTS, DEFAULT_ASPECT_RATIO, DEFAULT_STYLE,
    MIN_IMAGES, MAX_IMAGES, MIN_VARIATIONS, MAX_VARIATIONS,
)

MAX_PROMPT_LENGTH = 2000


class GenerationType(str, Enum):
    """Generation type stored in generation_history.generation_type."""
    TEXT_TO_IMAGE = "text-to-image"
    IMAGE_TO_IMAGE = "image-to-image"
    VARIATION = "variation"


class GenerationCreate(BaseModel):
    """Image generation request."""
    prompt: str = Field(..., max_length=MAX_PROMPT_LENGTH)
    aspect_ratio: str = DEFAULT_ASPECT_RATIO
    style: str = DEFAULT_STYLE
    num_images: int = Field(1, ge=MIN_IMAGES, le=MAX_IMAGES)
    reference_image_url: Optional[str] = Field(None, max_length=2048)

    @field_validator('prompt')
    @classmethod
    def validate_prompt(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Prompt cannot be empty")
        return v.strip()

    @field_validator('aspect_ratio')
    @classmethod
    def validate_aspect_ratio(cls, v: str) -> str:
        if v not in ASPECT_RATIOS:
            raise ValueError(f"Aspect ratio must be one of: {', '.join(ASPECT_RATIOS)}")
        return v

    @field_validator('style')
    @classmethod
    def validate_style(cls, v: str) -> str:
        if v not in STYLE_PROMPTS:
            raise ValueError(f"Style must be one of: {', '.join(STYLE_PROMPTS)}")
        return v

    @field_validator('reference_image_url')
    @classmethod
    def validate_reference_image_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        v = v.strip()
        if not (v.startswith("https://") or v.startswith("http://") or v.startswith("data:image/")):
            raise ValueError("Reference image must be an http(s) URL or an image data URL")
        return v


class VariationCreate(BaseModel):
    """Variations of an existing generation or of an arbitrary image and prompt."""
    generation_id: Optional[UUID] = None
    image_url: Optional[str] = None
    prompt: Optional[str] = Field(None, max_length=MAX_PROMPT_LENGTH)
    count: int = Field(MIN_VARIATIONS, ge=MIN_VARIATIONS, le=MAX_VARIATIONS)
    creativity: int = Field(50, ge=0, le=100)

    @model_validator(mode='after')
    def validate_source(self) -> 'VariationCreate':
        if self.generation_id is None:
            if not self.image_url or not self.prompt or not self.prompt.strip():
                raise ValueError("Provide generation_id, or both image_url and prompt")
        return self


class GenerationResponse(BaseModel):
    """One stored generation (a generation_history row)."""
    id: UUID
    user_id: UUID
    prompt: str
    image_data: str
    generation_type: str
    settings: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    is_favorite: bool = False

    model_config = {"from_attributes": True}

    @field_validator('settings', mode='before')
    @classmethod
    def default_settings(cls, v):
        return v or {}


class GenerationResult(BaseModel):
    """Result of a generate or variations request."""
    generations: List[GenerationResponse]
    credits_used: int
    credits_remaining: int
    # Set when a variations batch stopped early; generations holds what was produced
    error: Optional[str] = None


class HistoryListResponse(BaseModel):
    items: List[GenerationResponse]
    limit: int
    offset: int
