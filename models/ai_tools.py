"""
Request and response schemas for the AI proxy endpoints.
"""
from pydantic import BaseModel, Field, field_validator

from models.generation import MAX_PROMPT_LENGTH

# ~10MB of base64 audio
MAX_AUDIO_BASE64_LENGTH = 14 * 1024 * 1024


class EnhancePromptRequest(BaseModel):
    prompt: str = Field(..., max_length=MAX_PROMPT_LENGTH)

    @field_validator('prompt')
    @classmethod
    def validate_prompt(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Prompt is required")
        return v


class EnhancePromptResponse(BaseModel):
    enhanced_prompt: str


class TranscribeRequest(BaseModel):
    """Base64 encoded webm audio recorded by the browser."""
    audio: str = Field(..., max_length=MAX_AUDIO_BASE64_LENGTH)

    @field_validator('audio')
    @classmethod
    def validate_audio(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("No audio data provided")
        # Accept data URLs from MediaRecorder as well as bare base64
        if v.startswith("data:") and "," in v:
            v = v.split(",", 1)[1]
        return v


class TranscribeResponse(BaseModel):
    text: str
