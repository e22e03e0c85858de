"""
Audio transcription proxy backed by the Gemini generateContent API.
"""
import logging
from typing import Optional

import httpx

from config import settings
from utils.exceptions import ConfigurationError, ExternalServiceError, ValidationError

logger = logging.getLogger(__name__)

TRANSCRIBE_INSTRUCTION = "Transcribe this audio to text. Only return the transcribed text, nothing else."
AUDIO_MIME_TYPE = "audio/webm"


class TranscriptionService:
    """Sends base64 webm audio to Gemini and returns the first candidate's text."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._transport = transport

    async def transcribe(self, audio_base64: str) -> str:
        if not audio_base64:
            raise ValidationError("No audio data provided")
        if not settings.google_api_key:
            logger.error("[TRANSCRIBE] GOOGLE_API_KEY is not configured")
            raise ConfigurationError("Google API key not configured", setting_name="GOOGLE_API_KEY")

        url = f"{settings.google_api_base_url.rstrip('/')}/models/{settings.transcription_model}:generateContent"
        payload = {
            "contents": [{
                "parts": [
                    {"text": TRANSCRIBE_INSTRUCTION},
                    {"inline_data": {"mime_type": AUDIO_MIME_TYPE, "data": audio_base64}},
                ]
            }]
        }

        logger.info(f"[TRANSCRIBE] Processing audio transcription request ({len(audio_base64)} base64 chars)")
        try:
            async with httpx.AsyncClient(timeout=settings.ai_request_timeout, transport=self._transport) as client:
                response = await client.post(url, params={"key": settings.google_api_key}, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"[TRANSCRIBE] Gemini request failed: {e}")
            raise ExternalServiceError(f"Gemini request failed: {e}", service_name="gemini",
                                       user_message="Transcription failed")

        if response.is_error:
            logger.error(f"[TRANSCRIBE] Gemini API error {response.status_code}: {response.text[:500]}")
            raise ExternalServiceError(f"Gemini API error: {response.status_code}", service_name="gemini",
                                       status_code=response.status_code, user_message="Transcription failed")

        try:
            result = response.json()
        except ValueError:
            raise ExternalServiceError("Gemini returned invalid JSON", service_name="gemini",
                                       user_message="Transcription failed")

        return self.extract_text(result)

    @staticmethod
    def extract_text(result: dict) -> str:
        """candidates[0].content.parts[0].text, or empty string."""
        try:
            return result["candidates"][0]["content"]["parts"][0].get("text") or ""
        except (KeyError, IndexError, TypeError, AttributeError):
            return ""
