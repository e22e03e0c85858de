"""
Prompt enhancement proxy: one chat-completions call to the AI gateway.
"""
import logging
from typing import Optional

import httpx

from config import settings
from utils.exceptions import ConfigurationError, ExternalServiceError, RateLimitError, ValidationError

logger = logging.getLogger(__name__)

ENHANCER_SYSTEM_PROMPT = (
    "You are an expert at enhancing image generation prompts. Take the user's prompt and make it "
    "more detailed, specific, and effective for AI image generation. Add details about lighting, "
    "composition, style, mood, and quality. Keep it concise but descriptive. Return only the "
    "enhanced prompt, nothing else."
)


class AICreditsDepletedError(ExternalServiceError):
    """The AI gateway refused the call because its workspace is out of credits."""

    http_status = 402

    def __init__(self, message: str = "AI credits depleted. Please add more credits.", **kwargs):
        kwargs.setdefault('user_message', message)
        super().__init__(message, service_name="ai-gateway", status_code=402, **kwargs)


class PromptEnhancerService:
    """Single-request pass-through to the gateway; no retries."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._transport = transport

    async def enhance(self, prompt: str) -> str:
        prompt = (prompt or "").strip()
        if not prompt:
            raise ValidationError("Prompt is required")
        if not settings.ai_gateway_api_key:
            logger.error("[ENHANCE] AI_GATEWAY_API_KEY is not configured")
            raise ConfigurationError("AI_GATEWAY_API_KEY is not configured", setting_name="AI_GATEWAY_API_KEY")

        payload = {
            "model": settings.prompt_enhancer_model,
            "messages": [
                {"role": "system", "content": ENHANCER_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        }
        headers = {
            "Authorization": f"Bearer {settings.ai_gateway_api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=settings.ai_request_timeout, transport=self._transport) as client:
                response = await client.post(settings.ai_gateway_url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"[ENHANCE] Gateway request failed: {e}")
            raise ExternalServiceError(f"Failed to enhance prompt: {e}", service_name="ai-gateway",
                                       user_message="Failed to enhance prompt")

        if response.status_code == 429:
            raise RateLimitError("AI gateway rate limit exceeded",
                                 user_message="Rate limit exceeded. Please try again later.")
        if response.status_code == 402:
            raise AICreditsDepletedError()
        if response.is_error:
            logger.error(f"[ENHANCE] Gateway returned {response.status_code}: {response.text[:500]}")
            raise ExternalServiceError("Failed to enhance prompt", service_name="ai-gateway",
                                       status_code=response.status_code, user_message="Failed to enhance prompt")

        try:
            enhanced = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error(f"[ENHANCE] Unexpected gateway response: {e}")
            raise ExternalServiceError("Unexpected response from AI gateway", service_name="ai-gateway",
                                       user_message="Failed to enhance prompt")

        logger.info(f"[ENHANCE] Enhanced prompt ({len(prompt)} -> {len(enhanced or '')} chars)")
        return (enhanced or "").strip()
