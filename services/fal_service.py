"""
FAL.ai integration service for image generation.
Service layer: wraps fal-client and normalises its results to image URLs.
"""
import asyncio
import logging
import os
import time
from typing import Dict, Any, List

import fal_client

from config import settings
from models.fal_config import get_model_config
from utils.exceptions import ExternalServiceError, ConfigurationError

logger = logging.getLogger(__name__)


class FALService:
    """Service for FAL.ai API integration."""

    def __init__(self):
        # fal-client reads its credentials from the FAL_KEY environment variable
        if settings.fal_key:
            os.environ['FAL_KEY'] = settings.fal_key
            logger.info("[FAL] FAL_KEY environment variable set for FAL client")
        else:
            logger.warning("[FAL] FAL_KEY not configured - FAL API calls will fail")

    async def generate(self, prompt: str, num_images: int = 1) -> List[str]:
        """Text-to-image generation. Returns the output image URLs."""
        return await self._run(
            settings.fal_text_to_image_endpoint,
            {"prompt": prompt, "num_images": num_images, "output_format": "png"}
        )

    async def edit(self, prompt: str, image_urls: List[str], num_images: int = 1) -> List[str]:
        """Image-to-image generation from one or more reference images."""
        return await self._run(
            settings.fal_image_edit_endpoint,
            {"prompt": prompt, "image_urls": list(image_urls), "num_images": num_images, "output_format": "png"}
        )

    async def _run(self, endpoint: str, arguments: Dict[str, Any]) -> List[str]:
        if not settings.fal_key:
            raise ConfigurationError("Image generation is not configured", setting_name="FAL_KEY")

        model_config = get_model_config(endpoint)
        logger.info(f"[FAL] Starting {model_config.ai_model_type.value} generation with {endpoint} "
                    f"({arguments.get('num_images', 1)} image(s))")

        start_time = time.time()
        try:
            result = await asyncio.wait_for(
                asyncio.to_thread(fal_client.run, endpoint, arguments=arguments),
                timeout=settings.fal_timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.error(f"[FAL] {endpoint} timed out after {settings.fal_timeout_seconds}s")
            raise ExternalServiceError(f"FAL.ai request to {endpoint} timed out", service_name="fal")
        except Exception as e:
            logger.error(f"[FAL] {endpoint} failed: {e}")
            raise ExternalServiceError(f"FAL.ai request to {endpoint} failed: {e}", service_name="fal")

        output_urls = self.extract_image_urls(result)
        if not output_urls:
            logger.error(f"[FAL] {endpoint} returned no images")
            raise ExternalServiceError(f"FAL.ai returned no images from {endpoint}", service_name="fal")

        logger.info(f"[FAL] {endpoint} completed in {time.time() - start_time:.2f}s with {len(output_urls)} image(s)")
        return output_urls

    @staticmethod
    def extract_image_urls(result: Any) -> List[str]:
        """Pull image URLs out of the shapes fal models return."""
        if not isinstance(result, dict):
            return []
        if isinstance(result.get("images"), list):
            return [img["url"] for img in result["images"] if isinstance(img, dict) and img.get("url")]
        if isinstance(result.get("image"), dict) and result["image"].get("url"):
            return [result["image"]["url"]]
        return []


# Global service instance
fal_service = FALService()
