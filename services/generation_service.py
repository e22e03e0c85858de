"""
Generation service for coordinating the image generation workflow.
Service layer for business logic: charge, generate, refund on failure, persist.
"""
import logging
from typing import Dict, Any, List, Optional

from config import settings
from repositories.generation_repository import GenerationRepository
from services.credit_service import CreditService
from services.fal_service import FALService, fal_service
from services.storage_service import StorageService
from models.fal_config import compose_prompt
from models.generation import (
    GenerationCreate,
    GenerationResponse,
    GenerationResult,
    GenerationType,
    VariationCreate,
)
from utils.exceptions import ExternalServiceError, ConfigurationError, DatabaseError, NotFoundError, ValidationError
from utils.logging_config import log_execution_time

logger = logging.getLogger(__name__)

VARIATION_PREFIX = "Variation: "


def creativity_label(creativity: int) -> str:
    """Map a 0-100 creativity slider to the wording used in variation prompts."""
    if creativity < 33:
        return "subtle"
    if creativity < 66:
        return "moderate"
    return "creative"


def build_variation_prompt(original_prompt: str, creativity: int) -> str:
    return f"{original_prompt}, {creativity_label(creativity)} variation, alternative version"


class GenerationService:
    """Service for managing the AI generation lifecycle."""

    def __init__(
        self,
        generation_repo: GenerationRepository,
        credit_service: CreditService,
        storage_service: StorageService,
        fal: Optional[FALService] = None
    ):
        self.generation_repo = generation_repo
        self.credit_service = credit_service
        self.storage_service = storage_service
        self.fal = fal or fal_service

    @log_execution_time("create_generation")
    async def create_generation(self, user_id: str, request: GenerationCreate) -> GenerationResult:
        """
        Generate images for a prompt.

        Credits are deducted before the provider is called and refunded in full
        if the provider fails. Images the provider did not return, or that could
        not be saved to history, are refunded too.
        """
        if not request.prompt or not request.prompt.strip():
            raise ValidationError("Please enter a prompt")

        final_prompt = compose_prompt(request.prompt, request.style, request.aspect_ratio)
        unit_cost = settings.generation_credit_cost
        cost = unit_cost * request.num_images

        is_edit = bool(request.reference_image_url)
        generation_type = GenerationType.IMAGE_TO_IMAGE if is_edit else GenerationType.TEXT_TO_IMAGE

        remaining = await self.credit_service.deduct(user_id, cost)
        logger.info(f"[GENERATION] User {user_id}: {generation_type.value} x{request.num_images}, charged {cost}")

        try:
            if is_edit:
                image_urls = await self.fal.edit(final_prompt, [request.reference_image_url], request.num_images)
            else:
                image_urls = await self.fal.generate(final_prompt, request.num_images)
        except (ExternalServiceError, ConfigurationError):
            await self.credit_service.refund(user_id, cost, "generation failed")
            raise

        image_urls = image_urls[:request.num_images]
        missing = request.num_images - len(image_urls)
        credits_used = cost
        if missing > 0:
            remaining = await self.credit_service.refund(user_id, missing * unit_cost, "partial result")
            credits_used -= missing * unit_cost

        generation_settings = {
            "aspect_ratio": request.aspect_ratio,
            "style": request.style,
            "num_images": request.num_images,
            "final_prompt": final_prompt,
        }
        if is_edit:
            generation_settings["reference_image_url"] = request.reference_image_url

        generations: List[GenerationResponse] = []
        try:
            await self._store_images(
                generations, user_id, request.prompt, image_urls, generation_type, generation_settings
            )
        except DatabaseError:
            unstored = len(image_urls) - len(generations)
            await self.credit_service.refund(user_id, unstored * unit_cost, "history insert failed")
            raise

        return GenerationResult(
            generations=generations,
            credits_used=credits_used,
            credits_remaining=remaining
        )

    @log_execution_time("create_variations")
    async def create_variations(self, user_id: str, request: VariationCreate) -> GenerationResult:
        """
        Create count variations of an image, each charged and generated separately.

        A failing variation is refunded and stops the batch. When earlier
        variations were produced they are returned with the failure in `error`;
        when none were, the failure is raised.
        """
        if request.generation_id is not None:
            source = await self.generation_repo.get_generation(str(request.generation_id), user_id)
            if not source:
                raise NotFoundError("Generation not found", resource_id=str(request.generation_id),
                                    resource_type="generation")
            image_url = source["image_data"]
            original_prompt = source["prompt"]
        else:
            image_url = request.image_url
            original_prompt = request.prompt.strip()

        if original_prompt.startswith(VARIATION_PREFIX):
            original_prompt = original_prompt[len(VARIATION_PREFIX):]

        variation_prompt = build_variation_prompt(original_prompt, request.creativity)
        unit_cost = settings.generation_credit_cost

        generations: List[GenerationResponse] = []
        remaining = 0
        error: Optional[str] = None
        for index in range(request.count):
            remaining = await self.credit_service.deduct(user_id, unit_cost)
            try:
                urls = await self.fal.edit(variation_prompt, [image_url], 1)
                stored = len(generations)
                await self._store_images(
                    generations,
                    user_id,
                    f"{VARIATION_PREFIX}{original_prompt}",
                    urls[:1],
                    GenerationType.VARIATION,
                    {"creativity": request.creativity, "originalPrompt": original_prompt}
                )
                if len(generations) == stored:
                    raise ExternalServiceError("Provider returned no image", service_name="fal")
            except (ExternalServiceError, ConfigurationError, DatabaseError) as e:
                remaining = await self.credit_service.refund(user_id, unit_cost, f"variation {index + 1} failed")
                if not generations:
                    raise
                logger.warning(f"[GENERATION] User {user_id}: variation {index + 1} failed, "
                               f"returning {len(generations)} of {request.count}: {e}")
                error = e.user_message
                break

        logger.info(f"[GENERATION] User {user_id}: {len(generations)} variation(s) created")
        return GenerationResult(
            generations=generations,
            credits_used=unit_cost * len(generations),
            credits_remaining=remaining,
            error=error
        )

    async def _store_images(
        self,
        generations: List[GenerationResponse],
        user_id: str,
        prompt: str,
        image_urls: List[str],
        generation_type: GenerationType,
        generation_settings: Dict[str, Any]
    ) -> None:
        """Save each image to history, appending the stored rows to generations as they land."""
        for url in image_urls:
            image_data = url
            if settings.persist_generated_images:
                image_data = await self.storage_service.persist_generated_image(user_id, url)

            row = await self.generation_repo.create_generation({
                "user_id": str(user_id),
                "prompt": prompt,
                "image_data": image_data,
                "generation_type": generation_type.value,
                "settings": generation_settings,
            })
            generations.append(GenerationResponse(**row))
