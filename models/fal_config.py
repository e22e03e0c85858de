"""
FAL.ai model registry and generation options.
"""
from typing import Dict, Any, List
from enum import Enum
from pydantic import BaseModel, Field

from config import settings


class FALModelType(str, Enum):
    """FAL.ai model type enum."""
    TEXT_TO_IMAGE = "text-to-image"
    IMAGE_TO_IMAGE = "image-to-image"


class FALModelConfig(BaseModel):
    """FAL.ai model configuration."""
    endpoint: str
    ai_model_type: FALModelType = Field(alias="model_type")
    credits: int
    max_images: int
    supported_formats: List[str]
    description: str
    example_params: Dict[str, Any]

    model_config = {
        "protected_namespaces": (),
        "populate_by_name": True
    }


ASPECT_RATIOS: Dict[str, str] = {
    "1:1": "Square (1:1)",
    "16:9": "Landscape (16:9)",
    "9:16": "Portrait (9:16)",
    "4:3": "Classic (4:3)",
}

# Appended to the user's prompt after a comma
STYLE_PROMPTS: Dict[str, str] = {
    "photorealistic": "photorealistic, highly detailed, natural lighting",
    "digital-art": "digital art, vibrant colors, sharp details",
    "anime": "anime style, cel shading, expressive characters",
    "oil-painting": "oil painting, visible brush strokes, rich textures",
    "watercolor": "watercolor painting, soft washes, delicate edges",
}

DEFAULT_ASPECT_RATIO = "1:1"
DEFAULT_STYLE = "photorealistic"
MIN_IMAGES = 1
MAX_IMAGES = 4

MIN_VARIATIONS = 2
MAX_VARIATIONS = 4


FAL_MODEL_REGISTRY: Dict[str, FALModelConfig] = {
    settings.fal_text_to_image_endpoint: FALModelConfig(
        endpoint=settings.fal_text_to_image_endpoint,
        ai_model_type=FALModelType.TEXT_TO_IMAGE,
        credits=settings.generation_credit_cost,
        max_images=MAX_IMAGES,
        supported_formats=["png", "jpeg"],
        description="Nano Banana - fast text-to-image generation",
        example_params={
            "prompt": "A serene mountain lake with reflection, photorealistic, highly detailed, natural lighting",
            "num_images": 1,
            "output_format": "png"
        }
    ),
    settings.fal_image_edit_endpoint: FALModelConfig(
        endpoint=settings.fal_image_edit_endpoint,
        ai_model_type=FALModelType.IMAGE_TO_IMAGE,
        credits=settings.generation_credit_cost,
        max_images=MAX_IMAGES,
        supported_formats=["png", "jpeg"],
        description="Nano Banana Edit - image-to-image edits and variations from reference images",
        example_params={
            "prompt": "Same scene at night, neon lights",
            "image_urls": ["https://example.com/reference.png"],
            "num_images": 1,
            "output_format": "png"
        }
    ),
}


def get_model_config(endpoint: str) -> FALModelConfig:
    """Look up a registered model, raising ValueError for unknown endpoints."""
    if endpoint not in FAL_MODEL_REGISTRY:
        raise ValueError(f"Model {endpoint} is not supported")
    return FAL_MODEL_REGISTRY[endpoint]


def compose_prompt(prompt: str, style: str = DEFAULT_STYLE, aspect_ratio: str = DEFAULT_ASPECT_RATIO) -> str:
    """Build the final model prompt: user text, then style keywords, then aspect ratio hint."""
    parts = [prompt.strip()]
    style_suffix = STYLE_PROMPTS.get(style)
    if style_suffix:
        parts.append(style_suffix)
    if aspect_ratio in ASPECT_RATIOS:
        parts.append(f"aspect ratio {aspect_ratio}")
    return ", ".join(parts)


def get_generation_options() -> Dict[str, Any]:
    """Public description of the generation options and their cost."""
    return {
        "models": [
            {
                "endpoint": config.endpoint,
                "type": config.ai_model_type.value,
                "credits_per_image": config.credits,
                "max_images": config.max_images,
                "description": config.description,
            }
            for config in FAL_MODEL_REGISTRY.values()
        ],
        "aspect_ratios": [{"value": key, "label": label} for key, label in ASPECT_RATIOS.items()],
        "styles": list(STYLE_PROMPTS.keys()),
        "num_images": {"min": MIN_IMAGES, "max": MAX_IMAGES},
        "variations": {"min": MIN_VARIATIONS, "max": MAX_VARIATIONS, "creativity": {"min": 0, "max": 100}},
        "credits_per_image": settings.generation_credit_cost,
    }
