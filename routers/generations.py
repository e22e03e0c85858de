"""
Generation API endpoints.
Router layer: text-to-image, image-to-image and variations; business rules live in GenerationService.
"""
from fastapi import APIRouter, Depends, HTTPException, Request, status
import logging

from database import SupabaseClient, get_database
from middleware.auth import get_current_user
from middleware.rate_limiting import generation_limit
from repositories.credit_repository import CreditRepository
from repositories.generation_repository import GenerationRepository
from services.credit_service import CreditService
from services.fal_service import FALService, fal_service
from services.generation_service import GenerationService
from services.storage_service import StorageService
from models.fal_config import get_generation_options
from models.generation import GenerationCreate, GenerationResult, VariationCreate
from models.user import CurrentUser
from utils.exceptions import StudioError, to_http_exception

router = APIRouter(tags=["generations"])
logger = logging.getLogger(__name__)


def get_fal_service() -> FALService:
    return fal_service


async def get_generation_service(
    db: SupabaseClient = Depends(get_database),
    fal: FALService = Depends(get_fal_service)
) -> GenerationService:
    return GenerationService(
        GenerationRepository(db),
        CreditService(CreditRepository(db)),
        StorageService(db),
        fal=fal
    )


@router.post("", response_model=GenerationResult, status_code=status.HTTP_201_CREATED)
@router.post("/", response_model=GenerationResult, status_code=status.HTTP_201_CREATED, include_in_schema=False)
@generation_limit()
async def create_generation(
    request: Request,
    generation_data: GenerationCreate,
    current_user: CurrentUser = Depends(get_current_user),
    generation_service: GenerationService = Depends(get_generation_service)
):
    """
    Generate 1-4 images from a prompt, optionally guided by a reference image.

    Costs GENERATION_CREDIT_COST per image, charged up front and refunded if the provider fails.
    """
    try:
        return await generation_service.create_generation(current_user.user_id, generation_data)
    except StudioError as e:
        logger.warning(f"[GENERATIONS-ROUTER] Generation failed for {current_user.user_id}: {e}")
        raise to_http_exception(e)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/variations", response_model=GenerationResult, status_code=status.HTTP_201_CREATED)
@generation_limit()
async def create_variations(
    request: Request,
    variation_data: VariationCreate,
    current_user: CurrentUser = Depends(get_current_user),
    generation_service: GenerationService = Depends(get_generation_service)
):
    """Create 2-4 variations of an existing generation or of an image URL plus prompt."""
    try:
        return await generation_service.create_variations(current_user.user_id, variation_data)
    except StudioError as e:
        logger.warning(f"[GENERATIONS-ROUTER] Variations failed for {current_user.user_id}: {e}")
        raise to_http_exception(e)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/models")
async def list_generation_options():
    """Public: models, aspect ratios, styles and credit costs."""
    return get_generation_options()
