"""
Favorites router: toggle a generation's favorite state and list favorite ids.
"""
from fastapi import APIRouter, Depends, Request
from uuid import UUID
import logging

from database import SupabaseClient, get_database
from middleware.auth import get_current_user
from middleware.rate_limiting import api_limit
from repositories.collection_repository import CollectionRepository
from repositories.favorite_repository import FavoriteRepository
from repositories.generation_repository import GenerationRepository
from services.collection_service import CollectionService
from models.collection import FavoriteListResponse, FavoriteToggleResponse
from models.user import CurrentUser
from utils.exceptions import StudioError, to_http_exception

router = APIRouter(tags=["favorites"])
logger = logging.getLogger(__name__)


async def get_collection_service(db: SupabaseClient = Depends(get_database)) -> CollectionService:
    return CollectionService(CollectionRepository(db), FavoriteRepository(db), GenerationRepository(db))


@router.post("/{generation_id}/toggle", response_model=FavoriteToggleResponse)
@api_limit()
async def toggle_favorite(
    request: Request,
    generation_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    collection_service: CollectionService = Depends(get_collection_service)
):
    """Unfavoriting also drops the generation from every collection."""
    try:
        return await collection_service.toggle_favorite(current_user.user_id, str(generation_id))
    except StudioError as e:
        logger.warning(f"[FAVORITES-ROUTER] Toggle failed for {generation_id}: {e}")
        raise to_http_exception(e)


@router.get("", response_model=FavoriteListResponse)
@router.get("/", response_model=FavoriteListResponse, include_in_schema=False)
@api_limit()
async def list_favorites(
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    collection_service: CollectionService = Depends(get_collection_service)
):
    try:
        ids = await collection_service.list_favorite_ids(current_user.user_id)
    except StudioError as e:
        raise to_http_exception(e)
    return FavoriteListResponse(generation_ids=ids)
