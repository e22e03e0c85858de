"""
Generation history router: list, inspect, delete and download past generations.
"""
from fastapi import APIRouter, Depends, Query, Request, Response, status
import logging
from uuid import UUID

from database import SupabaseClient, get_database
from middleware.auth import get_current_user
from middleware.rate_limiting import api_limit
from repositories.favorite_repository import FavoriteRepository
from repositories.generation_repository import GenerationRepository
from services.history_service import (
    DEFAULT_HISTORY_LIMIT,
    MAX_HISTORY_LIMIT,
    HistoryService,
    content_disposition,
)
from services.storage_service import StorageService
from models.generation import GenerationResponse, HistoryListResponse
from models.user import CurrentUser
from utils.exceptions import StudioError, to_http_exception

router = APIRouter(tags=["history"])
logger = logging.getLogger(__name__)


async def get_history_service(db: SupabaseClient = Depends(get_database)) -> HistoryService:
    return HistoryService(GenerationRepository(db), FavoriteRepository(db))


async def get_storage_service(db: SupabaseClient = Depends(get_database)) -> StorageService:
    return StorageService(db)


@router.get("", response_model=HistoryListResponse)
@router.get("/", response_model=HistoryListResponse, include_in_schema=False)
@api_limit()
async def list_history(
    request: Request,
    limit: int = Query(DEFAULT_HISTORY_LIMIT, ge=1, le=MAX_HISTORY_LIMIT),
    offset: int = Query(0, ge=0),
    current_user: CurrentUser = Depends(get_current_user),
    history_service: HistoryService = Depends(get_history_service)
):
    """Newest first, each item flagged with is_favorite."""
    try:
        items = await history_service.list_history(current_user.user_id, limit=limit, offset=offset)
    except StudioError as e:
        logger.error(f"[HISTORY-ROUTER] Listing failed for {current_user.user_id}: {e}")
        raise to_http_exception(e)
    return HistoryListResponse(items=items, limit=limit, offset=offset)


@router.get("/{generation_id}", response_model=GenerationResponse)
@api_limit()
async def get_generation(
    request: Request,
    generation_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    history_service: HistoryService = Depends(get_history_service)
):
    try:
        return await history_service.get_generation(current_user.user_id, str(generation_id))
    except StudioError as e:
        raise to_http_exception(e)


@router.delete("/{generation_id}", status_code=status.HTTP_204_NO_CONTENT)
@api_limit()
async def delete_generation(
    request: Request,
    generation_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    history_service: HistoryService = Depends(get_history_service)
):
    try:
        await history_service.delete_generation(current_user.user_id, str(generation_id))
    except StudioError as e:
        raise to_http_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{generation_id}/download")
@api_limit()
async def download_generation(
    request: Request,
    generation_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    history_service: HistoryService = Depends(get_history_service),
    storage_service: StorageService = Depends(get_storage_service)
):
    """Image bytes as an attachment named after the first 30 characters of the prompt."""
    try:
        download = await history_service.download(current_user.user_id, str(generation_id), storage_service)
    except StudioError as e:
        logger.warning(f"[HISTORY-ROUTER] Download of {generation_id} failed: {e}")
        raise to_http_exception(e)

    return Response(
        content=download.content,
        media_type=download.content_type,
        headers={"Content-Disposition": content_disposition(download.filename)}
    )
