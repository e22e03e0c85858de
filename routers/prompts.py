"""
Prompt library router: saved prompts, the public gallery, likes and share links.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request, Response, status
from uuid import UUID
import logging

from database import SupabaseClient, get_database
from middleware.auth import get_current_user, get_current_user_optional
from middleware.rate_limiting import api_limit, limit
from repositories.prompt_repository import PromptRepository
from services.prompt_service import PromptService
from models.prompt import DEFAULT_PUBLIC_LIMIT, MAX_PUBLIC_LIMIT, PromptCreate, PromptResponse, PromptSort, ShareLinks
from models.user import CurrentUser
from utils.exceptions import StudioError, to_http_exception

router = APIRouter(tags=["prompts"])
logger = logging.getLogger(__name__)


async def get_prompt_service(db: SupabaseClient = Depends(get_database)) -> PromptService:
    return PromptService(PromptRepository(db))


@router.post("", response_model=PromptResponse, status_code=status.HTTP_201_CREATED)
@router.post("/", response_model=PromptResponse, status_code=status.HTTP_201_CREATED, include_in_schema=False)
@api_limit()
async def save_prompt(
    request: Request,
    prompt_data: PromptCreate,
    current_user: CurrentUser = Depends(get_current_user),
    prompt_service: PromptService = Depends(get_prompt_service)
):
    try:
        return await prompt_service.save_prompt(current_user.user_id, prompt_data)
    except StudioError as e:
        logger.error(f"[PROMPTS-ROUTER] Save failed for {current_user.user_id}: {e}")
        raise to_http_exception(e)


@router.get("/mine", response_model=List[PromptResponse])
@api_limit()
async def list_my_prompts(
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    prompt_service: PromptService = Depends(get_prompt_service)
):
    try:
        return await prompt_service.list_my_prompts(current_user.user_id)
    except StudioError as e:
        raise to_http_exception(e)


@router.get("/public", response_model=List[PromptResponse])
@api_limit()
async def list_public_prompts(
    request: Request,
    sort: PromptSort = Query(PromptSort.LIKES),
    limit: int = Query(DEFAULT_PUBLIC_LIMIT, ge=1, le=MAX_PUBLIC_LIMIT),
    search: Optional[str] = Query(None, max_length=200),
    prompt_service: PromptService = Depends(get_prompt_service)
):
    """Public gallery; search is a case-insensitive match on the prompt text."""
    try:
        return await prompt_service.list_public_prompts(sort=sort, limit=limit, search=search)
    except StudioError as e:
        raise to_http_exception(e)


@router.delete("/{prompt_id}", status_code=status.HTTP_204_NO_CONTENT)
@api_limit()
async def delete_prompt(
    request: Request,
    prompt_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    prompt_service: PromptService = Depends(get_prompt_service)
):
    try:
        await prompt_service.delete_prompt(current_user.user_id, str(prompt_id))
    except StudioError as e:
        raise to_http_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{prompt_id}/like", response_model=PromptResponse)
@limit("30/minute")
async def like_prompt(
    request: Request,
    prompt_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    prompt_service: PromptService = Depends(get_prompt_service)
):
    try:
        return await prompt_service.like_prompt(str(prompt_id))
    except StudioError as e:
        raise to_http_exception(e)


@router.get("/{prompt_id}/share", response_model=ShareLinks)
@api_limit()
async def share_prompt(
    request: Request,
    prompt_id: UUID,
    current_user: Optional[CurrentUser] = Depends(get_current_user_optional),
    prompt_service: PromptService = Depends(get_prompt_service)
):
    """Share URL and social intents. Private prompts are only shareable by their owner."""
    user_id = current_user.user_id if current_user else None
    try:
        return await prompt_service.get_share_links(user_id, str(prompt_id))
    except StudioError as e:
        raise to_http_exception(e)
