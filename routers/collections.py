"""
Collections router: named groups of favorited generations and per-generation membership.
"""
from typing import List
from fastapi import APIRouter, Depends, Request, Response, status
from uuid import UUID
import logging

from middleware.auth import get_current_user
from middleware.rate_limiting import api_limit
from routers.favorites import get_collection_service
from services.collection_service import CollectionService
from models.collection import (
    CollectionCreate,
    CollectionDetail,
    CollectionResponse,
    CollectionUpdate,
    MembershipResponse,
    MembershipUpdate,
)
from models.user import CurrentUser
from utils.exceptions import StudioError, to_http_exception

router = APIRouter(tags=["collections"])
logger = logging.getLogger(__name__)


@router.get("", response_model=List[CollectionResponse])
@router.get("/", response_model=List[CollectionResponse], include_in_schema=False)
@api_limit()
async def list_collections(
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    collection_service: CollectionService = Depends(get_collection_service)
):
    """Newest first with item counts and up to four thumbnails."""
    try:
        return await collection_service.list_collections(current_user.user_id)
    except StudioError as e:
        logger.error(f"[COLLECTIONS-ROUTER] Listing failed for {current_user.user_id}: {e}")
        raise to_http_exception(e)


@router.post("", response_model=CollectionResponse, status_code=status.HTTP_201_CREATED)
@router.post("/", response_model=CollectionResponse, status_code=status.HTTP_201_CREATED, include_in_schema=False)
@api_limit()
async def create_collection(
    request: Request,
    collection_data: CollectionCreate,
    current_user: CurrentUser = Depends(get_current_user),
    collection_service: CollectionService = Depends(get_collection_service)
):
    try:
        return await collection_service.create_collection(current_user.user_id, collection_data)
    except StudioError as e:
        raise to_http_exception(e)


@router.get("/membership/{generation_id}", response_model=MembershipResponse)
@api_limit()
async def get_membership(
    request: Request,
    generation_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    collection_service: CollectionService = Depends(get_collection_service)
):
    try:
        return await collection_service.get_membership(current_user.user_id, str(generation_id))
    except StudioError as e:
        raise to_http_exception(e)


@router.put("/membership/{generation_id}", response_model=MembershipResponse)
@api_limit()
async def set_membership(
    request: Request,
    generation_id: UUID,
    membership: MembershipUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    collection_service: CollectionService = Depends(get_collection_service)
):
    """Replace the set of collections the generation belongs to."""
    try:
        return await collection_service.set_membership(
            current_user.user_id, str(generation_id), membership.collection_ids
        )
    except StudioError as e:
        logger.warning(f"[COLLECTIONS-ROUTER] Membership update failed for {generation_id}: {e}")
        raise to_http_exception(e)


@router.delete("/items/{favorite_id}", status_code=status.HTTP_204_NO_CONTENT)
@api_limit()
async def remove_collection_item(
    request: Request,
    favorite_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    collection_service: CollectionService = Depends(get_collection_service)
):
    try:
        await collection_service.remove_item(current_user.user_id, str(favorite_id))
    except StudioError as e:
        raise to_http_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{collection_id}", response_model=CollectionDetail)
@api_limit()
async def get_collection(
    request: Request,
    collection_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    collection_service: CollectionService = Depends(get_collection_service)
):
    try:
        return await collection_service.get_collection(current_user.user_id, str(collection_id))
    except StudioError as e:
        raise to_http_exception(e)


@router.put("/{collection_id}", response_model=CollectionResponse)
@api_limit()
async def update_collection(
    request: Request,
    collection_id: UUID,
    collection_data: CollectionUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    collection_service: CollectionService = Depends(get_collection_service)
):
    try:
        return await collection_service.update_collection(current_user.user_id, str(collection_id), collection_data)
    except StudioError as e:
        raise to_http_exception(e)


@router.delete("/{collection_id}", status_code=status.HTTP_204_NO_CONTENT)
@api_limit()
async def delete_collection(
    request: Request,
    collection_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    collection_service: CollectionService = Depends(get_collection_service)
):
    try:
        await collection_service.delete_collection(current_user.user_id, str(collection_id))
    except StudioError as e:
        raise to_http_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
