"""
User profile and settings router.
Provides endpoints for the profile card, display name changes and help links.
"""
from fastapi import APIRouter, Depends, HTTPException, status, Request
import logging

from database import SupabaseClient, get_database
from middleware.auth import get_current_user
from middleware.rate_limiting import api_limit
from repositories.credit_repository import CreditRepository
from repositories.user_repository import UserRepository
from services.user_service import UserService, get_support_info
from models.user import CurrentUser, ProfileResponse, ProfileUpdate, SupportInfo
from utils.exceptions import StudioError, to_http_exception

router = APIRouter(tags=["user"])
logger = logging.getLogger(__name__)


async def get_user_service(db: SupabaseClient = Depends(get_database)) -> UserService:
    """Dependency to get UserService instance."""
    return UserService(UserRepository(db), CreditRepository(db))


@router.get("/profile", response_model=ProfileResponse)
@api_limit()
async def get_user_profile(
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    """Get the current user's profile, credit balance and admin flag."""
    try:
        return await user_service.get_profile(current_user)
    except StudioError as e:
        logger.error(f"[USER-ROUTER] Profile lookup failed for {current_user.user_id}: {e}")
        raise to_http_exception(e)


@router.put("/profile", response_model=ProfileResponse)
@api_limit()
async def update_user_profile(
    request: Request,
    profile_update: ProfileUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    try:
        return await user_service.update_display_name(current_user, profile_update.display_name)
    except StudioError as e:
        logger.error(f"[USER-ROUTER] Profile update failed for {current_user.user_id}: {e}")
        raise to_http_exception(e)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/support", response_model=SupportInfo)
async def get_support(current_user: CurrentUser = Depends(get_current_user)):
    return get_support_info()
