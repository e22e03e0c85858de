"""
User service for profile and settings operations.
Business logic layer, uses repositories.
"""
import logging
from urllib.parse import quote

from repositories.user_repository import UserRepository
from repositories.credit_repository import CreditRepository
from models.user import CurrentUser, ProfileResponse, SupportInfo
from config import settings

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


class UserService:
    """Service for user-related business logic."""

    def __init__(self, user_repo: UserRepository, credit_repo: CreditRepository):
        self.user_repo = user_repo
        self.credit_repo = credit_repo

    async def get_profile(self, user: CurrentUser) -> ProfileResponse:
        """Profile row, credit balance and admin flag for the settings page."""
        profile = await self.user_repo.get_profile(user.user_id) or {}
        credits = await self.credit_repo.get_balance(user.user_id)
        is_admin = await self.user_repo.has_role(user.user_id, ADMIN_ROLE)

        return ProfileResponse(
            id=user.id,
            email=profile.get("email") or user.email,
            display_name=profile.get("display_name") or user.display_name,
            credits=credits,
            is_admin=is_admin
        )

    async def update_display_name(self, user: CurrentUser, display_name: str) -> ProfileResponse:
        updated = await self.user_repo.update_display_name(user.user_id, display_name)
        if updated is None:
            logger.warning(f"[USER] No profile row for {user.user_id}; display name not stored")
        else:
            logger.info(f"[USER] Updated display name for {user.user_id}")
        return await self.get_profile(user)

    async def is_admin(self, user_id: str) -> bool:
        return await self.user_repo.has_role(user_id, ADMIN_ROLE)


def get_support_info() -> SupportInfo:
    """Help links: documentation, support mailbox and a pre-filled bug report."""
    return SupportInfo(
        documentation_url=settings.documentation_url,
        support_email=settings.support_email,
        bug_report_url=f"mailto:{settings.support_email}?subject={quote('Bug Report')}",
        privacy_policy_path="/privacy-policy"
    )
