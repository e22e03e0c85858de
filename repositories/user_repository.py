"""
User repository for profiles and roles.
Pure database layer, no business logic.
"""
import logging
from typing import Dict, Any, List, Optional, Iterable
from datetime import datetime, timezone

from database import SupabaseClient

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for the profiles table and the has_role procedure."""

    def __init__(self, db_client: SupabaseClient):
        self.db = db_client

    async def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        return await self.db.execute_query_async(
            "profiles",
            "select",
            filters={"id": str(user_id)},
            single=True
        )

    async def get_profiles(self, user_ids: Iterable[str]) -> List[Dict[str, Any]]:
        ids = sorted({str(u) for u in user_ids})
        if not ids:
            return []
        return await self.db.execute_query_async(
            "profiles",
            "select",
            in_filters={"id": ids},
            columns="id, email, display_name"
        )

    async def update_display_name(self, user_id: str, display_name: str) -> Optional[Dict[str, Any]]:
        return await self.db.execute_query_async(
            "profiles",
            "update",
            data={"display_name": display_name, "updated_at": datetime.now(timezone.utc).isoformat()},
            filters={"id": str(user_id)},
            single=True
        )

    async def has_role(self, user_id: str, role: str) -> bool:
        """has_role(_user_id, _role) returns a boolean."""
        result = await self.db.execute_rpc_async(
            "has_role",
            {"_user_id": str(user_id), "_role": role}
        )
        if isinstance(result, list):
            result = result[0] if result else False
        return bool(result)
