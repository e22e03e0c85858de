"""
Prompt library repository.
Pure database layer, no business logic.
"""
from typing import Optional, List, Dict, Any
import logging

from database import SupabaseClient

logger = logging.getLogger(__name__)

TABLE = "prompt_library"


class PromptRepository:
    """Repository for saved prompts, private and public."""

    def __init__(self, db_client: SupabaseClient):
        self.db = db_client

    async def create_prompt(self, prompt_data: Dict[str, Any]) -> Dict[str, Any]:
        return await self.db.execute_query_async(TABLE, "insert", data=prompt_data, single=True)

    async def list_user_prompts(self, user_id: str) -> List[Dict[str, Any]]:
        return await self.db.execute_query_async(
            TABLE,
            "select",
            filters={"user_id": str(user_id)},
            order_by="created_at:desc"
        )

    async def list_public_prompts(self, order_by: str, limit: int,
                                  search: Optional[str] = None) -> List[Dict[str, Any]]:
        ilike = {"prompt": f"%{search}%"} if search else None
        return await self.db.execute_query_async(
            TABLE,
            "select",
            filters={"is_public": True},
            ilike=ilike,
            order_by=order_by,
            limit=limit
        )

    async def get_prompt(self, prompt_id: str) -> Optional[Dict[str, Any]]:
        return await self.db.execute_query_async(
            TABLE,
            "select",
            filters={"id": str(prompt_id)},
            single=True
        )

    async def update_likes(self, prompt_id: str, likes_count: int) -> Optional[Dict[str, Any]]:
        return await self.db.execute_query_async(
            TABLE,
            "update",
            data={"likes_count": likes_count},
            filters={"id": str(prompt_id)},
            single=True
        )

    async def delete_prompt(self, prompt_id: str, user_id: str) -> bool:
        deleted = await self.db.execute_query_async(
            TABLE,
            "delete",
            filters={"id": str(prompt_id), "user_id": str(user_id)}
        )
        return bool(deleted)
