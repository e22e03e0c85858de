"""
Generation history repository.
Pure database layer, no business logic.
"""
from typing import Optional, List, Dict, Any, Iterable
import logging

from database import SupabaseClient
from utils.exceptions import DatabaseError

logger = logging.getLogger(__name__)

TABLE = "generation_history"


class GenerationRepository:
    """Repository for generation_history rows. Every read is scoped to the owner."""

    def __init__(self, db_client: SupabaseClient):
        self.db = db_client

    async def create_generation(self, generation_data: Dict[str, Any]) -> Dict[str, Any]:
        """Insert one generation row and return it."""
        result = await self.db.execute_query_async(
            TABLE,
            "insert",
            data=generation_data,
            single=True
        )
        if not result:
            raise DatabaseError("Insert into generation_history returned no row", operation="insert", table=TABLE)
        logger.info(f"[GENERATION-REPO] Stored generation {result.get('id')} for user {generation_data.get('user_id')}")
        return result

    async def list_user_generations(self, user_id: str, limit: int = 20, offset: int = 0) -> List[Dict[str, Any]]:
        """Newest first."""
        return await self.db.execute_query_async(
            TABLE,
            "select",
            filters={"user_id": str(user_id)},
            order_by="created_at:desc",
            limit=limit,
            offset=offset
        )

    async def get_generation(self, generation_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        return await self.db.execute_query_async(
            TABLE,
            "select",
            filters={"id": str(generation_id), "user_id": str(user_id)},
            single=True
        )

    async def get_generations_by_ids(self, generation_ids: Iterable[str], user_id: str) -> List[Dict[str, Any]]:
        """Newest first; unknown or foreign ids are silently absent."""
        ids = [str(g) for g in generation_ids]
        if not ids:
            return []
        return await self.db.execute_query_async(
            TABLE,
            "select",
            filters={"user_id": str(user_id)},
            in_filters={"id": ids},
            order_by="created_at:desc"
        )

    async def delete_generation(self, generation_id: str, user_id: str) -> bool:
        deleted = await self.db.execute_query_async(
            TABLE,
            "delete",
            filters={"id": str(generation_id), "user_id": str(user_id)}
        )
        return bool(deleted)
