"""
Favorite repository.
A favorites row links a generation to a user and, optionally, to one collection.
"""
from typing import Optional, List, Dict, Any, Iterable
import logging

from database import SupabaseClient

logger = logging.getLogger(__name__)

TABLE = "favorites"


class FavoriteRepository:
    """Repository for favorites rows, always scoped by user_id."""

    def __init__(self, db_client: SupabaseClient):
        self.db = db_client

    async def list_user_favorites(self, user_id: str) -> List[Dict[str, Any]]:
        return await self.db.execute_query_async(
            TABLE,
            "select",
            filters={"user_id": str(user_id)}
        )

    async def get_for_generation(self, user_id: str, generation_id: str) -> List[Dict[str, Any]]:
        return await self.db.execute_query_async(
            TABLE,
            "select",
            filters={"user_id": str(user_id), "generation_id": str(generation_id)}
        )

    async def add_favorite(self, user_id: str, generation_id: str,
                           collection_id: Optional[str] = None) -> Dict[str, Any]:
        return await self.db.execute_query_async(
            TABLE,
            "insert",
            data={
                "user_id": str(user_id),
                "generation_id": str(generation_id),
                "collection_id": str(collection_id) if collection_id else None,
            },
            single=True
        )

    async def delete_for_generation(self, user_id: str, generation_id: str) -> int:
        """Remove every favorite row of the user for a generation."""
        deleted = await self.db.execute_query_async(
            TABLE,
            "delete",
            filters={"user_id": str(user_id), "generation_id": str(generation_id)}
        )
        return len(deleted or [])

    async def delete_from_collections(self, user_id: str, generation_id: str,
                                      collection_ids: Iterable[str]) -> int:
        ids = [str(c) for c in collection_ids]
        if not ids:
            return 0
        deleted = await self.db.execute_query_async(
            TABLE,
            "delete",
            filters={"user_id": str(user_id), "generation_id": str(generation_id)},
            in_filters={"collection_id": ids}
        )
        return len(deleted or [])

    async def delete_by_id(self, favorite_id: str, user_id: str) -> bool:
        deleted = await self.db.execute_query_async(
            TABLE,
            "delete",
            filters={"id": str(favorite_id), "user_id": str(user_id)}
        )
        return bool(deleted)

    async def list_for_collections(self, collection_ids: Iterable[str]) -> List[Dict[str, Any]]:
        ids = [str(c) for c in collection_ids]
        if not ids:
            return []
        return await self.db.execute_query_async(
            TABLE,
            "select",
            in_filters={"collection_id": ids},
            order_by="created_at:desc"
        )

    async def collection_ids_for_generation(self, user_id: str, generation_id: str) -> List[str]:
        rows = await self.db.execute_query_async(
            TABLE,
            "select",
            filters={"user_id": str(user_id), "generation_id": str(generation_id)},
            not_null=["collection_id"]
        )
        return [str(row["collection_id"]) for row in rows if row.get("collection_id")]
