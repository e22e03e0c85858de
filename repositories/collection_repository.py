"""
Collection repository.
Pure database layer, no business logic.
"""
from typing import Optional, List, Dict, Any, Iterable
from datetime import datetime, timezone
import logging

from database import SupabaseClient

logger = logging.getLogger(__name__)

TABLE = "collections"


class CollectionRepository:
    """Repository for collections owned by a user."""

    def __init__(self, db_client: SupabaseClient):
        self.db = db_client

    async def create_collection(self, user_id: str, name: str, description: Optional[str]) -> Dict[str, Any]:
        return await self.db.execute_query_async(
            TABLE,
            "insert",
            data={"user_id": str(user_id), "name": name, "description": description},
            single=True
        )

    async def list_user_collections(self, user_id: str) -> List[Dict[str, Any]]:
        return await self.db.execute_query_async(
            TABLE,
            "select",
            filters={"user_id": str(user_id)},
            order_by="created_at:desc"
        )

    async def get_collection(self, collection_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        return await self.db.execute_query_async(
            TABLE,
            "select",
            filters={"id": str(collection_id), "user_id": str(user_id)},
            single=True
        )

    async def get_owned_ids(self, collection_ids: Iterable[str], user_id: str) -> List[str]:
        ids = [str(c) for c in collection_ids]
        if not ids:
            return []
        rows = await self.db.execute_query_async(
            TABLE,
            "select",
            filters={"user_id": str(user_id)},
            in_filters={"id": ids}
        )
        return [str(row["id"]) for row in rows]

    async def update_collection(self, collection_id: str, user_id: str, name: str,
                                description: Optional[str]) -> Optional[Dict[str, Any]]:
        return await self.db.execute_query_async(
            TABLE,
            "update",
            data={
                "name": name,
                "description": description,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            },
            filters={"id": str(collection_id), "user_id": str(user_id)},
            single=True
        )

    async def delete_collection(self, collection_id: str, user_id: str) -> bool:
        deleted = await self.db.execute_query_async(
            TABLE,
            "delete",
            filters={"id": str(collection_id), "user_id": str(user_id)}
        )
        return bool(deleted)
