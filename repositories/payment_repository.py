"""
Payment request repository.
Pure database layer, no business logic.
"""
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone
import logging

from database import SupabaseClient

logger = logging.getLogger(__name__)

TABLE = "payment_requests"


class PaymentRepository:
    """Repository for manual payment requests and their approval procedure."""

    def __init__(self, db_client: SupabaseClient):
        self.db = db_client

    async def create_request(self, request_data: Dict[str, Any]) -> Dict[str, Any]:
        return await self.db.execute_query_async(TABLE, "insert", data=request_data, single=True)

    async def list_user_requests(self, user_id: str) -> List[Dict[str, Any]]:
        return await self.db.execute_query_async(
            TABLE,
            "select",
            filters={"user_id": str(user_id)},
            order_by="created_at:desc"
        )

    async def list_requests(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        return await self.db.execute_query_async(
            TABLE,
            "select",
            filters={"status": status} if status else None,
            order_by="created_at:desc"
        )

    async def get_request(self, payment_id: str) -> Optional[Dict[str, Any]]:
        return await self.db.execute_query_async(
            TABLE,
            "select",
            filters={"id": str(payment_id)},
            single=True
        )

    async def approve_request(self, payment_id: str, admin_id: str) -> Any:
        """approve_payment_and_add_credits(_payment_id, _admin_id) marks the request and credits the user."""
        return await self.db.execute_rpc_async(
            "approve_payment_and_add_credits",
            {"_payment_id": str(payment_id), "_admin_id": str(admin_id)}
        )

    async def reject_request(self, payment_id: str) -> Optional[Dict[str, Any]]:
        return await self.db.execute_query_async(
            TABLE,
            "update",
            data={"status": "rejected", "updated_at": datetime.now(timezone.utc).isoformat()},
            filters={"id": str(payment_id), "status": "pending"},
            single=True
        )
