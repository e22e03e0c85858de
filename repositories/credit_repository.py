"""
Credit repository for the per-user balance.
Pure database layer, no business logic.
"""
from typing import Optional, Any
import logging

from database import SupabaseClient

logger = logging.getLogger(__name__)


def _rpc_int(result: Any) -> Optional[int]:
    """Stored procedures return a scalar, a one-item list, or null."""
    if isinstance(result, list):
        result = result[0] if result else None
    if isinstance(result, dict):
        result = next(iter(result.values()), None)
    if result is None:
        return None
    return int(result)


class CreditRepository:
    """Repository for user_credits and the guarded credit procedures."""

    def __init__(self, db_client: SupabaseClient):
        self.db = db_client

    async def get_balance(self, user_id: str) -> int:
        """Current balance; a user without a row has 0 credits."""
        row = await self.db.execute_query_async(
            "user_credits",
            "select",
            filters={"user_id": str(user_id)},
            single=True
        )
        if not row:
            return 0
        return int(row.get("credits") or 0)

    async def deduct_credits(self, user_id: str, amount: int) -> Optional[int]:
        """
        Call deduct_credits(_user_id, _amount).
        Returns the new balance, or None when the procedure refused the decrement.
        """
        result = await self.db.execute_rpc_async(
            "deduct_credits",
            {"_user_id": str(user_id), "_amount": amount}
        )
        return _rpc_int(result)

    async def add_credits(self, user_id: str, amount: int) -> Optional[int]:
        """Call add_credits(_user_id, _amount) and return the new balance if reported."""
        result = await self.db.execute_rpc_async(
            "add_credits",
            {"_user_id": str(user_id), "_amount": amount}
        )
        return _rpc_int(result)
