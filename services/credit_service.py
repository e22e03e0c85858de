"""
Credit service: balance checks, guarded deductions and refunds.
Service layer for business logic.
"""
import logging
from dataclasses import dataclass

from repositories.credit_repository import CreditRepository
from utils.exceptions import InsufficientCreditsError, ValidationError
from utils.logging_config import log_credit_operation

logger = logging.getLogger(__name__)


@dataclass
class CreditValidationResult:
    """Credit validation result."""
    sufficient: bool
    current_balance: int
    required_amount: int


class CreditService:
    """Credit operations on top of the user_credits table and its procedures."""

    def __init__(self, credit_repo: CreditRepository):
        self.credit_repo = credit_repo

    async def get_balance(self, user_id: str) -> int:
        return await self.credit_repo.get_balance(user_id)

    async def check_credits(self, user_id: str, required_amount: int) -> CreditValidationResult:
        balance = await self.credit_repo.get_balance(user_id)
        return CreditValidationResult(
            sufficient=balance >= required_amount,
            current_balance=balance,
            required_amount=required_amount
        )

    async def deduct(self, user_id: str, amount: int) -> int:
        """
        Deduct credits and return the new balance.

        The balance is checked first so the common failure never reaches the
        procedure; deduct_credits itself refuses (returns null) if a concurrent
        spend got there first.
        """
        if amount <= 0:
            raise ValidationError("Credit amount must be positive")

        balance = await self.credit_repo.get_balance(user_id)
        if balance < amount:
            logger.info(f"[CREDITS] Insufficient credits for user {user_id}: has {balance}, needs {amount}")
            raise InsufficientCreditsError(
                f"User {user_id} has {balance} credits, {amount} required",
                required_credits=amount,
                available_credits=balance
            )

        new_balance = await self.credit_repo.deduct_credits(user_id, amount)
        if new_balance is None:
            current = await self.credit_repo.get_balance(user_id)
            logger.warning(f"[CREDITS] deduct_credits refused for user {user_id} (balance now {current})")
            raise InsufficientCreditsError(
                f"Credit deduction refused for user {user_id}",
                required_credits=amount,
                available_credits=current
            )

        log_credit_operation(logger, "deduct", user_id, amount, balance_after=new_balance)
        return new_balance

    async def refund(self, user_id: str, amount: int, reason: str) -> int:
        """Return credits after a failed upstream call."""
        new_balance = await self.credit_repo.add_credits(user_id, amount)
        if new_balance is None:
            new_balance = await self.credit_repo.get_balance(user_id)
        log_credit_operation(logger, f"refund ({reason})", user_id, amount, balance_after=new_balance)
        return new_balance
