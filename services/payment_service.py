"""
Payment service: manual credit top-up requests and their admin review.
Service layer for business logic.
"""
import logging
from decimal import Decimal
from typing import List, Optional

from repositories.payment_repository import PaymentRepository
from repositories.user_repository import UserRepository
from services.storage_service import StorageService
from models.payment import (
    AdminPaymentResponse,
    PaymentDecisionResponse,
    PaymentRequestResponse,
    PaymentStatus,
)
from utils.exceptions import ConflictError, DatabaseError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class PaymentService:
    """Create, list, approve and reject payment requests."""

    def __init__(self, payment_repo: PaymentRepository, user_repo: UserRepository,
                 storage_service: Optional[StorageService] = None):
        self.payment_repo = payment_repo
        self.user_repo = user_repo
        self.storage_service = storage_service

    async def create_request(
        self,
        user_id: str,
        amount: Decimal,
        credits_requested: int,
        transaction_id: Optional[str] = None,
        screenshot: Optional[bytes] = None,
        screenshot_content_type: Optional[str] = None
    ) -> PaymentRequestResponse:
        if amount <= 0:
            raise ValidationError("Amount must be greater than zero")
        if credits_requested <= 0:
            raise ValidationError("Credits requested must be greater than zero")

        screenshot_url = None
        if screenshot:
            if self.storage_service is None:
                raise ValidationError("Screenshot uploads are not available")
            screenshot_url = await self.storage_service.upload_payment_screenshot(
                user_id, screenshot, screenshot_content_type
            )

        row = await self.payment_repo.create_request({
            "user_id": str(user_id),
            "amount": str(amount),
            "credits_requested": credits_requested,
            "transaction_id": (transaction_id or "").strip() or None,
            "payment_screenshot_url": screenshot_url,
            "status": PaymentStatus.PENDING.value,
        })
        logger.info(f"[PAYMENTS] User {user_id} requested {credits_requested} credits for {amount}")
        return PaymentRequestResponse(**row)

    async def list_user_requests(self, user_id: str) -> List[PaymentRequestResponse]:
        rows = await self.payment_repo.list_user_requests(user_id)
        return [PaymentRequestResponse(**row) for row in rows]

    async def list_all_requests(self, status: Optional[PaymentStatus] = None) -> List[AdminPaymentResponse]:
        """All requests newest first, merged with requester email and display name."""
        rows = await self.payment_repo.list_requests(status.value if status else None)
        profiles = await self.user_repo.get_profiles(row["user_id"] for row in rows)
        by_id = {str(p["id"]): p for p in profiles}

        merged = []
        for row in rows:
            profile = by_id.get(str(row["user_id"]), {})
            merged.append(AdminPaymentResponse(
                **row,
                user_email=profile.get("email") or "Unknown",
                user_display_name=profile.get("display_name") or "Unknown User"
            ))
        return merged

    async def _get_pending(self, payment_id: str) -> dict:
        row = await self.payment_repo.get_request(payment_id)
        if not row:
            raise NotFoundError("Payment request not found", resource_id=str(payment_id), resource_type="payment")
        if row.get("status") != PaymentStatus.PENDING.value:
            raise ConflictError(f"Payment request is already {row.get('status')}")
        return row

    async def approve_request(self, payment_id: str, admin_id: str) -> PaymentDecisionResponse:
        row = await self._get_pending(payment_id)
        try:
            await self.payment_repo.approve_request(payment_id, admin_id)
        except DatabaseError:
            current = await self.payment_repo.get_request(payment_id)
            if current and current.get("status") != PaymentStatus.PENDING.value:
                # Another admin decided it between the read and the procedure call
                raise ConflictError(f"Payment request is already {current.get('status')}")
            raise
        logger.info(f"[PAYMENTS] Admin {admin_id} approved {payment_id}: "
                    f"+{row.get('credits_requested')} credits for {row.get('user_id')}")
        return PaymentDecisionResponse(
            id=payment_id,
            status=PaymentStatus.APPROVED,
            message="Payment approved and credits added"
        )

    async def reject_request(self, payment_id: str, admin_id: str) -> PaymentDecisionResponse:
        await self._get_pending(payment_id)
        updated = await self.payment_repo.reject_request(payment_id)
        if not updated:
            # Status changed between the read and the guarded update
            raise ConflictError("Payment request is no longer pending")
        logger.info(f"[PAYMENTS] Admin {admin_id} rejected {payment_id}")
        return PaymentDecisionResponse(
            id=payment_id,
            status=PaymentStatus.REJECTED,
            message="Payment request rejected"
        )
