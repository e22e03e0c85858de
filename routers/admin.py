"""
Admin router: review of payment requests. Every endpoint requires the admin role.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request
from uuid import UUID
import logging

from middleware.auth import require_admin
from middleware.rate_limiting import api_limit
from routers.payments import get_payment_service
from services.payment_service import PaymentService
from models.payment import AdminPaymentResponse, PaymentDecisionResponse, PaymentStatus
from models.user import CurrentUser
from utils.exceptions import StudioError, to_http_exception

router = APIRouter(tags=["admin"])
logger = logging.getLogger(__name__)


@router.get("/payments", response_model=List[AdminPaymentResponse])
@api_limit()
async def list_payment_requests(
    request: Request,
    status: Optional[PaymentStatus] = Query(None),
    admin: CurrentUser = Depends(require_admin),
    payment_service: PaymentService = Depends(get_payment_service)
):
    """All payment requests newest first, with the requester's email and display name."""
    try:
        return await payment_service.list_all_requests(status)
    except StudioError as e:
        logger.error(f"[ADMIN-ROUTER] Listing payments failed: {e}")
        raise to_http_exception(e)


@router.post("/payments/{payment_id}/approve", response_model=PaymentDecisionResponse)
@api_limit()
async def approve_payment(
    request: Request,
    payment_id: UUID,
    admin: CurrentUser = Depends(require_admin),
    payment_service: PaymentService = Depends(get_payment_service)
):
    """Mark approved and credit the user in one database procedure."""
    try:
        return await payment_service.approve_request(str(payment_id), admin.user_id)
    except StudioError as e:
        logger.warning(f"[ADMIN-ROUTER] Approve {payment_id} by {admin.user_id} failed: {e}")
        raise to_http_exception(e)


@router.post("/payments/{payment_id}/reject", response_model=PaymentDecisionResponse)
@api_limit()
async def reject_payment(
    request: Request,
    payment_id: UUID,
    admin: CurrentUser = Depends(require_admin),
    payment_service: PaymentService = Depends(get_payment_service)
):
    try:
        return await payment_service.reject_request(str(payment_id), admin.user_id)
    except StudioError as e:
        logger.warning(f"[ADMIN-ROUTER] Reject {payment_id} by {admin.user_id} failed: {e}")
        raise to_http_exception(e)
