"""
Payment request router: users submit manual top-up requests with an optional screenshot.
"""
from decimal import Decimal
from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status
import logging

from config import settings
from database import SupabaseClient, get_database
from middleware.auth import get_current_user
from middleware.rate_limiting import api_limit, limit
from repositories.payment_repository import PaymentRepository
from repositories.user_repository import UserRepository
from services.payment_service import PaymentService
from services.storage_service import StorageService
from models.payment import PaymentRequestResponse
from models.user import CurrentUser
from utils.exceptions import StudioError, to_http_exception

router = APIRouter(tags=["payments"])
logger = logging.getLogger(__name__)


async def get_payment_service(db: SupabaseClient = Depends(get_database)) -> PaymentService:
    return PaymentService(PaymentRepository(db), UserRepository(db), StorageService(db))


@router.post("", response_model=PaymentRequestResponse, status_code=status.HTTP_201_CREATED)
@router.post("/", response_model=PaymentRequestResponse, status_code=status.HTTP_201_CREATED,
             include_in_schema=False)
@limit("10/minute")
async def create_payment_request(
    request: Request,
    amount: Decimal = Form(..., gt=0),
    credits_requested: int = Form(..., gt=0),
    transaction_id: Optional[str] = Form(None, max_length=200),
    screenshot: Optional[UploadFile] = File(None),
    current_user: CurrentUser = Depends(get_current_user),
    payment_service: PaymentService = Depends(get_payment_service)
):
    """
    Submit a payment request for admin review.

    Multipart form: amount, credits_requested, optional transaction_id and screenshot image.
    """
    screenshot_data = None
    screenshot_type = None
    if screenshot is not None and screenshot.filename:
        screenshot_data = await screenshot.read(settings.max_file_size + 1)
        if len(screenshot_data) > settings.max_file_size:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File too large. Maximum size is {settings.max_file_size // (1024 * 1024)}MB"
            )
        screenshot_type = screenshot.content_type

    try:
        return await payment_service.create_request(
            current_user.user_id,
            amount=amount,
            credits_requested=credits_requested,
            transaction_id=transaction_id,
            screenshot=screenshot_data,
            screenshot_content_type=screenshot_type
        )
    except StudioError as e:
        logger.warning(f"[PAYMENTS-ROUTER] Request from {current_user.user_id} rejected: {e}")
        raise to_http_exception(e)


@router.get("", response_model=List[PaymentRequestResponse])
@router.get("/", response_model=List[PaymentRequestResponse], include_in_schema=False)
@api_limit()
async def list_my_payment_requests(
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    payment_service: PaymentService = Depends(get_payment_service)
):
    try:
        return await payment_service.list_user_requests(current_user.user_id)
    except StudioError as e:
        raise to_http_exception(e)
