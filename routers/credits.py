"""
Credits router: balance lookup and the check/deduct action used before generating.
"""
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
import logging

from database import SupabaseClient, get_database
from middleware.auth import get_current_user
from middleware.rate_limiting import limit
from repositories.credit_repository import CreditRepository
from services.credit_service import CreditService
from models.credit import CreditAction, CreditBalanceResponse, CreditCheckRequest, CreditCheckResponse
from models.user import CurrentUser
from utils.exceptions import InsufficientCreditsError, StudioError, to_http_exception

router = APIRouter(tags=["credits"])
logger = logging.getLogger(__name__)


async def get_credit_service(db: SupabaseClient = Depends(get_database)) -> CreditService:
    return CreditService(CreditRepository(db))


@router.get("/balance", response_model=CreditBalanceResponse)
@router.get("/balance/", response_model=CreditBalanceResponse, include_in_schema=False)
@limit("200/minute")
async def get_credit_balance(
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    credit_service: CreditService = Depends(get_credit_service)
):
    """Current balance; a user without a user_credits row has 0."""
    try:
        balance = await credit_service.get_balance(current_user.user_id)
    except StudioError as e:
        logger.error(f"[CREDITS-ROUTER] Balance lookup failed for {current_user.user_id}: {e}")
        raise to_http_exception(e)
    return CreditBalanceResponse(credits=balance)


@router.post("/check", response_model=CreditCheckResponse, response_model_exclude_none=True)
@limit("100/minute")
async def check_or_deduct_credits(
    request: Request,
    payload: CreditCheckRequest,
    current_user: CurrentUser = Depends(get_current_user),
    credit_service: CreditService = Depends(get_credit_service)
):
    """
    action=check returns {credits, sufficient}.
    action=deduct returns {credits} with the new balance, or 402 {error, credits}.
    """
    try:
        if payload.action == CreditAction.CHECK:
            result = await credit_service.check_credits(current_user.user_id, payload.credits_needed)
            return CreditCheckResponse(credits=result.current_balance, sufficient=result.sufficient)

        new_balance = await credit_service.deduct(current_user.user_id, payload.credits_needed)
        return CreditCheckResponse(credits=new_balance)
    except InsufficientCreditsError as e:
        return JSONResponse(
            status_code=e.http_status,
            content={"error": "Insufficient credits", "credits": e.available_credits or 0}
        )
    except StudioError as e:
        logger.error(f"[CREDITS-ROUTER] {payload.action.value} failed for {current_user.user_id}: {e}")
        raise to_http_exception(e)
